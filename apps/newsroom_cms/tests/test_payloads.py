from __future__ import annotations

import pytest

from newsroom_cms.db.models import ArticleStatus
from newsroom_cms.errors import ValidationError
from newsroom_cms.services.payloads import (
    ArticleCreate,
    ArticleUpdate,
    LifecycleConfigUpdate,
    parse_model,
)


def test_create_trims_title_and_normalizes_tags() -> None:
    payload = parse_model(
        ArticleCreate,
        {"title": "  Title  ", "body": "Body", "tags": ["a", " a ", "", "b"], "slug": "  "},
    )

    assert payload.title == "Title"
    assert payload.tags == ["a", "b"]
    assert payload.slug is None


def test_create_rejects_long_title() -> None:
    with pytest.raises(ValidationError) as exc_info:
        parse_model(ArticleCreate, {"title": "x" * 201, "body": "Body"})

    assert exc_info.value.details["errors"][0]["field"] == "title"


def test_create_rejects_long_intro_and_excerpt() -> None:
    with pytest.raises(ValidationError) as exc_info:
        parse_model(
            ArticleCreate,
            {"title": "t", "body": "b", "intro": "i" * 501, "excerpt": "e" * 501},
        )

    fields = {error["field"] for error in exc_info.value.details["errors"]}
    assert fields == {"intro", "excerpt"}


def test_create_rejects_unknown_status_and_extra_fields() -> None:
    with pytest.raises(ValidationError):
        parse_model(ArticleCreate, {"title": "t", "body": "b", "status": "bogus"})
    with pytest.raises(ValidationError):
        parse_model(ArticleCreate, {"title": "t", "body": "b", "views": 100})


def test_update_changes_only_include_explicit_fields() -> None:
    payload = parse_model(ArticleUpdate, {"title": "New", "excerpt": None})

    assert payload.changes() == {"title": "New", "excerpt": None}


def test_update_rejects_null_for_required_field() -> None:
    with pytest.raises(ValidationError):
        parse_model(ArticleUpdate, {"title": None})


def test_update_drops_null_status_and_slug() -> None:
    payload = parse_model(ArticleUpdate, {"status": None, "slug": None, "is_trending": True})

    assert payload.changes() == {"is_trending": True}


def test_update_accepts_status_enum() -> None:
    assert parse_model(ArticleUpdate, {"status": "review"}).status == ArticleStatus.REVIEW


def test_parse_model_passes_instances_through() -> None:
    payload = ArticleUpdate(title="Same")

    assert parse_model(ArticleUpdate, payload) is payload


@pytest.mark.parametrize(
    "data",
    [
        {"hot_to_archive_days": 0},
        {"hot_to_archive_days": 366},
        {"archive_to_cold_days": 179},
        {"archive_to_cold_days": 3651},
    ],
)
def test_lifecycle_config_update_rejects_out_of_range(data: dict[str, int]) -> None:
    with pytest.raises(ValidationError):
        parse_model(LifecycleConfigUpdate, data)


def test_lifecycle_config_update_accepts_bounds() -> None:
    payload = parse_model(
        LifecycleConfigUpdate,
        {"hot_to_archive_days": 365, "archive_to_cold_days": 180, "automation_enabled": False},
    )

    assert payload.changes() == {
        "hot_to_archive_days": 365,
        "archive_to_cold_days": 180,
        "automation_enabled": False,
    }
