from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy.dialects import postgresql

from newsroom_cms.db.models import ArticleStatus, LifecycleStage
from newsroom_cms.repositories.articles import ArticleRepository, listing_statement
from newsroom_cms.services.policy import resolve_scope
from newsroom_cms.services.query_types import ArticleQuery, ArticleScope
from newsroom_cms.services.workflow_types import Actor, Role

NOW = datetime(2026, 4, 1, tzinfo=timezone.utc)


def _sql(statement) -> str:  # noqa: ANN001
    return str(statement.compile(dialect=postgresql.dialect()))


def _params(statement) -> dict:  # noqa: ANN001
    return statement.compile(dialect=postgresql.dialect()).params


class _Result:
    def __init__(self, rowcount: int = 0, value=None) -> None:  # noqa: ANN001
        self.rowcount = rowcount
        self._value = value

    def scalar_one_or_none(self):
        return self._value

    def scalar_one(self):
        return self._value

    def scalars(self) -> _Result:
        return self

    def all(self) -> list:
        return []


class RecordingSession:
    def __init__(self, result: _Result | None = None) -> None:
        self.statements: list = []
        self._result = result or _Result()

    async def execute(self, statement):  # noqa: ANN001
        self.statements.append(statement)
        return self._result


def test_guest_listing_is_published_non_deleted_and_ordered() -> None:
    sql = _sql(listing_statement(ArticleQuery(scope=resolve_scope(None))))

    assert "articles.is_deleted IS false" in sql
    assert "articles.status = %(status_1)s" in sql
    assert "ORDER BY articles.published_at DESC NULLS LAST, articles.created_at DESC" in sql


def test_trash_listing_has_no_status_filter() -> None:
    scope = resolve_scope(Actor(id=1, role=Role.EDITOR), status="trash")

    sql = _sql(listing_statement(ArticleQuery(scope=scope)))

    assert "articles.is_deleted IS true" in sql
    assert "articles.status =" not in sql


def test_filters_compile_for_postgres() -> None:
    query = ArticleQuery(
        scope=ArticleScope(status=ArticleStatus.PUBLISHED, author_id=3),
        category_id=4,
        tag="Economy",
        search="50%",
        is_trending=True,
        created_from=NOW,
        created_before=NOW,
        lifecycle_stage=LifecycleStage.ARCHIVE,
    )

    statement = listing_statement(query)
    sql = _sql(statement)
    params = _params(statement)

    assert "articles.author_id = " in sql
    assert "unnest(articles.tags)" in sql
    assert "lower(anon_1.tag)" in sql
    assert "array_to_string(articles.tags" in sql
    assert "articles.is_trending IS true" in sql
    assert "economy" in params.values()
    assert "%50\\%%" in params.values()


@pytest.mark.asyncio
async def test_advance_stage_to_archive_stamps_automation_reason() -> None:
    session = RecordingSession(_Result(rowcount=3))

    moved = await ArticleRepository().advance_stage(
        session,
        from_stage=LifecycleStage.HOT,
        to_stage=LifecycleStage.ARCHIVE,
        published_before=NOW,
        now=NOW,
    )

    statement = session.statements[0]
    sql = _sql(statement)
    assert moved == 3
    assert sql.startswith("UPDATE articles SET lifecycle_stage=")
    assert "archived_at=" in sql
    assert "archive_reason=" in sql
    assert "articles.published_at <= " in sql
    assert "articles.is_deleted IS false" in sql


@pytest.mark.asyncio
async def test_advance_stage_to_cold_keeps_archive_metadata() -> None:
    session = RecordingSession(_Result(rowcount=0))

    await ArticleRepository().advance_stage(
        session,
        from_stage=LifecycleStage.ARCHIVE,
        to_stage=LifecycleStage.COLD,
        published_before=NOW,
        now=NOW,
    )

    sql = _sql(session.statements[0])
    assert "archived_at=" not in sql
    assert "archive_reason=" not in sql


@pytest.mark.asyncio
async def test_increment_views_is_a_single_atomic_update() -> None:
    session = RecordingSession(_Result(value=8))

    views = await ArticleRepository().increment_views(session, 5)

    sql = _sql(session.statements[0])
    assert views == 8
    assert "SET views=(articles.views + " in sql
    assert "updated_at" not in sql
    assert "RETURNING articles.views" in sql


@pytest.mark.asyncio
async def test_related_by_tags_ranks_by_shared_tags() -> None:
    session = RecordingSession()

    await ArticleRepository().list_related_by_tags(session, article_id=1, tags=["a", "b"], limit=4)

    sql = _sql(session.statements[0])
    assert "articles.id != " in sql
    assert "articles.tags && " in sql
    assert "unnest(articles.tags)" in sql
    assert "distinct" in sql.lower()
    assert "DESC" in sql.split("ORDER BY", 1)[1]
    assert "LIMIT" in sql


@pytest.mark.asyncio
async def test_related_without_tags_skips_query() -> None:
    session = RecordingSession()

    assert await ArticleRepository().list_related_by_tags(session, article_id=1, tags=[], limit=4) == []
    assert session.statements == []
