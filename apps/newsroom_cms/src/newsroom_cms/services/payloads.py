"""Validated input payloads for article and config mutations."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from newsroom_cms.db.models import (
    EXCERPT_MAX_LENGTH,
    INTRO_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    ArticleStatus,
)
from newsroom_cms.errors import ValidationError
from newsroom_cms.utils.text import normalize_tags

ModelT = TypeVar("ModelT", bound=BaseModel)

HOT_TO_ARCHIVE_RANGE = (1, 365)
ARCHIVE_TO_COLD_RANGE = (180, 3650)

_NULLABLE_UPDATE_FIELDS = frozenset({"slug", "excerpt", "featured_image", "category_id", "status"})


class _ArticleFields(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    @field_validator("tags", check_fields=False)
    @classmethod
    def clean_tags(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return normalize_tags(value)

    @field_validator("slug", check_fields=False)
    @classmethod
    def blank_slug_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value or None


class ArticleCreate(_ArticleFields):
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    slug: str | None = None
    intro: str = Field("", max_length=INTRO_MAX_LENGTH)
    body: str = Field(..., min_length=1)
    excerpt: str | None = Field(None, max_length=EXCERPT_MAX_LENGTH)
    featured_image: str | None = None
    image_alt: str = ""
    tags: list[str] = Field(default_factory=list)
    country: str = ""
    category_id: int | None = None
    is_trending: bool = False
    is_featured: bool = False
    show_publish_date: bool = True
    show_in_home_feed: bool = True
    status: ArticleStatus | None = None


class ArticleUpdate(_ArticleFields):
    """Partial update; only fields explicitly set by the caller are applied."""

    title: str | None = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    slug: str | None = None
    intro: str | None = Field(None, max_length=INTRO_MAX_LENGTH)
    body: str | None = Field(None, min_length=1)
    excerpt: str | None = Field(None, max_length=EXCERPT_MAX_LENGTH)
    featured_image: str | None = None
    image_alt: str | None = None
    tags: list[str] | None = None
    country: str | None = None
    category_id: int | None = None
    is_trending: bool | None = None
    is_featured: bool | None = None
    show_publish_date: bool | None = None
    show_in_home_feed: bool | None = None
    status: ArticleStatus | None = None

    @model_validator(mode="after")
    def reject_null_required(self) -> ArticleUpdate:
        nulled = sorted(
            name
            for name in self.model_fields_set - _NULLABLE_UPDATE_FIELDS
            if getattr(self, name) is None
        )
        if nulled:
            raise ValueError(f"fields cannot be null: {', '.join(nulled)}")
        return self

    def changes(self) -> dict[str, Any]:
        data = self.model_dump(exclude_unset=True)
        for name in ("slug", "status"):
            if data.get(name, ...) is None:
                data.pop(name)
        return data


class LifecycleConfigUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    hot_to_archive_days: int | None = Field(
        None, ge=HOT_TO_ARCHIVE_RANGE[0], le=HOT_TO_ARCHIVE_RANGE[1]
    )
    archive_to_cold_days: int | None = Field(
        None, ge=ARCHIVE_TO_COLD_RANGE[0], le=ARCHIVE_TO_COLD_RANGE[1]
    )
    automation_enabled: bool | None = None

    def changes(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }


def parse_model(model_cls: type[ModelT], data: ModelT | Mapping[str, Any] | None) -> ModelT:
    """Coerce caller input into ``model_cls``, reporting failures as ``ValidationError``."""
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(dict(data or {}))
    except PydanticValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        raise ValidationError("invalid input", details={"errors": errors}) from exc
