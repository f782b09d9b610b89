"""Query types shared by the policy, query service and article repository."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from newsroom_cms.db.models import Article, ArticleStatus, LifecycleStage


@dataclass(frozen=True, slots=True)
class ArticleScope:
    status: ArticleStatus | None
    author_id: int | None = None
    is_deleted: bool = False


class ArticleListParams(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="ignore")

    status: str | None = None
    author_id: int | None = None
    category_id: int | None = None
    tag: str | None = None
    search: str | None = None
    is_trending: bool | None = None
    is_featured: bool | None = None
    start_date: date | None = None
    end_date: date | None = None
    lifecycle_stage: LifecycleStage | None = None
    page: int = Field(1, ge=1)
    limit: int | None = Field(None, ge=1)

    @field_validator("status", "tag", "search")
    @classmethod
    def empty_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value or None

    @model_validator(mode="after")
    def validate_date_range(self) -> ArticleListParams:
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self


@dataclass(frozen=True, slots=True)
class ArticleQuery:
    scope: ArticleScope
    category_id: int | None = None
    tag: str | None = None
    search: str | None = None
    is_trending: bool | None = None
    is_featured: bool | None = None
    created_from: datetime | None = None
    created_before: datetime | None = None
    lifecycle_stage: LifecycleStage | None = None


def build_query(scope: ArticleScope, params: ArticleListParams) -> ArticleQuery:
    created_from = None
    created_before = None
    if params.start_date:
        created_from = datetime.combine(params.start_date, time.min, tzinfo=timezone.utc)
    if params.end_date:
        # end day is inclusive
        created_before = datetime.combine(
            params.end_date + timedelta(days=1), time.min, tzinfo=timezone.utc
        )
    return ArticleQuery(
        scope=scope,
        category_id=params.category_id,
        tag=params.tag,
        search=params.search,
        is_trending=params.is_trending,
        is_featured=params.is_featured,
        created_from=created_from,
        created_before=created_before,
        lifecycle_stage=params.lifecycle_stage,
    )


@dataclass(slots=True)
class ArticlePage:
    items: list[Article]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass(slots=True)
class ArticleStats:
    total: int = 0
    by_status: dict[ArticleStatus, int] = field(default_factory=dict)
    deleted: int = 0
    by_stage: dict[LifecycleStage, int] = field(default_factory=dict)
    views: int = 0

    def count(self, status: ArticleStatus) -> int:
        return self.by_status.get(status, 0)
