"""Read side of the article store."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.attributes import set_committed_value

from newsroom_cms.config import QuerySettings
from newsroom_cms.db.models import Article, ArticleStatus
from newsroom_cms.db.session import transaction
from newsroom_cms.errors import ForbiddenError, NotFoundError, ValidationError
from newsroom_cms.repositories.articles import ArticleRepository
from newsroom_cms.services.metrics import metrics
from newsroom_cms.services.payloads import parse_model
from newsroom_cms.services.policy import resolve_scope
from newsroom_cms.services.query_types import (
    ArticleListParams,
    ArticlePage,
    ArticleStats,
    build_query,
)
from newsroom_cms.services.workflow_types import Actor, Role


class ArticleQueryService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        settings: QuerySettings | None = None,
        article_repo: ArticleRepository | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings or QuerySettings()
        self._article_repo = article_repo or ArticleRepository()

    async def list_articles(
        self,
        actor: Actor | None,
        params: ArticleListParams | dict[str, Any] | None = None,
    ) -> ArticlePage:
        params = parse_model(ArticleListParams, params)
        limit = params.limit or self._settings.default_page_size
        if limit > self._settings.max_page_size:
            raise ValidationError(
                f"limit must not exceed {self._settings.max_page_size}",
                details={"field": "limit"},
            )
        scope = resolve_scope(actor, status=params.status, author_id=params.author_id)
        query = build_query(scope, params)

        async with transaction(self._session_factory) as session:
            total = await self._article_repo.count(session, query)
            items = await self._article_repo.list_page(
                session,
                query,
                offset=(params.page - 1) * limit,
                limit=limit,
            )
        return ArticlePage(items=items, total=total, page=params.page, limit=limit)

    async def get_by_slug(self, actor: Actor | None, slug: str) -> Article:
        """Fetch a non-deleted article; reading a published one counts a view."""
        async with transaction(self._session_factory) as session:
            article = await self._article_repo.get_by_slug(session, slug)
            if article is None:
                raise NotFoundError("article not found", details={"slug": slug})
            if article.status != ArticleStatus.PUBLISHED:
                if actor is None:
                    raise NotFoundError("article not found", details={"slug": slug})
                return article
            views = await self._article_repo.increment_views(session, article.id)
            if views is not None:
                # the counter was updated in SQL; keep the instance clean
                set_committed_value(article, "views", views)
        metrics.inc_counter("article_views_total")
        return article

    async def get_by_id(self, actor: Actor | None, article_id: int) -> Article:
        if actor is None:
            raise ForbiddenError("authentication required")
        async with transaction(self._session_factory) as session:
            article = await self._article_repo.get(session, article_id)
        if article is None:
            raise NotFoundError("article not found", details={"id": article_id})
        if actor.role == Role.WRITER and article.author_id != actor.id:
            if article.is_deleted or article.status != ArticleStatus.PUBLISHED:
                raise ForbiddenError("you can only view your own unpublished articles")
        return article

    async def related(self, article_id: int, *, limit: int | None = None) -> list[Article]:
        """Tag-ranked related articles, topped up from the same category."""
        limit = limit or self._settings.related_limit
        async with transaction(self._session_factory) as session:
            source = await self._article_repo.get(session, article_id)
            if source is None or source.is_deleted:
                raise NotFoundError("article not found", details={"id": article_id})
            related = await self._article_repo.list_related_by_tags(
                session,
                article_id=source.id,
                tags=list(source.tags or []),
                limit=limit,
            )
            if len(related) < limit and source.category_id is not None:
                related += await self._article_repo.list_latest_in_category(
                    session,
                    category_id=source.category_id,
                    exclude_ids=[source.id, *(item.id for item in related)],
                    limit=limit - len(related),
                )
        return related[:limit]

    async def stats(self, actor: Actor | None) -> ArticleStats:
        if actor is None:
            raise ForbiddenError("authentication required")
        author_id = actor.id if actor.role == Role.WRITER else None
        async with transaction(self._session_factory) as session:
            by_status = await self._article_repo.count_by_status(session, author_id=author_id)
            by_stage = await self._article_repo.count_by_stage(session, author_id=author_id)
            deleted = await self._article_repo.count_deleted(session, author_id=author_id)
            views = await self._article_repo.total_views(session, author_id=author_id)
        return ArticleStats(
            total=sum(by_status.values()),
            by_status=by_status,
            deleted=deleted,
            by_stage=by_stage,
            views=views,
        )
