"""Article repository."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ColumnElement, Select, delete, exists, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.selectable import TableValuedAlias

from newsroom_cms.db.models import ArchiveReason, Article, ArticleStatus, LifecycleStage
from newsroom_cms.services.query_types import ArticleQuery
from newsroom_cms.utils.text import escape_like


def _tag_values() -> TableValuedAlias:
    return func.unnest(Article.tags).table_valued("tag").render_derived()


def query_conditions(query: ArticleQuery) -> list[ColumnElement[bool]]:
    scope = query.scope
    conditions: list[ColumnElement[bool]] = [Article.is_deleted.is_(scope.is_deleted)]
    if scope.status is not None:
        conditions.append(Article.status == scope.status)
    if scope.author_id is not None:
        conditions.append(Article.author_id == scope.author_id)
    if query.category_id is not None:
        conditions.append(Article.category_id == query.category_id)
    if query.lifecycle_stage is not None:
        conditions.append(Article.lifecycle_stage == query.lifecycle_stage)
    if query.is_trending is not None:
        conditions.append(Article.is_trending.is_(query.is_trending))
    if query.is_featured is not None:
        conditions.append(Article.is_featured.is_(query.is_featured))
    if query.created_from is not None:
        conditions.append(Article.created_at >= query.created_from)
    if query.created_before is not None:
        conditions.append(Article.created_at < query.created_before)
    if query.tag:
        tags = _tag_values()
        conditions.append(
            exists(
                select(1)
                .select_from(tags)
                .where(func.lower(tags.c.tag) == query.tag.lower())
            )
        )
    if query.search:
        pattern = f"%{escape_like(query.search)}%"
        conditions.append(
            or_(
                Article.title.ilike(pattern, escape="\\"),
                func.array_to_string(Article.tags, " ").ilike(pattern, escape="\\"),
                Article.body.ilike(pattern, escape="\\"),
                Article.excerpt.ilike(pattern, escape="\\"),
            )
        )
    return conditions


def listing_statement(query: ArticleQuery) -> Select[tuple[Article]]:
    return (
        select(Article)
        .where(*query_conditions(query))
        .order_by(
            Article.published_at.desc().nulls_last(),
            Article.created_at.desc(),
            Article.id.desc(),
        )
    )


class ArticleRepository:
    async def get(self, session: AsyncSession, article_id: int) -> Article | None:
        result = await session.execute(select(Article).where(Article.id == article_id))
        return result.scalar_one_or_none()

    async def get_by_slug(
        self,
        session: AsyncSession,
        slug: str,
        *,
        include_deleted: bool = False,
    ) -> Article | None:
        query = select(Article).where(Article.slug == slug)
        if not include_deleted:
            query = query.where(Article.is_deleted.is_(False))
        result = await session.execute(query)
        return result.scalar_one_or_none()

    async def slug_exists(
        self,
        session: AsyncSession,
        slug: str,
        *,
        exclude_id: int | None = None,
    ) -> bool:
        query = select(Article.id).where(Article.slug == slug)
        if exclude_id is not None:
            query = query.where(Article.id != exclude_id)
        result = await session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def create(self, session: AsyncSession, article: Article) -> Article:
        session.add(article)
        await session.flush()
        return article

    async def delete(self, session: AsyncSession, article_id: int) -> bool:
        result = await session.execute(delete(Article).where(Article.id == article_id))
        return bool(result.rowcount)

    async def list_page(
        self,
        session: AsyncSession,
        query: ArticleQuery,
        *,
        offset: int,
        limit: int,
    ) -> list[Article]:
        result = await session.execute(listing_statement(query).offset(offset).limit(limit))
        return list(result.scalars().all())

    async def count(self, session: AsyncSession, query: ArticleQuery) -> int:
        result = await session.execute(
            select(func.count()).select_from(Article).where(*query_conditions(query))
        )
        return int(result.scalar_one())

    async def increment_views(self, session: AsyncSession, article_id: int) -> int | None:
        result = await session.execute(
            update(Article)
            .where(Article.id == article_id)
            .values(views=Article.views + 1)
            .returning(Article.views)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()

    async def list_related_by_tags(
        self,
        session: AsyncSession,
        *,
        article_id: int,
        tags: list[str],
        limit: int,
    ) -> list[Article]:
        if not tags:
            return []
        candidate_tags = _tag_values()
        shared = (
            select(func.count(candidate_tags.c.tag.distinct()))
            .select_from(candidate_tags)
            .where(candidate_tags.c.tag.in_(tags))
            .scalar_subquery()
        )
        result = await session.execute(
            select(Article)
            .where(
                Article.id != article_id,
                Article.status == ArticleStatus.PUBLISHED,
                Article.is_deleted.is_(False),
                Article.tags.overlap(tags),
            )
            .order_by(shared.desc(), Article.published_at.desc().nulls_last())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_latest_in_category(
        self,
        session: AsyncSession,
        *,
        category_id: int,
        exclude_ids: list[int],
        limit: int,
    ) -> list[Article]:
        if limit <= 0:
            return []
        result = await session.execute(
            select(Article)
            .where(
                Article.id.not_in(exclude_ids),
                Article.category_id == category_id,
                Article.status == ArticleStatus.PUBLISHED,
                Article.is_deleted.is_(False),
            )
            .order_by(Article.published_at.desc().nulls_last())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def advance_stage(
        self,
        session: AsyncSession,
        *,
        from_stage: LifecycleStage,
        to_stage: LifecycleStage,
        published_before: datetime,
        now: datetime,
    ) -> int:
        values: dict[str, object] = {"lifecycle_stage": to_stage}
        if to_stage == LifecycleStage.ARCHIVE:
            values["archived_at"] = now
            values["archive_reason"] = ArchiveReason.AUTOMATION
        result = await session.execute(
            update(Article)
            .where(
                Article.lifecycle_stage == from_stage,
                Article.status == ArticleStatus.PUBLISHED,
                Article.is_deleted.is_(False),
                Article.published_at <= published_before,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    async def list_archive_candidates(
        self,
        session: AsyncSession,
        *,
        published_before: datetime,
        limit: int,
    ) -> list[Article]:
        result = await session.execute(
            select(Article)
            .where(
                or_(Article.lifecycle_stage == LifecycleStage.HOT, Article.lifecycle_stage.is_(None)),
                Article.status == ArticleStatus.PUBLISHED,
                Article.is_deleted.is_(False),
                Article.published_at <= published_before,
            )
            .order_by(Article.published_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_by_status(
        self, session: AsyncSession, *, author_id: int | None = None
    ) -> dict[ArticleStatus, int]:
        query = (
            select(Article.status, func.count())
            .where(Article.is_deleted.is_(False))
            .group_by(Article.status)
        )
        if author_id is not None:
            query = query.where(Article.author_id == author_id)
        result = await session.execute(query)
        return {status: int(count) for status, count in result.all()}

    async def count_by_stage(
        self, session: AsyncSession, *, author_id: int | None = None
    ) -> dict[LifecycleStage, int]:
        query = (
            select(Article.lifecycle_stage, func.count())
            .where(Article.is_deleted.is_(False), Article.lifecycle_stage.is_not(None))
            .group_by(Article.lifecycle_stage)
        )
        if author_id is not None:
            query = query.where(Article.author_id == author_id)
        result = await session.execute(query)
        return {stage: int(count) for stage, count in result.all()}

    async def count_deleted(self, session: AsyncSession, *, author_id: int | None = None) -> int:
        query = select(func.count()).select_from(Article).where(Article.is_deleted.is_(True))
        if author_id is not None:
            query = query.where(Article.author_id == author_id)
        result = await session.execute(query)
        return int(result.scalar_one())

    async def total_views(self, session: AsyncSession, *, author_id: int | None = None) -> int:
        query = select(func.coalesce(func.sum(Article.views), 0)).where(
            Article.is_deleted.is_(False)
        )
        if author_id is not None:
            query = query.where(Article.author_id == author_id)
        result = await session.execute(query)
        return int(result.scalar_one())
