"""Homepage slot repository."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom_cms.db.models import HomepageConfig


class HomepageRepository:
    """Hero and sub-featured slots of the homepage layout."""

    async def get(self, session: AsyncSession) -> HomepageConfig | None:
        result = await session.execute(
            select(HomepageConfig).order_by(HomepageConfig.id).limit(1)
        )
        return result.scalar_one_or_none()

    async def occupies(self, session: AsyncSession, article_id: int) -> bool:
        config = await self.get(session)
        if config is None:
            return False
        return config.hero_article_id == article_id or article_id in (
            config.sub_featured_article_ids or []
        )

    async def clear(self, session: AsyncSession, article_id: int) -> bool:
        config = await self.get(session)
        if config is None:
            return False
        changed = False
        if config.hero_article_id == article_id:
            config.hero_article_id = None
            changed = True
        sub_featured = list(config.sub_featured_article_ids or [])
        if article_id in sub_featured:
            config.sub_featured_article_ids = [item for item in sub_featured if item != article_id]
            changed = True
        if changed:
            config.updated_at = datetime.now(timezone.utc)
            await session.flush()
        return changed
