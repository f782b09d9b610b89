"""Lifecycle config repository."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom_cms.db.models import LifecycleConfig

SINGLETON_ID = 1
DEFAULT_HOT_TO_ARCHIVE_DAYS = 90
DEFAULT_ARCHIVE_TO_COLD_DAYS = 730


def default_config(now: datetime | None = None) -> LifecycleConfig:
    now = now or datetime.now(timezone.utc)
    return LifecycleConfig(
        id=SINGLETON_ID,
        hot_to_archive_days=DEFAULT_HOT_TO_ARCHIVE_DAYS,
        archive_to_cold_days=DEFAULT_ARCHIVE_TO_COLD_DAYS,
        automation_enabled=True,
        last_hot_to_archive_run=None,
        last_archive_to_cold_run=None,
        last_hot_to_archive_count=0,
        last_archive_to_cold_count=0,
        updated_by_id=None,
        created_at=now,
        updated_at=now,
    )


class LifecycleConfigRepository:
    async def get(self, session: AsyncSession) -> LifecycleConfig | None:
        result = await session.execute(
            select(LifecycleConfig).order_by(LifecycleConfig.id).limit(1)
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, session: AsyncSession) -> LifecycleConfig:
        config = await self.get(session)
        if config:
            return config
        config = default_config()
        try:
            async with session.begin_nested():
                session.add(config)
        except IntegrityError:
            # a concurrent first access created the row
            existing = await self.get(session)
            if existing is None:
                raise
            return existing
        return config
