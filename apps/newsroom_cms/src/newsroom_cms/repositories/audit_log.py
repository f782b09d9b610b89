"""Audit log repository."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ColumnElement, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom_cms.db.models import AuditAction, AuditLogEntry, AuditTargetType
from newsroom_cms.utils.text import escape_like


class AuditLogRepository:
    async def add(self, session: AsyncSession, entry: AuditLogEntry) -> AuditLogEntry:
        session.add(entry)
        await session.flush()
        return entry

    async def list_page(
        self,
        session: AsyncSession,
        conditions: list[ColumnElement[bool]],
        *,
        offset: int,
        limit: int,
    ) -> list[AuditLogEntry]:
        result = await session.execute(
            select(AuditLogEntry)
            .where(*conditions)
            .order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count(self, session: AsyncSession, conditions: list[ColumnElement[bool]]) -> int:
        result = await session.execute(
            select(func.count()).select_from(AuditLogEntry).where(*conditions)
        )
        return int(result.scalar_one())

    async def list_for_target(
        self,
        session: AsyncSession,
        *,
        target_type: AuditTargetType,
        target_id: int,
    ) -> list[AuditLogEntry]:
        result = await session.execute(
            select(AuditLogEntry)
            .where(
                AuditLogEntry.target_type == target_type,
                AuditLogEntry.target_id == target_id,
            )
            .order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
        )
        return list(result.scalars().all())

    async def count_by_action(
        self, session: AsyncSession, *, limit: int = 10
    ) -> list[tuple[AuditAction, int]]:
        count = func.count().label("count")
        result = await session.execute(
            select(AuditLogEntry.action, count)
            .group_by(AuditLogEntry.action)
            .order_by(count.desc())
            .limit(limit)
        )
        return [(action, int(total)) for action, total in result.all()]

    async def count_by_target_type(
        self, session: AsyncSession
    ) -> list[tuple[AuditTargetType, int]]:
        count = func.count().label("count")
        result = await session.execute(
            select(AuditLogEntry.target_type, count)
            .group_by(AuditLogEntry.target_type)
            .order_by(count.desc())
        )
        return [(target_type, int(total)) for target_type, total in result.all()]

    async def count_since(self, session: AsyncSession, *, since: datetime) -> int:
        return await self.count(session, [AuditLogEntry.created_at >= since])

    async def distinct_actions(self, session: AsyncSession) -> list[AuditAction]:
        result = await session.execute(
            select(AuditLogEntry.action).distinct().order_by(AuditLogEntry.action)
        )
        return list(result.scalars().all())

    async def delete_older_than(self, session: AsyncSession, *, cutoff: datetime) -> int:
        result = await session.execute(
            delete(AuditLogEntry).where(AuditLogEntry.created_at < cutoff)
        )
        return int(result.rowcount or 0)


def search_condition(search: str) -> ColumnElement[bool]:
    pattern = f"%{escape_like(search)}%"
    return or_(
        AuditLogEntry.target_name.ilike(pattern, escape="\\"),
        AuditLogEntry.actor_name.ilike(pattern, escape="\\"),
    )
