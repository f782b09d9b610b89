"""Lifecycle automation settings stored in the database."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from newsroom_cms.db.models import AuditAction, AuditTargetType, LifecycleConfig
from newsroom_cms.errors import ForbiddenError
from newsroom_cms.logging import get_logger
from newsroom_cms.ports.audit import AuditSink
from newsroom_cms.repositories.lifecycle_config import LifecycleConfigRepository
from newsroom_cms.services.audit import AuditRecorder
from newsroom_cms.services.payloads import LifecycleConfigUpdate, parse_model
from newsroom_cms.services.workflow_types import Actor, RequestOrigin


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LifecycleConfigService:
    """Single-row config, created with defaults on first access."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        repo: LifecycleConfigRepository | None = None,
        audit: AuditSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._repo = repo or LifecycleConfigRepository()
        self._audit = audit or AuditRecorder(session_factory)
        self._clock = clock or _utcnow
        self._log = get_logger(__name__)

    async def get(self) -> LifecycleConfig:
        async with self._session_factory() as session:
            async with session.begin():
                return await self.load(session)

    async def load(self, session: AsyncSession) -> LifecycleConfig:
        return await self._repo.get_or_create(session)

    async def update(
        self,
        actor: Actor | None,
        changes: LifecycleConfigUpdate | Mapping[str, Any],
        *,
        origin: RequestOrigin | None = None,
    ) -> LifecycleConfig:
        if actor is None or not actor.is_superadmin:
            raise ForbiddenError("lifecycle settings require superadmin role")
        values = parse_model(LifecycleConfigUpdate, changes).changes()

        diff: dict[str, dict[str, Any]] = {}
        async with self._session_factory() as session:
            async with session.begin():
                config = await self.load(session)
                for name, value in values.items():
                    current = getattr(config, name)
                    if current != value:
                        diff[name] = {"from": current, "to": value}
                        setattr(config, name, value)
                if diff:
                    config.updated_by_id = actor.id
                    config.updated_at = self._clock()

        if diff:
            self._log.info("lifecycle_config.updated", actor_id=actor.id, fields=sorted(diff))
            self._audit.record(
                action=AuditAction.UPDATE_LIFECYCLE_CONFIG,
                target_type=AuditTargetType.LIFECYCLE_CONFIG,
                actor=actor,
                target_id=config.id,
                target_name="lifecycle_config",
                details={"changes": diff},
                origin=origin,
            )
        return config
