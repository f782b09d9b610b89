"""Audit trail: detached write side and superadmin read side."""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy import ColumnElement
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from newsroom_cms.config import AuditSettings
from newsroom_cms.db.models import AuditAction, AuditLogEntry, AuditTargetType
from newsroom_cms.errors import ForbiddenError
from newsroom_cms.logging import get_logger
from newsroom_cms.repositories.audit_log import AuditLogRepository, search_condition
from newsroom_cms.services.metrics import metrics
from newsroom_cms.services.payloads import parse_model
from newsroom_cms.services.workflow_types import Actor, RequestOrigin


def build_entry(
    *,
    action: AuditAction,
    target_type: AuditTargetType,
    actor: Actor,
    target_id: int | None = None,
    target_name: str | None = None,
    details: dict[str, Any] | None = None,
    origin: RequestOrigin | None = None,
) -> AuditLogEntry:
    origin = origin or RequestOrigin()
    return AuditLogEntry(
        action=action,
        target_type=target_type,
        target_id=target_id,
        target_name=target_name,
        actor_id=actor.id,
        actor_name=actor.name or None,
        actor_role=actor.role.value,
        details=details or None,
        ip_address=origin.ip_address,
        user_agent=origin.user_agent,
    )


class AuditRecorder:
    """Fire-and-forget audit writer.

    ``record`` returns immediately; the row is written by a background task in
    its own session, so a failed audit write never affects the operation that
    produced it. Delivery is at most once: failures are logged and counted,
    never retried.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        repo: AuditLogRepository | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._repo = repo or AuditLogRepository()
        self._pending: set[asyncio.Task[None]] = set()
        self._log = get_logger(__name__)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def record(
        self,
        *,
        action: AuditAction,
        target_type: AuditTargetType,
        actor: Actor,
        target_id: int | None = None,
        target_name: str | None = None,
        details: dict[str, Any] | None = None,
        origin: RequestOrigin | None = None,
    ) -> None:
        entry = build_entry(
            action=action,
            target_type=target_type,
            actor=actor,
            target_id=target_id,
            target_name=target_name,
            details=details,
            origin=origin,
        )
        try:
            task = asyncio.get_running_loop().create_task(self._write(entry))
        except RuntimeError:
            metrics.inc_counter("audit_write_failures_total")
            self._log.warning("audit.no_event_loop", action=action.value, target_id=target_id)
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _write(self, entry: AuditLogEntry) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await self._repo.add(session, entry)
        except Exception:
            metrics.inc_counter("audit_write_failures_total")
            self._log.exception(
                "audit.write_failed",
                action=entry.action.value,
                target_type=entry.target_type.value,
                target_id=entry.target_id,
            )
            return
        metrics.inc_counter("audit_records_total", labels={"action": entry.action.value})


class AuditQueryParams(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="ignore")

    action: AuditAction | None = None
    target_type: AuditTargetType | None = None
    target_id: int | None = None
    actor_id: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    search: str | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=200)

    @field_validator("search")
    @classmethod
    def empty_to_none(cls, value: str | None) -> str | None:
        return value or None

    @model_validator(mode="after")
    def validate_date_range(self) -> AuditQueryParams:
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self

    def conditions(self) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []
        if self.action is not None:
            conditions.append(AuditLogEntry.action == self.action)
        if self.target_type is not None:
            conditions.append(AuditLogEntry.target_type == self.target_type)
        if self.target_id is not None:
            conditions.append(AuditLogEntry.target_id == self.target_id)
        if self.actor_id is not None:
            conditions.append(AuditLogEntry.actor_id == self.actor_id)
        if self.start_date:
            conditions.append(
                AuditLogEntry.created_at
                >= datetime.combine(self.start_date, time.min, tzinfo=timezone.utc)
            )
        if self.end_date:
            conditions.append(
                AuditLogEntry.created_at
                < datetime.combine(self.end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
            )
        if self.search:
            conditions.append(search_condition(self.search))
        return conditions


@dataclass(slots=True)
class AuditPage:
    items: list[AuditLogEntry]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass(slots=True)
class AuditStats:
    total: int = 0
    last_24h: int = 0
    top_actions: list[tuple[AuditAction, int]] = field(default_factory=list)
    by_target_type: dict[AuditTargetType, int] = field(default_factory=dict)


class AuditLogService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        settings: AuditSettings | None = None,
        repo: AuditLogRepository | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings or AuditSettings()
        self._repo = repo or AuditLogRepository()
        self._log = get_logger(__name__)

    async def list_entries(
        self, actor: Actor | None, params: AuditQueryParams | dict[str, Any] | None = None
    ) -> AuditPage:
        _require_superadmin(actor)
        query = parse_model(AuditQueryParams, params)
        conditions = query.conditions()
        async with self._session_factory() as session:
            async with session.begin():
                total = await self._repo.count(session, conditions)
                items = await self._repo.list_page(
                    session,
                    conditions,
                    offset=(query.page - 1) * query.limit,
                    limit=query.limit,
                )
        return AuditPage(items=items, total=total, page=query.page, limit=query.limit)

    async def article_history(self, actor: Actor | None, article_id: int) -> list[AuditLogEntry]:
        _require_superadmin(actor)
        async with self._session_factory() as session:
            async with session.begin():
                return await self._repo.list_for_target(
                    session,
                    target_type=AuditTargetType.ARTICLE,
                    target_id=article_id,
                )

    async def actions(self, actor: Actor | None) -> list[AuditAction]:
        _require_superadmin(actor)
        async with self._session_factory() as session:
            async with session.begin():
                return await self._repo.distinct_actions(session)

    async def stats(self, actor: Actor | None, *, now: datetime | None = None) -> AuditStats:
        _require_superadmin(actor)
        now = now or datetime.now(timezone.utc)
        async with self._session_factory() as session:
            async with session.begin():
                total = await self._repo.count(session, [])
                recent = await self._repo.count_since(session, since=now - timedelta(days=1))
                top_actions = await self._repo.count_by_action(session)
                by_target = await self._repo.count_by_target_type(session)
        return AuditStats(
            total=total,
            last_24h=recent,
            top_actions=top_actions,
            by_target_type=dict(by_target),
        )

    async def purge_expired(self, *, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=self._settings.retention_days)
        async with self._session_factory() as session:
            async with session.begin():
                removed = await self._repo.delete_older_than(session, cutoff=cutoff)
        metrics.inc_counter("audit_purged_total", removed)
        self._log.info("audit.purged", removed=removed, cutoff=cutoff.isoformat())
        return removed


def _require_superadmin(actor: Actor | None) -> None:
    if actor is None or not actor.is_superadmin:
        raise ForbiddenError("audit log requires superadmin role")
