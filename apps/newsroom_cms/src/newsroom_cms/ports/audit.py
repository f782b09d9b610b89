"""Audit sink port for newsroom-cms."""

from __future__ import annotations

from typing import Any, Protocol

from newsroom_cms.db.models import AuditAction, AuditTargetType
from newsroom_cms.services.workflow_types import Actor, RequestOrigin


class AuditSink(Protocol):
    """Receives audit records; implementations must never raise into the caller."""

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
    ) -> None: ...
