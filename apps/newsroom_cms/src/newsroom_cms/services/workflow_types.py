"""Workflow types."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class Role(enum.StrEnum):
    WRITER = "writer"
    EDITOR = "editor"
    SUPERADMIN = "superadmin"


ELEVATED_ROLES = frozenset({Role.EDITOR, Role.SUPERADMIN})


@dataclass(frozen=True, slots=True)
class Actor:
    """Authenticated staff member performing an operation.

    Anonymous readers are represented by ``None`` wherever an actor is accepted.
    """

    id: int
    role: Role
    name: str = ""
    direct_publish_enabled: bool = False

    @property
    def is_elevated(self) -> bool:
        return self.role in ELEVATED_ROLES

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN


@dataclass(frozen=True, slots=True)
class RequestOrigin:
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(slots=True)
class BulkResult:
    """Outcome of a bulk lifecycle action: ids moved and ids skipped with the error kind."""

    moved: list[int] = field(default_factory=list)
    skipped: dict[int, str] = field(default_factory=dict)
