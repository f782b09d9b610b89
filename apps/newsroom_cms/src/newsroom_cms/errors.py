"""Domain errors returned to callers as structured failures."""

from __future__ import annotations

import enum
from typing import Any


class ErrorKind(enum.StrEnum):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    INTERNAL = "internal"


class CmsError(Exception):
    """Base error for every failure a core operation may report."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.details:
            data["details"] = dict(self.details)
        return data


class NotFoundError(CmsError):
    """Raised when an entity id or slug does not resolve."""

    kind = ErrorKind.NOT_FOUND


class ForbiddenError(CmsError):
    """Raised when a role or ownership guard fails."""

    kind = ErrorKind.FORBIDDEN


class ConflictError(CmsError):
    """Raised for an illegal state transition."""

    kind = ErrorKind.CONFLICT


class ValidationError(CmsError):
    """Raised for invalid input or a uniqueness violation."""

    kind = ErrorKind.VALIDATION


class InternalError(CmsError):
    """Raised when storage fails; never carries driver details."""

    kind = ErrorKind.INTERNAL
