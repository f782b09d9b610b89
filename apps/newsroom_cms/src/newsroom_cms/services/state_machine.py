"""Article editorial state machine.

Each transition checks its guards first and only then mutates the in-memory
article, returning the audit action and the names of the fields that actually
changed. Persistence, history and audit dispatch are the workflow service's job.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from newsroom_cms.db.models import (
    ArchiveReason,
    Article,
    ArticleStatus,
    AuditAction,
    LifecycleStage,
)
from newsroom_cms.errors import ConflictError, ForbiddenError, ValidationError
from newsroom_cms.services.workflow_types import Actor, Role


class ArticleAction(enum.StrEnum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"
    SOFT_DELETE = "soft_delete"
    RESTORE = "restore"
    ARCHIVE = "archive"
    RESTORE_STAGE = "restore_stage"


_ANY_STATUS = frozenset(ArticleStatus)

SOURCE_STATUSES: dict[ArticleAction, frozenset[ArticleStatus]] = {
    ArticleAction.SUBMIT: frozenset({ArticleStatus.DRAFT}),
    ArticleAction.APPROVE: frozenset({ArticleStatus.REVIEW, ArticleStatus.DRAFT}),
    ArticleAction.REJECT: _ANY_STATUS,
    ArticleAction.PUBLISH: frozenset({ArticleStatus.DRAFT}),
    ArticleAction.UNPUBLISH: frozenset({ArticleStatus.PUBLISHED}),
    ArticleAction.SOFT_DELETE: _ANY_STATUS,
    ArticleAction.RESTORE: _ANY_STATUS,
    ArticleAction.ARCHIVE: frozenset({ArticleStatus.PUBLISHED}),
    ArticleAction.RESTORE_STAGE: _ANY_STATUS,
}

CREATABLE_STATUSES = frozenset(
    {ArticleStatus.DRAFT, ArticleStatus.REVIEW, ArticleStatus.PUBLISHED}
)


@dataclass(slots=True)
class Change:
    action: AuditAction
    fields: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)


def assign(article: Article, **values: Any) -> list[str]:
    """Set attributes and return the names whose value actually changed."""
    changed: list[str] = []
    for name, value in values.items():
        if getattr(article, name) != value:
            setattr(article, name, value)
            changed.append(name)
    return changed


def record_history(article: Article, actor: Actor, fields: list[str], now: datetime) -> None:
    entry = {"by": actor.id, "at": now.isoformat(), "fields": sorted(fields)}
    # reassign so the JSONB column is flagged dirty
    article.update_history = [*(article.update_history or []), entry]
    article.updated_at = now


def initial_status(actor: Actor, requested: ArticleStatus | None) -> ArticleStatus:
    if actor.role == Role.WRITER and not actor.direct_publish_enabled:
        return ArticleStatus.DRAFT
    if requested is None:
        return ArticleStatus.DRAFT
    ensure_status_assignable(requested)
    return requested


def ensure_status_assignable(status: ArticleStatus) -> None:
    if status not in CREATABLE_STATUSES:
        raise ValidationError(
            f"status cannot be set to {status} directly",
            details={"status": status.value},
        )


def apply_status(article: Article, actor: Actor, status: ArticleStatus, now: datetime) -> list[str]:
    """Editorial status change made through a plain update."""
    ensure_status_assignable(status)
    if status == ArticleStatus.PUBLISHED:
        if article.status == ArticleStatus.PUBLISHED:
            return []
        return stamp_published(article, actor, now, set_editor=article.published_at is None)
    return assign(article, status=status)


def ensure_can_edit(article: Article, actor: Actor) -> None:
    _ensure_not_deleted(article, "update")
    if actor.is_elevated:
        return
    if article.author_id != actor.id:
        raise ForbiddenError("you can only edit your own articles")
    if article.status != ArticleStatus.DRAFT:
        raise ForbiddenError("you can only edit draft articles")


def ensure_can_hard_delete(actor: Actor) -> None:
    _require_superadmin(actor, "hard delete")


def stamp_published(article: Article, actor: Actor, now: datetime, *, set_editor: bool) -> list[str]:
    values: dict[str, Any] = {"status": ArticleStatus.PUBLISHED}
    if set_editor:
        values["editor_id"] = actor.id
    if article.published_at is None:
        values["published_at"] = now
    if article.lifecycle_stage is None:
        values["lifecycle_stage"] = LifecycleStage.HOT
    return assign(article, **values)


def submit(article: Article, actor: Actor) -> Change:
    _ensure_not_deleted(article, ArticleAction.SUBMIT)
    if not actor.is_elevated and article.author_id != actor.id:
        raise ForbiddenError("you can only submit your own articles")
    _ensure_source(article, ArticleAction.SUBMIT)
    return Change(AuditAction.SUBMIT_REVIEW, assign(article, status=ArticleStatus.REVIEW))


def approve(article: Article, actor: Actor, now: datetime) -> Change:
    _require_elevated(actor, ArticleAction.APPROVE)
    _ensure_not_deleted(article, ArticleAction.APPROVE)
    _ensure_source(article, ArticleAction.APPROVE)
    return Change(AuditAction.APPROVE, stamp_published(article, actor, now, set_editor=True))


def reject(article: Article, actor: Actor, reason: str | None = None) -> Change:
    _require_elevated(actor, ArticleAction.REJECT)
    _ensure_not_deleted(article, ArticleAction.REJECT)
    details = {"reason": reason} if reason else {}
    return Change(AuditAction.REJECT, assign(article, status=ArticleStatus.DRAFT), details)


def toggle_publish(article: Article, actor: Actor, now: datetime) -> Change:
    _require_elevated(actor, ArticleAction.PUBLISH)
    _ensure_not_deleted(article, ArticleAction.PUBLISH)
    if article.status == ArticleStatus.PUBLISHED:
        return Change(AuditAction.UNPUBLISH, assign(article, status=ArticleStatus.DRAFT))
    _ensure_source(article, ArticleAction.PUBLISH)
    # editor is only stamped on the first publication
    first_time = article.published_at is None
    return Change(
        AuditAction.PUBLISH,
        stamp_published(article, actor, now, set_editor=first_time),
    )


def soft_delete(article: Article, actor: Actor, now: datetime) -> Change:
    _require_superadmin(actor, ArticleAction.SOFT_DELETE)
    _ensure_not_deleted(article, ArticleAction.SOFT_DELETE)
    fields = assign(
        article,
        is_deleted=True,
        deleted_at=now,
        deleted_by_id=actor.id,
        status=ArticleStatus.INACTIVE,
    )
    return Change(AuditAction.SOFT_DELETE, fields)


def restore(article: Article, actor: Actor) -> Change:
    _require_superadmin(actor, ArticleAction.RESTORE)
    if not article.is_deleted:
        raise ConflictError("article is not deleted", details={"action": ArticleAction.RESTORE.value})
    fields = assign(
        article,
        is_deleted=False,
        deleted_at=None,
        deleted_by_id=None,
        status=ArticleStatus.DRAFT,
    )
    return Change(AuditAction.RESTORE, fields)


def archive(
    article: Article,
    actor: Actor,
    now: datetime,
    reason: ArchiveReason = ArchiveReason.MANUAL,
) -> Change:
    _require_elevated(actor, ArticleAction.ARCHIVE)
    _ensure_not_deleted(article, ArticleAction.ARCHIVE)
    _ensure_source(article, ArticleAction.ARCHIVE)
    if article.lifecycle_stage not in (None, LifecycleStage.HOT):
        raise ConflictError(
            f"only hot articles can be archived, current stage is {article.lifecycle_stage}",
            details={"action": ArticleAction.ARCHIVE.value},
        )
    fields = assign(
        article,
        lifecycle_stage=LifecycleStage.ARCHIVE,
        archived_at=now,
        archive_reason=reason,
    )
    return Change(AuditAction.ARCHIVE, fields, {"reason": reason.value})


def restore_stage(article: Article, actor: Actor) -> Change:
    _require_elevated(actor, ArticleAction.RESTORE_STAGE)
    _ensure_not_deleted(article, ArticleAction.RESTORE_STAGE)
    if article.lifecycle_stage not in (LifecycleStage.ARCHIVE, LifecycleStage.COLD):
        raise ConflictError(
            "only archived or cold articles can be restored to hot",
            details={"action": ArticleAction.RESTORE_STAGE.value},
        )
    previous = article.lifecycle_stage
    fields = assign(
        article,
        lifecycle_stage=LifecycleStage.HOT,
        archived_at=None,
        archive_reason=None,
    )
    return Change(AuditAction.UNARCHIVE, fields, {"from_stage": previous.value})


def _require_elevated(actor: Actor, action: str) -> None:
    if not actor.is_elevated:
        raise ForbiddenError(f"{action} requires editor or superadmin role")


def _require_superadmin(actor: Actor, action: str) -> None:
    if not actor.is_superadmin:
        raise ForbiddenError(f"{action} requires superadmin role")


def _ensure_not_deleted(article: Article, action: str) -> None:
    if article.is_deleted:
        raise ConflictError(
            "article is deleted; restore it first",
            details={"action": str(action)},
        )


def _ensure_source(article: Article, action: ArticleAction) -> None:
    if article.status not in SOURCE_STATUSES[action]:
        raise ConflictError(
            f"cannot {action} an article in status {article.status}",
            details={"action": action.value, "status": article.status.value},
        )
