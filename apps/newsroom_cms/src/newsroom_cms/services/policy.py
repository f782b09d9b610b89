"""Role-scoped visibility rules for article listings.

``resolve_scope`` is a pure function of the actor and the caller-supplied
status/author filters. Precedence:

1. Guests always get published, non-deleted articles.
2. Editors and superadmins get what they ask for: ``all`` drops the status
   filter, ``trash`` switches to deleted articles, a status is honored
   verbatim, and nothing at all falls back to published.
3. Writers see the public feed for ``published``/unspecified, their own
   articles of every status for ``all``, and only their own articles for any
   other status.

Deleted articles are excluded everywhere except the trash view.
"""

from __future__ import annotations

from newsroom_cms.db.models import ArticleStatus
from newsroom_cms.errors import ForbiddenError, ValidationError
from newsroom_cms.services.query_types import ArticleScope
from newsroom_cms.services.workflow_types import Actor, Role

STATUS_ALL = "all"
STATUS_TRASH = "trash"


def resolve_scope(
    actor: Actor | None,
    *,
    status: str | None = None,
    author_id: int | None = None,
) -> ArticleScope:
    requested = _normalize(status)

    if actor is None:
        return ArticleScope(status=ArticleStatus.PUBLISHED, author_id=author_id)

    if actor.role in (Role.EDITOR, Role.SUPERADMIN):
        if requested is None:
            return ArticleScope(status=ArticleStatus.PUBLISHED, author_id=author_id)
        if requested == STATUS_ALL:
            return ArticleScope(status=None, author_id=author_id)
        if requested == STATUS_TRASH:
            return ArticleScope(status=None, author_id=author_id, is_deleted=True)
        return ArticleScope(status=_parse_status(requested), author_id=author_id)

    if requested is None or requested == ArticleStatus.PUBLISHED.value:
        return ArticleScope(status=ArticleStatus.PUBLISHED, author_id=author_id)
    if requested == STATUS_ALL:
        return ArticleScope(status=None, author_id=actor.id)
    if requested == STATUS_TRASH:
        raise ForbiddenError("trash view requires editor role")
    return ArticleScope(status=_parse_status(requested), author_id=actor.id)


def _normalize(status: str | None) -> str | None:
    if status is None:
        return None
    value = status.strip().lower()
    return value or None


def _parse_status(value: str) -> ArticleStatus:
    try:
        return ArticleStatus(value)
    except ValueError as exc:
        raise ValidationError(
            f"unknown status filter: {value}",
            details={"status": value},
        ) from exc
