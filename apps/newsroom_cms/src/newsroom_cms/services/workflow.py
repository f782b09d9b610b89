"""Article editorial workflow."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from newsroom_cms.db.models import (
    ArchiveReason,
    Article,
    ArticleStatus,
    AuditAction,
    AuditTargetType,
)
from newsroom_cms.db.session import transaction
from newsroom_cms.errors import CmsError, ErrorKind, ForbiddenError, NotFoundError, ValidationError
from newsroom_cms.logging import get_logger
from newsroom_cms.ports.audit import AuditSink
from newsroom_cms.ports.homepage import HomepageSlotsPort
from newsroom_cms.repositories.articles import ArticleRepository
from newsroom_cms.repositories.homepage import HomepageRepository
from newsroom_cms.services import state_machine
from newsroom_cms.services.audit import AuditRecorder
from newsroom_cms.services.metrics import metrics
from newsroom_cms.services.payloads import ArticleCreate, ArticleUpdate, parse_model
from newsroom_cms.services.state_machine import Change
from newsroom_cms.services.workflow_types import Actor, BulkResult, RequestOrigin
from newsroom_cms.utils.text import derive_excerpt, sanitize_slug, slugify

Transition = Callable[[Article, datetime], Change]
AfterHook = Callable[[AsyncSession, Article], Awaitable[dict[str, Any]]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ArticleWorkflowService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        audit: AuditSink | None = None,
        homepage: HomepageSlotsPort | None = None,
        article_repo: ArticleRepository | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._audit = audit or AuditRecorder(session_factory)
        self._homepage = homepage or HomepageRepository()
        self._article_repo = article_repo or ArticleRepository()
        self._clock = clock or _utcnow
        self._log = get_logger(__name__)

    async def create(
        self,
        actor: Actor | None,
        data: ArticleCreate | Mapping[str, Any],
        *,
        origin: RequestOrigin | None = None,
    ) -> Article:
        actor = _require_actor(actor)
        payload = parse_model(ArticleCreate, data)
        status = state_machine.initial_status(actor, payload.status)
        now = self._clock()

        async with transaction(self._session_factory) as session:
            slug, customized = await self._claim_slug(session, payload.slug, payload.title)
            article = Article(
                **payload.model_dump(exclude={"slug", "excerpt", "status"}),
                slug=slug,
                slug_customized=customized,
                excerpt=payload.excerpt or derive_excerpt(payload.body),
                status=ArticleStatus.DRAFT,
                lifecycle_stage=None,
                archived_at=None,
                archive_reason=None,
                is_deleted=False,
                deleted_at=None,
                deleted_by_id=None,
                author_id=actor.id,
                editor_id=None,
                views=0,
                update_history=[],
                created_at=now,
                updated_at=now,
                published_at=None,
            )
            if status == ArticleStatus.PUBLISHED:
                state_machine.stamp_published(article, actor, now, set_editor=actor.is_elevated)
            else:
                article.status = status
            await self._article_repo.create(session, article)

        self._emit(AuditAction.CREATE, actor, article, {"status": article.status.value}, origin)
        metrics.inc_counter("articles_created_total", labels={"status": article.status.value})
        self._log.info(
            "article.created",
            article_id=article.id,
            actor_id=actor.id,
            status=article.status.value,
        )
        return article

    async def update(
        self,
        actor: Actor | None,
        article_id: int,
        data: ArticleUpdate | Mapping[str, Any],
        *,
        origin: RequestOrigin | None = None,
    ) -> Article:
        actor = _require_actor(actor)
        values = parse_model(ArticleUpdate, data).changes()
        now = self._clock()

        async with transaction(self._session_factory) as session:
            article = await self._load(session, article_id)
            state_machine.ensure_can_edit(article, actor)
            status = values.pop("status", None)
            if not actor.is_elevated:
                status = None
            if status is not None:
                state_machine.ensure_status_assignable(status)

            requested_slug = values.pop("slug", None)
            if requested_slug is not None:
                slug, _ = await self._claim_slug(
                    session, requested_slug, article.title, exclude_id=article.id
                )
                values.update(slug=slug, slug_customized=True)
            elif "title" in values and not article.slug_customized:
                derived = slugify(values["title"])
                if derived and derived != article.slug:
                    slug, _ = await self._claim_slug(
                        session, None, values["title"], exclude_id=article.id
                    )
                    values["slug"] = slug
            if "excerpt" in values and not values["excerpt"]:
                values["excerpt"] = derive_excerpt(values.get("body", article.body))

            fields = state_machine.assign(article, **values)
            if status is not None:
                fields += state_machine.apply_status(article, actor, status, now)
            if not fields:
                return article
            state_machine.record_history(article, actor, fields, now)

        self._emit(AuditAction.UPDATE, actor, article, {"fields": sorted(fields)}, origin)
        metrics.inc_counter("article_transitions_total", labels={"action": AuditAction.UPDATE.value})
        self._log.info("article.updated", article_id=article.id, actor_id=actor.id, fields=sorted(fields))
        return article

    async def submit(
        self, actor: Actor | None, article_id: int, *, origin: RequestOrigin | None = None
    ) -> Article:
        actor = _require_actor(actor)
        return await self._apply(
            actor,
            article_id,
            lambda article, now: state_machine.submit(article, actor),
            origin=origin,
        )

    async def approve(
        self, actor: Actor | None, article_id: int, *, origin: RequestOrigin | None = None
    ) -> Article:
        actor = _require_actor(actor)
        return await self._apply(
            actor,
            article_id,
            lambda article, now: state_machine.approve(article, actor, now),
            origin=origin,
        )

    async def reject(
        self,
        actor: Actor | None,
        article_id: int,
        *,
        reason: str | None = None,
        origin: RequestOrigin | None = None,
    ) -> Article:
        actor = _require_actor(actor)
        return await self._apply(
            actor,
            article_id,
            lambda article, now: state_machine.reject(article, actor, reason),
            origin=origin,
        )

    async def toggle_publish(
        self, actor: Actor | None, article_id: int, *, origin: RequestOrigin | None = None
    ) -> Article:
        actor = _require_actor(actor)
        return await self._apply(
            actor,
            article_id,
            lambda article, now: state_machine.toggle_publish(article, actor, now),
            origin=origin,
        )

    async def soft_delete(
        self, actor: Actor | None, article_id: int, *, origin: RequestOrigin | None = None
    ) -> Article:
        actor = _require_actor(actor)
        return await self._apply(
            actor,
            article_id,
            lambda article, now: state_machine.soft_delete(article, actor, now),
            origin=origin,
            after=self._clear_homepage,
        )

    async def restore(
        self, actor: Actor | None, article_id: int, *, origin: RequestOrigin | None = None
    ) -> Article:
        actor = _require_actor(actor)
        return await self._apply(
            actor,
            article_id,
            lambda article, now: state_machine.restore(article, actor),
            origin=origin,
        )

    async def archive(
        self,
        actor: Actor | None,
        article_id: int,
        *,
        reason: ArchiveReason = ArchiveReason.MANUAL,
        origin: RequestOrigin | None = None,
    ) -> Article:
        actor = _require_actor(actor)
        return await self._apply(
            actor,
            article_id,
            lambda article, now: state_machine.archive(article, actor, now, reason),
            origin=origin,
        )

    async def restore_stage(
        self, actor: Actor | None, article_id: int, *, origin: RequestOrigin | None = None
    ) -> Article:
        actor = _require_actor(actor)
        return await self._apply(
            actor,
            article_id,
            lambda article, now: state_machine.restore_stage(article, actor),
            origin=origin,
        )

    async def archive_many(
        self,
        actor: Actor | None,
        article_ids: Iterable[int],
        *,
        reason: ArchiveReason = ArchiveReason.MANUAL,
        origin: RequestOrigin | None = None,
    ) -> BulkResult:
        actor = _require_actor(actor)
        return await self._apply_many(
            actor,
            article_ids,
            lambda article, now: state_machine.archive(article, actor, now, reason),
            origin=origin,
        )

    async def restore_stage_many(
        self,
        actor: Actor | None,
        article_ids: Iterable[int],
        *,
        origin: RequestOrigin | None = None,
    ) -> BulkResult:
        actor = _require_actor(actor)
        return await self._apply_many(
            actor,
            article_ids,
            lambda article, now: state_machine.restore_stage(article, actor),
            origin=origin,
        )

    async def hard_delete(
        self, actor: Actor | None, article_id: int, *, origin: RequestOrigin | None = None
    ) -> None:
        actor = _require_actor(actor)
        state_machine.ensure_can_hard_delete(actor)
        async with transaction(self._session_factory) as session:
            article = await self._load(session, article_id)
            details = {
                "status": article.status.value,
                "homepage_cleared": await self._homepage.clear(session, article.id),
            }
            await self._article_repo.delete(session, article.id)

        self._emit(AuditAction.DELETE, actor, article, details, origin)
        metrics.inc_counter("article_transitions_total", labels={"action": AuditAction.DELETE.value})
        self._log.info("article.hard_deleted", article_id=article_id, actor_id=actor.id)

    async def _apply(
        self,
        actor: Actor,
        article_id: int,
        transition: Transition,
        *,
        origin: RequestOrigin | None,
        after: AfterHook | None = None,
    ) -> Article:
        now = self._clock()
        async with transaction(self._session_factory) as session:
            article = await self._load(session, article_id)
            change = transition(article, now)
            if change.fields:
                state_machine.record_history(article, actor, change.fields, now)
            if after is not None:
                change.details.update(await after(session, article))

        self._emit(change.action, actor, article, change.details, origin)
        metrics.inc_counter("article_transitions_total", labels={"action": change.action.value})
        self._log.info(
            "article.transition",
            article_id=article.id,
            action=change.action.value,
            actor_id=actor.id,
            fields=sorted(change.fields),
        )
        return article

    async def _apply_many(
        self,
        actor: Actor,
        article_ids: Iterable[int],
        transition: Transition,
        *,
        origin: RequestOrigin | None,
    ) -> BulkResult:
        if not actor.is_elevated:
            raise ForbiddenError("bulk lifecycle actions require editor or superadmin role")
        ids = list(dict.fromkeys(article_ids))
        if not ids:
            raise ValidationError("no articles selected", details={"field": "article_ids"})

        now = self._clock()
        result = BulkResult()
        applied: list[tuple[Article, Change]] = []
        async with transaction(self._session_factory) as session:
            for article_id in ids:
                article = await self._article_repo.get(session, article_id)
                if article is None:
                    result.skipped[article_id] = ErrorKind.NOT_FOUND.value
                    continue
                try:
                    change = transition(article, now)
                except CmsError as exc:
                    # guards fail before mutation, so the row is untouched
                    result.skipped[article_id] = exc.kind.value
                    continue
                if change.fields:
                    state_machine.record_history(article, actor, change.fields, now)
                result.moved.append(article_id)
                applied.append((article, change))

        for article, change in applied:
            self._emit(change.action, actor, article, change.details, origin)
            metrics.inc_counter("article_transitions_total", labels={"action": change.action.value})
        self._log.info(
            "article.bulk_transition",
            actor_id=actor.id,
            moved=len(result.moved),
            skipped=len(result.skipped),
        )
        return result

    async def _load(self, session: AsyncSession, article_id: int) -> Article:
        article = await self._article_repo.get(session, article_id)
        if article is None:
            raise NotFoundError("article not found", details={"id": article_id})
        return article

    async def _claim_slug(
        self,
        session: AsyncSession,
        requested: str | None,
        title: str,
        *,
        exclude_id: int | None = None,
    ) -> tuple[str, bool]:
        customized = requested is not None
        slug = sanitize_slug(requested) if customized else slugify(title)
        if not slug:
            raise ValidationError(
                "slug must contain at least one latin letter or digit",
                details={"field": "slug"},
            )
        if await self._article_repo.slug_exists(session, slug, exclude_id=exclude_id):
            raise ValidationError(
                "slug already exists",
                details={"field": "slug", "slug": slug},
            )
        return slug, customized

    async def _clear_homepage(self, session: AsyncSession, article: Article) -> dict[str, Any]:
        return {"homepage_cleared": await self._homepage.clear(session, article.id)}

    def _emit(
        self,
        action: AuditAction,
        actor: Actor,
        article: Article,
        details: dict[str, Any],
        origin: RequestOrigin | None,
    ) -> None:
        self._audit.record(
            action=action,
            target_type=AuditTargetType.ARTICLE,
            actor=actor,
            target_id=article.id,
            target_name=article.title,
            details=details or None,
            origin=origin,
        )


def _require_actor(actor: Actor | None) -> Actor:
    if actor is None:
        raise ForbiddenError("authentication required")
    return actor
