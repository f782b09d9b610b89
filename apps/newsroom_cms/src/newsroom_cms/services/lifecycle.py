"""Age-based lifecycle sweeps (hot -> archive -> cold).

The sweeps are entry points for an external trigger (cron running the CLI, or
the task endpoint of the health server). Both are idempotent: the bulk update
re-checks stage, status, deletion and publish age, so running a sweep twice or
concurrently with manual transitions only ever moves eligible articles once.
Cutoffs are measured from ``published_at`` in both sweeps.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from newsroom_cms.config import LifecycleSettings
from newsroom_cms.db.models import Article, LifecycleConfig, LifecycleStage
from newsroom_cms.errors import ForbiddenError
from newsroom_cms.logging import get_logger
from newsroom_cms.monitoring import capture_sentry_exception
from newsroom_cms.repositories.articles import ArticleRepository
from newsroom_cms.services.lifecycle_config import LifecycleConfigService
from newsroom_cms.services.metrics import metrics
from newsroom_cms.services.workflow_types import Actor


class SweepKind(enum.StrEnum):
    HOT_TO_ARCHIVE = "hot_to_archive"
    ARCHIVE_TO_COLD = "archive_to_cold"


_STAGES: dict[SweepKind, tuple[LifecycleStage, LifecycleStage]] = {
    SweepKind.HOT_TO_ARCHIVE: (LifecycleStage.HOT, LifecycleStage.ARCHIVE),
    SweepKind.ARCHIVE_TO_COLD: (LifecycleStage.ARCHIVE, LifecycleStage.COLD),
}


@dataclass(slots=True)
class SweepResult:
    kind: SweepKind
    moved: int = 0
    skipped: bool = False
    failed: bool = False
    cutoff: datetime | None = None


class LifecycleRunner:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        config_service: LifecycleConfigService | None = None,
        article_repo: ArticleRepository | None = None,
        settings: LifecycleSettings | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._config_service = config_service or LifecycleConfigService(session_factory)
        self._article_repo = article_repo or ArticleRepository()
        self._settings = settings or LifecycleSettings()
        self._log = get_logger(__name__)

    async def run_hot_to_archive(self, now: datetime | None = None) -> SweepResult:
        return await self.run(SweepKind.HOT_TO_ARCHIVE, now=now)

    async def run_archive_to_cold(self, now: datetime | None = None) -> SweepResult:
        return await self.run(SweepKind.ARCHIVE_TO_COLD, now=now)

    async def run(self, kind: SweepKind, *, now: datetime | None = None) -> SweepResult:
        now = now or datetime.now(timezone.utc)
        try:
            result = await self._sweep(kind, now)
        except Exception as exc:
            metrics.inc_counter("lifecycle_sweep_failures_total", labels={"kind": kind.value})
            self._log.exception("lifecycle.sweep_failed", kind=kind.value)
            capture_sentry_exception(exc, context={"sweep": kind.value})
            return SweepResult(kind=kind, failed=True)

        if result.skipped:
            metrics.inc_counter("lifecycle_sweep_skipped_total", labels={"kind": kind.value})
            self._log.info("lifecycle.sweep_skipped", kind=kind.value, reason="automation_disabled")
            return result

        metrics.inc_counter("lifecycle_articles_moved_total", result.moved, labels={"kind": kind.value})
        metrics.set_gauge("lifecycle_last_run_moved", result.moved, labels={"kind": kind.value})
        self._log.info(
            "lifecycle.sweep_done",
            kind=kind.value,
            moved=result.moved,
            cutoff=result.cutoff.isoformat() if result.cutoff else None,
        )
        return result

    async def list_candidates(
        self,
        actor: Actor | None,
        *,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> list[Article]:
        """Published hot articles already past the hot-to-archive cutoff."""
        if actor is None or not actor.is_elevated:
            raise ForbiddenError("lifecycle candidates require editor or superadmin role")
        now = now or datetime.now(timezone.utc)
        limit = min(limit or self._settings.candidates_limit, self._settings.candidates_limit)
        async with self._session_factory() as session:
            async with session.begin():
                config = await self._config_service.load(session)
                cutoff = now - timedelta(days=config.hot_to_archive_days)
                return await self._article_repo.list_archive_candidates(
                    session,
                    published_before=cutoff,
                    limit=limit,
                )

    async def _sweep(self, kind: SweepKind, now: datetime) -> SweepResult:
        from_stage, to_stage = _STAGES[kind]
        async with self._session_factory() as session:
            async with session.begin():
                config = await self._config_service.load(session)
                if not config.automation_enabled:
                    return SweepResult(kind=kind, skipped=True)
                cutoff = now - timedelta(days=_threshold_days(config, kind))
                moved = await self._article_repo.advance_stage(
                    session,
                    from_stage=from_stage,
                    to_stage=to_stage,
                    published_before=cutoff,
                    now=now,
                )
                _record_run(config, kind, now=now, moved=moved)
        return SweepResult(kind=kind, moved=moved, cutoff=cutoff)


def _threshold_days(config: LifecycleConfig, kind: SweepKind) -> int:
    if kind == SweepKind.HOT_TO_ARCHIVE:
        return config.hot_to_archive_days
    return config.archive_to_cold_days


def _record_run(config: LifecycleConfig, kind: SweepKind, *, now: datetime, moved: int) -> None:
    if kind == SweepKind.HOT_TO_ARCHIVE:
        config.last_hot_to_archive_run = now
        config.last_hot_to_archive_count = moved
    else:
        config.last_archive_to_cold_run = now
        config.last_archive_to_cold_count = moved
