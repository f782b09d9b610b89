from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from newsroom_cms.db.models import (
    ArchiveReason,
    Article,
    ArticleStatus,
    AuditAction,
    LifecycleConfig,
    LifecycleStage,
)
from newsroom_cms.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from newsroom_cms.repositories.lifecycle_config import default_config
from newsroom_cms.services.lifecycle import LifecycleRunner
from newsroom_cms.services.lifecycle_config import LifecycleConfigService
from newsroom_cms.services.workflow import ArticleWorkflowService
from newsroom_cms.services.workflow_types import Actor, RequestOrigin, Role

START = datetime(2026, 1, 10, 9, 0, tzinfo=timezone.utc)
WRITER = Actor(id=1, role=Role.WRITER, name="Wendy")
OTHER_WRITER = Actor(id=2, role=Role.WRITER, name="Walt")
PUBLISHER = Actor(id=3, role=Role.WRITER, name="Pat", direct_publish_enabled=True)
EDITOR = Actor(id=10, role=Role.EDITOR, name="Eddie")
SUPERADMIN = Actor(id=20, role=Role.SUPERADMIN, name="Sam")


class _AsyncContext:
    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        return None


class DummySession:
    def begin(self) -> _AsyncContext:
        return _AsyncContext()


class DummySessionFactory:
    def __init__(self, session: DummySession) -> None:
        self._session = session

    def __call__(self) -> DummySessionFactory:
        return self

    async def __aenter__(self) -> DummySession:
        return self._session

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        return None


class FakeArticleRepo:
    def __init__(self, articles: list[Article] | None = None) -> None:
        self.articles = {article.id: article for article in articles or []}
        self._next_id = max(self.articles, default=0) + 1

    async def get(self, session: DummySession, article_id: int) -> Article | None:  # noqa: ARG002
        return self.articles.get(article_id)

    async def slug_exists(
        self, session: DummySession, slug: str, *, exclude_id: int | None = None  # noqa: ARG002
    ) -> bool:
        return any(
            article.slug == slug and article.id != exclude_id
            for article in self.articles.values()
        )

    async def create(self, session: DummySession, article: Article) -> Article:  # noqa: ARG002
        article.id = self._next_id
        self._next_id += 1
        self.articles[article.id] = article
        return article

    async def delete(self, session: DummySession, article_id: int) -> bool:  # noqa: ARG002
        return self.articles.pop(article_id, None) is not None

    async def advance_stage(
        self,
        session: DummySession,  # noqa: ARG002
        *,
        from_stage: LifecycleStage,
        to_stage: LifecycleStage,
        published_before: datetime,
        now: datetime,
    ) -> int:
        moved = 0
        for article in self.articles.values():
            if (
                article.lifecycle_stage == from_stage
                and article.status == ArticleStatus.PUBLISHED
                and not article.is_deleted
                and article.published_at is not None
                and article.published_at <= published_before
            ):
                article.lifecycle_stage = to_stage
                if to_stage == LifecycleStage.ARCHIVE:
                    article.archived_at = now
                    article.archive_reason = ArchiveReason.AUTOMATION
                moved += 1
        return moved


@dataclass
class FakeHomepage:
    hero_article_id: int | None = None
    sub_featured_article_ids: list[int] = field(default_factory=list)

    async def occupies(self, session: DummySession, article_id: int) -> bool:  # noqa: ARG002
        return self.hero_article_id == article_id or article_id in self.sub_featured_article_ids

    async def clear(self, session: DummySession, article_id: int) -> bool:  # noqa: ARG002
        occupied = await self.occupies(session, article_id)
        if self.hero_article_id == article_id:
            self.hero_article_id = None
        self.sub_featured_article_ids = [
            item for item in self.sub_featured_article_ids if item != article_id
        ]
        return occupied


@dataclass
class FakeAudit:
    records: list[dict[str, Any]] = field(default_factory=list)

    def record(self, **kwargs: Any) -> None:
        self.records.append(kwargs)

    @property
    def actions(self) -> list[AuditAction]:
        return [record["action"] for record in self.records]


class FakeConfigRepo:
    def __init__(self, config: LifecycleConfig | None = None) -> None:
        self.config = config

    async def get_or_create(self, session: DummySession) -> LifecycleConfig:  # noqa: ARG002
        if self.config is None:
            self.config = default_config()
        return self.config


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _article(**overrides) -> Article:  # noqa: ANN003
    values = dict(
        id=100,
        slug="existing-story",
        slug_customized=False,
        title="Existing story",
        intro="",
        body="Body",
        excerpt="Body",
        tags=[],
        status=ArticleStatus.DRAFT,
        lifecycle_stage=None,
        archived_at=None,
        archive_reason=None,
        is_deleted=False,
        deleted_at=None,
        deleted_by_id=None,
        author_id=WRITER.id,
        editor_id=None,
        views=0,
        update_history=[],
        published_at=None,
    )
    values.update(overrides)
    return Article(**values)


def _service(
    repo: FakeArticleRepo,
    *,
    audit: FakeAudit | None = None,
    homepage: FakeHomepage | None = None,
    clock: Clock | None = None,
) -> ArticleWorkflowService:
    return ArticleWorkflowService(
        DummySessionFactory(DummySession()),
        audit=audit or FakeAudit(),
        homepage=homepage or FakeHomepage(),
        article_repo=repo,
        clock=clock or Clock(START),
    )


@pytest.mark.asyncio
async def test_full_editorial_and_lifecycle_scenario() -> None:
    session_factory = DummySessionFactory(DummySession())
    repo = FakeArticleRepo()
    audit = FakeAudit()
    homepage = FakeHomepage()
    clock = Clock(START)
    service = ArticleWorkflowService(
        session_factory,
        audit=audit,
        homepage=homepage,
        article_repo=repo,
        clock=clock,
    )
    config_service = LifecycleConfigService(session_factory, repo=FakeConfigRepo(), audit=audit)
    runner = LifecycleRunner(session_factory, config_service=config_service, article_repo=repo)

    article = await service.create(WRITER, {"title": "Breaking News Today", "body": "<p>Body</p>"})
    assert article.status == ArticleStatus.DRAFT
    assert article.slug == "breaking-news-today"
    assert article.excerpt == "Body"

    await service.submit(WRITER, article.id)
    assert article.status == ArticleStatus.REVIEW

    clock.now = START + timedelta(hours=2)
    await service.approve(EDITOR, article.id)
    assert article.status == ArticleStatus.PUBLISHED
    assert article.published_at == clock.now
    assert article.editor_id == EDITOR.id
    assert article.lifecycle_stage == LifecycleStage.HOT

    sweep = await runner.run_hot_to_archive(now=article.published_at + timedelta(days=91))
    assert sweep.moved == 1
    assert article.lifecycle_stage == LifecycleStage.ARCHIVE
    assert article.archive_reason == ArchiveReason.AUTOMATION

    homepage.hero_article_id = article.id
    await service.soft_delete(SUPERADMIN, article.id)
    assert article.is_deleted is True
    assert article.status == ArticleStatus.INACTIVE
    assert homepage.hero_article_id is None

    await service.restore(SUPERADMIN, article.id)
    assert article.is_deleted is False
    assert article.status == ArticleStatus.DRAFT

    assert audit.actions == [
        AuditAction.CREATE,
        AuditAction.SUBMIT_REVIEW,
        AuditAction.APPROVE,
        AuditAction.SOFT_DELETE,
        AuditAction.RESTORE,
    ]
    assert len(article.update_history) == 4


@pytest.mark.asyncio
async def test_second_create_with_same_normalized_slug_fails_validation() -> None:
    repo = FakeArticleRepo()
    service = _service(repo)

    first = await service.create(
        EDITOR, {"title": "Breaking news today", "body": "b", "slug": "breaking-news-today"}
    )
    with pytest.raises(ValidationError):
        await service.create(
            EDITOR, {"title": "Another title", "body": "b", "slug": "Breaking News  Today"}
        )

    assert list(repo.articles) == [first.id]
    assert repo.articles[first.id].title == "Breaking news today"


@pytest.mark.asyncio
async def test_create_by_direct_publish_writer_can_publish() -> None:
    repo = FakeArticleRepo()

    article = await _service(repo).create(
        PUBLISHER, {"title": "Live", "body": "b", "status": "published"}
    )

    assert article.status == ArticleStatus.PUBLISHED
    assert article.published_at == START
    assert article.lifecycle_stage == LifecycleStage.HOT
    assert article.editor_id is None


@pytest.mark.asyncio
async def test_create_by_plain_writer_ignores_requested_status() -> None:
    article = await _service(FakeArticleRepo()).create(
        WRITER, {"title": "Draft", "body": "b", "status": "published"}
    )

    assert article.status == ArticleStatus.DRAFT
    assert article.published_at is None


@pytest.mark.asyncio
async def test_create_requires_actor() -> None:
    with pytest.raises(ForbiddenError):
        await _service(FakeArticleRepo()).create(None, {"title": "t", "body": "b"})


@pytest.mark.asyncio
async def test_create_rejects_title_without_slug_characters() -> None:
    with pytest.raises(ValidationError):
        await _service(FakeArticleRepo()).create(EDITOR, {"title": "???", "body": "b"})


@pytest.mark.asyncio
async def test_update_rederives_slug_while_not_customized() -> None:
    article = _article()
    audit = FakeAudit()

    await _service(FakeArticleRepo([article]), audit=audit).update(
        WRITER, article.id, {"title": "Fresh headline"}
    )

    assert article.slug == "fresh-headline"
    assert article.update_history[-1]["fields"] == ["slug", "title"]
    assert audit.records[-1]["details"] == {"fields": ["slug", "title"]}


@pytest.mark.asyncio
async def test_update_keeps_customized_slug() -> None:
    article = _article(slug="my-slug", slug_customized=True)

    await _service(FakeArticleRepo([article])).update(WRITER, article.id, {"title": "Other"})

    assert article.slug == "my-slug"


@pytest.mark.asyncio
async def test_update_with_explicit_slug_marks_it_customized() -> None:
    article = _article()

    await _service(FakeArticleRepo([article])).update(EDITOR, article.id, {"slug": "Hand Made"})

    assert article.slug == "hand-made"
    assert article.slug_customized is True


@pytest.mark.asyncio
async def test_update_slug_collision_is_validation_error() -> None:
    article = _article()
    other = _article(id=101, slug="taken")

    with pytest.raises(ValidationError):
        await _service(FakeArticleRepo([article, other])).update(
            EDITOR, article.id, {"slug": "taken"}
        )
    assert article.slug == "existing-story"


@pytest.mark.asyncio
async def test_writer_cannot_update_foreign_or_non_draft_article() -> None:
    foreign = _article()
    in_review = _article(id=101, slug="b", status=ArticleStatus.REVIEW)
    service = _service(FakeArticleRepo([foreign, in_review]))

    with pytest.raises(ForbiddenError):
        await service.update(OTHER_WRITER, foreign.id, {"title": "Hijack"})
    with pytest.raises(ForbiddenError):
        await service.update(WRITER, in_review.id, {"title": "Late edit"})


@pytest.mark.asyncio
async def test_writer_status_change_is_ignored() -> None:
    article = _article()
    audit = FakeAudit()

    await _service(FakeArticleRepo([article]), audit=audit).update(
        WRITER, article.id, {"status": "published"}
    )

    assert article.status == ArticleStatus.DRAFT
    assert article.update_history == []
    assert audit.records == []


@pytest.mark.asyncio
async def test_editor_publishing_through_update_stamps_publication() -> None:
    article = _article()

    await _service(FakeArticleRepo([article])).update(EDITOR, article.id, {"status": "published"})

    assert article.status == ArticleStatus.PUBLISHED
    assert article.published_at == START
    assert article.lifecycle_stage == LifecycleStage.HOT


@pytest.mark.asyncio
async def test_cleared_excerpt_is_derived_from_body() -> None:
    article = _article(excerpt="old")

    await _service(FakeArticleRepo([article])).update(
        EDITOR, article.id, {"excerpt": None, "body": "<i>new body</i>"}
    )

    assert article.excerpt == "new body"


@pytest.mark.asyncio
async def test_unknown_article_is_not_found() -> None:
    with pytest.raises(NotFoundError):
        await _service(FakeArticleRepo()).approve(EDITOR, 404)


@pytest.mark.asyncio
async def test_failed_guard_emits_no_audit_and_no_history() -> None:
    article = _article(status=ArticleStatus.PUBLISHED, published_at=START)
    audit = FakeAudit()

    with pytest.raises(ConflictError):
        await _service(FakeArticleRepo([article]), audit=audit).approve(EDITOR, article.id)

    assert audit.records == []
    assert article.update_history == []


@pytest.mark.asyncio
async def test_reject_reason_only_in_audit() -> None:
    article = _article(status=ArticleStatus.REVIEW)
    audit = FakeAudit()
    origin = RequestOrigin(ip_address="10.0.0.1", user_agent="pytest")

    await _service(FakeArticleRepo([article]), audit=audit).reject(
        EDITOR, article.id, reason="off topic", origin=origin
    )

    assert article.status == ArticleStatus.DRAFT
    assert audit.records[0]["details"] == {"reason": "off topic"}
    assert audit.records[0]["origin"] == origin
    assert audit.records[0]["target_name"] == article.title


@pytest.mark.asyncio
async def test_soft_delete_reports_homepage_slot_cleanup() -> None:
    article = _article(status=ArticleStatus.PUBLISHED, published_at=START)
    homepage = FakeHomepage(sub_featured_article_ids=[5, article.id])
    audit = FakeAudit()

    await _service(FakeArticleRepo([article]), audit=audit, homepage=homepage).soft_delete(
        SUPERADMIN, article.id
    )

    assert homepage.sub_featured_article_ids == [5]
    assert audit.records[0]["details"]["homepage_cleared"] is True


@pytest.mark.asyncio
async def test_hard_delete_removes_published_article() -> None:
    article = _article(status=ArticleStatus.PUBLISHED, published_at=START)
    repo = FakeArticleRepo([article])
    audit = FakeAudit()
    service = _service(repo, audit=audit)

    with pytest.raises(ForbiddenError):
        await service.hard_delete(EDITOR, article.id)
    await service.hard_delete(SUPERADMIN, article.id)

    assert repo.articles == {}
    assert audit.actions == [AuditAction.DELETE]
    with pytest.raises(NotFoundError):
        await service.hard_delete(SUPERADMIN, article.id)


@pytest.mark.asyncio
async def test_archive_many_reports_moved_and_skipped() -> None:
    hot = _article(
        id=1, slug="a", status=ArticleStatus.PUBLISHED, lifecycle_stage=LifecycleStage.HOT
    )
    draft = _article(id=2, slug="b")
    audit = FakeAudit()
    service = _service(FakeArticleRepo([hot, draft]), audit=audit)

    result = await service.archive_many(EDITOR, [1, 2, 3, 1])

    assert result.moved == [1]
    assert result.skipped == {2: "conflict", 3: "not_found"}
    assert hot.lifecycle_stage == LifecycleStage.ARCHIVE
    assert hot.archive_reason == ArchiveReason.MANUAL
    assert audit.actions == [AuditAction.ARCHIVE]


@pytest.mark.asyncio
async def test_restore_stage_many_requires_elevated_role() -> None:
    service = _service(FakeArticleRepo())

    with pytest.raises(ForbiddenError):
        await service.restore_stage_many(WRITER, [1])
    with pytest.raises(ValidationError):
        await service.restore_stage_many(EDITOR, [])


@pytest.mark.asyncio
async def test_restore_stage_many_moves_archived_articles_back_to_hot() -> None:
    cold = _article(
        id=1,
        slug="a",
        status=ArticleStatus.PUBLISHED,
        lifecycle_stage=LifecycleStage.COLD,
        archived_at=START,
        archive_reason=ArchiveReason.AUTOMATION,
    )

    result = await _service(FakeArticleRepo([cold])).restore_stage_many(SUPERADMIN, [1])

    assert result.moved == [1]
    assert cold.lifecycle_stage == LifecycleStage.HOT
    assert cold.archived_at is None
