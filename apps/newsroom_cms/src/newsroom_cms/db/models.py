"""Database models."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy import text as sql_text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from newsroom_cms.db.base import Base


TITLE_MAX_LENGTH = 200
INTRO_MAX_LENGTH = 500
EXCERPT_MAX_LENGTH = 500


class ArticleStatus(enum.StrEnum):
    DRAFT = "draft"
    REVIEW = "review"
    PUBLISHED = "published"
    INACTIVE = "inactive"
    REJECTED = "rejected"


class LifecycleStage(enum.StrEnum):
    HOT = "hot"
    ARCHIVE = "archive"
    COLD = "cold"


class ArchiveReason(enum.StrEnum):
    MANUAL = "manual"
    AUTOMATION = "automation"
    EXPIRED = "expired"


class AuditAction(enum.StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SOFT_DELETE = "soft_delete"
    RESTORE = "restore"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"
    SUBMIT_REVIEW = "submit_review"
    APPROVE = "approve"
    REJECT = "reject"
    ARCHIVE = "archive"
    UNARCHIVE = "unarchive"
    MOVE_COLD = "move_cold"
    UPDATE_LIFECYCLE_CONFIG = "update_lifecycle_config"


class AuditTargetType(enum.StrEnum):
    ARTICLE = "article"
    USER = "user"
    LIFECYCLE_CONFIG = "lifecycle_config"


def _enum(enum_cls: type[enum.Enum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
    )


class Article(Base):
    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    slug_customized: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )

    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    intro: Mapped[str] = mapped_column(
        String(INTRO_MAX_LENGTH), nullable=False, default="", server_default=""
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    excerpt: Mapped[str | None] = mapped_column(String(EXCERPT_MAX_LENGTH), nullable=True)
    featured_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_alt: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    tags: Mapped[list[str]] = mapped_column(
        ARRAY(Text), nullable=False, default=list, server_default=sql_text("'{}'")
    )
    country: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    is_trending: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    is_featured: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    show_publish_date: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    show_in_home_feed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )

    status: Mapped[ArticleStatus] = mapped_column(
        _enum(ArticleStatus, "article_status"),
        nullable=False,
        default=ArticleStatus.DRAFT,
        server_default=ArticleStatus.DRAFT.value,
    )
    lifecycle_stage: Mapped[LifecycleStage | None] = mapped_column(
        _enum(LifecycleStage, "lifecycle_stage"), nullable=True
    )
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    archive_reason: Mapped[ArchiveReason | None] = mapped_column(
        _enum(ArchiveReason, "archive_reason"), nullable=True
    )

    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_by_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    author_id: Mapped[int] = mapped_column(Integer, nullable=False)
    editor_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    update_history: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=sql_text("'[]'::jsonb")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


Index("ix_articles_status_published_at", Article.status, Article.published_at.desc())
Index("ix_articles_category_status", Article.category_id, Article.status)
Index("ix_articles_author_status", Article.author_id, Article.status)
Index("ix_articles_stage_status", Article.lifecycle_stage, Article.status)
Index("ix_articles_is_deleted", Article.is_deleted)


class LifecycleConfig(Base):
    __tablename__ = "lifecycle_config"
    __table_args__ = (
        CheckConstraint(
            "hot_to_archive_days BETWEEN 1 AND 365",
            name="ck_lifecycle_config_hot_to_archive_days",
        ),
        CheckConstraint(
            "archive_to_cold_days BETWEEN 180 AND 3650",
            name="ck_lifecycle_config_archive_to_cold_days",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    hot_to_archive_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=90, server_default="90"
    )
    archive_to_cold_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=730, server_default="730"
    )
    automation_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )

    last_hot_to_archive_run: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_archive_to_cold_run: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_hot_to_archive_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    last_archive_to_cold_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    updated_by_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class AuditLogEntry(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    action: Mapped[AuditAction] = mapped_column(_enum(AuditAction, "audit_action"), nullable=False)
    target_type: Mapped[AuditTargetType] = mapped_column(
        _enum(AuditTargetType, "audit_target_type"), nullable=False
    )
    target_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    target_name: Mapped[str | None] = mapped_column(Text, nullable=True)

    actor_id: Mapped[int] = mapped_column(Integer, nullable=False)
    actor_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    actor_role: Mapped[str | None] = mapped_column(Text, nullable=True)

    details: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


Index("ix_audit_log_actor_created", AuditLogEntry.actor_id, AuditLogEntry.created_at.desc())
Index(
    "ix_audit_log_target_created",
    AuditLogEntry.target_type,
    AuditLogEntry.target_id,
    AuditLogEntry.created_at.desc(),
)
Index("ix_audit_log_action_created", AuditLogEntry.action, AuditLogEntry.created_at.desc())
Index("ix_audit_log_created", AuditLogEntry.created_at.desc())


class HomepageConfig(Base):
    __tablename__ = "homepage_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    hero_article_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sub_featured_article_ids: Mapped[list[int]] = mapped_column(
        ARRAY(Integer), nullable=False, default=list, server_default=sql_text("'{}'")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
