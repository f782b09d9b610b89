"""Initial schema

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-19 09:00:00

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ARTICLE_STATUS = ("draft", "review", "published", "inactive", "rejected")
LIFECYCLE_STAGE = ("hot", "archive", "cold")
ARCHIVE_REASON = ("manual", "automation", "expired")
AUDIT_ACTION = (
    "create",
    "update",
    "delete",
    "soft_delete",
    "restore",
    "publish",
    "unpublish",
    "submit_review",
    "approve",
    "reject",
    "archive",
    "unarchive",
    "move_cold",
    "update_lifecycle_config",
)
AUDIT_TARGET_TYPE = ("article", "user", "lifecycle_config")


def upgrade() -> None:
    op.create_table(
        "articles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("slug", sa.Text(), nullable=False),
        sa.Column("slug_customized", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("intro", sa.String(500), server_default="", nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.String(500), nullable=True),
        sa.Column("featured_image", sa.Text(), nullable=True),
        sa.Column("image_alt", sa.Text(), server_default="", nullable=False),
        sa.Column("tags", postgresql.ARRAY(sa.Text()), server_default=sa.text("'{}'"), nullable=False),
        sa.Column("country", sa.Text(), server_default="", nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("is_trending", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_featured", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("show_publish_date", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("show_in_home_feed", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("status", sa.Enum(*ARTICLE_STATUS, name="article_status"), server_default="draft", nullable=False),
        sa.Column("lifecycle_stage", sa.Enum(*LIFECYCLE_STAGE, name="lifecycle_stage"), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archive_reason", sa.Enum(*ARCHIVE_REASON, name="archive_reason"), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by_id", sa.Integer(), nullable=True),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("editor_id", sa.Integer(), nullable=True),
        sa.Column("views", sa.Integer(), server_default="0", nullable=False),
        sa.Column("update_history", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("slug", name="articles_slug_key"),
    )
    op.create_index(
        "ix_articles_status_published_at",
        "articles",
        ["status", sa.text("published_at DESC")],
    )
    op.create_index("ix_articles_category_status", "articles", ["category_id", "status"])
    op.create_index("ix_articles_author_status", "articles", ["author_id", "status"])
    op.create_index("ix_articles_stage_status", "articles", ["lifecycle_stage", "status"])
    op.create_index("ix_articles_is_deleted", "articles", ["is_deleted"])

    op.create_table(
        "lifecycle_config",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("hot_to_archive_days", sa.Integer(), server_default="90", nullable=False),
        sa.Column("archive_to_cold_days", sa.Integer(), server_default="730", nullable=False),
        sa.Column("automation_enabled", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("last_hot_to_archive_run", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_archive_to_cold_run", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_hot_to_archive_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_archive_to_cold_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("updated_by_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint(
            "hot_to_archive_days BETWEEN 1 AND 365",
            name="ck_lifecycle_config_hot_to_archive_days",
        ),
        sa.CheckConstraint(
            "archive_to_cold_days BETWEEN 180 AND 3650",
            name="ck_lifecycle_config_archive_to_cold_days",
        ),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("action", sa.Enum(*AUDIT_ACTION, name="audit_action"), nullable=False),
        sa.Column("target_type", sa.Enum(*AUDIT_TARGET_TYPE, name="audit_target_type"), nullable=False),
        sa.Column("target_id", sa.Integer(), nullable=True),
        sa.Column("target_name", sa.Text(), nullable=True),
        sa.Column("actor_id", sa.Integer(), nullable=False),
        sa.Column("actor_name", sa.Text(), nullable=True),
        sa.Column("actor_role", sa.Text(), nullable=True),
        sa.Column("details", postgresql.JSONB(), nullable=True),
        sa.Column("ip_address", sa.Text(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index(
        "ix_audit_log_actor_created",
        "audit_log",
        ["actor_id", sa.text("created_at DESC")],
    )
    op.create_index(
        "ix_audit_log_target_created",
        "audit_log",
        ["target_type", "target_id", sa.text("created_at DESC")],
    )
    op.create_index(
        "ix_audit_log_action_created",
        "audit_log",
        ["action", sa.text("created_at DESC")],
    )
    op.create_index("ix_audit_log_created", "audit_log", [sa.text("created_at DESC")])

    op.create_table(
        "homepage_config",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("hero_article_id", sa.Integer(), nullable=True),
        sa.Column(
            "sub_featured_article_ids",
            postgresql.ARRAY(sa.Integer()),
            server_default=sa.text("'{}'"),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("homepage_config")
    op.drop_index("ix_audit_log_created", table_name="audit_log")
    op.drop_index("ix_audit_log_action_created", table_name="audit_log")
    op.drop_index("ix_audit_log_target_created", table_name="audit_log")
    op.drop_index("ix_audit_log_actor_created", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_table("lifecycle_config")
    op.drop_index("ix_articles_is_deleted", table_name="articles")
    op.drop_index("ix_articles_stage_status", table_name="articles")
    op.drop_index("ix_articles_author_status", table_name="articles")
    op.drop_index("ix_articles_category_status", table_name="articles")
    op.drop_index("ix_articles_status_published_at", table_name="articles")
    op.drop_table("articles")
    for enum_name in (
        "audit_target_type",
        "audit_action",
        "archive_reason",
        "lifecycle_stage",
        "article_status",
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
