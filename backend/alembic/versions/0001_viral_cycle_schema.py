"""create viral cycle schema

Revision ID: 0001_viral_cycle_schema
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_viral_cycle_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("autopilot_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_organizations_autopilot_enabled", "organizations", ["autopilot_enabled"], unique=False)

    op.create_table(
        "credit_wallets",
        sa.Column(
            "org_id",
            sa.Integer(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("current_credits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("current_credits >= 0", name="ck_credit_wallets_non_negative"),
    )

    op.create_table(
        "credit_transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("feature", sa.String(length=64), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_credit_transactions_org_id", "credit_transactions", ["org_id"], unique=False)

    op.create_table(
        "brands",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_brands_org_id", "brands", ["org_id"], unique=False)

    op.create_table(
        "trends",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("platform", sa.String(length=32), nullable=False),
        sa.Column("source_video_url", sa.Text(), nullable=False, unique=True),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("hook_text", sa.Text(), nullable=True),
        sa.Column("transcript", sa.Text(), nullable=True),
        sa.Column("views", sa.BigInteger(), nullable=True),
        sa.Column("likes", sa.BigInteger(), nullable=True),
        sa.Column("comments", sa.BigInteger(), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column("category", sa.String(length=32), nullable=True),
        sa.Column("is_ad", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("clone_ready", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("clone_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("spoken_content", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("detected_language", sa.String(length=32), nullable=True),
        sa.Column("captured_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_trends_views", "trends", ["views"], unique=False)
    op.create_index("ix_trends_captured_at", "trends", ["captured_at"], unique=False)

    op.create_table(
        "viral_scores",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "trend_id",
            sa.Integer(),
            sa.ForeignKey("trends.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("clone_score", sa.Float(), nullable=True),
        sa.Column("virality_score", sa.Float(), nullable=True),
        sa.Column("product_fit_score", sa.Float(), nullable=True),
        sa.Column("commercial_dna_score", sa.Float(), nullable=True),
        sa.Column("emotional_depth", sa.Float(), nullable=True),
        sa.Column("informational_value", sa.Float(), nullable=True),
        sa.Column("transformation_score", sa.Float(), nullable=True),
        sa.Column("shock_score", sa.Float(), nullable=True),
        sa.Column("warmth_score", sa.Float(), nullable=True),
        sa.Column("shareability_score", sa.Float(), nullable=True),
        sa.Column("shock_warmth_ratio", sa.Float(), nullable=True),
        sa.Column("overall_score", sa.Float(), nullable=True),
        sa.Column("category", sa.String(length=16), nullable=True),
        sa.Column("ad_type", sa.String(length=32), nullable=True),
        sa.Column("ai_reasoning", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "video_jobs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("brand_id", sa.Integer(), sa.ForeignKey("brands.id", ondelete="SET NULL"), nullable=True),
        sa.Column("trend_id", sa.Integer(), sa.ForeignKey("trends.id", ondelete="SET NULL"), nullable=True),
        sa.Column("source_video_url", sa.Text(), nullable=False),
        sa.Column("content_type", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="queued"),
        sa.Column("compliance_status", sa.String(length=32), nullable=False, server_default="unchecked"),
        sa.Column("post_targets", sa.JSON(), nullable=True),
        sa.Column("target_vertical", sa.String(length=64), nullable=True),
        sa.Column("campaign_type", sa.String(length=64), nullable=False, server_default="brand_awareness"),
        sa.Column("autopilot_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_video_jobs_org_id", "video_jobs", ["org_id"], unique=False)

    op.create_table(
        "scheduled_posts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "video_job_id",
            sa.Integer(),
            sa.ForeignKey("video_jobs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("source_video_url", sa.Text(), nullable=False),
        sa.Column("platform", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="scheduled"),
        sa.Column("scheduled_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_scheduled_posts_org_id", "scheduled_posts", ["org_id"], unique=False)
    op.create_index("ix_scheduled_posts_video_job_id", "scheduled_posts", ["video_job_id"], unique=False)
    op.create_index("ix_scheduled_posts_scheduled_time", "scheduled_posts", ["scheduled_time"], unique=False)

    op.create_table(
        "replication_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("source_video_url", sa.Text(), nullable=False),
        sa.Column("platform", sa.String(length=32), nullable=True),
        sa.Column(
            "remake_job_id",
            sa.Integer(),
            sa.ForeignKey("video_jobs.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("scheduled_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="scheduled"),
        sa.Column("processed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("org_id", "source_video_url", name="uq_replication_history_org_source"),
    )
    op.create_index("ix_replication_history_source_video_url", "replication_history", ["source_video_url"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_replication_history_source_video_url", table_name="replication_history")
    op.drop_table("replication_history")
    op.drop_index("ix_scheduled_posts_scheduled_time", table_name="scheduled_posts")
    op.drop_index("ix_scheduled_posts_video_job_id", table_name="scheduled_posts")
    op.drop_index("ix_scheduled_posts_org_id", table_name="scheduled_posts")
    op.drop_table("scheduled_posts")
    op.drop_index("ix_video_jobs_org_id", table_name="video_jobs")
    op.drop_table("video_jobs")
    op.drop_table("viral_scores")
    op.drop_index("ix_trends_captured_at", table_name="trends")
    op.drop_index("ix_trends_views", table_name="trends")
    op.drop_table("trends")
    op.drop_index("ix_brands_org_id", table_name="brands")
    op.drop_table("brands")
    op.drop_index("ix_credit_transactions_org_id", table_name="credit_transactions")
    op.drop_table("credit_transactions")
    op.drop_table("credit_wallets")
    op.drop_index("ix_organizations_autopilot_enabled", table_name="organizations")
    op.drop_table("organizations")
