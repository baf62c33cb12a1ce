from __future__ import annotations

from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship as sa_relationship

from .db import Base


def relationship(*args, **kwargs):
    """Wrap SQLAlchemy relationship to forbid lazy loading by default."""
    kwargs.setdefault("lazy", "raise")
    return sa_relationship(*args, **kwargs)


class ContentType(str, Enum):
    short_form = "short_form"
    long_form = "long_form"


class AdType(str, Enum):
    ugc = "ugc"
    superbowl = "superbowl"
    commercial = "commercial"
    educational = "educational"
    motivational = "motivational"
    informational = "informational"


class VideoJobStatus(str, Enum):
    queued = "queued"
    scripting = "scripting"
    rendering = "rendering"
    ready = "ready"
    posted = "posted"
    failed = "failed"


class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    autopilot_enabled: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, server_default=sa.false(), index=True)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)

    wallet: Mapped["CreditWallet | None"] = relationship(
        back_populates="organization", cascade="all, delete-orphan", uselist=False
    )
    brands: Mapped[list["Brand"]] = relationship(
        back_populates="organization", cascade="all, delete-orphan", passive_deletes=True
    )
    video_jobs: Mapped[list["VideoJob"]] = relationship(
        back_populates="organization", cascade="all, delete-orphan", passive_deletes=True
    )


class CreditWallet(Base):
    __tablename__ = "credit_wallets"
    __table_args__ = (
        sa.CheckConstraint("current_credits >= 0", name="ck_credit_wallets_non_negative"),
    )

    org_id: Mapped[int] = mapped_column(sa.ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True)
    current_credits: Mapped[int] = mapped_column(sa.Integer(), nullable=False, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    organization: Mapped[Organization] = relationship(back_populates="wallet")


class CreditTransaction(Base):
    """Ledger row written for every successful credit charge."""
    __tablename__ = "credit_transactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    feature: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    amount: Mapped[int] = mapped_column(sa.Integer(), nullable=False)
    balance_after: Mapped[int] = mapped_column(sa.Integer(), nullable=False)
    description: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


class Brand(Base):
    __tablename__ = "brands"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)

    organization: Mapped[Organization] = relationship(back_populates="brands")


class Trend(Base):
    """Trending video captured from an external platform."""
    __tablename__ = "trends"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    platform: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    source_video_url: Mapped[str] = mapped_column(sa.Text(), nullable=False, unique=True)
    title: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    hook_text: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    transcript: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)

    # Metrics
    views: Mapped[int | None] = mapped_column(sa.BigInteger(), nullable=True, index=True)
    likes: Mapped[int | None] = mapped_column(sa.BigInteger(), nullable=True)
    comments: Mapped[int | None] = mapped_column(sa.BigInteger(), nullable=True)
    duration_seconds: Mapped[int | None] = mapped_column(sa.Integer(), nullable=True)

    # Ingestion heuristics
    category: Mapped[str | None] = mapped_column(sa.String(32), nullable=True)
    is_ad: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, server_default=sa.false())
    clone_ready: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, server_default=sa.false())
    clone_score: Mapped[int] = mapped_column(sa.Integer(), nullable=False, server_default="0")
    spoken_content: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, server_default=sa.false())
    detected_language: Mapped[str | None] = mapped_column(sa.String(32), nullable=True)

    captured_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True
    )

    score: Mapped["ViralScore | None"] = relationship(
        back_populates="trend", cascade="all, delete-orphan", uselist=False
    )


class ViralScore(Base):
    """LLM + heuristic scores for a trend (one row per trend)."""
    __tablename__ = "viral_scores"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    trend_id: Mapped[int] = mapped_column(
        sa.ForeignKey("trends.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    clone_score: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    virality_score: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    product_fit_score: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    commercial_dna_score: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    emotional_depth: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    informational_value: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    transformation_score: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    shock_score: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    warmth_score: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    shareability_score: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    shock_warmth_ratio: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    overall_score: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    category: Mapped[str | None] = mapped_column(sa.String(16), nullable=True)
    ad_type: Mapped[str | None] = mapped_column(sa.String(32), nullable=True)
    ai_reasoning: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    trend: Mapped[Trend] = relationship(back_populates="score")


class VideoJob(Base):
    """Production job created by the daily cycle; rendering happens downstream."""
    __tablename__ = "video_jobs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    brand_id: Mapped[int | None] = mapped_column(sa.ForeignKey("brands.id", ondelete="SET NULL"), nullable=True)
    trend_id: Mapped[int | None] = mapped_column(sa.ForeignKey("trends.id", ondelete="SET NULL"), nullable=True)
    source_video_url: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    content_type: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    status: Mapped[str] = mapped_column(sa.String(32), nullable=False, server_default=VideoJobStatus.queued.value)
    compliance_status: Mapped[str] = mapped_column(sa.String(32), nullable=False, server_default="unchecked")
    post_targets: Mapped[list | None] = mapped_column(sa.JSON(), nullable=True)
    target_vertical: Mapped[str | None] = mapped_column(sa.String(64), nullable=True)
    campaign_type: Mapped[str] = mapped_column(sa.String(64), nullable=False, server_default="brand_awareness")
    autopilot_enabled: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, server_default=sa.true())
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    organization: Mapped[Organization] = relationship(back_populates="video_jobs")
    scheduled_posts: Mapped[list["ScheduledPost"]] = relationship(
        back_populates="video_job", cascade="all, delete-orphan", passive_deletes=True
    )


class ScheduledPost(Base):
    __tablename__ = "scheduled_posts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    video_job_id: Mapped[int] = mapped_column(
        sa.ForeignKey("video_jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    source_video_url: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    platform: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    status: Mapped[str] = mapped_column(sa.String(32), nullable=False, server_default="scheduled")
    scheduled_time: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)

    video_job: Mapped[VideoJob] = relationship(back_populates="scheduled_posts")


class ReplicationHistory(Base):
    """Source URLs already turned into a video job for an organization."""
    __tablename__ = "replication_history"
    __table_args__ = (
        sa.UniqueConstraint("org_id", "source_video_url", name="uq_replication_history_org_source"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    source_video_url: Mapped[str] = mapped_column(sa.Text(), nullable=False, index=True)
    platform: Mapped[str | None] = mapped_column(sa.String(32), nullable=True)
    remake_job_id: Mapped[int | None] = mapped_column(
        sa.ForeignKey("video_jobs.id", ondelete="SET NULL"), nullable=True
    )
    scheduled_time: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(sa.String(32), nullable=False, server_default="scheduled")
    processed_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
