from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .models import AdType, ContentType
from .services.virality import transcript_text


def _coerce_score(value: Any) -> float:
    """Missing or malformed numeric scores degrade to 0; valid ones clamp to [0, 100]."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return min(100.0, max(0.0, number))


def _coerce_enum(enum_cls: type, value: Any):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return None


class ScoreSet(BaseModel):
    """Validated bundle of scores attached to a candidate."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    commercial_fit: float = 0.0
    virality: float = 0.0
    product_fit: float = 0.0
    clone_feasibility: float = 0.0
    emotional_depth: float = 0.0
    informational_value: float = 0.0
    transformation: float = 0.0
    overall: float = 0.0
    content_type: ContentType | None = None
    ad_type: AdType | None = None

    @field_validator(
        "commercial_fit",
        "virality",
        "product_fit",
        "clone_feasibility",
        "emotional_depth",
        "informational_value",
        "transformation",
        "overall",
        mode="before",
    )
    @classmethod
    def coerce_score(cls, value: Any) -> float:
        return _coerce_score(value)

    @field_validator("content_type", mode="before")
    @classmethod
    def coerce_content_type(cls, value: Any) -> ContentType | None:
        return _coerce_enum(ContentType, value)

    @field_validator("ad_type", mode="before")
    @classmethod
    def coerce_ad_type(cls, value: Any) -> AdType | None:
        return _coerce_enum(AdType, value)

    @classmethod
    def from_row(cls, row: Any | None) -> "ScoreSet":
        """Build from a ViralScore row (or None when the trend is unscored)."""
        if row is None:
            return cls()
        return cls(
            commercial_fit=row.commercial_dna_score,
            virality=row.virality_score,
            product_fit=row.product_fit_score,
            clone_feasibility=row.clone_score,
            emotional_depth=row.emotional_depth,
            informational_value=row.informational_value,
            transformation=row.transformation_score,
            overall=row.overall_score,
            content_type=row.category,
            ad_type=row.ad_type,
        )


class Candidate(BaseModel):
    """Trending video joined with its score set, as seen by the daily cycle."""
    model_config = ConfigDict(frozen=True)

    source_url: str
    platform: str = "unknown"
    title: str = ""
    transcript: str = ""
    trend_id: int | None = None
    views: int = 0
    likes: int = 0
    comments: int = 0
    duration_seconds: int = 0
    captured_at: datetime
    category: str | None = None
    scores: ScoreSet = Field(default_factory=ScoreSet)

    @field_validator("title", "transcript", "platform", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("views", "likes", "comments", "duration_seconds", mode="before")
    @classmethod
    def none_to_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("captured_at")
    @classmethod
    def ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def from_trend(cls, trend: Any, score: Any | None = None) -> "Candidate":
        return cls(
            source_url=trend.source_video_url,
            platform=trend.platform,
            title=trend.title,
            transcript=transcript_text(trend),
            trend_id=trend.id,
            views=trend.views,
            likes=trend.likes,
            comments=trend.comments,
            duration_seconds=trend.duration_seconds,
            captured_at=trend.captured_at,
            category=trend.category,
            scores=ScoreSet.from_row(score),
        )


class OrganizationRef(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    name: str
    autopilot_enabled: bool = True


# ── Trend ingestion ────────────────────────────────────────


class TrendIngestItem(BaseModel):
    platform: str
    source_video_url: str
    title: str = ""
    thumbnail_url: str | None = None
    hook_text: str | None = None
    transcript: str | None = None
    views: int = 0
    likes: int = 0
    comments: int = 0
    duration_seconds: int | None = None

    @field_validator("source_video_url")
    @classmethod
    def strip_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("source_video_url must not be empty")
        return value

    @field_validator("platform")
    @classmethod
    def normalize_platform(cls, value: str) -> str:
        return value.strip().lower()


class TrendIngestRequest(BaseModel):
    items: list[TrendIngestItem]


# ── LLM scoring ────────────────────────────────────────────


class LLMScorePayload(BaseModel):
    """JSON returned by the LLM scoring prompt, validated at the boundary."""
    model_config = ConfigDict(extra="ignore")

    clone_score: float = 0.0
    virality_score: float = 0.0
    product_fit_score: float = 0.0
    commercial_dna_score: float = 0.0
    emotional_depth: float = 0.0
    informational_value: float = 0.0
    transformation_score: float = 0.0
    category: ContentType | None = None
    ad_type: AdType | None = None
    reasoning: str = ""

    @field_validator(
        "clone_score",
        "virality_score",
        "product_fit_score",
        "commercial_dna_score",
        "emotional_depth",
        "informational_value",
        "transformation_score",
        mode="before",
    )
    @classmethod
    def coerce_score(cls, value: Any) -> float:
        return _coerce_score(value)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, value: Any) -> ContentType | None:
        return _coerce_enum(ContentType, value)

    @field_validator("ad_type", mode="before")
    @classmethod
    def coerce_ad_type(cls, value: Any) -> AdType | None:
        return _coerce_enum(AdType, value)

    @field_validator("reasoning", mode="before")
    @classmethod
    def coerce_reasoning(cls, value: Any) -> str:
        return "" if value is None else str(value)


# ── Run report ─────────────────────────────────────────────


class SelectedVideo(BaseModel):
    source_url: str
    title: str
    platform: str
    content_type: ContentType
    ad_type: AdType | None = None
    score: float
    duration_seconds: int
    jobs_created: int = 0


class SkippedPairing(BaseModel):
    org_id: int
    source_url: str
    status: str
    reason: str


class OrganizationSummary(BaseModel):
    org_id: int
    name: str
    jobs_created: int = 0
    short_form_created: int = 0
    long_form_created: int = 0
    skipped: int = 0
    failed: int = 0


class RunReport(BaseModel):
    message: str
    trends_evaluated: int = 0
    short_form_selected: int = 0
    long_form_selected: int = 0
    total_selected: int = 0
    new_trends: int = 0
    duplicates_skipped: int = 0
    duplicate_urls: list[str] = Field(default_factory=list)
    organizations_processed: int = 0
    videos_created: int = 0
    short_form_created: int = 0
    long_form_created: int = 0
    pairings_skipped: int = 0
    pairings_failed: int = 0
    selected: list[SelectedVideo] = Field(default_factory=list)
    organizations: list[OrganizationSummary] = Field(default_factory=list)
    skipped: list[SkippedPairing] = Field(default_factory=list)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @computed_field
    @property
    def processed(self) -> int:
        return self.videos_created
