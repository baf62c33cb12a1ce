from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_TARGET_PLATFORMS = ["tiktok", "youtube_shorts", "instagram", "facebook"]

DEFAULT_SHORT_FORM_WEIGHTS = {
    "virality": 0.4,
    "shareability": 0.3,
    "shock_warmth": 0.3,
    "recency": 0.1,
}

DEFAULT_LONG_FORM_WEIGHTS = {
    "informational": 0.5,
    "transformation": 0.3,
    "emotional_depth": 0.2,
    "recency": 0.1,
}


@dataclass(frozen=True)
class CycleConfig:
    """Tunables for one daily viral cycle run.

    Built once from Settings and handed to the pipeline explicitly.
    """
    lookback_days: int = 7
    min_views: int = 1_000_000
    batch_size: int = 100

    short_form_cap: int = 4
    long_form_cap: int = 2
    short_form_max_duration: int = 60
    short_form_min_commercial_fit: float = 60
    short_form_min_clone_feasibility: float = 60
    long_form_min_duration: int = 300
    long_form_max_duration: int = 900
    long_form_min_value: float = 60
    short_form_weights: Mapping[str, float] = field(default_factory=lambda: DEFAULT_SHORT_FORM_WEIGHTS)
    long_form_weights: Mapping[str, float] = field(default_factory=lambda: DEFAULT_LONG_FORM_WEIGHTS)
    recency_window_hours: float = 168

    credit_base_cost: int = 120
    credit_per_platform_cost: int = 10
    target_platforms: tuple[str, ...] = tuple(DEFAULT_TARGET_PLATFORMS)

    short_form_post_hours: tuple[int, ...] = (9, 12, 15, 18)
    long_form_post_hours: tuple[int, ...] = (8, 20)
    schedule_timezone: str = "UTC"
    schedule_day_offset: int = 1

    def __post_init__(self):
        # weights are stored as read-only copies
        object.__setattr__(self, "short_form_weights", MappingProxyType(dict(self.short_form_weights)))
        object.__setattr__(self, "long_form_weights", MappingProxyType(dict(self.long_form_weights)))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore",
    )

    app_name: str = "viral-studio"
    environment: str = Field(default="local", validation_alias=AliasChoices("ENVIRONMENT", "VIRAL_STUDIO_ENVIRONMENT"))
    database_url: str = Field(
        default="postgresql+asyncpg://postgres:postgres@db:5432/viral_studio",
        validation_alias=AliasChoices("DATABASE_URL", "VIRAL_STUDIO_DATABASE_URL"),
    )

    # Candidate fetch
    candidate_lookback_days: int = Field(default=7, validation_alias=AliasChoices("CANDIDATE_LOOKBACK_DAYS", "VIRAL_STUDIO_CANDIDATE_LOOKBACK_DAYS"))
    candidate_min_views: int = Field(default=1_000_000, validation_alias=AliasChoices("CANDIDATE_MIN_VIEWS", "VIRAL_STUDIO_CANDIDATE_MIN_VIEWS"))
    candidate_batch_size: int = Field(default=100, validation_alias=AliasChoices("CANDIDATE_BATCH_SIZE", "VIRAL_STUDIO_CANDIDATE_BATCH_SIZE"))

    # Track selection
    short_form_cap: int = Field(default=4, validation_alias=AliasChoices("SHORT_FORM_CAP", "VIRAL_STUDIO_SHORT_FORM_CAP"))
    long_form_cap: int = Field(default=2, validation_alias=AliasChoices("LONG_FORM_CAP", "VIRAL_STUDIO_LONG_FORM_CAP"))
    short_form_max_duration: int = Field(default=60, validation_alias=AliasChoices("SHORT_FORM_MAX_DURATION", "VIRAL_STUDIO_SHORT_FORM_MAX_DURATION"))
    short_form_min_commercial_fit: float = Field(default=60, validation_alias=AliasChoices("SHORT_FORM_MIN_COMMERCIAL_FIT", "VIRAL_STUDIO_SHORT_FORM_MIN_COMMERCIAL_FIT"))
    short_form_min_clone_feasibility: float = Field(default=60, validation_alias=AliasChoices("SHORT_FORM_MIN_CLONE_FEASIBILITY", "VIRAL_STUDIO_SHORT_FORM_MIN_CLONE_FEASIBILITY"))
    long_form_min_duration: int = Field(default=300, validation_alias=AliasChoices("LONG_FORM_MIN_DURATION", "VIRAL_STUDIO_LONG_FORM_MIN_DURATION"))
    long_form_max_duration: int = Field(default=900, validation_alias=AliasChoices("LONG_FORM_MAX_DURATION", "VIRAL_STUDIO_LONG_FORM_MAX_DURATION"))
    long_form_min_value: float = Field(default=60, validation_alias=AliasChoices("LONG_FORM_MIN_VALUE", "VIRAL_STUDIO_LONG_FORM_MIN_VALUE"))
    short_form_weights: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_SHORT_FORM_WEIGHTS),
        validation_alias=AliasChoices("SHORT_FORM_WEIGHTS", "VIRAL_STUDIO_SHORT_FORM_WEIGHTS"),
    )
    long_form_weights: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_LONG_FORM_WEIGHTS),
        validation_alias=AliasChoices("LONG_FORM_WEIGHTS", "VIRAL_STUDIO_LONG_FORM_WEIGHTS"),
    )
    recency_window_hours: float = Field(default=168, validation_alias=AliasChoices("RECENCY_WINDOW_HOURS", "VIRAL_STUDIO_RECENCY_WINDOW_HOURS"))

    # Pricing
    credit_base_cost: int = Field(default=120, validation_alias=AliasChoices("CREDIT_BASE_COST", "VIRAL_STUDIO_CREDIT_BASE_COST"))
    credit_per_platform_cost: int = Field(default=10, validation_alias=AliasChoices("CREDIT_PER_PLATFORM_COST", "VIRAL_STUDIO_CREDIT_PER_PLATFORM_COST"))
    target_platforms: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TARGET_PLATFORMS),
        validation_alias=AliasChoices("TARGET_PLATFORMS", "VIRAL_STUDIO_TARGET_PLATFORMS"),
    )

    # Post scheduling
    short_form_post_hours: list[int] = Field(default_factory=lambda: [9, 12, 15, 18], validation_alias=AliasChoices("SHORT_FORM_POST_HOURS", "VIRAL_STUDIO_SHORT_FORM_POST_HOURS"))
    long_form_post_hours: list[int] = Field(default_factory=lambda: [8, 20], validation_alias=AliasChoices("LONG_FORM_POST_HOURS", "VIRAL_STUDIO_LONG_FORM_POST_HOURS"))
    schedule_timezone: str = Field(default="UTC", validation_alias=AliasChoices("SCHEDULE_TIMEZONE", "VIRAL_STUDIO_SCHEDULE_TIMEZONE"))
    schedule_day_offset: int = Field(default=1, validation_alias=AliasChoices("SCHEDULE_DAY_OFFSET", "VIRAL_STUDIO_SCHEDULE_DAY_OFFSET"))

    # Report email
    resend_api_key: str | None = Field(default=None, validation_alias=AliasChoices("RESEND_API_KEY", "VIRAL_STUDIO_RESEND_API_KEY"))
    report_sender: str = Field(default="Viral Studio <onboarding@resend.dev>", validation_alias=AliasChoices("REPORT_SENDER", "VIRAL_STUDIO_REPORT_SENDER"))
    report_recipient: str | None = Field(default=None, validation_alias=AliasChoices("REPORT_RECIPIENT", "VIRAL_STUDIO_REPORT_RECIPIENT"))

    # LLM scoring gateway (OpenAI-compatible chat completions)
    llm_gateway_url: str = Field(default="https://ai.gateway.lovable.dev/v1/chat/completions", validation_alias=AliasChoices("LLM_GATEWAY_URL", "VIRAL_STUDIO_LLM_GATEWAY_URL"))
    llm_api_key: str | None = Field(default=None, validation_alias=AliasChoices("LLM_API_KEY", "VIRAL_STUDIO_LLM_API_KEY"))
    llm_model: str = Field(default="google/gemini-2.5-flash", validation_alias=AliasChoices("LLM_MODEL", "VIRAL_STUDIO_LLM_MODEL"))
    llm_timeout_sec: float = Field(default=60, validation_alias=AliasChoices("LLM_TIMEOUT_SEC", "VIRAL_STUDIO_LLM_TIMEOUT_SEC"))

    # In-process daily trigger
    scheduler_enabled: bool = Field(default=False, validation_alias=AliasChoices("SCHEDULER_ENABLED", "VIRAL_STUDIO_SCHEDULER_ENABLED"))
    viral_cycle_cron_hour: int = Field(default=6, validation_alias=AliasChoices("VIRAL_CYCLE_CRON_HOUR", "VIRAL_STUDIO_VIRAL_CYCLE_CRON_HOUR"))
    viral_cycle_cron_minute: int = Field(default=0, validation_alias=AliasChoices("VIRAL_CYCLE_CRON_MINUTE", "VIRAL_STUDIO_VIRAL_CYCLE_CRON_MINUTE"))

    @property
    def async_database_url(self) -> str:
        if self.database_url.startswith("postgresql+"):
            return self.database_url
        if self.database_url.startswith("postgresql://"):
            return self.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.database_url

    def cycle_config(self) -> CycleConfig:
        return CycleConfig(
            lookback_days=self.candidate_lookback_days,
            min_views=self.candidate_min_views,
            batch_size=self.candidate_batch_size,
            short_form_cap=self.short_form_cap,
            long_form_cap=self.long_form_cap,
            short_form_max_duration=self.short_form_max_duration,
            short_form_min_commercial_fit=self.short_form_min_commercial_fit,
            short_form_min_clone_feasibility=self.short_form_min_clone_feasibility,
            long_form_min_duration=self.long_form_min_duration,
            long_form_max_duration=self.long_form_max_duration,
            long_form_min_value=self.long_form_min_value,
            short_form_weights={**DEFAULT_SHORT_FORM_WEIGHTS, **self.short_form_weights},
            long_form_weights={**DEFAULT_LONG_FORM_WEIGHTS, **self.long_form_weights},
            recency_window_hours=self.recency_window_hours,
            credit_base_cost=self.credit_base_cost,
            credit_per_platform_cost=self.credit_per_platform_cost,
            target_platforms=tuple(self.target_platforms),
            short_form_post_hours=tuple(self.short_form_post_hours),
            long_form_post_hours=tuple(self.long_form_post_hours),
            schedule_timezone=self.schedule_timezone,
            schedule_day_offset=self.schedule_day_offset,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
