"""
Post schedule: per-platform publish times for a newly created video job.

Short-form content goes out at several fixed hours across the day, long-form
at fewer hours. When a track has fewer hours than target platforms the hours
are spread evenly and reused, e.g. 2 hours over 4 platforms -> [h0, h0, h1, h1].
"""
from __future__ import annotations

import logging
import zoneinfo
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo

from viral_studio.models import ContentType
from viral_studio.settings import CycleConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannedPost:
    platform: str
    scheduled_time: datetime


def resolve_timezone(tz_name: str | None) -> tuple[tzinfo, str]:
    tz_name = tz_name or "UTC"
    try:
        return zoneinfo.ZoneInfo(tz_name), tz_name
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.warning(f"[post_schedule] Unknown timezone {tz_name!r}, falling back to UTC")
        return timezone.utc, "UTC"


def post_hours_for(content_type: ContentType, cfg: CycleConfig) -> tuple[int, ...]:
    if content_type == ContentType.long_form:
        return cfg.long_form_post_hours
    return cfg.short_form_post_hours


def assign_hours(hours: tuple[int, ...] | list[int], platforms: tuple[str, ...] | list[str]) -> list[int]:
    """One hour per platform, spreading the available hours evenly."""
    if not platforms:
        return []
    if not hours:
        raise ValueError("at least one post hour is required")
    ordered = sorted(hours)
    return [ordered[i * len(ordered) // len(platforms)] for i in range(len(platforms))]


def compute_post_schedule(
    content_type: ContentType,
    cfg: CycleConfig,
    *,
    now: datetime | None = None,
) -> list[PlannedPost]:
    """Scheduled time for every target platform, on the configured day."""
    tz, _ = resolve_timezone(cfg.schedule_timezone)
    now_utc = now or datetime.now(timezone.utc)
    if now_utc.tzinfo is None:
        now_utc = now_utc.replace(tzinfo=timezone.utc)
    target_date = now_utc.astimezone(tz).date() + timedelta(days=cfg.schedule_day_offset)

    hours = assign_hours(post_hours_for(content_type, cfg), cfg.target_platforms)
    return [
        PlannedPost(
            platform=platform,
            scheduled_time=datetime(
                target_date.year, target_date.month, target_date.day, hour, 0, tzinfo=tz,
            ),
        )
        for platform, hour in zip(cfg.target_platforms, hours)
    ]
