"""
Source deduplication for the daily cycle.

A source URL becomes "processed" once a video job has been created from it
for some organization (replication_history). Processed URLs are looked up
in one batch per run and never offered again.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from viral_studio.models import ReplicationHistory

logger = logging.getLogger(__name__)

T = TypeVar("T")


def normalize_url(url: str | None) -> str:
    return (url or "").strip()


def unique_by_url(items: Iterable[T], key=lambda item: item.source_url) -> list[T]:
    """Keep the first occurrence of every source URL, preserving order."""
    seen: set[str] = set()
    result: list[T] = []
    for item in items:
        url = normalize_url(key(item))
        if not url or url in seen:
            continue
        seen.add(url)
        result.append(item)
    return result


def split_processed(
    items: Iterable[T],
    processed_urls: set[str],
    key=lambda item: item.source_url,
) -> tuple[list[T], list[T]]:
    """Split items into (new, duplicates) against a set of processed URLs."""
    fresh: list[T] = []
    duplicates: list[T] = []
    for item in items:
        if normalize_url(key(item)) in processed_urls:
            duplicates.append(item)
        else:
            fresh.append(item)
    return fresh, duplicates


async def find_processed_urls(session: AsyncSession, urls: list[str]) -> set[str]:
    """Which of urls were already turned into a job for any organization."""
    urls = [u for u in {normalize_url(u) for u in urls} if u]
    if not urls:
        return set()
    result = await session.execute(
        select(ReplicationHistory.source_video_url)
        .where(ReplicationHistory.source_video_url.in_(urls))
        .distinct()
    )
    return {row[0] for row in result.all()}


async def record_processed_source(
    session: AsyncSession,
    *,
    org_id: int,
    source_url: str,
    platform: str | None,
    job_id: int | None,
    scheduled_time: datetime | None,
) -> ReplicationHistory:
    """Insert the (org, source URL) marker.

    The unique constraint on (org_id, source_video_url) rejects a second
    writer; the IntegrityError is raised from the flush.
    """
    record = ReplicationHistory(
        org_id=org_id,
        source_video_url=normalize_url(source_url),
        platform=platform,
        remake_job_id=job_id,
        scheduled_time=scheduled_time,
        status="scheduled",
        processed_at=datetime.now(timezone.utc),
    )
    session.add(record)
    await session.flush()
    return record
