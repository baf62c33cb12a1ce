"""
Trend ingestion: upsert collected trending videos by source URL and tag
them with the clone-readiness heuristic.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from viral_studio.models import Trend
from viral_studio.schemas import TrendIngestItem
from viral_studio.services.dedupe import unique_by_url
from viral_studio.services.virality import calculate_clone_readiness

logger = logging.getLogger(__name__)


async def ingest_trends(
    session: AsyncSession,
    items: list[TrendIngestItem],
    *,
    now: datetime | None = None,
) -> dict:
    """Insert new trends, refresh metrics of known ones.

    Every upserted row gets a fresh captured_at so it re-enters the
    candidate window.
    """
    now = now or datetime.now(timezone.utc)
    items = unique_by_url(items, key=lambda i: i.source_video_url)
    if not items:
        return {"inserted": 0, "updated": 0, "clone_ready": 0}

    urls = [i.source_video_url for i in items]
    result = await session.execute(select(Trend).where(Trend.source_video_url.in_(urls)))
    existing = {t.source_video_url: t for t in result.scalars().all()}

    inserted = updated = ready = 0
    for item in items:
        clone = calculate_clone_readiness(item.title, item.duration_seconds)
        trend = existing.get(item.source_video_url)
        if trend is None:
            trend = Trend(source_video_url=item.source_video_url)
            session.add(trend)
            inserted += 1
        else:
            updated += 1

        trend.platform = item.platform
        trend.title = item.title
        trend.thumbnail_url = item.thumbnail_url or trend.thumbnail_url
        trend.hook_text = item.hook_text or trend.hook_text
        trend.transcript = item.transcript or trend.transcript
        trend.views = item.views
        trend.likes = item.likes
        trend.comments = item.comments
        trend.duration_seconds = item.duration_seconds
        trend.category = clone.category
        trend.is_ad = clone.is_ad
        trend.clone_ready = clone.ready
        trend.clone_score = clone.score
        trend.spoken_content = clone.spoken
        trend.detected_language = clone.language
        trend.captured_at = now
        if clone.ready:
            ready += 1

    await session.commit()
    logger.info(f"[trend_ingest] Upserted {len(items)} trends ({inserted} new, {ready} clone-ready)")
    return {"inserted": inserted, "updated": updated, "clone_ready": ready}
