"""Tests for trend ingestion."""

import asyncio

import pytest
from pydantic import ValidationError
from sqlalchemy import select

from viral_studio.models import Trend
from viral_studio.schemas import TrendIngestItem
from viral_studio.services.trend_ingest import ingest_trends


def _item(url, **kwargs) -> TrendIngestItem:
    data = {"platform": "TikTok", "source_video_url": url, "title": "Best Super Bowl commercial", "views": 2_000_000}
    data.update(kwargs)
    return TrendIngestItem(**data)


class TestIngestItem:
    def test_normalizes_platform_and_url(self):
        item = _item("  https://t/1  ")
        assert item.platform == "tiktok"
        assert item.source_video_url == "https://t/1"

    def test_blank_url_is_rejected(self):
        with pytest.raises(ValidationError):
            _item("   ")


class TestIngestTrends:
    def test_insert_then_update(self, sqlite_db, now):
        async def scenario():
            async with sqlite_db() as factory:
                async with factory() as session:
                    first = await ingest_trends(
                        session,
                        [_item("https://t/1", duration_seconds=30), _item("https://t/2", title="日本の動画")],
                        now=now,
                    )
                    second = await ingest_trends(
                        session, [_item("https://t/1", views=9_000_000, duration_seconds=30)], now=now,
                    )
                    trends = (await session.execute(select(Trend).order_by(Trend.source_video_url))).scalars().all()
                    return first, second, trends

        first, second, trends = asyncio.run(scenario())
        assert first == {"inserted": 2, "updated": 0, "clone_ready": 1}
        assert second == {"inserted": 0, "updated": 1, "clone_ready": 1}
        assert [t.views for t in trends] == [9_000_000, 2_000_000]
        assert trends[0].is_ad
        assert trends[0].category == "VIRAL_AD"
        assert trends[0].clone_ready
        assert trends[1].detected_language == "non-english"
        assert not trends[1].clone_ready

    def test_duplicate_urls_in_batch(self, sqlite_db, now):
        async def scenario():
            async with sqlite_db() as factory:
                async with factory() as session:
                    return await ingest_trends(session, [_item("https://t/1"), _item("https://t/1")], now=now)

        assert asyncio.run(scenario())["inserted"] == 1

    def test_empty_batch(self, sqlite_db):
        async def scenario():
            async with sqlite_db() as factory:
                async with factory() as session:
                    return await ingest_trends(session, [])

        assert asyncio.run(scenario()) == {"inserted": 0, "updated": 0, "clone_ready": 0}
