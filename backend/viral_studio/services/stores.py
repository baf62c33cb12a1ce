"""
Data-store interface used by the daily viral cycle, plus its SQLAlchemy
implementation.

The cycle only talks to a CycleStore, so the same pipeline runs against
Postgres in production and against in-memory fakes in tests.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from viral_studio.models import (
    Brand,
    ContentType,
    Organization,
    ScheduledPost,
    Trend,
    VideoJob,
    VideoJobStatus,
    ViralScore,
)
from viral_studio.schemas import Candidate, OrganizationRef
from viral_studio.services import credits, dedupe
from viral_studio.services.post_schedule import PlannedPost
from viral_studio.settings import CycleConfig

logger = logging.getLogger(__name__)


class DuplicateSourceError(Exception):
    """The (organization, source URL) pair is already recorded as processed."""


@dataclass(frozen=True)
class NewJob:
    org_id: int
    brand_id: int | None
    candidate: Candidate
    content_type: ContentType
    platforms: tuple[str, ...]
    schedule: tuple[PlannedPost, ...]


class CycleStore(ABC):
    """Everything the daily cycle reads from and writes to."""

    @abstractmethod
    async def fetch_candidates(self, cfg: CycleConfig, now: datetime) -> list[Candidate]:
        """Recent, high-view trends joined with their scores, most viewed first."""

    @abstractmethod
    async def fetch_processed_urls(self, urls: list[str]) -> set[str]:
        """Subset of urls already turned into a job for any organization."""

    @abstractmethod
    async def fetch_autopilot_organizations(self) -> list[OrganizationRef]:
        ...

    @abstractmethod
    async def get_credit_balance(self, org_id: int) -> int:
        ...

    @abstractmethod
    async def resolve_brand_id(self, org_id: int) -> int | None:
        """First brand of the organization, or None."""

    @abstractmethod
    async def charge_credits(self, org_id: int, cost: int, description: str) -> bool:
        """Atomic conditional decrement; False when the balance is short."""

    @abstractmethod
    async def create_job(self, job: NewJob) -> int:
        """Create the video job and its per-platform schedule entries."""

    @abstractmethod
    async def record_processed_source(
        self,
        *,
        org_id: int,
        candidate: Candidate,
        job_id: int,
        scheduled_time: datetime | None,
    ) -> None:
        """Raises DuplicateSourceError when the pair is already recorded."""

    @abstractmethod
    def pairing(self):
        """Async context manager: all writes inside commit or roll back together."""

    @abstractmethod
    async def commit(self) -> None:
        """Flush whatever the run left open."""


class SqlCycleStore(CycleStore):
    """CycleStore backed by an AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def fetch_candidates(self, cfg: CycleConfig, now: datetime) -> list[Candidate]:
        cutoff = now - timedelta(days=cfg.lookback_days)
        result = await self.session.execute(
            select(Trend, ViralScore)
            .outerjoin(ViralScore, ViralScore.trend_id == Trend.id)
            .where(
                Trend.captured_at >= cutoff,
                Trend.views >= cfg.min_views,
            )
            .order_by(Trend.views.desc())
            .limit(cfg.batch_size)
        )
        candidates = [Candidate.from_trend(trend, score) for trend, score in result.all()]
        logger.info(
            f"[store] Fetched {len(candidates)} candidates "
            f"(since {cutoff:%Y-%m-%d}, views >= {cfg.min_views})"
        )
        return candidates

    async def fetch_processed_urls(self, urls: list[str]) -> set[str]:
        return await dedupe.find_processed_urls(self.session, urls)

    async def fetch_autopilot_organizations(self) -> list[OrganizationRef]:
        result = await self.session.execute(
            select(Organization)
            .where(Organization.autopilot_enabled == True)  # noqa: E712
            .order_by(Organization.id)
        )
        return [OrganizationRef.model_validate(org) for org in result.scalars().all()]

    async def get_credit_balance(self, org_id: int) -> int:
        return await credits.get_balance(self.session, org_id)

    async def resolve_brand_id(self, org_id: int) -> int | None:
        result = await self.session.execute(
            select(Brand.id).where(Brand.org_id == org_id).order_by(Brand.id).limit(1)
        )
        return result.scalar_one_or_none()

    async def charge_credits(self, org_id: int, cost: int, description: str) -> bool:
        return await credits.charge_credits(self.session, org_id, cost, description=description)

    async def create_job(self, job: NewJob) -> int:
        candidate = job.candidate
        video_job = VideoJob(
            org_id=job.org_id,
            brand_id=job.brand_id,
            trend_id=candidate.trend_id,
            source_video_url=candidate.source_url,
            content_type=job.content_type.value,
            status=VideoJobStatus.queued.value,
            compliance_status="unchecked",
            post_targets=list(job.platforms),
            target_vertical=candidate.category or "general",
            campaign_type="brand_awareness",
            autopilot_enabled=True,
        )
        self.session.add(video_job)
        await self.session.flush()

        for planned in job.schedule:
            self.session.add(ScheduledPost(
                org_id=job.org_id,
                video_job_id=video_job.id,
                source_video_url=candidate.source_url,
                platform=planned.platform,
                status="scheduled",
                scheduled_time=planned.scheduled_time.astimezone(timezone.utc),
            ))
        await self.session.flush()
        return video_job.id

    async def record_processed_source(
        self,
        *,
        org_id: int,
        candidate: Candidate,
        job_id: int,
        scheduled_time: datetime | None,
    ) -> None:
        try:
            await dedupe.record_processed_source(
                self.session,
                org_id=org_id,
                source_url=candidate.source_url,
                platform=candidate.platform,
                job_id=job_id,
                scheduled_time=scheduled_time.astimezone(timezone.utc) if scheduled_time else None,
            )
        except IntegrityError as e:
            raise DuplicateSourceError(
                f"{candidate.source_url} already processed for org {org_id}"
            ) from e

    @asynccontextmanager
    async def pairing(self) -> AsyncIterator[None]:
        async with self.session.begin_nested():
            yield
        await self.session.commit()

    async def commit(self) -> None:
        await self.session.commit()
