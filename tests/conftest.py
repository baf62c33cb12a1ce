"""Shared fixtures: candidate builders, an in-memory CycleStore and a SQLite database."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from viral_studio import models  # noqa: F401
from viral_studio.db import Base
from viral_studio.schemas import Candidate, OrganizationRef, ScoreSet
from viral_studio.services.stores import CycleStore, DuplicateSourceError, NewJob
from viral_studio.settings import CycleConfig

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _candidate(
    url: str,
    *,
    duration: int,
    views: int = 2_000_000,
    title: str = "Morning routine tips",
    transcript: str = "",
    platform: str = "tiktok",
    captured_at: datetime | None = None,
    **scores,
) -> Candidate:
    return Candidate(
        source_url=url,
        platform=platform,
        title=title,
        transcript=transcript,
        views=views,
        duration_seconds=duration,
        captured_at=captured_at or NOW - timedelta(hours=12),
        scores=ScoreSet(**scores),
    )


def _short_candidate(url: str, *, duration: int = 30, **kwargs) -> Candidate:
    scores = {"commercial_fit": 80, "clone_feasibility": 80, "virality": 70}
    scores.update(kwargs.pop("scores", {}))
    return _candidate(url, duration=duration, **kwargs, **scores)


def _long_candidate(url: str, *, duration: int = 600, **kwargs) -> Candidate:
    scores = {"informational_value": 75, "transformation": 65, "emotional_depth": 50}
    scores.update(kwargs.pop("scores", {}))
    kwargs.setdefault("platform", "youtube")
    return _candidate(url, duration=duration, **kwargs, **scores)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def cfg() -> CycleConfig:
    return CycleConfig()


@pytest.fixture
def make_candidate():
    return _candidate


@pytest.fixture
def short_candidate():
    return _short_candidate


@pytest.fixture
def long_candidate():
    return _long_candidate


class InMemoryCycleStore(CycleStore):
    """CycleStore over plain dicts; pairing() restores a snapshot on error."""

    def __init__(
        self,
        candidates: list[Candidate] | None = None,
        organizations: list[OrganizationRef] | None = None,
        balances: dict[int, int] | None = None,
    ):
        self.candidates = list(candidates or [])
        self.organizations = list(organizations or [])
        self.balances = dict(balances or {})
        self.brands: dict[int, int] = {}
        self.processed: set[tuple[int, str]] = set()
        self.jobs: list[NewJob] = []
        self.charges: list[tuple[int, int, str]] = []
        self.fail_candidates = False
        self.fail_organizations = False
        self.fail_create_for: set[str] = set()
        self.commits = 0

    async def fetch_candidates(self, cfg, now):
        if self.fail_candidates:
            raise ConnectionError("candidate source unreachable")
        return list(self.candidates)

    async def fetch_processed_urls(self, urls):
        seen = {url for _, url in self.processed}
        return {u for u in urls if u in seen}

    async def fetch_autopilot_organizations(self):
        if self.fail_organizations:
            raise ConnectionError("organization store unreachable")
        return [o for o in self.organizations if o.autopilot_enabled]

    async def get_credit_balance(self, org_id):
        return self.balances.get(org_id, 0)

    async def resolve_brand_id(self, org_id):
        return self.brands.get(org_id)

    async def charge_credits(self, org_id, cost, description):
        if self.balances.get(org_id, 0) < cost:
            return False
        self.balances[org_id] -= cost
        self.charges.append((org_id, cost, description))
        return True

    async def create_job(self, job):
        if job.candidate.source_url in self.fail_create_for:
            raise RuntimeError("job insert failed")
        self.jobs.append(job)
        return len(self.jobs)

    async def record_processed_source(self, *, org_id, candidate, job_id, scheduled_time):
        key = (org_id, candidate.source_url)
        if key in self.processed:
            raise DuplicateSourceError(candidate.source_url)
        self.processed.add(key)

    @asynccontextmanager
    async def pairing(self):
        snapshot = (
            dict(self.balances),
            list(self.jobs),
            list(self.charges),
            set(self.processed),
        )
        try:
            yield
        except BaseException:
            self.balances, self.jobs, self.charges, self.processed = snapshot
            raise

    async def commit(self):
        self.commits += 1


@pytest.fixture
def store_factory():
    return InMemoryCycleStore


@pytest.fixture
def org():
    def _org(org_id: int, name: str | None = None, autopilot: bool = True) -> OrganizationRef:
        return OrganizationRef(id=org_id, name=name or f"Org {org_id}", autopilot_enabled=autopilot)
    return _org


@asynccontextmanager
async def _sqlite_db():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite needs explicit BEGIN for SAVEPOINT to behave
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest.fixture
def sqlite_db():
    """Async context manager yielding a session factory over a fresh in-memory DB.

    Use inside the coroutine passed to asyncio.run so the engine lives on one loop.
    """
    return _sqlite_db
