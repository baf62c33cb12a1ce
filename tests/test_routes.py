"""HTTP tests for the FastAPI app."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from viral_studio import routes_viral_cycle
from viral_studio.db import Base, get_session
from viral_studio.main import app
from viral_studio.routes_trends import get_scoring_provider
from viral_studio.schemas import LLMScorePayload, RunReport
from viral_studio.services.scheduler import JOB_DAILY_VIRAL_CYCLE, scheduler_service
from viral_studio.services.trend_scorer import ScoringError, ScoringProvider
from viral_studio.services.viral_cycle import CycleFetchError


class FixedProvider(ScoringProvider):
    async def score(self, trend):
        return LLMScorePayload(clone_score=90, virality_score=90, commercial_dna_score=90)


class FailingProvider(ScoringProvider):
    async def score(self, trend):
        raise ScoringError("scoring failed: 503")


@pytest.fixture
def client(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'routes.db'}"

    async def override_session():
        engine = create_async_engine(url)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with async_sessionmaker(engine, expire_on_commit=False)() as session:
            yield session
        await engine.dispose()

    app.dependency_overrides[get_session] = override_session
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_ping(self, client):
        assert client.get("/ping").json() == {"status": "ok"}


class TestViralCycleRoute:
    def test_returns_report(self, client, monkeypatch):
        async def fake_run(session, settings, *, notifier=None, now=None):
            return RunReport(message="ok", trends_evaluated=3, videos_created=2, short_form_created=2)

        monkeypatch.setattr(routes_viral_cycle, "run_daily_viral_cycle", fake_run)
        response = client.post("/api/viral-cycle/run")
        assert response.status_code == 200
        body = response.json()
        assert body["videos_created"] == 2
        assert body["processed"] == 2
        assert body["trends_evaluated"] == 3

    def test_fetch_failure_is_500(self, client, monkeypatch):
        async def fake_run(session, settings, *, notifier=None, now=None):
            raise CycleFetchError("candidate fetch failed: timeout")

        monkeypatch.setattr(routes_viral_cycle, "run_daily_viral_cycle", fake_run)
        response = client.post("/api/viral-cycle/run")
        assert response.status_code == 500
        assert response.json() == {"error": "candidate fetch failed: timeout"}

    def test_empty_database_runs_cleanly(self, client):
        response = client.post("/api/viral-cycle/run")
        assert response.status_code == 200
        assert response.json()["message"] == "No trending videos found"


class TestTrendRoutes:
    def test_ingest_then_score(self, client):
        app.dependency_overrides[get_scoring_provider] = FixedProvider
        response = client.post("/api/trends/ingest", json={"items": [
            {"platform": "tiktok", "source_video_url": "https://t/1", "title": "Cute dog", "duration_seconds": 20},
        ]})
        assert response.status_code == 200
        assert response.json()["inserted"] == 1

        scored = client.post("/api/trends/1/score")
        assert scored.status_code == 200
        assert scored.json()["category"] == "short_form"
        assert scored.json()["scores"]["warmth_score"] == 90

    def test_unknown_trend_is_404(self, client):
        app.dependency_overrides[get_scoring_provider] = FixedProvider
        assert client.post("/api/trends/999/score").status_code == 404

    def test_gateway_failure_is_502(self, client):
        app.dependency_overrides[get_scoring_provider] = FailingProvider
        client.post("/api/trends/ingest", json={"items": [
            {"platform": "tiktok", "source_video_url": "https://t/1"},
        ]})
        response = client.post("/api/trends/1/score")
        assert response.status_code == 502

    def test_invalid_payload_is_422(self, client):
        response = client.post("/api/trends/ingest", json={"items": [{"platform": "tiktok"}]})
        assert response.status_code == 422


class TestSchedulerRoutes:
    def test_status_lists_registered_job(self, client):
        scheduler_service.register_jobs()
        try:
            body = client.get("/api/scheduler/status").json()
        finally:
            scheduler_service.scheduler.remove_all_jobs()
        assert body["running"] is False
        assert [job["id"] for job in body["jobs"]] == [JOB_DAILY_VIRAL_CYCLE]

    def test_unknown_job_is_404(self, client):
        assert client.post("/api/scheduler/jobs/nope/run").status_code == 404
