"""
Trend API endpoints

Ingestion of collected trending videos and LLM scoring of a single trend.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from viral_studio.db import get_session
from viral_studio.schemas import TrendIngestRequest
from viral_studio.services.trend_ingest import ingest_trends
from viral_studio.services.trend_scorer import (
    GatewayScoringProvider,
    ScoringError,
    ScoringProvider,
    score_trend,
)
from viral_studio.settings import Settings, get_settings

router = APIRouter(prefix="/api/trends", tags=["trends"])

SessionDep = Depends(get_session)


def get_scoring_provider(settings: Settings = Depends(get_settings)) -> ScoringProvider:
    return GatewayScoringProvider.from_settings(settings)


@router.post("/ingest", response_model=dict)
async def ingest(request: TrendIngestRequest, session: AsyncSession = SessionDep):
    """Upsert a batch of collected trends by source URL."""
    return await ingest_trends(session, request.items)


@router.post("/{trend_id}/score", response_model=dict)
async def score(
    trend_id: int,
    session: AsyncSession = SessionDep,
    provider: ScoringProvider = Depends(get_scoring_provider),
):
    """Score one trend through the LLM gateway and store the result."""
    try:
        result = await score_trend(session, trend_id, provider)
    except ScoringError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trend not found")
    return result
