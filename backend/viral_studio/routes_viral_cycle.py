"""
Daily viral cycle endpoint.

Called once a day by an external cron (or the in-process scheduler).
Takes no arguments and returns the run report.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from viral_studio.db import get_session
from viral_studio.schemas import RunReport
from viral_studio.services.report_mailer import ReportNotifier, build_notifier
from viral_studio.services.viral_cycle import CycleFetchError, run_daily_viral_cycle
from viral_studio.settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/viral-cycle", tags=["viral-cycle"])

SessionDep = Depends(get_session)
SettingsDep = Depends(get_settings)


def get_report_notifier(settings: Settings = SettingsDep) -> ReportNotifier:
    return build_notifier(settings)


@router.post("/run", response_model=RunReport)
async def run_viral_cycle(
    session: AsyncSession = SessionDep,
    settings: Settings = SettingsDep,
    notifier: ReportNotifier = Depends(get_report_notifier),
):
    try:
        return await run_daily_viral_cycle(session, settings, notifier=notifier)
    except CycleFetchError as e:
        logger.error(f"[viral_cycle] Run aborted: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(e)},
        )
