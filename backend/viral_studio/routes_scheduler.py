"""
Scheduler API Routes

Inspect and trigger the in-process daily scheduler.
"""
from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from viral_studio.services.scheduler import scheduler_service

router = APIRouter(prefix="/api/scheduler", tags=["scheduler"])


class SchedulerStatus(BaseModel):
    running: bool
    jobs_count: int
    jobs: list[dict]


@router.get("/status", response_model=SchedulerStatus)
async def get_scheduler_status():
    """Get scheduler status and list of jobs."""
    jobs = scheduler_service.get_jobs()
    return SchedulerStatus(
        running=scheduler_service.is_running(),
        jobs_count=len(jobs),
        jobs=jobs,
    )


@router.post("/jobs/{job_id}/run", response_model=dict)
async def run_job_now(job_id: str):
    """Run a specific job immediately."""
    if scheduler_service.scheduler.get_job(job_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Job {job_id} not found")
    result = await scheduler_service.run_now(job_id)
    if "error" in result:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result["error"])
    return result
