from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from .routes_scheduler import router as scheduler_router
from .routes_trends import router as trends_router
from .routes_viral_cycle import router as viral_cycle_router
from .settings import get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("viral_studio")

app = FastAPI(title="viral-studio")
settings = get_settings()


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url)
    return PlainTextResponse("Internal Server Error", status_code=500)


@app.get("/ping")
async def ping():
    return {"status": "ok"}


app.include_router(viral_cycle_router)
app.include_router(trends_router)
app.include_router(scheduler_router)


@app.on_event("startup")
async def startup_event():
    """Start scheduler on app startup (no-op unless SCHEDULER_ENABLED)."""
    from viral_studio.services.scheduler import scheduler_service
    scheduler_service.configure(settings.async_database_url)
    scheduler_service.start()


@app.on_event("shutdown")
async def shutdown_event():
    from viral_studio.services.scheduler import scheduler_service
    scheduler_service.stop()
