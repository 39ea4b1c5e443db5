"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import debug, health, markers, status, sync
from .config import settings
from .logging_config import configure_logging
from .services.scheduler import DailyScheduler
from .services.sync import SyncContext, SyncOrchestrator

logger = logging.getLogger(__name__)


def create_app(orchestrator: Optional[SyncOrchestrator] = None, enable_scheduler: Optional[bool] = None) -> FastAPI:
    configure_logging()
    orchestrator = orchestrator or SyncOrchestrator(SyncContext(settings=settings))
    cfg = orchestrator.settings
    schedule_enabled = cfg.sync_schedule_enabled if enable_scheduler is None else enable_scheduler

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if schedule_enabled:
            scheduler = DailyScheduler(
                orchestrator,
                hour=cfg.sync_schedule_hour,
                minute=cfg.sync_schedule_minute,
                tz_name=cfg.sync_timezone,
            )
            scheduler.start()
        app.state.scheduler = scheduler
        yield
        if scheduler is not None:
            await scheduler.stop()

    app = FastAPI(title=cfg.app_name, version=cfg.app_version, lifespan=lifespan)
    app.state.orchestrator = orchestrator
    if cfg.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(cfg.frontend_allowed_origins),
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        now = datetime.now(ZoneInfo(cfg.sync_timezone))
        return {
            "service": cfg.app_name,
            "version": cfg.app_version,
            "status": "running",
            "currentTime": now.isoformat(),
            "timezone": cfg.sync_timezone,
            "schedule": (
                f"daily at {cfg.sync_schedule_hour:02d}:{cfg.sync_schedule_minute:02d} + manual"
                if schedule_enabled
                else "manual only"
            ),
            "endpoints": {
                "health": "/health",
                "manualSync": "POST /sync",
                "orderStatus": f"GET {cfg.api_prefix}/order-status",
                "csvData": f"GET {cfg.api_prefix}/csv-data",
                "configStatus": f"GET {cfg.api_prefix}/config-status",
                "testConnections": f"POST {cfg.api_prefix}/test-connections",
                "markers": "GET /markers.csv",
                "docs": "/docs",
            },
        }

    app.include_router(health.router)
    app.include_router(sync.router)
    app.include_router(markers.file_router)
    app.include_router(status.router, prefix=cfg.api_prefix)
    app.include_router(markers.router, prefix=cfg.api_prefix)
    app.include_router(debug.router)
    return app


app = create_app()
