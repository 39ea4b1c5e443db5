"""Health endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status

from ...services.sync import SyncOrchestrator
from ..deps import get_orchestrator

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root(orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> dict:
    """Simple health check endpoint that doesn't touch any upstream service."""
    cfg = orchestrator.settings
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "timezone": cfg.sync_timezone,
        "version": cfg.app_version,
        "features": ["data_sync", "feishu_integration"],
        "sync_running": orchestrator.is_running,
        "sync_schedule": (
            f"daily at {cfg.sync_schedule_hour:02d}:{cfg.sync_schedule_minute:02d} + manual"
            if cfg.sync_schedule_enabled
            else "manual only"
        ),
    }
