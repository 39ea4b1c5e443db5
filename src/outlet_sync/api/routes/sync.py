"""Manual sync trigger."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ...errors import SyncInProgressError
from ...schemas.sync import SyncResponse, SyncResultModel
from ...services.sync import SyncOrchestrator
from ..deps import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sync"])


@router.post("/sync", response_model=SyncResponse, status_code=status.HTTP_200_OK)
async def trigger_sync(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    try:
        result = await orchestrator.run("manual")
    except SyncInProgressError as exc:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"success": False, "error": str(exc)},
        )
    except Exception as exc:
        logger.error("Manual sync failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(exc)},
        )
    return SyncResponse(
        success=True,
        message=f"Sync completed: {result.published} outlets published",
        result=SyncResultModel.from_result(result),
    )
