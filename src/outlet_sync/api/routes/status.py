"""Order statistics, CSV preview, configuration and connectivity endpoints."""

from __future__ import annotations

import logging
import platform
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse, Response

from ...errors import SyncError
from ...schemas.sync import (
    ConfigStatusResponse,
    ConnectionResult,
    ConnectionSummary,
    ConnectionTestResponse,
    FeishuConfigDetails,
    GitHubConfigDetails,
    OrderStatusResponse,
    SyncResultModel,
)
from ...services.csv_codec import CSV_HEADER, encode_records
from ...services.markers import parse_int_lenient
from ...services.sync import SyncOrchestrator, today_string
from ..deps import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["status"])

CSV_HEADERS_ALLOW_ALL = {"Access-Control-Allow-Origin": "*"}


@router.get("/order-status", response_model=OrderStatusResponse)
async def get_order_status(orchestrator: SyncOrchestrator = Depends(get_orchestrator)):
    try:
        outlets, _ = await orchestrator.collect_outlets()
    except SyncError as exc:
        logger.error("Order status failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(exc)},
        )
    return OrderStatusResponse(
        success=True,
        date=today_string(orchestrator.settings.sync_timezone),
        total_orders=len(outlets),
        total_dus=sum(parse_int_lenient(outlet.total_dus) for outlet in outlets),
        last_update=datetime.now(timezone.utc),
    )


@router.get("/csv-data", response_class=Response)
async def get_csv_data(orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> Response:
    try:
        outlets, _ = await orchestrator.collect_outlets()
        content = encode_records(outlets)
    except SyncError as exc:
        logger.error("CSV data request failed, serving header only: %s", exc)
        content = CSV_HEADER + "\n"
    return Response(content=content, media_type="text/csv", headers=CSV_HEADERS_ALLOW_ALL)


@router.get("/config-status", response_model=ConfigStatusResponse)
def get_config_status(orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> ConfigStatusResponse:
    cfg = orchestrator.settings
    repo_path = (
        f"{cfg.github_repo_owner}/{cfg.github_repo_name}"
        if cfg.github_repo_owner and cfg.github_repo_name
        else "not_configured"
    )
    return ConfigStatusResponse(
        feishu_configured=not cfg.missing_feishu(),
        feishu_details=FeishuConfigDetails(
            app_id_set=bool(cfg.feishu_app_id),
            app_secret_set=bool(cfg.feishu_app_secret),
            app_token_set=bool(cfg.feishu_app_token),
            table_id_set=bool(cfg.feishu_table_id),
        ),
        github_configured=not cfg.missing_github(),
        github_details=GitHubConfigDetails(
            token_set=bool(cfg.github_token),
            repo_owner_set=bool(cfg.github_repo_owner),
            repo_name_set=bool(cfg.github_repo_name),
            repo_path=repo_path,
            file_path=cfg.github_file_path,
        ),
        schedule=(
            f"{cfg.sync_schedule_hour:02d}:{cfg.sync_schedule_minute:02d} {cfg.sync_timezone}"
            if cfg.sync_schedule_enabled
            else "disabled"
        ),
        python_version=platform.python_version(),
        timestamp=datetime.now(timezone.utc),
    )


async def _test_feishu(orchestrator: SyncOrchestrator) -> ConnectionResult:
    cfg = orchestrator.settings
    missing = cfg.missing_feishu()
    if missing:
        return ConnectionResult(status="failed", message=f"Feishu configuration incomplete: missing {', '.join(missing)}")
    try:
        async with orchestrator.context.feishu_factory(cfg) as feishu:
            token = await orchestrator.ensure_token(feishu)
    except SyncError as exc:
        return ConnectionResult(status="failed", message=str(exc), details={"error_type": type(exc).__name__})
    return ConnectionResult(status="success", message="Feishu API reachable", details={"token_obtained": bool(token)})


async def _test_github(orchestrator: SyncOrchestrator) -> ConnectionResult:
    cfg = orchestrator.settings
    missing = cfg.missing_github()
    if missing:
        return ConnectionResult(status="failed", message=f"GitHub configuration incomplete: missing {', '.join(missing)}")
    try:
        async with orchestrator.context.publisher_factory(cfg) as publisher:
            repo = await publisher.check_repository()
    except SyncError as exc:
        return ConnectionResult(
            status="failed",
            message=str(exc),
            details={"error_type": type(exc).__name__, "status_code": getattr(exc, "status_code", None)},
        )
    return ConnectionResult(
        status="success",
        message="GitHub API reachable",
        details={
            "repo_accessible": True,
            "repo_name": repo.get("full_name"),
            "permissions": repo.get("permissions"),
        },
    )


@router.post("/test-connections", response_model=ConnectionTestResponse)
async def test_connections(orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> ConnectionTestResponse:
    results = {
        "feishu": await _test_feishu(orchestrator),
        "github": await _test_github(orchestrator),
    }
    passed = sum(1 for item in results.values() if item.status == "success")
    return ConnectionTestResponse(
        success=True,
        test_results=results,
        summary=ConnectionSummary(total_tests=len(results), passed=passed, failed=len(results) - passed),
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/sync/last", response_model=SyncResultModel)
def get_last_sync(orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> SyncResultModel:
    if orchestrator.last_result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No sync has run since startup")
    return SyncResultModel.from_result(orchestrator.last_result)
