"""Introspection endpoints for the raw bitable data."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...errors import SyncError
from ...services.normalizer import get_field_text, get_select_field_text
from ...services.sync import SyncOrchestrator
from ..deps import get_orchestrator

router = APIRouter(prefix="/debug", tags=["debug"])

SELECT_FIELDS = ("Spanduk", "Flag Hanger", "Poster", "Papan Harga", "Stiker Harga")


@router.get("/fields")
async def inspect_fields(
    limit: int = Query(default=3, ge=1, le=100),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> dict:
    try:
        records = await orchestrator.fetch_sample(limit)
    except SyncError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    field_names = sorted({name for record in records for name in (record.get("fields") or {})})
    return {
        "total_records": len(records),
        "field_names": field_names,
        "samples": [
            {"record_id": record.get("record_id"), "fields": record.get("fields") or {}}
            for record in records
        ],
    }


@router.get("/record/{outlet_code}")
async def inspect_record(outlet_code: str, orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> dict:
    try:
        records = await orchestrator.fetch_raw_records()
    except SyncError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    labels = orchestrator.settings.option_labels
    for record in records:
        fields = record.get("fields") or {}
        if get_field_text(fields.get("Outlet Code")) != outlet_code:
            continue
        return {
            "record_id": record.get("record_id"),
            "outlet_code": outlet_code,
            "select_fields": {
                name: {"raw": fields.get(name), "mapped": get_select_field_text(fields.get(name), labels)}
                for name in SELECT_FIELDS
            },
            "mapping_table": labels,
            "fields": fields,
        }
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Record not found: {outlet_code}")
