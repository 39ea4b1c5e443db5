"""Published markers: raw CSV plus decoded presentation data."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from ...persistence.filesystem import FileStorage
from ...schemas.markers import MarkerModel, MarkersResponse, MarkerStatsResponse
from ...services.markers import build_markers, load_published_records, summarize_markers
from ..deps import get_storage

router = APIRouter(prefix="/markers", tags=["markers"])
file_router = APIRouter(tags=["markers"])


@file_router.get("/markers.csv", response_class=Response)
def get_markers_csv(storage: FileStorage = Depends(get_storage)) -> Response:
    content = storage.read_csv()
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No CSV has been produced yet")
    return Response(content=content, media_type="text/csv", headers={"Access-Control-Allow-Origin": "*"})


@router.get("", response_model=MarkersResponse)
def list_markers(
    type_filter: Literal["all", "Stik", "Ember"] = Query(default="all", alias="type", description="Outlet type filter"),
    storage: FileStorage = Depends(get_storage),
) -> MarkersResponse:
    items = build_markers(load_published_records(storage), type_filter)
    return MarkersResponse(
        type_filter=type_filter,
        total=len(items),
        items=[MarkerModel(**item) for item in items],
    )


@router.get("/stats", response_model=MarkerStatsResponse)
def get_marker_stats(storage: FileStorage = Depends(get_storage)) -> MarkerStatsResponse:
    return MarkerStatsResponse(**summarize_markers(load_published_records(storage)))
