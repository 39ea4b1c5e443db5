"""Marker API schemas."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel


class MarkerModel(BaseModel):
    outlet_code: str
    nama_pemilik: str
    tanggal_join: str
    type: str
    toko_type: str
    event: str
    contract_sign: str
    tanggal_turun_freezer: str
    tanggal_first_po_es_krim: str
    dus_per_day: str
    total_value_idr: str
    total_dus: str
    po_berapa_kali: str
    po_frequency: str
    freezer_code: str
    spanduk: str
    flag_hanger: str
    poster: str
    papan_harga: str
    stiker_harga: str
    last_service: str
    last_bunga_es: str
    latitude: float
    longitude: float
    outlet_status: str
    color: str
    dus_label: str
    underline: bool
    highlight: bool


class MarkersResponse(BaseModel):
    type_filter: str
    total: int
    items: List[MarkerModel]


class MarkerStatsResponse(BaseModel):
    total: int
    by_type: dict[str, int]
    by_color: dict[str, int]
    total_dus: int
