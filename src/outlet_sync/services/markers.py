"""Presentation data for map markers built from the published CSV."""

from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import asdict
from typing import Iterable, Optional

from ..models.domain import OutletRecord
from ..persistence.filesystem import FileStorage
from .csv_codec import decode_records

GREEN = "#28a745"
RED = "#dc3545"
GREY = "#808080"

COLOR_NAMES = {GREEN: "green", RED: "red", GREY: "grey"}

INSTALLED_LABEL = "Udah Pasang"
EVENT_MARK = "✅"
TYPE_FILTERS = ("all", "Stik", "Ember")

_LEADING_INT = re.compile(r"^\s*([-+]?\d+)")


def marker_color(record: OutletRecord) -> str:
    """Green once ice cream was ordered, red for a freezer without orders, grey otherwise."""
    if record.tanggal_first_po_es_krim.strip():
        return GREEN
    if record.tanggal_turun_freezer.strip():
        return RED
    return GREY


def format_dus_per_day(value: Optional[str]) -> str:
    try:
        number = float(value or "0")
    except ValueError:
        return "0"
    if not math.isfinite(number):
        return "0"
    if number.is_integer():
        return str(int(number))
    return f"{number:.1f}"


def needs_underline(record: OutletRecord) -> bool:
    return record.spanduk != INSTALLED_LABEL


def has_event(record: OutletRecord) -> bool:
    return record.event == EVENT_MARK


def parse_int_lenient(value: Optional[str]) -> int:
    """Integer prefix of ``value``; 0 when there is none."""
    match = _LEADING_INT.match(value or "")
    return int(match.group(1)) if match else 0


def filter_by_type(records: Iterable[OutletRecord], type_filter: str = "all") -> list[OutletRecord]:
    if type_filter not in TYPE_FILTERS:
        raise ValueError(f"Unknown type filter '{type_filter}', expected one of {', '.join(TYPE_FILTERS)}")
    if type_filter == "all":
        return list(records)
    return [record for record in records if record.type == type_filter]


def build_markers(records: Iterable[OutletRecord], type_filter: str = "all") -> list[dict]:
    markers: list[dict] = []
    for record in filter_by_type(records, type_filter):
        item = asdict(record)
        item.update(
            color=marker_color(record),
            dus_label=format_dus_per_day(record.dus_per_day),
            underline=needs_underline(record),
            highlight=has_event(record),
        )
        markers.append(item)
    return markers


def summarize_markers(records: Iterable[OutletRecord]) -> dict:
    by_type: Counter[str] = Counter()
    by_color: Counter[str] = Counter()
    total = 0
    total_dus = 0
    for record in records:
        total += 1
        by_type[record.type or "Unknown"] += 1
        by_color[COLOR_NAMES[marker_color(record)]] += 1
        total_dus += parse_int_lenient(record.total_dus)
    return {
        "total": total,
        "by_type": dict(by_type),
        "by_color": dict(by_color),
        "total_dus": total_dus,
    }


def load_published_records(storage: FileStorage) -> list[OutletRecord]:
    content = storage.read_csv()
    if content is None:
        return []
    return decode_records(content)
