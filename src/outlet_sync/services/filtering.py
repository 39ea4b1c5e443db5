"""Selection of publishable outlet records."""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

from ..models.domain import ACTIVE_STATUS, OutletRecord, Rejection, RejectionReason

logger = logging.getLogger(__name__)


def is_active(record: OutletRecord) -> bool:
    return record.outlet_status == ACTIVE_STATUS


def _valid_coordinate(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value != 0


def has_valid_coordinates(record: OutletRecord) -> bool:
    return _valid_coordinate(record.latitude) and _valid_coordinate(record.longitude)


def rejection_reason(record: OutletRecord) -> Optional[RejectionReason]:
    """Return why a record is not publishable, or ``None`` when it is."""
    if not is_active(record):
        return RejectionReason.STATUS
    if not has_valid_coordinates(record):
        return RejectionReason.COORDINATES
    return None


def filter_records(records: Iterable[OutletRecord]) -> tuple[list[OutletRecord], list[Rejection]]:
    """Keep active records with usable coordinates, preserving input order."""
    kept: list[OutletRecord] = []
    rejected: list[Rejection] = []
    for record in records:
        reason = rejection_reason(record)
        if reason is None:
            kept.append(record)
            continue
        rejected.append(Rejection(outlet_code=record.outlet_code, reason=reason))
        if reason is RejectionReason.STATUS:
            logger.info("Skipping outlet %s: status %r is not Active", record.outlet_code or "Unknown", record.outlet_status)
        else:
            logger.info(
                "Skipping outlet %s: invalid coordinates (lat=%s, lng=%s)",
                record.outlet_code or "Unknown",
                record.latitude,
                record.longitude,
            )
    return kept, rejected
