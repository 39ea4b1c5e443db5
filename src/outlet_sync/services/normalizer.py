"""Normalization of raw Feishu bitable field values.

The bitable renders each column type with a different JSON shape: plain
scalars, lists of text runs (``[{"text": ...}]``), lists of option
identifiers (``["optXXXX"]``), epoch-millisecond numbers and spreadsheet day
serials. The helpers here turn any of those into the canonical strings that
end up in the markers CSV. None of them raise on malformed input.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from ..config import DEFAULT_OPTION_LABELS
from ..models.domain import OUTLET_COLUMNS, OutletRecord

logger = logging.getLogger(__name__)

# Numbers strictly above this are millisecond epoch timestamps (13 digits).
EPOCH_MILLIS_THRESHOLD = 1_000_000_000_000
# Numbers strictly inside (DAY_SERIAL_MIN, DAY_SERIAL_MAX) are spreadsheet day serials.
DAY_SERIAL_MIN = 1_000
DAY_SERIAL_MAX = 100_000
DAY_SERIAL_EPOCH = datetime(1900, 1, 1)
# Serial 1 is 1900-01-01 and the spreadsheet counts a non-existent 1900-02-29.
DAY_SERIAL_CORRECTION_DAYS = 2

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
# Leading decimal number of a coordinate value; trailing text is ignored.
_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_FALLBACK_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
)


def _first(field: Any) -> Any:
    if isinstance(field, (list, tuple)) and field:
        return field[0]
    return None


def _number_text(value: float | int) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def get_field_text(field: Any) -> str:
    """Return the plain text of a field, or an empty string."""
    if field is None or isinstance(field, bool):
        return ""
    if isinstance(field, (list, tuple)):
        head = _first(field)
        if isinstance(head, Mapping) and head.get("text"):
            return str(head["text"])
        return ""
    if isinstance(field, str):
        return field
    if isinstance(field, (int, float)):
        return _number_text(field)
    return ""


def get_select_field_text(field: Any, option_labels: Optional[Mapping[str, str]] = None) -> str:
    """Resolve a single/multi-select field to its label.

    Option identifiers missing from ``option_labels`` are returned unchanged.
    """
    labels = DEFAULT_OPTION_LABELS if option_labels is None else option_labels
    head = _first(field)
    if isinstance(head, Mapping) and head.get("text"):
        return str(head["text"])
    if isinstance(head, str):
        return labels.get(head, head)
    return get_field_text(field)


def get_phone_number(field: Any) -> str:
    head = _first(field)
    if isinstance(head, Mapping) and head.get("fullPhoneNum"):
        return str(head["fullPhoneNum"])
    return get_field_text(field)


def epoch_millis_to_date(value: float) -> str:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date().isoformat()


def day_serial_to_date(value: float) -> str:
    result = DAY_SERIAL_EPOCH + timedelta(days=value - DAY_SERIAL_CORRECTION_DAYS)
    return result.date().isoformat()


def _classify_number(value: float) -> str:
    if value > EPOCH_MILLIS_THRESHOLD:
        return epoch_millis_to_date(value)
    if DAY_SERIAL_MIN < value < DAY_SERIAL_MAX:
        return day_serial_to_date(value)
    return epoch_millis_to_date(value)


def _parse_date_string(value: str) -> Optional[str]:
    text = value.strip()
    try:
        number = float(text)
    except ValueError:
        number = None
    if number is not None and math.isfinite(number):
        if number > EPOCH_MILLIS_THRESHOLD:
            return epoch_millis_to_date(number)
        if DAY_SERIAL_MIN < number < DAY_SERIAL_MAX:
            return day_serial_to_date(number)

    candidate = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        parsed = None
    if parsed is None:
        for fmt in _FALLBACK_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date().isoformat()


def get_date_field_text(field: Any) -> str:
    """Normalize a date-ish field to ``YYYY-MM-DD``.

    Unparseable values are logged and returned as the original string.
    """
    if field is None or field == "" or isinstance(field, bool):
        return ""

    raw: str = ""
    if isinstance(field, (list, tuple)):
        head = _first(field)
        if isinstance(head, Mapping) and head.get("text"):
            raw = str(head["text"])
        elif head:
            raw = _number_text(head) if isinstance(head, (int, float)) else str(head)
    elif isinstance(field, str):
        raw = field
    elif isinstance(field, (int, float)):
        try:
            return _classify_number(field)
        except (OverflowError, OSError, ValueError) as exc:
            logger.warning("Unable to convert numeric date %r: %s", field, exc)
            return _number_text(field)
    elif isinstance(field, Mapping):
        if field.get("date"):
            raw = str(field["date"])
        elif field.get("timestamp"):
            try:
                return epoch_millis_to_date(float(field["timestamp"]) * 1000)
            except (OverflowError, OSError, ValueError, TypeError) as exc:
                logger.warning("Unable to convert timestamp %r: %s", field["timestamp"], exc)
                return ""

    if not raw:
        return ""
    if _ISO_DATE.match(raw):
        return raw
    try:
        parsed = _parse_date_string(raw)
    except (OverflowError, OSError, ValueError) as exc:
        logger.warning("Date value %r could not be parsed: %s", raw, exc)
        return raw
    if parsed is None:
        logger.warning("Date value %r could not be parsed", raw)
        return raw
    return parsed


def parse_coordinate(value: Any) -> float:
    """Parse a latitude/longitude value, returning ``nan`` when impossible."""
    if isinstance(value, bool) or value is None:
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value)
    try:
        return float(text.strip())
    except ValueError:
        pass
    match = _LEADING_NUMBER.match(text)
    return float(match.group(1)) if match else math.nan


def normalize_record(fields: Mapping[str, Any], option_labels: Optional[Mapping[str, str]] = None) -> OutletRecord:
    """Build an ``OutletRecord`` from a bitable record's ``fields`` mapping."""
    values: dict[str, Any] = {}
    for attribute, source_name, kind in OUTLET_COLUMNS:
        raw = fields.get(source_name)
        if kind == "date":
            values[attribute] = get_date_field_text(raw)
        elif kind == "select":
            values[attribute] = get_select_field_text(raw, option_labels)
        elif kind == "coordinate":
            values[attribute] = parse_coordinate(get_field_text(raw))
        else:
            values[attribute] = get_field_text(raw)
    return OutletRecord(**values)
