"""Encoding and decoding of the 25-column markers CSV.

Every field is double-quoted on the way out, so the decoder only needs a
small quote-aware splitter. ``decode_records(encode_records(rs))`` returns the
publishable subset of ``rs`` unchanged as long as no value holds a newline.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from ..models.domain import COLUMN_COUNT, CSV_HEADERS, OUTLET_ATTRIBUTES, OutletRecord
from .filtering import filter_records
from .normalizer import parse_coordinate

logger = logging.getLogger(__name__)

CSV_HEADER = ",".join(CSV_HEADERS)


def escape_field(value: Any) -> str:
    if value is None:
        return '""'
    text = repr(value) if isinstance(value, float) else str(value)
    return '"' + text.replace('"', '""') + '"'


def encode_records(records: Iterable[OutletRecord]) -> str:
    """Serialize records to CSV text with a header and a trailing newline."""
    lines = [CSV_HEADER]
    for record in records:
        lines.append(",".join(escape_field(getattr(record, name)) for name in OUTLET_ATTRIBUTES))
    return "\n".join(lines) + "\n"


def split_csv_line(line: str) -> list[str]:
    """Split one CSV line on commas outside quotes, unescaping ``""``."""
    result: list[str] = []
    current: list[str] = []
    in_quotes = False
    index = 0
    length = len(line)
    while index < length:
        char = line[index]
        if char == '"':
            if in_quotes and index + 1 < length and line[index + 1] == '"':
                current.append('"')
                index += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            result.append("".join(current))
            current = []
        else:
            current.append(char)
        index += 1
    result.append("".join(current))
    return result


def _record_from_values(values: list[str]) -> OutletRecord:
    data: dict[str, Any] = dict(zip(OUTLET_ATTRIBUTES, values[:COLUMN_COUNT]))
    data["latitude"] = parse_coordinate(data["latitude"])
    data["longitude"] = parse_coordinate(data["longitude"])
    return OutletRecord(**data)


def decode_records(text: str) -> list[OutletRecord]:
    """Parse markers CSV text into publishable records.

    A header with fewer than 25 columns yields an empty list. Short data rows
    are skipped.
    """
    lines = [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]
    if not lines or not lines[0].strip():
        logger.error("CSV is empty; expected a %d-column header", COLUMN_COUNT)
        return []

    headers = split_csv_line(lines[0])
    if len(headers) < COLUMN_COUNT:
        logger.error(
            "CSV schema mismatch: expected %d columns, found %d (%s)",
            COLUMN_COUNT,
            len(headers),
            lines[0][:200],
        )
        return []

    records: list[OutletRecord] = []
    for line_number, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        values = split_csv_line(line)
        if len(values) < COLUMN_COUNT:
            logger.warning(
                "Skipping incomplete CSV row %d: %d of %d fields", line_number, len(values), COLUMN_COUNT
            )
            continue
        records.append(_record_from_values(values))

    kept, _ = filter_records(records)
    return kept
