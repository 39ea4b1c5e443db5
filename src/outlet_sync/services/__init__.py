"""Sync pipeline services."""

from .csv_codec import decode_records, encode_records, split_csv_line
from .filtering import filter_records
from .normalizer import (
    get_date_field_text,
    get_field_text,
    get_phone_number,
    get_select_field_text,
    normalize_record,
)

__all__ = [
    "get_field_text",
    "get_select_field_text",
    "get_date_field_text",
    "get_phone_number",
    "normalize_record",
    "filter_records",
    "encode_records",
    "decode_records",
    "split_csv_line",
]
