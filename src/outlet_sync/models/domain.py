"""Domain models for outlet records and sync bookkeeping."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(slots=True)
class OutletRecord:
    """One outlet snapshot as published in the markers CSV."""

    outlet_code: str = ""
    nama_pemilik: str = ""
    tanggal_join: str = ""
    type: str = ""
    toko_type: str = ""
    event: str = ""
    contract_sign: str = ""
    tanggal_turun_freezer: str = ""
    tanggal_first_po_es_krim: str = ""
    dus_per_day: str = ""
    total_value_idr: str = ""
    total_dus: str = ""
    po_berapa_kali: str = ""
    po_frequency: str = ""
    freezer_code: str = ""
    spanduk: str = ""
    flag_hanger: str = ""
    poster: str = ""
    papan_harga: str = ""
    stiker_harga: str = ""
    last_service: str = ""
    last_bunga_es: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    outlet_status: str = ""


# (attribute, CSV header / bitable field name, normalizer kind), in wire order.
OUTLET_COLUMNS: tuple[tuple[str, str, str], ...] = (
    ("outlet_code", "Outlet Code", "text"),
    ("nama_pemilik", "Nama Pemilik", "text"),
    ("tanggal_join", "Tanggal Join", "date"),
    ("type", "Type", "text"),
    ("toko_type", "Toko Type", "text"),
    ("event", "Event", "text"),
    ("contract_sign", "Contract Sign", "date"),
    ("tanggal_turun_freezer", "Tanggal Turun Freezer", "date"),
    ("tanggal_first_po_es_krim", "Tanggal First PO EsKrim", "date"),
    ("dus_per_day", "DUS per Day", "text"),
    ("total_value_idr", "Total Value IDR", "text"),
    ("total_dus", "Total DUS", "text"),
    ("po_berapa_kali", "PO berapa Kali", "text"),
    ("po_frequency", "PO Frequency", "text"),
    ("freezer_code", "Freezer Code", "text"),
    ("spanduk", "Spanduk", "select"),
    ("flag_hanger", "Flag Hanger", "select"),
    ("poster", "Poster", "select"),
    ("papan_harga", "Papan Harga", "select"),
    ("stiker_harga", "Stiker Harga", "select"),
    ("last_service", "Last Service", "date"),
    ("last_bunga_es", "Last Bunga Es", "date"),
    ("latitude", "latitude", "coordinate"),
    ("longitude", "longitude", "coordinate"),
    ("outlet_status", "Outlet Status", "text"),
)

OUTLET_ATTRIBUTES: tuple[str, ...] = tuple(column[0] for column in OUTLET_COLUMNS)
CSV_HEADERS: tuple[str, ...] = tuple(column[1] for column in OUTLET_COLUMNS)
COLUMN_COUNT = len(OUTLET_COLUMNS)


ACTIVE_STATUS = "Active"


class RejectionReason(str, Enum):
    STATUS = "status"
    COORDINATES = "coordinates"


@dataclass(slots=True, frozen=True)
class Rejection:
    outlet_code: str
    reason: RejectionReason


@dataclass(slots=True, frozen=True)
class TokenCache:
    """Bearer credential plus the epoch second after which it must be refreshed."""

    token: Optional[str] = None
    expires_at: float = 0.0

    def is_valid(self, now: float) -> bool:
        return bool(self.token) and now < self.expires_at

    @classmethod
    def from_ttl(cls, token: str, ttl_seconds: float, now: float, margin_seconds: float = 300.0) -> "TokenCache":
        return cls(token=token, expires_at=now + ttl_seconds - margin_seconds)


class SyncState(str, Enum):
    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    FETCHING = "fetching"
    NORMALIZING = "normalizing"
    FILTERING = "filtering"
    ENCODING = "encoding"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class SyncResult:
    """Outcome of a single sync run."""

    trigger: str
    state: SyncState = SyncState.IDLE
    fetched: int = 0
    published: int = 0
    rejected: list[Rejection] = field(default_factory=list)
    commit_sha: Optional[str] = None
    content_sha: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state is SyncState.DONE
