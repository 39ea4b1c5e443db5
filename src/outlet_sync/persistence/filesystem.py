"""File-based persistence for the last produced markers CSV."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..config import settings


class FileStorage:
    """Thin wrapper around the data root for storing the local CSV copy."""

    def __init__(self, root: Path | None = None, csv_name: str | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.csv_name = csv_name or settings.local_csv_file
        self.root.mkdir(parents=True, exist_ok=True)

    @property
    def markers_path(self) -> Path:
        return self.root / self.csv_name

    def write_csv(self, content: str, path: Path | None = None) -> Path:
        target = path or self.markers_path
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = target.with_suffix(target.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        tmp_path.replace(target)
        return target

    def read_csv(self, path: Path | None = None) -> Optional[str]:
        target = path or self.markers_path
        if not target.exists():
            return None
        with target.open("r", encoding="utf-8", newline="") as handle:
            return handle.read()
