# src/tracking/report.py — v1
"""Per-document metadata report (CSV), written at intake."""

from __future__ import annotations

import csv
import logging
from datetime import datetime, timezone
from pathlib import Path

from scanflow.core.models import DocumentMetadata

logger = logging.getLogger(__name__)

REPORT_COLUMNS: tuple[str, ...] = (
    "Timestamp", "ScannerName", "PCName", "FileName", "BaseFolder", "Location",
    "PageCount", "FileSizeMB", "Title", "Author", "CreationDate",
)


class MetadataReport:
    """Append-only CSV of document metadata."""

    def __init__(self, path: Path, scanner_id: str, station_id: str) -> None:
        self._path = Path(path).expanduser()
        self._scanner_id = scanner_id or "Unknown"
        self._station_id = station_id or "Unknown"

    @property
    def path(self) -> Path:
        return self._path

    def append(self, metadata: DocumentMetadata) -> None:
        """Append one row, writing the header first if the file is new."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        new_file = not self._path.exists() or self._path.stat().st_size == 0
        row = [
            datetime.now(timezone.utc).isoformat(),
            self._scanner_id,
            self._station_id,
            metadata.file_name,
            metadata.base_folder,
            metadata.location,
            str(metadata.page_count),
            metadata.size_mb,
            metadata.title,
            metadata.author,
            metadata.created_at,
        ]
        with self._path.open("a", newline="", encoding="utf-8") as f:
            if new_file:
                csv.writer(f).writerow(REPORT_COLUMNS)
            csv.writer(f, quoting=csv.QUOTE_ALL).writerow(row)
