# src/tracking/audit.py — v1
"""Append-only audit trail of stage transitions, outcomes and errors.

One fully quoted CSV row per record, header written when the file is new.
"""

from __future__ import annotations

import csv
import logging
from collections import deque
from pathlib import Path

from scanflow.core.models import AUDIT_COLUMNS, AuditRecord, AuditStatus

logger = logging.getLogger(__name__)


class AuditLog:
    """CSV audit writer bound to one operator identity."""

    def __init__(
        self,
        path: Path,
        scanner_id: str,
        station_id: str,
        keep_last: int = 1000,
    ) -> None:
        self._path = Path(path).expanduser()
        self._scanner_id = scanner_id
        self._station_id = station_id
        self._recent: deque[AuditRecord] = deque(maxlen=keep_last)

    @property
    def path(self) -> Path:
        return self._path

    def open(self) -> None:
        """Create the file and header if needed.

        Raises:
            OSError: If the audit file cannot be created.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        if not self._path.exists() or self._path.stat().st_size == 0:
            with self._path.open("w", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow(AUDIT_COLUMNS)

    def record(
        self,
        folder: str | Path,
        file: str,
        status: AuditStatus,
        action: str,
        message: str = "",
    ) -> AuditRecord:
        """Append one record and return it."""
        entry = AuditRecord(
            scanner_id=self._scanner_id,
            station_id=self._station_id,
            folder=str(folder),
            file=file,
            status=status,
            action=action,
            message=message,
        )
        self.append(entry)
        return entry

    def append(self, entry: AuditRecord) -> None:
        if not self._path.exists():
            self.open()
        try:
            with self._path.open("a", newline="", encoding="utf-8") as f:
                csv.writer(f, quoting=csv.QUOTE_ALL).writerow(entry.as_row())
        except OSError:
            # The plain log still carries the event.
            logger.exception("Could not append audit record to %s", self._path)
        self._recent.append(entry)

    @property
    def records(self) -> list[AuditRecord]:
        """Most recent records written by this instance, oldest first."""
        return list(self._recent)

    def find(
        self,
        action: str | None = None,
        file: str | None = None,
        status: AuditStatus | None = None,
    ) -> list[AuditRecord]:
        """Filter the in-memory records."""
        return [
            r for r in self._recent
            if (action is None or r.action == action)
            and (file is None or r.file == file)
            and (status is None or r.status == status)
        ]


def read_audit_log(path: Path) -> list[AuditRecord]:
    """Parse an audit CSV back into records."""
    records: list[AuditRecord] = []
    with Path(path).open(newline="", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            records.append(
                AuditRecord(
                    timestamp=row["Timestamp"],
                    scanner_id=row["Scanner"],
                    station_id=row["PC"],
                    folder=row["Folder"],
                    file=row["File"],
                    status=row["Status"],
                    action=row["Action"],
                    message=row["Message"],
                )
            )
    return records
