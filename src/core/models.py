# src/core/models.py — v2
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# === STAGES ===


class Stage(str, Enum):
    """Processing stage of a document, backed by a watched directory.

    The value is the default folder name of the stage under the work root.
    """

    SCANNED = "Scanned"
    LINEARIZED = "Linearized"
    ERROR = "Error"
    UPLOAD_QUEUED = "Upload Folder"
    UPLOADED = "Uploaded"
    UPLOAD_ERROR = "Upload Error"

    @property
    def is_terminal(self) -> bool:
        return not STAGE_GRAPH[self]


# Allowed forward edges; a document never moves backwards.
STAGE_GRAPH: dict[Stage, frozenset[Stage]] = {
    Stage.SCANNED: frozenset({Stage.LINEARIZED}),
    Stage.LINEARIZED: frozenset({Stage.ERROR, Stage.UPLOAD_QUEUED}),
    Stage.ERROR: frozenset(),
    Stage.UPLOAD_QUEUED: frozenset({Stage.UPLOADED, Stage.UPLOAD_ERROR}),
    Stage.UPLOADED: frozenset(),
    Stage.UPLOAD_ERROR: frozenset(),
}


# === DOCUMENTS ===


class DocumentMetadata(BaseModel):
    """Coarse, best-effort metadata of a scanned document."""

    file_name: str
    location: str
    base_folder: str
    size_bytes: int = 0
    page_count: int = 0
    title: str = "N/A"
    author: str = "N/A"
    created_at: str = "N/A"

    @property
    def size_mb(self) -> str:
        return f"{self.size_bytes / (1024 * 1024):.2f}"


class Document(BaseModel):
    """A single scanned file; its parent directory is its stage."""

    identity: str
    location: Path
    stage: Stage
    metadata: DocumentMetadata | None = None

    @classmethod
    def from_path(cls, path: Path, stage: Stage) -> Document:
        return cls(identity=path.stem, location=path.absolute(), stage=stage)


# === AUDIT ===


AuditStatus = Literal["Info", "Pass", "Fail"]

AUDIT_COLUMNS: tuple[str, ...] = (
    "Timestamp", "Scanner", "PC", "Folder", "File", "Status", "Action", "Message",
)


class AuditRecord(BaseModel):
    """Immutable audit trail entry for one stage transition or outcome."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    scanner_id: str
    station_id: str
    folder: str
    file: str = ""
    status: AuditStatus
    action: str
    message: str = ""

    def as_row(self) -> list[str]:
        """Values in AUDIT_COLUMNS order."""
        return [
            self.timestamp.isoformat(),
            self.scanner_id,
            self.station_id,
            self.folder,
            self.file,
            self.status,
            self.action,
            self.message,
        ]


# === STAGE OUTCOMES ===


class BatchOutcome(BaseModel):
    """Summary of one batch intake."""

    directory: str
    documents_found: int = 0
    moved: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    directory_removed: bool = False


class VerificationOutcome(str, Enum):
    PASSED = "passed"
    MISMATCH = "mismatch"
    FAILED = "failed"
    DEFERRED = "deferred"
    SKIPPED = "skipped"


class CompressionResult(BaseModel):
    """Bytes to transmit plus the size bookkeeping of one compression run."""

    data: bytes
    compressed: bool
    original_size: int
    final_size: int

    @property
    def reduction_pct(self) -> float:
        if self.original_size == 0:
            return 0.0
        return round((1 - self.final_size / self.original_size) * 100, 2)


class UploadOutcome(str, Enum):
    UPLOADED = "uploaded"
    FAILED = "failed"
    DEFERRED = "deferred"
