# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides settings bound to a temporary work root with tiny timings, the stage
layout and store, an opened audit log, and in-memory fakes for the four
external collaborators. No network, Ghostscript or real scanner is involved.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pytest

from scanflow.collaborators.base import (
    BaseCompressor,
    BaseReachabilityProbe,
    BaseRecognitionClient,
    BaseUploadClient,
    CompressionError,
    UploadFile,
)
from scanflow.collaborators.factory import Collaborators
from scanflow.collaborators.retry import RetryConfig
from scanflow.config.settings import Settings, load_settings
from scanflow.stages.layout import StageLayout
from scanflow.stages.store import StageStore
from scanflow.tracking.audit import AuditLog

PDF_BYTES = b"%PDF-1.4\n% scanned page\n" + b"x" * 2048 + b"\n%%EOF\n"


# === FAKE COLLABORATORS ===


class FakeCompressor(BaseCompressor):
    """Writes the first half of the input, or fails when `fail` is set."""

    def __init__(self) -> None:
        self.fail = False
        self.calls: list[Path] = []

    async def compress(self, input_path: Path, output_path: Path) -> Path:
        self.calls.append(input_path)
        if self.fail:
            raise CompressionError("gs exited with code 1")
        data = input_path.read_bytes()
        output_path.write_bytes(data[: max(1, len(data) // 2)])
        return output_path


class FakeRecognition(BaseRecognitionClient):
    """Answers with the filename stem unless told otherwise.

    `barcodes` maps a filename to the value returned; `errors` is a queue of
    exceptions raised by successive calls before answering.
    """

    def __init__(self) -> None:
        self.barcodes: dict[str, str] = {}
        self.errors: list[Exception] = []
        self.calls: list[str] = []

    async def recognize(self, filename: str, content: bytes) -> str:
        self.calls.append(filename)
        if self.errors:
            raise self.errors.pop(0)
        return self.barcodes.get(filename, Path(filename).stem)


class FakeUploader(BaseUploadClient):
    """Records every request; `errors` is a queue of exceptions to raise first."""

    def __init__(self, max_files: int = 5) -> None:
        self.max_files = max_files
        self.requests: list[list[UploadFile]] = []
        self.errors: list[Exception] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def max_files_per_request(self) -> int:
        return self.max_files

    @property
    def uploaded_names(self) -> list[str]:
        return [f.filename for request in self.requests for f in request]

    async def upload(self, files: list[UploadFile]) -> dict[str, Any]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            self.requests.append(list(files))
            if self.errors:
                raise self.errors.pop(0)
            return {"success": True, "data": [{"file": f.filename} for f in files]}
        finally:
            self.in_flight -= 1


class FakeProbe(BaseReachabilityProbe):
    def __init__(self, online: bool = True) -> None:
        self.online = online
        self.checks = 0

    async def is_online(self) -> bool:
        self.checks += 1
        return self.online


# === FIXTURES: Isolation ===


@pytest.fixture(autouse=True)
def _reset_scanflow_logger():
    """Undo setup_logging() so caplog keeps seeing scanflow records."""
    yield
    root = logging.getLogger("scanflow")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.propagate = True
    root.setLevel(logging.NOTSET)


# === FIXTURES: Configuration and layout ===


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings bound to a temporary work root with millisecond timings."""
    return load_settings(
        _env_file=None,
        scanner_id="SCN-01",
        station_id="PC-07",
        work_root=tmp_path / "work",
        audit_log_file=tmp_path / "scan-log.csv",
        report_file=tmp_path / "pdf-report.csv",
        log_file=None,
        batch_quiet_period_s=0.03,
        batch_poll_interval_s=0.01,
        file_quiet_period_s=0.03,
        file_poll_interval_s=0.01,
        settle_delay_s=0,
        sweep_interval_s=0,
        retry_base_delay_s=0,
    )


@pytest.fixture
def layout(settings: Settings) -> StageLayout:
    layout = StageLayout.from_settings(settings)
    layout.ensure_directories()
    return layout


@pytest.fixture
def store(layout: StageLayout, settings: Settings) -> StageStore:
    return StageStore(layout, settings.document_extension)


@pytest.fixture
def audit(settings: Settings) -> AuditLog:
    log = AuditLog(settings.audit_log_file, settings.scanner_id, settings.station_id)
    log.open()
    return log


@pytest.fixture
def fast_retry() -> RetryConfig:
    return RetryConfig(max_attempts=3, base_delay_s=0)


# === FIXTURES: Collaborators ===


@pytest.fixture
def compressor() -> FakeCompressor:
    return FakeCompressor()


@pytest.fixture
def recognition() -> FakeRecognition:
    return FakeRecognition()


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def collaborators(
    compressor: FakeCompressor,
    recognition: FakeRecognition,
    uploader: FakeUploader,
    probe: FakeProbe,
) -> Collaborators:
    return Collaborators(
        compressor=compressor, recognition=recognition, uploader=uploader, probe=probe,
    )


# === FIXTURES: Documents ===


@pytest.fixture
def make_pdf():
    """Factory writing a small fake PDF at the given path."""

    def _make(path: Path, content: bytes = PDF_BYTES) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path.absolute()

    return _make
