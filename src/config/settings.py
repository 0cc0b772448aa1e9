# src/config/settings.py — v4
"""Typed configuration loaded from the environment via pydantic-settings.

Single source of truth for operator identity, stage directories, collaborator
endpoints and timings. A Settings instance is frozen: it is built once at
startup and passed explicitly to every component that needs it.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from scanflow.core.models import Stage


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


MAX_UPLOAD_BATCH_SIZE = 5

_STAGE_DIR_FIELDS: dict[Stage, str] = {
    Stage.SCANNED: "scanned_dir",
    Stage.LINEARIZED: "linearized_dir",
    Stage.ERROR: "error_dir",
    Stage.UPLOAD_QUEUED: "upload_dir",
    Stage.UPLOADED: "uploaded_dir",
    Stage.UPLOAD_ERROR: "upload_error_dir",
}


def _default_ghostscript_binary() -> str:
    return "gswin64c" if sys.platform == "win32" else "gs"


class Settings(BaseSettings):
    """Application settings loaded from SCANFLOW_* variables and .env."""

    model_config = SettingsConfigDict(
        env_prefix="SCANFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # === Operator identity ===
    scanner_id: str = ""
    station_id: str = ""

    # === Stage directories ===
    # Unset stage directories default to <work_root>/<Stage folder name>.
    work_root: Path = Path("./scanflow-data")
    scanned_dir: Path | None = None
    linearized_dir: Path | None = None
    error_dir: Path | None = None
    upload_dir: Path | None = None
    uploaded_dir: Path | None = None
    upload_error_dir: Path | None = None
    document_extension: str = ".pdf"

    # === Stability detection ===
    batch_quiet_period_s: float = 4.0
    batch_poll_interval_s: float = 1.0
    file_quiet_period_s: float = 10.0
    file_poll_interval_s: float = 0.5
    settle_delay_s: float = 2.0
    sweep_interval_s: float = 60.0

    # === Remote collaborators ===
    recognition_url: str = "http://localhost:8000/api/barcode"
    recognition_field_name: str = "file"
    upload_url: str = "http://localhost:8000/api/upload"
    upload_field_name: str = "files"
    api_token: str = ""
    request_timeout_s: float = 30.0
    retry_max_attempts: int = 3
    retry_base_delay_s: float = 2.0
    upload_batch_size: int = 1
    reachability_host: str = "google.com"

    # === Compression (Ghostscript) ===
    ghostscript_binary: str = _default_ghostscript_binary()
    compression_preset: Literal["screen", "ebook", "printer", "prepress", "default"] = "ebook"
    compression_compatibility: str = "1.4"
    compression_timeout_s: float = 120.0

    # === Audit / reporting files ===
    audit_log_file: Path = Path("scan-log.csv")
    report_file: Path = Path("pdf-report.csv")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = Path("scan-log.txt")
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("document_extension")
    @classmethod
    def validate_extension(cls, v: str) -> str:  # noqa: N805
        if not v.startswith("."):
            raise ValueError("document_extension must start with '.'")
        return v.lower()

    @field_validator("retry_max_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("retry_max_attempts must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Cross-field rules: batch ceiling, timings and distinct stage folders."""
        errors: list[str] = []

        if not 1 <= self.upload_batch_size <= MAX_UPLOAD_BATCH_SIZE:
            errors.append(
                f"UPLOAD_BATCH_SIZE must be between 1 and {MAX_UPLOAD_BATCH_SIZE}"
            )

        timings = {
            "BATCH_QUIET_PERIOD_S": self.batch_quiet_period_s,
            "BATCH_POLL_INTERVAL_S": self.batch_poll_interval_s,
            "FILE_QUIET_PERIOD_S": self.file_quiet_period_s,
            "FILE_POLL_INTERVAL_S": self.file_poll_interval_s,
            "REQUEST_TIMEOUT_S": self.request_timeout_s,
            "COMPRESSION_TIMEOUT_S": self.compression_timeout_s,
        }
        for name, value in timings.items():
            if value <= 0:
                errors.append(f"{name} must be > 0")
        if self.settle_delay_s < 0 or self.retry_base_delay_s < 0:
            errors.append("SETTLE_DELAY_S and RETRY_BASE_DELAY_S must be >= 0")
        if self.sweep_interval_s < 0:
            errors.append("SWEEP_INTERVAL_S must be >= 0 (0 disables sweeps)")

        resolved = [self.stage_directory(stage) for stage in Stage]
        if len(set(resolved)) != len(resolved):
            errors.append("Stage directories must be distinct")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    def stage_directory(self, stage: Stage) -> Path:
        """Absolute directory backing `stage`: its override, else work_root/<stage>."""
        override = getattr(self, _STAGE_DIR_FIELDS[stage])
        path = override if override is not None else self.work_root / stage.value
        return Path(path).expanduser().absolute()

    @property
    def operator_configured(self) -> bool:
        """Whether both scanner and station identity are set."""
        return bool(self.scanner_id.strip() and self.station_id.strip())


def load_settings(**overrides: object) -> Settings:
    """Load settings from the environment with optional overrides.

    Args:
        **overrides: Field-level overrides (CLI flags, tests).

    Returns:
        Validated, frozen Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
