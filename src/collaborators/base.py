# src/collaborators/base.py — v1
"""Narrow interfaces to the external collaborators of the pipeline.

The pipeline never talks to Ghostscript, the recognition service, the upload
service or DNS directly; it goes through these contracts so each can be
replaced in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any


class CollaboratorError(Exception):
    """Base class for collaborator failures."""


class CompressionError(CollaboratorError):
    """The compression process failed or produced no usable output."""


class RecognitionError(CollaboratorError):
    """Transport-level failure talking to the recognition service."""


class RecognitionResponseError(CollaboratorError):
    """The recognition service answered with an unusable payload."""


class UploadError(CollaboratorError):
    """Transport or API failure talking to the upload service."""


class BaseCompressor(ABC):
    """External compression process."""

    @abstractmethod
    async def compress(self, input_path: Path, output_path: Path) -> Path:
        """Write a compressed copy of input_path to output_path.

        Raises:
            CompressionError: On non-zero exit, missing binary, timeout or
                missing output.
        """


class BaseRecognitionClient(ABC):
    """Barcode recognition service."""

    @abstractmethod
    async def recognize(self, filename: str, content: bytes) -> str:
        """Return the recognized identifier (possibly empty).

        Raises:
            RecognitionError: Transport failure or non-2xx status (retryable).
            RecognitionResponseError: Malformed payload (not retryable).
        """


@dataclass(frozen=True)
class UploadFile:
    """(filename, content) pair submitted to the upload service."""

    filename: str
    content: bytes


class BaseUploadClient(ABC):
    """Remote assessment service accepting document uploads."""

    @property
    @abstractmethod
    def max_files_per_request(self) -> int:
        """Upper bound of files in a single request."""

    @abstractmethod
    async def upload(self, files: list[UploadFile]) -> dict[str, Any]:
        """Submit files in one request and return the JSON body.

        Raises:
            UploadError: Transport failure, non-2xx status or non-JSON body.
        """


class BaseReachabilityProbe(ABC):
    """Boolean "online" signal checked before any remote call."""

    @abstractmethod
    async def is_online(self) -> bool:
        """Whether the network is currently reachable."""
