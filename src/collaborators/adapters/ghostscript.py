# src/collaborators/adapters/ghostscript.py — v2
"""Ghostscript compressor: re-renders a PDF with a quality preset.

Requires the Ghostscript binary (`gs`, or `gswin64c` on Windows) on PATH.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path

from scanflow.collaborators.base import BaseCompressor, CompressionError

logger = logging.getLogger(__name__)


class GhostscriptCompressor(BaseCompressor):
    """Run `gs -sDEVICE=pdfwrite` as a non-interactive subprocess."""

    def __init__(
        self,
        binary: str = "gs",
        preset: str = "ebook",
        compatibility: str = "1.4",
        timeout_s: float = 120.0,
    ) -> None:
        self._binary = binary
        self._preset = preset
        self._compatibility = compatibility
        self._timeout_s = timeout_s

    def build_args(self, input_path: Path, output_path: Path) -> list[str]:
        """Command line for one compression run."""
        return [
            self._binary,
            "-sDEVICE=pdfwrite",
            f"-dCompatibilityLevel={self._compatibility}",
            f"-dPDFSETTINGS=/{self._preset}",
            "-dNOPAUSE",
            "-dQUIET",
            "-dBATCH",
            f"-sOutputFile={output_path}",
            str(input_path),
        ]

    async def compress(self, input_path: Path, output_path: Path) -> Path:
        args = self.build_args(input_path, output_path)
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise CompressionError(f"Ghostscript not available: {self._binary}") from e

        try:
            _, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self._timeout_s,
            )
        except asyncio.TimeoutError as e:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            raise CompressionError(
                f"Ghostscript timed out after {self._timeout_s:.0f}s"
            ) from e

        if proc.returncode != 0:
            detail = stderr.decode(errors="replace").strip()[:500]
            raise CompressionError(
                f"Ghostscript exited with code {proc.returncode}: {detail}"
            )
        if not output_path.is_file() or output_path.stat().st_size == 0:
            raise CompressionError(f"Ghostscript produced no output at {output_path}")

        logger.debug("Compressed %s -> %s", input_path.name, output_path)
        return output_path
