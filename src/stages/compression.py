# src/stages/compression.py — v1
"""Compression: shrink a document before transmission.

Compression never blocks an upload. When the compressor fails for any reason
the original bytes are returned unchanged. The temporary output directory is
removed on every path.
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path

from scanflow.collaborators.base import BaseCompressor
from scanflow.core.models import CompressionResult

logger = logging.getLogger(__name__)


class CompressionStage:
    """Wrap a compressor with the fall-back-to-original policy."""

    def __init__(self, compressor: BaseCompressor, temp_root: Path | None = None) -> None:
        self._compressor = compressor
        self._temp_root = temp_root

    async def compress(self, path: Path) -> CompressionResult:
        """Return the bytes to upload for `path`.

        Raises:
            OSError: If the original document cannot be read.
        """
        path = Path(path)
        original = await asyncio.to_thread(path.read_bytes)

        with tempfile.TemporaryDirectory(
            prefix="scanflow-", dir=str(self._temp_root) if self._temp_root else None,
        ) as tmp:
            output_path = Path(tmp) / path.name
            try:
                await self._compressor.compress(path, output_path)
                compressed = await asyncio.to_thread(output_path.read_bytes)
            except Exception as e:
                logger.warning(
                    "Compression of %s failed, using original: %s", path.name, e,
                )
                return CompressionResult(
                    data=original,
                    compressed=False,
                    original_size=len(original),
                    final_size=len(original),
                )

        result = CompressionResult(
            data=compressed,
            compressed=True,
            original_size=len(original),
            final_size=len(compressed),
        )
        logger.info(
            "Compressed %s: %d -> %d bytes (%.2f%% reduction)",
            path.name, result.original_size, result.final_size, result.reduction_pct,
        )
        return result
