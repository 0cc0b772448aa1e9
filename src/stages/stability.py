# src/stages/stability.py — v1
"""Stability detection: wait until input has stopped changing.

A directory is stable once its count of matching files has not changed for
the quiet period; a file is stable once its size and mtime have not changed
for the file quiet period. Continuous writes block forever, so a partial
document is never processed.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def count_matching(directory: Path, extension: str) -> int:
    """Number of files in `directory` whose name ends with `extension`."""
    ext = extension.lower()
    return sum(
        1 for p in Path(directory).iterdir()
        if p.is_file() and p.name.lower().endswith(ext)
    )


class StabilityDetector:
    """Polling stability checks for directories and single files."""

    def __init__(
        self,
        quiet_period_s: float = 4.0,
        poll_interval_s: float = 1.0,
        file_quiet_period_s: float = 10.0,
        file_poll_interval_s: float = 0.5,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._quiet = quiet_period_s
        self._poll = poll_interval_s
        self._file_quiet = file_quiet_period_s
        self._file_poll = file_poll_interval_s
        self._sleep = sleep

    async def wait_for_stable_count(self, directory: Path, extension: str) -> int:
        """Block until the matching-file count is unchanged for the quiet period.

        Returns:
            The stable count.

        Raises:
            FileNotFoundError: If the directory disappears while waiting.
        """
        previous = 0
        stable_for = 0.0
        while True:
            await self._sleep(self._poll)
            current = count_matching(directory, extension)
            if current == previous:
                stable_for += self._poll
                if stable_for >= self._quiet:
                    logger.debug(
                        "%s stable with %d file(s) after %.1fs quiet",
                        directory, current, stable_for,
                    )
                    return current
            else:
                previous = current
                stable_for = 0.0

    async def wait_for_file_stable(self, path: Path) -> int:
        """Block until size and mtime are unchanged for the file quiet period.

        Returns:
            The final size in bytes.

        Raises:
            FileNotFoundError: If the file disappears while waiting.
        """
        path = Path(path)
        st = path.stat()
        previous = (st.st_size, st.st_mtime_ns)
        stable_for = 0.0
        while stable_for < self._file_quiet:
            await self._sleep(self._file_poll)
            st = path.stat()
            current = (st.st_size, st.st_mtime_ns)
            if current == previous:
                stable_for += self._file_poll
            else:
                previous = current
                stable_for = 0.0
        return previous[0]
