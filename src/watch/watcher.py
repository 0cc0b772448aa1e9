# src/watch/watcher.py — v1
"""Directory watcher: watchdog observer feeding an asyncio queue.

watchdog delivers events on its own thread; they are handed to the event
loop with call_soon_threadsafe so all pipeline state is touched from one
thread only. Watches are non-recursive and existing content is ignored.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from watchdog.events import (
    DirCreatedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WatchEvent:
    """A new entry that appeared in a watched directory."""

    kind: Literal["file", "directory"]
    path: Path

    @property
    def parent(self) -> Path:
        return self.path.parent


def to_watch_event(event: FileSystemEvent) -> WatchEvent | None:
    """Reduce a watchdog event to "something appeared at path"."""
    if isinstance(event, (FileMovedEvent, DirMovedEvent)):
        raw = event.dest_path
    elif isinstance(event, (FileCreatedEvent, DirCreatedEvent)):
        raw = event.src_path
    else:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode()
    kind: Literal["file", "directory"] = "directory" if event.is_directory else "file"
    return WatchEvent(kind=kind, path=Path(raw).absolute())


class _ForwardingHandler(FileSystemEventHandler):
    def __init__(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue[WatchEvent]):
        super().__init__()
        self._loop = loop
        self._queue = queue

    def on_any_event(self, event: FileSystemEvent) -> None:
        watch_event = to_watch_event(event)
        if watch_event is None:
            return
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, watch_event)
        except RuntimeError:
            # Loop already closed during shutdown.
            logger.debug("Dropped %s, event loop closed", watch_event)


class DirectoryWatcher:
    """Watch a set of directories (depth 0) and expose events as a queue."""

    def __init__(
        self,
        directories: list[Path],
        observer: BaseObserver | None = None,
    ) -> None:
        self._directories = [Path(d).absolute() for d in directories]
        self._observer = observer
        self.events: asyncio.Queue[WatchEvent] = asyncio.Queue()

    @property
    def directories(self) -> list[Path]:
        return list(self._directories)

    @property
    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def start(self) -> None:
        """Start the observer thread (call from the event loop)."""
        if self.is_running:
            logger.warning("Watcher already running")
            return

        loop = asyncio.get_running_loop()
        handler = _ForwardingHandler(loop, self.events)
        observer = self._observer or Observer()
        for directory in self._directories:
            observer.schedule(handler, str(directory), recursive=False)
        observer.start()
        self._observer = observer
        logger.info("Watching %s", ", ".join(str(d) for d in self._directories))

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join(timeout=10)
        self._observer = None
        logger.info("Watcher stopped")
