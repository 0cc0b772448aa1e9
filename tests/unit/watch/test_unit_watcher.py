# tests/unit/watch/test_unit_watcher.py — v1
"""Tests for watch/watcher.py — watchdog events to an asyncio queue."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from watchdog.events import (
    DirCreatedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from scanflow.watch.watcher import DirectoryWatcher, WatchEvent, to_watch_event


class _FakeObserver:
    def __init__(self):
        self.scheduled: list[tuple[str, bool]] = []
        self.alive = False
        self.handler = None

    def schedule(self, handler, path, recursive=False):
        self.handler = handler
        self.scheduled.append((path, recursive))

    def start(self):
        self.alive = True

    def stop(self):
        self.alive = False

    def is_alive(self):
        return self.alive

    def join(self, timeout=None):
        pass


class TestToWatchEvent:
    def test_file_created(self, tmp_path):
        event = to_watch_event(FileCreatedEvent(str(tmp_path / "a.pdf")))
        assert event == WatchEvent("file", tmp_path / "a.pdf")
        assert event.parent == tmp_path

    def test_dir_created(self, tmp_path):
        event = to_watch_event(DirCreatedEvent(str(tmp_path / "batch")))
        assert event.kind == "directory"

    def test_moved_uses_destination(self, tmp_path):
        event = to_watch_event(FileMovedEvent(str(tmp_path / "x" / "a.pdf"), str(tmp_path / "y" / "a.pdf")))
        assert event.path == tmp_path / "y" / "a.pdf"

    def test_dir_moved(self, tmp_path):
        event = to_watch_event(DirMovedEvent(str(tmp_path / "tmp"), str(tmp_path / "batch")))
        assert event == WatchEvent("directory", tmp_path / "batch")

    def test_bytes_path(self, tmp_path):
        event = to_watch_event(FileCreatedEvent(str(tmp_path / "a.pdf").encode()))
        assert event.path == tmp_path / "a.pdf"

    @pytest.mark.parametrize("cls", [FileModifiedEvent, FileDeletedEvent])
    def test_ignored(self, tmp_path, cls):
        assert to_watch_event(cls(str(tmp_path / "a.pdf"))) is None


class TestDirectoryWatcher:
    @pytest.mark.asyncio
    async def test_schedules_non_recursive(self, tmp_path):
        observer = _FakeObserver()
        watcher = DirectoryWatcher([tmp_path / "a", tmp_path / "b"], observer=observer)
        watcher.start()
        assert watcher.is_running
        assert observer.scheduled == [(str(tmp_path / "a"), False), (str(tmp_path / "b"), False)]
        watcher.stop()
        assert not watcher.is_running

    @pytest.mark.asyncio
    async def test_forwards_events_to_queue(self, tmp_path):
        observer = _FakeObserver()
        watcher = DirectoryWatcher([tmp_path], observer=observer)
        watcher.start()
        observer.handler.dispatch(FileCreatedEvent(str(tmp_path / "a.pdf")))
        observer.handler.dispatch(FileModifiedEvent(str(tmp_path / "a.pdf")))
        event = await asyncio.wait_for(watcher.events.get(), timeout=1)
        assert event == WatchEvent("file", tmp_path / "a.pdf")
        await asyncio.sleep(0)
        assert watcher.events.empty()
        watcher.stop()

    @pytest.mark.asyncio
    async def test_real_observer(self, tmp_path):
        watcher = DirectoryWatcher([tmp_path])
        watcher.start()
        try:
            (tmp_path / "12345.pdf").write_bytes(b"%PDF")
            event = await asyncio.wait_for(watcher.events.get(), timeout=5)
        finally:
            watcher.stop()
        assert event.path == Path(tmp_path / "12345.pdf").absolute()
        assert event.kind == "file"
