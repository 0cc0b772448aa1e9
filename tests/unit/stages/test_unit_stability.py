# tests/unit/stages/test_unit_stability.py — v1
"""Tests for stages/stability.py — quiet-period polling."""

from __future__ import annotations

import asyncio

import pytest

from scanflow.stages.stability import StabilityDetector, count_matching


class _Clock:
    """Fake sleep that runs a hook on every tick."""

    def __init__(self, on_tick=None):
        self.ticks = 0
        self.on_tick = on_tick

    async def __call__(self, delay: float) -> None:
        await asyncio.sleep(0.001)
        self.ticks += 1
        if self.on_tick is not None:
            self.on_tick(self.ticks)


class TestCountMatching:
    def test_counts_case_insensitive(self, tmp_path):
        (tmp_path / "a.pdf").write_bytes(b"x")
        (tmp_path / "b.PDF").write_bytes(b"x")
        (tmp_path / "c.txt").write_bytes(b"x")
        (tmp_path / "d.pdf").mkdir()
        assert count_matching(tmp_path, ".pdf") == 2


class TestWaitForStableCount:
    @pytest.mark.asyncio
    async def test_returns_after_quiet_period(self, tmp_path):
        (tmp_path / "a.pdf").write_bytes(b"x")
        clock = _Clock()
        detector = StabilityDetector(quiet_period_s=4, poll_interval_s=1, sleep=clock)
        assert await detector.wait_for_stable_count(tmp_path, ".pdf") == 1
        # First poll sees the change from 0, then four quiet polls.
        assert clock.ticks == 5

    @pytest.mark.asyncio
    async def test_arrivals_reset_quiet_period(self, tmp_path):
        def arrive(tick: int) -> None:
            if tick <= 3:
                (tmp_path / f"{tick}.pdf").write_bytes(b"x")

        clock = _Clock(arrive)
        detector = StabilityDetector(quiet_period_s=2, poll_interval_s=1, sleep=clock)
        assert await detector.wait_for_stable_count(tmp_path, ".pdf") == 3
        assert clock.ticks == 5

    @pytest.mark.asyncio
    async def test_empty_directory_is_stable_at_zero(self, tmp_path):
        detector = StabilityDetector(quiet_period_s=2, poll_interval_s=1, sleep=_Clock())
        assert await detector.wait_for_stable_count(tmp_path, ".pdf") == 0

    @pytest.mark.asyncio
    async def test_continuous_arrivals_never_stable(self, tmp_path):
        def arrive(tick: int) -> None:
            (tmp_path / f"{tick}.pdf").write_bytes(b"x")

        detector = StabilityDetector(quiet_period_s=2, poll_interval_s=1, sleep=_Clock(arrive))
        task = asyncio.ensure_future(detector.wait_for_stable_count(tmp_path, ".pdf"))
        await asyncio.sleep(0.05)
        assert not task.done()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_vanished_directory(self, tmp_path):
        batch = tmp_path / "batch"
        batch.mkdir()
        detector = StabilityDetector(sleep=_Clock(lambda tick: batch.rmdir()))
        with pytest.raises(FileNotFoundError):
            await detector.wait_for_stable_count(batch, ".pdf")

    @pytest.mark.asyncio
    async def test_real_sleep(self, tmp_path):
        (tmp_path / "a.pdf").write_bytes(b"x")
        detector = StabilityDetector(quiet_period_s=0.03, poll_interval_s=0.01)
        assert await detector.wait_for_stable_count(tmp_path, ".pdf") == 1


class TestWaitForFileStable:
    @pytest.mark.asyncio
    async def test_stable_file(self, tmp_path):
        path = tmp_path / "a.pdf"
        path.write_bytes(b"12345")
        clock = _Clock()
        detector = StabilityDetector(file_quiet_period_s=2, file_poll_interval_s=0.5, sleep=clock)
        assert await detector.wait_for_file_stable(path) == 5
        assert clock.ticks == 4

    @pytest.mark.asyncio
    async def test_growth_resets(self, tmp_path):
        path = tmp_path / "a.pdf"
        path.write_bytes(b"1")

        def grow(tick: int) -> None:
            if tick <= 2:
                with path.open("ab") as f:
                    f.write(b"more")

        clock = _Clock(grow)
        detector = StabilityDetector(file_quiet_period_s=1, file_poll_interval_s=0.5, sleep=clock)
        assert await detector.wait_for_file_stable(path) == 9
        assert clock.ticks == 4

    @pytest.mark.asyncio
    async def test_vanished_file(self, tmp_path):
        path = tmp_path / "a.pdf"
        path.write_bytes(b"1")
        detector = StabilityDetector(sleep=_Clock(lambda tick: path.unlink()))
        with pytest.raises(FileNotFoundError):
            await detector.wait_for_file_stable(path)
