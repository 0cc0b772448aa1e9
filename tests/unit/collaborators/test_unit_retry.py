# tests/unit/collaborators/test_unit_retry.py — v1
"""Tests for collaborators/retry.py — retry with linear/exponential backoff."""

from __future__ import annotations

import pytest

from scanflow.collaborators.base import RecognitionError, RecognitionResponseError
from scanflow.collaborators.retry import (
    RetryConfig,
    RetryExhausted,
    compute_delay,
    retry_with_backoff,
)


class _Flaky:
    """Fails `failures` times with `exc`, then returns `value`."""

    def __init__(self, failures: int, exc: Exception | None = None, value: str = "ok"):
        self.failures = failures
        self.exc = exc or RecognitionError("connection reset")
        self.value = value
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return self.value


class _Sleeps:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class TestComputeDelay:
    def test_linear(self):
        config = RetryConfig(base_delay_s=2.0, strategy="linear")
        assert [compute_delay(config, a) for a in (1, 2, 3)] == [2.0, 4.0, 6.0]

    def test_exponential(self):
        config = RetryConfig(base_delay_s=1.0, strategy="exponential", backoff_factor=2.0)
        assert [compute_delay(config, a) for a in (1, 2, 3)] == [1.0, 2.0, 4.0]

    def test_jitter_bounds(self):
        config = RetryConfig(base_delay_s=2.0, jitter=True)
        for _ in range(20):
            assert 1.0 <= compute_delay(config, 1) <= 3.0


class TestRetryWithBackoff:
    @pytest.mark.asyncio
    async def test_first_try_succeeds(self):
        op, sleeps = _Flaky(0), _Sleeps()
        assert await retry_with_backoff(op, sleep=sleeps) == "ok"
        assert op.calls == 1
        assert sleeps.delays == []

    @pytest.mark.asyncio
    async def test_recovers_with_linear_delays(self):
        op, sleeps = _Flaky(2), _Sleeps()
        config = RetryConfig(max_attempts=3, base_delay_s=2.0)
        assert await retry_with_backoff(op, config, sleep=sleeps) == "ok"
        assert op.calls == 3
        assert sleeps.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_exhausted_after_max_attempts(self):
        op, sleeps = _Flaky(10), _Sleeps()
        config = RetryConfig(max_attempts=3, base_delay_s=2.0)
        with pytest.raises(RetryExhausted) as exc_info:
            await retry_with_backoff(op, config, label="Recognition", sleep=sleeps)
        assert op.calls == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, RecognitionError)
        assert "Recognition" in str(exc_info.value)
        # No sleep after the final attempt.
        assert sleeps.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_non_retryable_propagates_immediately(self):
        op = _Flaky(5, exc=RecognitionResponseError("bad payload"))
        sleeps = _Sleeps()
        with pytest.raises(RecognitionResponseError):
            await retry_with_backoff(
                op, RetryConfig(max_attempts=3), retry_on=(RecognitionError,), sleep=sleeps,
            )
        assert op.calls == 1
        assert sleeps.delays == []

    @pytest.mark.asyncio
    async def test_single_attempt(self):
        op = _Flaky(1)
        with pytest.raises(RetryExhausted):
            await retry_with_backoff(op, RetryConfig(max_attempts=1), sleep=_Sleeps())
        assert op.calls == 1
