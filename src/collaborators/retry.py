# src/collaborators/retry.py — v2
"""Retry with backoff, shared by the recognition and upload collaborators."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal

logger = logging.getLogger(__name__)

DelayStrategy = Literal["linear", "exponential"]


class RetryExhausted(Exception):
    """All attempts of a retried operation failed."""

    def __init__(self, operation: str, attempts: int, last_error: Exception):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"'{operation}' failed after {attempts} attempts: {last_error}"
        )


@dataclass(frozen=True)
class RetryConfig:
    """Attempt ceiling and delay strategy for one collaborator."""

    max_attempts: int = 3
    base_delay_s: float = 2.0
    strategy: DelayStrategy = "linear"
    backoff_factor: float = 2.0
    jitter: bool = False


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Delay before the next try after failed attempt number `attempt` (1-based).

    linear: attempt × base delay. exponential: base × factor^(attempt-1).
    """
    if config.strategy == "linear":
        delay = config.base_delay_s * attempt
    else:
        delay = config.base_delay_s * (config.backoff_factor ** (attempt - 1))
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def retry_with_backoff(
    operation: Callable[[], Awaitable[Any]],
    config: RetryConfig | None = None,
    *,
    label: str = "operation",
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Any:
    """Run `operation` until it succeeds or the attempt ceiling is reached.

    Only exceptions matching `retry_on` are retried; anything else propagates
    immediately.

    Raises:
        RetryExhausted: If every attempt failed with a retryable error.
    """
    config = config or RetryConfig()
    attempt = 0

    while True:
        attempt += 1
        try:
            return await operation()
        except retry_on as e:
            if attempt >= config.max_attempts:
                raise RetryExhausted(label, attempt, e) from e

            delay = compute_delay(config, attempt)
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                label, attempt, config.max_attempts, e, delay,
            )
            await sleep(delay)
