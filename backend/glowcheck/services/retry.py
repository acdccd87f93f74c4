"""Reusable retry policy shared by the detection and generative clients."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from glowcheck.errors import TransientServiceError

logger = logging.getLogger("glowcheck")

T = TypeVar("T")


def linear_backoff(attempt: int, base_delay_s: float) -> float:
    """Delay before retry number ``attempt`` (1-based): attempt x base."""
    return attempt * base_delay_s


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, TransientServiceError)


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    base_delay_s: float = 1.0
    backoff: Callable[[int, float], float] = linear_backoff
    retryable: Callable[[BaseException], bool] = is_transient
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    async def run(self, operation: Callable[[], Awaitable[T]], *, label: str = "call") -> T:
        """Run ``operation`` until it succeeds or retries are exhausted.

        Only exceptions accepted by ``retryable`` are retried; anything else
        (including cancellation) propagates immediately. The last error is
        re-raised once every attempt has failed.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except Exception as exc:
                if not self.retryable(exc) or attempt >= self.max_attempts:
                    logger.warning(
                        "%s failed (attempt %s/%s): %s",
                        label,
                        attempt,
                        self.max_attempts,
                        exc,
                    )
                    raise
                delay = self.backoff(attempt, self.base_delay_s)
                logger.info(
                    "%s failed (attempt %s/%s), retrying in %.1fs: %s",
                    label,
                    attempt,
                    self.max_attempts,
                    delay,
                    exc,
                )
                await self.sleep(delay)
