"""Retry loop with pluggable error classification and jittered backoff."""
from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from .models import UploadConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryDecision(Enum):
    RETRY = "retry"
    TERMINAL = "terminal"


class RetryExhausted(Exception):
    """Raised when every attempt failed with a retryable error."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"Gave up after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def retry_everything(exc: BaseException) -> RetryDecision:
    return RetryDecision.RETRY


@dataclass(frozen=True)
class RetryPolicy:
    """
    Run an async operation up to ``retries + 1`` times.

    The classifier decides per error whether another attempt is allowed.
    Terminal errors are re-raised unchanged; running out of attempts raises
    ``RetryExhausted`` chained to the last error.
    """

    retries: int
    base_delay: float = 1.0
    max_delay: float = 30.0
    factor: float = 2.0
    jitter: float = 0.5
    classifier: Callable[[BaseException], RetryDecision] = retry_everything

    @classmethod
    def from_config(
        cls,
        config: UploadConfig,
        classifier: Callable[[BaseException], RetryDecision] = retry_everything,
    ) -> "RetryPolicy":
        return cls(
            retries=config.retries,
            base_delay=config.retry_base_delay,
            max_delay=config.retry_max_delay,
            factor=config.retry_factor,
            jitter=config.retry_jitter,
            classifier=classifier,
        )

    @property
    def max_attempts(self) -> int:
        return self.retries + 1

    def delay_for(self, retry: int) -> float:
        """Backoff before retry number ``retry`` (1-based)."""
        if self.base_delay <= 0:
            return 0.0
        delay = min(self.max_delay, self.base_delay * (self.factor ** min(retry - 1, 64)))
        if self.jitter > 0:
            lower = max(0.0, delay * (1 - self.jitter))
            upper = delay * (1 + self.jitter)
            delay = random.uniform(lower, upper)
        return delay

    async def run(
        self,
        operation: Callable[[int], Awaitable[T]],
        on_retry: Optional[Callable[[BaseException, int], None]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> T:
        """
        Call ``operation(attempt)`` until it succeeds.

        Args:
            operation: Coroutine factory receiving the 1-based attempt number
            on_retry: Called with the error and the upcoming attempt number
                before the backoff wait of every retry
            sleep: Awaitable backoff wait, ``asyncio.sleep`` by default. It may
                return early; the next attempt still starts afterwards
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation(attempt)
            except Exception as exc:
                if self.classifier(exc) is RetryDecision.TERMINAL:
                    raise
                if attempt >= self.max_attempts:
                    raise RetryExhausted(attempt, exc) from exc
                if on_retry is not None:
                    on_retry(exc, attempt + 1)
                delay = self.delay_for(attempt)
                if delay > 0:
                    logger.debug(f"Retry {attempt}/{self.retries} in {delay:.2f}s")
                    await (sleep or asyncio.sleep)(delay)
