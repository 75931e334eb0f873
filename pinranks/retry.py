"""Retry with exponential backoff for outbound fetches.

A single ``RetryPolicy`` is shared by every reference-data call site so the
attempt budget and delays are configured in one place.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pydantic import BaseModel

from pinranks.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, context: str, attempts: int, last_error: BaseException):
        self.context = context
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{context}: failed after {attempts} attempts: {last_error}")


class RetryPolicy(BaseModel):
    """Exponential backoff parameters.

    ``max_attempts`` counts the first call, so 3 means one call plus two
    retries. Delays grow as ``base_delay * multiplier ** n`` capped at
    ``max_delay``.
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 30.0

    def delays(self) -> list[float]:
        """Sleep durations between consecutive attempts."""
        return [
            min(self.base_delay * self.multiplier ** n, self.max_delay)
            for n in range(max(self.max_attempts - 1, 0))
        ]

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        context: str,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> T:
        """Await ``operation`` until it succeeds or the budget runs out.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt
            context: Label used in logs and in the raised RetryError
            retry_on: Exception types that trigger another attempt; anything
                else propagates immediately
            sleep: Awaitable sleep, replaceable in tests

        Raises:
            RetryError: every attempt failed with a retryable exception
        """
        delays = self.delays()
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except retry_on as exc:
                if attempt >= self.max_attempts:
                    log.warning("retry_exhausted", context=context, attempts=attempt, error=str(exc))
                    raise RetryError(context, attempt, exc) from exc
                delay = delays[attempt - 1]
                log.info(
                    "retry_scheduled",
                    context=context,
                    attempt=attempt,
                    delay=delay,
                    error=str(exc),
                )
                await sleep(delay)
