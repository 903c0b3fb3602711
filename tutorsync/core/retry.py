"""
Bounded retry with linear backoff for async operations.

Usage:
    executor = RetryExecutor(lambda: client.get_tutorial("go-basics"), max_retries=2)
    tutorial = await executor.execute()

Attempt N (N >= 2) is preceded by a sleep of ``retry_delay * (N - 1)``
seconds: 1x, 2x, 3x... The last failure is re-raised once every attempt
has been used.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, TypeVar

from loguru import logger

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class RetryState:
    """Progress of a single execute() call."""

    attempt: int = 0  # 1-indexed once the first attempt starts
    retrying: bool = False


@dataclass
class RetryOptions:
    """Retry knobs shared by the loader and the progress store."""

    max_retries: int = 3
    retry_delay: float = 1.0  # seconds
    on_retry: Callable[[int], None] | None = None
    retry_on: tuple[type[BaseException], ...] = (Exception,)
    retry_if: Callable[[BaseException], bool] | None = None
    sleep: Sleep = field(default=asyncio.sleep, repr=False)

    def executor(self, operation: Callable[[], Awaitable[T]]) -> RetryExecutor[T]:
        return RetryExecutor(
            operation,
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
            on_retry=self.on_retry,
            retry_on=self.retry_on,
            retry_if=self.retry_if,
            sleep=self.sleep,
        )

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` once through a fresh executor."""
        return await self.executor(operation).execute()


class RetryExecutor(Generic[T]):
    """
    Wrap an async operation with bounded retries.

    Each execute() call owns its own RetryState, so concurrent calls on one
    executor never share attempt counters. ``retrying`` reports whether any
    in-flight call is between its first failure and its final outcome.
    """

    def __init__(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: int = 3,
        retry_delay: float = 1.0,
        on_retry: Callable[[int], None] | None = None,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        retry_if: Callable[[BaseException], bool] | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Args:
            operation: Zero-argument callable returning an awaitable
            max_retries: Retries after the first attempt (total = max_retries + 1)
            retry_delay: Backoff unit in seconds
            on_retry: Called with the retry index (1, 2, ...) before each retry
            retry_on: Exception types worth retrying; others propagate at once
            retry_if: Optional predicate; a matching exception it rejects propagates at once
            sleep: Awaitable sleep, replaceable in tests
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")

        self.operation = operation
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.on_retry = on_retry
        self.retry_on = retry_on
        self.retry_if = retry_if
        self._sleep = sleep
        self._active: list[RetryState] = []
        self._latest = RetryState()

    @property
    def state(self) -> RetryState:
        """State of the most recently started execute() call."""
        return self._latest

    @property
    def attempt(self) -> int:
        return self._latest.attempt

    @property
    def retrying(self) -> bool:
        return any(state.retrying for state in self._active)

    async def execute(self) -> T:
        state = RetryState()
        self._latest = state
        self._active.append(state)
        try:
            return await self._run(state)
        finally:
            state.retrying = False
            self._active.remove(state)

    async def _run(self, state: RetryState) -> T:
        total = self.max_retries + 1

        for index in range(total):
            state.attempt = index + 1

            if index > 0:
                state.retrying = True
                if self.on_retry is not None:
                    self.on_retry(index)
                await self._sleep(self.retry_delay * index)

            try:
                result = await self.operation()
            except self.retry_on as exc:
                if self.retry_if is not None and not self.retry_if(exc):
                    logger.debug(f"Not retrying after attempt {state.attempt}: {exc}")
                    raise
                if index == self.max_retries:
                    logger.debug(f"Giving up after {state.attempt} attempt(s): {exc}")
                    raise
                logger.warning(
                    f"Attempt {state.attempt}/{total} failed: {exc}. "
                    f"Retrying in {self.retry_delay * (index + 1):.2f}s..."
                )
                continue

            state.retrying = False
            return result

        # range(total) always returns or raises above
        raise RuntimeError("retry loop exited without a result")
