"""Backoff utilities for retrying failed Telegram fetches."""

from __future__ import annotations

import asyncio

import logfire


class BackoffPolicy:
    """Configuration for retry delays."""

    def __init__(
        self,
        initial_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
    ) -> None:
        """Initialize backoff configuration.

        Args:
            initial_delay: Delay in seconds after the first failure
            max_delay: Maximum delay in seconds between retries
            exponential_base: Base for exponential backoff calculation
        """
        if initial_delay < 0 or max_delay < initial_delay:
            raise ValueError(
                f"Invalid backoff bounds: initial={initial_delay}, max={max_delay}"
            )
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base

    def delay(self, attempt: int) -> float:
        """Delay before the retry following the `attempt`-th consecutive failure."""
        if attempt < 1:
            return 0.0
        return min(
            self.initial_delay * (self.exponential_base ** (attempt - 1)),
            self.max_delay,
        )


class Backoff:
    """Tracks consecutive failures and sleeps according to a policy."""

    def __init__(self, policy: BackoffPolicy) -> None:
        self.policy = policy
        self.failures = 0

    def reset(self) -> None:
        self.failures = 0

    async def wait(self, stop: asyncio.Event | None = None) -> float:
        """Register a failure and sleep. Returns early if `stop` gets set."""
        self.failures += 1
        delay = self.policy.delay(self.failures)

        logfire.info(
            "retrying_after_delay",
            attempt=self.failures,
            delay_seconds=delay,
        )

        if stop is None:
            await asyncio.sleep(delay)
        else:
            try:
                await asyncio.wait_for(stop.wait(), timeout=delay)
            except TimeoutError:
                pass
        return delay
