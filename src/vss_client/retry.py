"""Retry policy contract and reference policies for VSS writes.

A policy is consulted after each failed attempt with the attempt number
(starting at 1) and the classified error. It answers Stop or
RetryAfter(delay_seconds). The retry loop enforces no attempt bound of its
own: budget, jitter and backoff curve belong entirely to the policy.

Reference policies compose by wrapping:

    policy = (
        ExponentialBackoffRetryPolicy(base_delay_seconds=0.01)
        .with_max_attempts(10)
        .with_max_jitter(0.05)
        .skip_retry_on_error(lambda e: isinstance(e, ConflictError))
    )

Policies hold no mutable state, so one instance may be shared by any number
of concurrent calls.
"""

from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, TypeVar, runtime_checkable

from vss_client.errors import VssError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Stop:
    """Stop retrying and surface the last error."""


@dataclass(frozen=True)
class RetryAfter:
    """Retry after waiting delay_seconds."""

    delay_seconds: float

    def __post_init__(self) -> None:
        if self.delay_seconds < 0:
            raise ValueError(f"delay_seconds must be >= 0, got {self.delay_seconds}")


RetryDecision = Stop | RetryAfter


@runtime_checkable
class RetryPolicy(Protocol):
    """Decides whether a failed attempt should be retried."""

    def decide(self, attempt: int, error: VssError) -> RetryDecision:
        """Return Stop or RetryAfter for the failed attempt.

        Args:
            attempt: Number of attempts made so far (1 after the first failure).
            error: Classified error from the latest attempt.
        """
        ...


class ComposableRetryPolicy(ABC):
    """Base for reference policies, providing fluent wrappers."""

    @abstractmethod
    def decide(self, attempt: int, error: VssError) -> RetryDecision:
        """Return Stop or RetryAfter for the failed attempt."""

    def with_max_attempts(self, max_attempts: int) -> MaxAttemptsRetryPolicy:
        """Stop once max_attempts attempts have been made."""
        return MaxAttemptsRetryPolicy(self, max_attempts)

    def with_max_jitter(self, max_jitter_seconds: float) -> JitteredRetryPolicy:
        """Add uniform random jitter in [0, max_jitter_seconds] to each delay."""
        return JitteredRetryPolicy(self, max_jitter_seconds)

    def skip_retry_on_error(
        self, should_skip: Callable[[VssError], bool]
    ) -> FilteredRetryPolicy:
        """Stop immediately when should_skip(error) is true."""
        return FilteredRetryPolicy(self, should_skip)


class NoRetryPolicy(ComposableRetryPolicy):
    """Never retries."""

    def decide(self, attempt: int, error: VssError) -> RetryDecision:
        return Stop()


class ExponentialBackoffRetryPolicy(ComposableRetryPolicy):
    """Retries retryable errors with exponentially growing delays.

    Delay for attempt n is base_delay_seconds * 2 ** (n - 1), capped at
    max_delay_seconds when set. Errors whose `retryable` flag is false (client
    errors, malformed responses) stop immediately. Unbounded on its own;
    combine with with_max_attempts().
    """

    def __init__(
        self,
        base_delay_seconds: float,
        max_delay_seconds: float | None = None,
    ) -> None:
        if base_delay_seconds < 0:
            raise ValueError(f"base_delay_seconds must be >= 0, got {base_delay_seconds}")
        if max_delay_seconds is not None and max_delay_seconds < 0:
            raise ValueError(f"max_delay_seconds must be >= 0, got {max_delay_seconds}")
        self._base_delay_seconds = base_delay_seconds
        self._max_delay_seconds = max_delay_seconds

    def compute_delay(self, attempt: int) -> float:
        """Backoff delay before the retry that follows `attempt`."""
        if attempt < 1:
            return 0.0
        # exponent capped to keep the float finite
        delay = self._base_delay_seconds * (2 ** min(attempt - 1, 62))
        if self._max_delay_seconds is not None:
            delay = min(delay, self._max_delay_seconds)
        return delay

    def decide(self, attempt: int, error: VssError) -> RetryDecision:
        if not error.retryable:
            return Stop()
        return RetryAfter(self.compute_delay(attempt))


class MaxAttemptsRetryPolicy(ComposableRetryPolicy):
    """Bounds the total number of attempts of the wrapped policy."""

    def __init__(self, inner: RetryPolicy, max_attempts: int) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._inner = inner
        self._max_attempts = max_attempts

    def decide(self, attempt: int, error: VssError) -> RetryDecision:
        if attempt >= self._max_attempts:
            return Stop()
        return self._inner.decide(attempt, error)


class JitteredRetryPolicy(ComposableRetryPolicy):
    """Adds random jitter to the wrapped policy's delays."""

    def __init__(self, inner: RetryPolicy, max_jitter_seconds: float) -> None:
        if max_jitter_seconds < 0:
            raise ValueError(f"max_jitter_seconds must be >= 0, got {max_jitter_seconds}")
        self._inner = inner
        self._max_jitter_seconds = max_jitter_seconds

    def decide(self, attempt: int, error: VssError) -> RetryDecision:
        decision = self._inner.decide(attempt, error)
        if isinstance(decision, Stop):
            return decision
        jitter = random.uniform(0, self._max_jitter_seconds)
        return RetryAfter(decision.delay_seconds + jitter)


class FilteredRetryPolicy(ComposableRetryPolicy):
    """Stops without consulting the wrapped policy when should_skip matches."""

    def __init__(self, inner: RetryPolicy, should_skip: Callable[[VssError], bool]) -> None:
        self._inner = inner
        self._should_skip = should_skip

    def decide(self, attempt: int, error: VssError) -> RetryDecision:
        if self._should_skip(error):
            return Stop()
        return self._inner.decide(attempt, error)


async def retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Run operation, retrying VssErrors as long as policy allows.

    Attempts run strictly one after another. Exceptions that are not
    VssError propagate immediately. When the policy stops, the error of the
    final attempt is re-raised unchanged.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        policy: Retry policy consulted after each failure.
        sleep: Awaitable sleep function (injectable for tests).

    Returns:
        The first successful result of operation.

    Raises:
        VssError: The last attempt's error once the policy stops.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except VssError as e:
            decision = policy.decide(attempt, e)
            if isinstance(decision, Stop):
                if attempt > 1:
                    logger.warning(
                        "Giving up after %d attempts: %s (kind=%s)", attempt, e, e.kind
                    )
                raise

            logger.warning(
                "Attempt %d failed: %s (kind=%s), retrying in %.3fs",
                attempt,
                e,
                e.kind,
                decision.delay_seconds,
            )
            await sleep(decision.delay_seconds)
