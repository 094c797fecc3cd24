"""
Module: retry

Purpose: Exponential-backoff retry loop shared by every destination adapter.

``RetryExecutor.run`` never raises for a failed operation; it returns a
``RetryOutcome`` describing what happened. ``execute`` is the adapter-facing
wrapper that raises the final classified error, so the router can record the
destination as failed.

Retried sends are not idempotent: a retry after a timeout may deliver the same
event twice.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, TypeVar

from opentrack.delivery.errors import ErrorClassifier
from opentrack.exceptions import DeliveryError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and backoff shape."""

    max_retries: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    jitter_ratio: float = 0.1


def get_retry_delay(
    attempt: int,
    policy: RetryPolicy = RetryPolicy(),
    rng: random.Random | None = None,
) -> float:
    """
    Backoff delay in seconds before retrying after ``attempt`` (0-based).

    ``min(base * 2**attempt, cap)`` with optional symmetric jitter, clamped to
    ``[0, cap]``. Without jitter the delay is non-decreasing in ``attempt``.
    """
    try:
        delay = policy.base_delay_seconds * (2 ** max(0, attempt))
    except OverflowError:
        delay = policy.max_delay_seconds
    capped = min(delay, policy.max_delay_seconds)

    if policy.jitter_ratio > 0:
        spread = capped * policy.jitter_ratio
        capped += (rng or random).uniform(-spread, spread)

    return max(0.0, min(capped, policy.max_delay_seconds))


@dataclass
class RetryOutcome(Generic[T]):
    """Result of running an operation under a retry policy."""

    value: T | None = None
    error: DeliveryError | None = None
    attempts: int = 0
    delays: list[float] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, or raise the final classified error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


class RetryExecutor:
    """
    Runs async operations with classified, exponential-backoff retries.

    Usage:
        executor = RetryExecutor(WebhookErrorClassifier(), RetryPolicy(max_retries=3))
        await executor.execute(lambda: client.post(url, json=payload))
    """

    def __init__(
        self,
        classifier: ErrorClassifier,
        policy: RetryPolicy = RetryPolicy(),
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        self.classifier = classifier
        self.policy = policy
        self._sleep = sleep
        self._rng = rng or random.Random()

    def get_retry_delay(self, attempt: int) -> float:
        return get_retry_delay(attempt, self.policy, self._rng)

    async def run(self, operation: Callable[[], Awaitable[T]]) -> RetryOutcome[T]:
        """
        Run ``operation`` until it succeeds, fails permanently, or the budget is spent.

        Attempt 0 is the initial call; attempts 1..max_retries are retries.
        """
        outcome: RetryOutcome[T] = RetryOutcome()

        for attempt in range(self.policy.max_retries + 1):
            outcome.attempts = attempt + 1
            try:
                outcome.value = await operation()
                outcome.error = None
                return outcome
            except Exception as e:
                error = self.classifier.classify(e)
                outcome.error = error

            if not error.is_retryable or attempt >= self.policy.max_retries:
                break

            delay = self.get_retry_delay(attempt)
            outcome.delays.append(delay)
            logger.warning(
                f"[{self.classifier.destination}] Attempt {attempt + 1} failed "
                f"({error.kind.value}), retrying in {delay:.2f}s: {error.message}"
            )
            await self._sleep(delay)

        return outcome

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run with retries and raise the final classified error on failure."""
        outcome = await self.run(operation)
        return outcome.unwrap()
