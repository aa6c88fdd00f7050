"""
Retry utilities with explicit, per-invocation policies.

Every retrying call site receives a :class:`RetryPolicy` value instead of
reading a process-wide default, so two lifecycles running side by side
never see each other's retry budget or sleep function.

Each attempt is reduced to an :class:`Attempt` carrying an
:class:`Outcome`; :func:`execute` dispatches on that outcome rather than
on exception class hierarchies:

- ``TRANSIENT``: sleep ``backoff(n)`` (or let the policy's remedy wait) and retry.
- ``CONFLICT``: retry immediately; the operation itself picks new input.
- ``FATAL``: re-raise at once, abandoning the remaining attempts.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, TypeVar, cast

from kitchen_linode.base.exceptions import ApiTimeout, RateLimited, RequestTimeout
from kitchen_linode.base.logger import DriverLogger, kl_logger

T = TypeVar("T")

# Default set of exception types considered transient / retryable.
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    ApiTimeout,
    RequestTimeout,
    RateLimited,
)

# Seconds added on top of Retry-After to splay concurrent clients.
RATE_LIMIT_JITTER = (2, 20)


class Outcome(Enum):
    """Classification of a single attempt."""

    SUCCESS = "success"
    TRANSIENT = "transient"
    CONFLICT = "conflict"
    FATAL = "fatal"


@dataclass(frozen=True)
class Attempt(Generic[T]):
    """Result of running an operation once."""

    number: int
    outcome: Outcome
    value: T | None = None
    error: Exception | None = None


def exponential_backoff(n: int) -> float:
    """Delay before the retry following attempt index *n*: 1, 2, 4, ... seconds."""
    return float(2**n)


@dataclass(frozen=True)
class RetryPolicy:
    """How an operation is retried.

    Attributes:
        max_attempts: Total attempts, including the first.
        backoff: Maps a 0-based attempt index to a delay in seconds.
        retry_on: Exception types that are always ``TRANSIENT``.
        classifier: Consulted for any other exception; returns the
            outcome to apply. Without one, unmatched exceptions are ``FATAL``.
        remedy: Called before a transient retry. Returning ``True`` means
            it already waited, so the regular backoff is skipped.
        on_retry: Observer called with the attempt number and the error
            each time another attempt will be made.
        sleep: Blocking sleep used for backoff delays.
    """

    max_attempts: int = 5
    backoff: Callable[[int], float] = exponential_backoff
    retry_on: tuple[type[BaseException], ...] = TRANSIENT_ERRORS
    classifier: Callable[[Exception], Outcome] | None = None
    remedy: Callable[[Exception], bool] | None = None
    on_retry: Callable[[int, Exception], None] | None = None
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    def classify(self, exc: Exception) -> Outcome:
        """Map a failure to the outcome :func:`execute` acts on."""
        if isinstance(exc, self.retry_on):
            return Outcome.TRANSIENT
        if self.classifier is not None:
            return self.classifier(exc)
        return Outcome.FATAL


def run_once(operation: Callable[[], T], policy: RetryPolicy, number: int) -> Attempt[T]:
    """Run *operation* a single time and classify the result."""
    try:
        return Attempt(number, Outcome.SUCCESS, value=operation())
    except Exception as exc:
        return Attempt(number, policy.classify(exc), error=exc)


def execute(operation: Callable[[], T], policy: RetryPolicy) -> T:
    """Run *operation* under *policy* and return its value.

    Raises:
        Exception: The first ``FATAL`` error, or the last error once
            ``policy.max_attempts`` is exhausted.
    """
    for number in range(1, policy.max_attempts + 1):
        result = run_once(operation, policy, number)
        if result.outcome is Outcome.SUCCESS:
            return result.value  # type: ignore[return-value]

        exc = cast(Exception, result.error)
        if result.outcome is Outcome.FATAL or number == policy.max_attempts:
            raise exc

        if policy.on_retry is not None:
            policy.on_retry(number, exc)
        if result.outcome is Outcome.TRANSIENT:
            if policy.remedy is None or not policy.remedy(exc):
                policy.sleep(policy.backoff(number - 1))
    raise AssertionError("unreachable")  # pragma: no cover


def log_retries(logger: DriverLogger = kl_logger) -> Callable[[int, Exception], None]:
    """Build an ``on_retry`` observer that logs each retry as a warning."""

    def _log(number: int, exc: Exception) -> None:
        logger.warning(
            f"[Attempt #{number}] Retrying because [{type(exc).__name__}]",
            operation="retry",
        )

    return _log


def rate_limit_remedy(
    sleep: Callable[[float], None] = time.sleep,
    logger: DriverLogger = kl_logger,
) -> Callable[[Exception], bool]:
    """Build a remedy that honours the API's Retry-After hint plus jitter."""

    def _remedy(exc: Exception) -> bool:
        if not isinstance(exc, RateLimited):
            return False
        delay = exc.retry_after + random.randint(*RATE_LIMIT_JITTER)
        logger.warning(
            f"Rate limit encountered, sleeping {delay} seconds for it to expire.",
            operation="retry",
        )
        sleep(delay)
        return True

    return _remedy


def default_policy(
    max_attempts: int = 5,
    *,
    sleep: Callable[[float], None] = time.sleep,
    logger: DriverLogger = kl_logger,
) -> RetryPolicy:
    """Transient-error policy used around every individual API call.

    Args:
        max_attempts: Usually the ``api_retries`` option.
        sleep: Blocking sleep; injected by tests.
        logger: Receives retry and rate-limit warnings.
    """
    return RetryPolicy(
        max_attempts=max_attempts,
        retry_on=TRANSIENT_ERRORS,
        remedy=rate_limit_remedy(sleep, logger),
        on_retry=log_retries(logger),
        sleep=sleep,
    )
