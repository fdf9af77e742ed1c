"""
Bounded retry with a caller-supplied delay schedule.

retry() never raises: it returns a RetryOutcome holding either the first
accepted value or the last error. No exponential backoff, no jitter.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

_log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryOutcome(Generic[T]):
    value: Optional[T] = None
    error: Optional[Exception] = None
    attempts: int = 0
    succeeded: bool = False


def linear_backoff(base_seconds: float) -> Callable[[int], float]:
    """Delay before retry n (1-based): base, 2*base, 3*base, ..."""
    def delay(retry_number: int) -> float:
        return base_seconds * retry_number
    return delay


def retry(
    operation: Callable[[], T],
    *,
    max_attempts: int = 3,
    delay_fn: Callable[[int], float] = linear_backoff(1.0),
    sleep: Callable[[float], None] = time.sleep,
    accept: Optional[Callable[[T], bool]] = None,
    label: str = "operation",
) -> RetryOutcome[T]:
    """
    Run operation up to max_attempts times, stopping on the first accepted result.

    A raised exception or a value rejected by accept() counts as a failed attempt.
    Between attempts n and n+1 the helper sleeps delay_fn(n).
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    outcome: RetryOutcome[T] = RetryOutcome()
    for attempt in range(1, max_attempts + 1):
        if attempt > 1:
            delay = delay_fn(attempt - 1)
            _log.debug("Retrying %s in %.1fs (attempt %s/%s)", label, delay, attempt, max_attempts)
            if delay > 0:
                sleep(delay)

        outcome.attempts = attempt
        try:
            value = operation()
        except Exception as exc:
            _log.warning("%s attempt %s/%s failed: %s", label, attempt, max_attempts, exc)
            outcome.error = exc
            continue

        if accept is not None and not accept(value):
            _log.info("%s attempt %s/%s returned a stale result", label, attempt, max_attempts)
            outcome.value = value
            outcome.error = None
            continue

        outcome.value = value
        outcome.error = None
        outcome.succeeded = True
        return outcome

    return outcome
