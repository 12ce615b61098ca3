"""Retry policy for transport calls to n8n."""

import logging
import random
import time
from collections.abc import Callable
from typing import Literal, TypeVar

from n8n_sdk.exceptions import N8nCommunicationError, N8nTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

BackoffSchedule = Literal["fixed", "exponential"]

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INITIAL_DELAY = 0.5
DEFAULT_MULTIPLIER = 2.0
DEFAULT_MAX_DELAY = 10.0


class RetryPolicy:
    """Re-attempts retryable transport failures with a backoff between tries.

    ``N8nCommunicationError.retryable`` decides the classification: network
    errors, timeouts and 5xx replies are retried, 4xx replies are not. Attempts
    always run one after another, never concurrently.
    """

    def __init__(
        self,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff: BackoffSchedule = "exponential",
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        multiplier: float = DEFAULT_MULTIPLIER,
        max_delay: float = DEFAULT_MAX_DELAY,
        jitter: float = 0.0,
        attempt_timeout: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the policy.

        Args:
            max_attempts: Total transport attempts, including the first.
            backoff: "fixed" waits initial_delay every time, "exponential"
                multiplies it by multiplier after each attempt.
            initial_delay: Delay in seconds after the first failed attempt.
            multiplier: Growth factor for the exponential schedule.
            max_delay: Upper bound for a single delay, before jitter.
            jitter: Extra random delay in [0, jitter] seconds.
            attempt_timeout: Per-attempt timeout handed to the operation.
            sleep: Blocking sleep function.
            clock: Monotonic time source used for deadlines.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if backoff not in ("fixed", "exponential"):
            raise ValueError(f"Unknown backoff schedule: {backoff}")

        self.max_attempts = max_attempts
        self.backoff = backoff
        self.initial_delay = initial_delay
        self.multiplier = multiplier
        self.max_delay = max_delay
        self.jitter = jitter
        self.attempt_timeout = attempt_timeout
        self._sleep = sleep
        self._clock = clock

    def compute_delay(self, attempt: int) -> float:
        """Delay to wait after failed attempt number ``attempt`` (1-based)."""
        if self.backoff == "fixed":
            delay = self.initial_delay
        else:
            delay = self.initial_delay * self.multiplier ** (attempt - 1)
        delay = min(delay, self.max_delay)
        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)
        return delay

    def deadline_after(self, timeout: float) -> float:
        """Absolute deadline, on this policy's clock, ``timeout`` seconds out."""
        return self._clock() + timeout

    def execute(
        self,
        operation: Callable[[int, float | None], T],
        *,
        deadline: float | None = None,
    ) -> T:
        """Run ``operation`` until it succeeds, fails for good, or runs out of time.

        Args:
            operation: Called as ``operation(attempt, timeout)``; performs one
                transport attempt and raises N8nCommunicationError on failure.
            deadline: Optional absolute deadline bounding all attempts and
                backoff sleeps together.

        Returns:
            Whatever the first successful attempt returned.

        Raises:
            N8nCommunicationError: A non-retryable failure, or the last failure
                once attempts are exhausted.
            N8nTimeoutError: The deadline passed before a reply arrived.
        """
        last_error: N8nCommunicationError | None = None

        for attempt in range(1, self.max_attempts + 1):
            timeout = self._attempt_timeout(deadline, last_error)
            try:
                return operation(attempt, timeout)
            except N8nCommunicationError as e:
                if not e.retryable:
                    raise
                last_error = e

            if attempt == self.max_attempts:
                break

            delay = self.compute_delay(attempt)
            if deadline is not None and self._clock() + delay >= deadline:
                raise N8nTimeoutError(
                    f"Deadline reached after {attempt} attempt(s): {last_error}"
                ) from last_error

            logger.warning(
                "Attempt %d/%d failed (%s), retrying in %.2fs",
                attempt,
                self.max_attempts,
                last_error,
                delay,
            )
            self._sleep(delay)

        assert last_error is not None
        if deadline is not None and self._clock() >= deadline:
            raise N8nTimeoutError(
                f"Deadline reached after {self.max_attempts} attempt(s): {last_error}"
            ) from last_error
        raise N8nCommunicationError(
            f"Giving up after {self.max_attempts} attempt(s): {last_error}",
            status_code=last_error.status_code,
            retryable=True,
            attempts=self.max_attempts,
        ) from last_error

    def _attempt_timeout(
        self, deadline: float | None, last_error: N8nCommunicationError | None
    ) -> float | None:
        if deadline is None:
            return self.attempt_timeout

        remaining = deadline - self._clock()
        if remaining <= 0:
            raise N8nTimeoutError("Deadline reached before a reply arrived") from last_error
        if self.attempt_timeout is None:
            return remaining
        return min(self.attempt_timeout, remaining)
