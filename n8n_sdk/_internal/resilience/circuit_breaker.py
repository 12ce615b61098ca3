"""Circuit breaker guarding calls to a single n8n endpoint."""

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum

from n8n_sdk.exceptions import N8nCircuitOpenError

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_THRESHOLD = 5
DEFAULT_COOLDOWN = 30.0


class CircuitState(Enum):
    """
    States:
    - CLOSED: Normal operation, calls pass through
    - OPEN: Too many consecutive failures, calls fail fast
    - HALF_OPEN: Cooldown elapsed, a single probe call is in flight
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Tri-state breaker shared by every dispatch to one endpoint.

    All state reads and transitions are serialized by one lock, so concurrent
    callers can never both take the single HALF_OPEN probe slot.
    """

    def __init__(
        self,
        *,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        cooldown: float = DEFAULT_COOLDOWN,
        clock: Callable[[], float] = time.monotonic,
        name: str = "n8n",
    ) -> None:
        """Initialize the breaker.

        Args:
            failure_threshold: Consecutive failures that open the circuit.
            cooldown: Seconds to stay OPEN before admitting a probe.
            clock: Monotonic time source, in seconds.
            name: Label used in log messages and errors.
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if cooldown < 0:
            raise ValueError("cooldown must not be negative")

        self._failure_threshold = failure_threshold
        self._cooldown = cooldown
        self._clock = clock
        self._name = name
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: float | None = None

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    @property
    def last_failure_at(self) -> float | None:
        """Clock reading of the last transition to OPEN."""
        with self._lock:
            return self._opened_at

    def before_call(self) -> None:
        """Admit a call or reject it.

        Raises:
            N8nCircuitOpenError: The circuit is OPEN and still cooling down, or
                HALF_OPEN with its probe already in flight.
        """
        with self._lock:
            if self._state is CircuitState.CLOSED:
                return

            if self._state is CircuitState.OPEN:
                elapsed = self._clock() - (self._opened_at or 0.0)
                if elapsed >= self._cooldown:
                    self._state = CircuitState.HALF_OPEN
                    logger.info("Circuit %s half-open, admitting probe", self._name)
                    return
                raise N8nCircuitOpenError(
                    f"Circuit {self._name} is open",
                    retry_after=self._cooldown - elapsed,
                )

            raise N8nCircuitOpenError(
                f"Circuit {self._name} is half-open and its probe is in flight"
            )

    def record_success(self) -> None:
        with self._lock:
            if self._state is not CircuitState.CLOSED:
                logger.info("Circuit %s closed", self._name)
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._opened_at = None

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1

            if self._state is CircuitState.HALF_OPEN:
                self._open()
            elif (
                self._state is CircuitState.CLOSED
                and self._failure_count >= self._failure_threshold
            ):
                self._open()

    def reset(self) -> None:
        """Force the breaker back to CLOSED with a zero counter."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._opened_at = None

    def _open(self) -> None:
        # Caller holds the lock.
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        logger.warning(
            "Circuit %s opened after %d consecutive failure(s)",
            self._name,
            self._failure_count,
        )
