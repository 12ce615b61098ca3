"""In-memory correlation of dispatched requests with their replies."""

import logging
import threading
from datetime import UTC, datetime, timedelta

from n8n_sdk.models import N8nRequest, N8nResponse

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = 900.0


class RequestTracker:
    """Thread-safe map of request id -> pending N8nRequest.

    Entries leave the map when they complete, fail, or grow older than
    ``max_age`` seconds. Every operation holds one lock, so a callback delivered
    from another thread sees a consistent view and a request can only be
    completed once.
    """

    def __init__(self, *, max_age: float = DEFAULT_MAX_AGE) -> None:
        """Initialize the tracker.

        Args:
            max_age: Seconds a request may stay pending before the sweep
                fails and drops it.
        """
        self._max_age = timedelta(seconds=max_age)
        self._requests: dict[str, N8nRequest] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._requests)

    def __contains__(self, request_id: object) -> bool:
        with self._lock:
            return request_id in self._requests

    def track(self, request: N8nRequest) -> None:
        with self._lock:
            if request.request_id in self._requests:
                raise ValueError(f"Request {request.request_id} is already tracked")
            self._requests[request.request_id] = request

    def find(self, request_id: str) -> N8nRequest | None:
        with self._lock:
            return self._requests.get(request_id)

    def pending_ids(self) -> list[str]:
        with self._lock:
            return list(self._requests)

    def complete(self, request_id: str, response: N8nResponse) -> N8nRequest | None:
        """Mark a request completed and stop tracking it.

        Returns:
            The request, or None if it was unknown or already finished.
        """
        with self._lock:
            request = self._requests.pop(request_id, None)
            if request is None:
                return None
            request.mark_completed()

        logger.debug(
            "Request %s completed with status %d", request_id, response.status_code
        )
        return request

    def fail(self, request_id: str, error: BaseException | str) -> N8nRequest | None:
        """Mark a request failed and stop tracking it.

        Returns:
            The request, or None if it was unknown or already finished.
        """
        with self._lock:
            request = self._requests.pop(request_id, None)
            if request is None:
                return None
            request.mark_failed(str(error))

        logger.debug("Request %s failed: %s", request_id, error)
        return request

    def cleanup_expired(self, now: datetime | None = None) -> int:
        """Fail and drop requests older than ``max_age``.

        Bounds memory when a callback never arrives.

        Returns:
            Number of requests removed.
        """
        now = now or datetime.now(UTC)
        cutoff = now - self._max_age

        with self._lock:
            expired = [
                request_id
                for request_id, request in self._requests.items()
                if request.created_at < cutoff
            ]
            for request_id in expired:
                self._requests.pop(request_id).mark_failed("Expired before a reply arrived")

        if expired:
            logger.warning("Dropped %d expired request(s)", len(expired))
        return len(expired)
