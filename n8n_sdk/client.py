"""Dispatch client for n8n workflows."""

import logging
from types import TracebackType
from typing import Any

import httpx
from pydantic import ValidationError

from n8n_sdk._internal.http import (
    create_http_client,
    decode_reply,
    ensure_encodable,
    perform_request,
)
from n8n_sdk._internal.mapping import map_response
from n8n_sdk._internal.resilience import CircuitBreaker, CircuitState, RetryPolicy
from n8n_sdk._internal.tracking import RequestTracker
from n8n_sdk.config import N8nConfig
from n8n_sdk.contracts import N8nPayload, N8nResponseHandler
from n8n_sdk.exceptions import N8nCommunicationError, N8nValidationError
from n8n_sdk.models import (
    CallbackPayload,
    CommunicationMode,
    N8nRequest,
    N8nResponse,
    RequestMethod,
)

logger = logging.getLogger(__name__)

ACCEPTED = 202


class N8nClient:
    """Sends payloads to n8n workflows.

    Every dispatch goes through the circuit breaker, then through the retry
    policy around a single HTTP call, and is tracked until it reaches a
    terminal outcome. Async replies that arrive later are handed to
    ``handle_callback`` by the application's webhook endpoint.

    The breaker, retry policy and tracker belong to this instance; pass your
    own to share them or to control time in tests.
    """

    def __init__(
        self,
        config: N8nConfig,
        *,
        http_client: httpx.Client | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        retry_policy: RetryPolicy | None = None,
        tracker: RequestTracker | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Endpoint, timeout, retry and breaker settings.
            http_client: Optional httpx client. One is created from config
                (and closed by ``close()``) when omitted.
            circuit_breaker: Optional breaker for the endpoint.
            retry_policy: Optional retry policy.
            tracker: Optional request tracker.
        """
        self._config = config
        self._owns_http = http_client is None
        self._http = http_client or create_http_client(
            timeout=config.timeout,
            proxy=config.proxy,
            verify=config.verify_ssl,
        )
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=config.circuit_failure_threshold,
            cooldown=config.circuit_cooldown,
            name=config.base_url,
        )
        self._retry_policy = retry_policy or RetryPolicy(
            max_attempts=config.retry_max_attempts,
            backoff=config.retry_backoff,
            initial_delay=config.retry_initial_delay,
            multiplier=config.retry_multiplier,
            max_delay=config.retry_max_delay,
            jitter=config.retry_jitter,
            attempt_timeout=config.timeout,
        )
        self._tracker = tracker or RequestTracker(max_age=config.request_ttl)

    @classmethod
    def from_env(cls) -> "N8nClient":
        """Create a client from ``N8N_*`` environment variables.

        See ``N8nConfig.from_env`` for the variables read.
        """
        return cls(N8nConfig.from_env())

    @property
    def config(self) -> N8nConfig:
        return self._config

    @property
    def client_id(self) -> str:
        return self._config.client_id

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    @property
    def tracker(self) -> RequestTracker:
        return self._tracker

    def is_healthy(self) -> bool:
        """False while the circuit breaker is OPEN."""
        return self._circuit_breaker.state is not CircuitState.OPEN

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "N8nClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # =========================================================================
    # Dispatch
    # =========================================================================

    def send(
        self,
        payload: N8nPayload,
        workflow_id: str,
        mode: CommunicationMode = CommunicationMode.FIRE_AND_FORGET,
    ) -> N8nResponse:
        """Dispatch a payload and return once the transport call finishes.

        Args:
            payload: The work item.
            workflow_id: Webhook id of the target workflow.
            mode: FIRE_AND_FORGET returns the engine's reply. SYNC behaves like
                ``send_sync`` with the configured timeout. ASYNC_WITH_CALLBACK
                returns the acknowledgment and keeps the request tracked until
                its reply is delivered to ``handle_callback``.

        Returns:
            The reply to the transport call.

        Raises:
            N8nValidationError: Bad payload or workflow id.
            N8nCircuitOpenError: The breaker rejected the call.
            N8nCommunicationError: Non-retryable error or retries exhausted.
            N8nTimeoutError: SYNC mode deadline exceeded.
        """
        if mode is CommunicationMode.SYNC:
            return self.send_sync(payload, workflow_id)

        request, body = self._new_request(payload, workflow_id, mode)
        if mode is CommunicationMode.ASYNC_WITH_CALLBACK:
            return self._dispatch_async(request, body)
        return self._dispatch_direct(request, body)

    def send_with_callback(
        self,
        payload: N8nPayload,
        workflow_id: str,
        handler: N8nResponseHandler,
    ) -> str:
        """Dispatch asynchronously and deliver the reply to ``handler`` later.

        Returns:
            The request id n8n must echo back with its reply.
        """
        if not isinstance(handler, N8nResponseHandler):
            raise N8nValidationError("handler must define on_response(raw_reply, request_id)")

        request, body = self._new_request(
            payload, workflow_id, CommunicationMode.ASYNC_WITH_CALLBACK, handler=handler
        )
        self._dispatch_async(request, body)
        return request.request_id

    def send_sync(
        self,
        payload: N8nPayload,
        workflow_id: str,
        timeout: float | None = None,
    ) -> N8nResponse:
        """Dispatch and block for the workflow's direct reply.

        Args:
            timeout: Seconds to wait in total, across retries and backoff.
                Defaults to ``config.sync_timeout``. Expiry only stops the
                local wait; n8n may still run the workflow.

        Raises:
            N8nTimeoutError: No reply before the deadline.
        """
        if timeout is None:
            timeout = self._config.sync_timeout
        if timeout <= 0:
            raise N8nValidationError("timeout must be positive")

        request, body = self._new_request(payload, workflow_id, CommunicationMode.SYNC)
        deadline = self._retry_policy.deadline_after(timeout)
        return self._dispatch_direct(request, body, deadline=deadline)

    # =========================================================================
    # Callback delivery
    # =========================================================================

    def handle_callback(self, request_id: str, raw_reply: dict[str, Any]) -> bool:
        """Deliver an out-of-band reply to the request that asked for it.

        Called by the application's webhook endpoint. Never raises on behalf
        of the handler: its errors are logged.

        Returns:
            True if the reply was delivered, False if the request is unknown,
            expired or already answered.
        """
        request = self._tracker.find(request_id)
        if request is None:
            logger.warning("Callback for unknown or finished request %s", request_id)
            return False

        try:
            response = self._build_response(request, raw_reply, 200)
        except Exception:
            logger.exception("Could not build response for request %s", request_id)
            response = N8nResponse(request_id=request_id, data=raw_reply)
        if self._tracker.complete(request_id, response) is None:
            logger.warning("Callback for request %s was already delivered", request_id)
            return False

        if request.handler is not None:
            try:
                request.handler.on_response(raw_reply, request_id)
            except Exception:
                logger.exception("Response handler for request %s failed", request_id)
        return True

    def handle_callback_payload(self, body: dict[str, Any]) -> bool:
        """Validate an inbound ``{request_id, response}`` body and deliver it."""
        try:
            callback = CallbackPayload.model_validate(body)
        except ValidationError as e:
            logger.warning("Ignoring malformed callback: %s", e)
            return False
        return self.handle_callback(callback.request_id, callback.response)

    def cleanup_expired(self) -> int:
        """Drop tracked requests whose callback never arrived."""
        return self._tracker.cleanup_expired()

    # =========================================================================
    # Internals
    # =========================================================================

    def _new_request(
        self,
        payload: N8nPayload,
        workflow_id: str,
        mode: CommunicationMode,
        *,
        handler: N8nResponseHandler | None = None,
    ) -> tuple[N8nRequest, dict[str, Any]]:
        if not isinstance(workflow_id, str) or not workflow_id.strip():
            raise N8nValidationError("workflow_id must be a non-empty string")
        if not isinstance(payload, N8nPayload):
            raise N8nValidationError(
                f"payload must implement N8nPayload, got {type(payload).__name__}"
            )

        try:
            body = payload.serialize()
        except Exception as e:
            raise N8nValidationError(f"Payload could not be serialized: {e}") from e
        if not isinstance(body, dict):
            raise N8nValidationError(
                f"serialize() must return a dict, got {type(body).__name__}"
            )

        method = payload.request_method()
        if not isinstance(method, RequestMethod):
            raise N8nValidationError(f"Unsupported request method: {method!r}")
        ensure_encodable(method, body)

        self._tracker.cleanup_expired()

        request = N8nRequest(
            workflow_id=workflow_id.strip(),
            mode=mode,
            method=method,
            payload=payload,
            handler=handler,
        )
        return request, body

    def _dispatch_direct(
        self,
        request: N8nRequest,
        body: dict[str, Any],
        *,
        deadline: float | None = None,
    ) -> N8nResponse:
        self._tracker.track(request)
        try:
            http_response = self._execute(request, body, deadline=deadline)
            response = self._build_response(
                request, decode_reply(http_response), http_response.status_code
            )
        except BaseException as e:
            self._tracker.fail(request.request_id, e)
            raise

        self._tracker.complete(request.request_id, response)
        return response

    def _dispatch_async(self, request: N8nRequest, body: dict[str, Any]) -> N8nResponse:
        self._tracker.track(request)
        try:
            http_response = self._execute(request, body)
        except BaseException as e:
            self._tracker.fail(request.request_id, e)
            raise

        data = decode_reply(http_response)
        if http_response.status_code != ACCEPTED and data:
            # Engine answered inline, no callback will follow.
            self.handle_callback(request.request_id, data)

        return N8nResponse(
            request_id=request.request_id,
            data=data,
            status_code=http_response.status_code,
        )

    def _execute(
        self,
        request: N8nRequest,
        body: dict[str, Any],
        *,
        deadline: float | None = None,
    ) -> httpx.Response:
        self._circuit_breaker.before_call()

        url = self._config.webhook_url(request.workflow_id)
        outbound = {**body, **self._metadata(request)}
        headers = self._headers(request)

        def attempt(number: int, timeout: float | None) -> httpx.Response:
            logger.debug(
                "Dispatching %s to %s (%s, attempt %d)",
                request.request_id,
                request.workflow_id,
                request.mode.value,
                number,
            )
            return perform_request(
                self._http, request.method, url, outbound, headers=headers, timeout=timeout
            )

        try:
            http_response = self._retry_policy.execute(attempt, deadline=deadline)
        except N8nCommunicationError as e:
            # A 4xx still proves the endpoint is up.
            if e.retryable:
                self._circuit_breaker.record_failure()
            else:
                self._circuit_breaker.record_success()
            raise
        except BaseException:
            self._circuit_breaker.record_failure()
            raise

        self._circuit_breaker.record_success()
        logger.debug(
            "Request %s answered with status %d", request.request_id, http_response.status_code
        )
        return http_response

    def _metadata(self, request: N8nRequest) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            "_n8n_request_id": request.request_id,
            "_n8n_client_id": self._config.client_id,
            "_n8n_mode": request.mode.value,
        }
        if (
            request.mode is CommunicationMode.ASYNC_WITH_CALLBACK
            and self._config.callback_url
        ):
            metadata["_n8n_callback_url"] = self._config.callback_url
        return metadata

    def _headers(self, request: N8nRequest) -> dict[str, str]:
        headers = {"X-N8n-Request-Id": request.request_id}
        if self._config.auth_token:
            headers["Authorization"] = f"Bearer {self._config.auth_token}"
        return headers

    def _build_response(
        self, request: N8nRequest, data: dict[str, Any], status_code: int
    ) -> N8nResponse:
        mapped = None
        if request.payload is not None:
            mapped = map_response(data, request.payload.response_target_type())
        return N8nResponse(
            request_id=request.request_id,
            data=data,
            mapped=mapped,
            status_code=status_code,
        )


def get_n8n_client() -> N8nClient:
    """Get a client configured from environment variables.

    Raises:
        N8nConfigError: N8N_BASE_URL is not set.
    """
    return N8nClient.from_env()
