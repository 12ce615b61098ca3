"""Shared HTTP helpers: client factory, request encoding and reply decoding."""

import json
from typing import Any

import httpx

from n8n_sdk._version import __version__
from n8n_sdk.exceptions import N8nCommunicationError, N8nValidationError
from n8n_sdk.models import RequestMethod

DEFAULT_TIMEOUT = 30.0


def create_http_client(
    *,
    timeout: float = DEFAULT_TIMEOUT,
    base_url: str | None = None,
    proxy: str | None = None,
    verify: bool = True,
) -> httpx.Client:
    """Create configured HTTP client.

    Args:
        timeout: Default request timeout in seconds.
        base_url: Optional base URL for all requests.
        proxy: Optional proxy URL.
        verify: Verify TLS certificates.

    Returns:
        Configured httpx.Client instance.
    """
    return httpx.Client(
        timeout=timeout,
        base_url=base_url or "",
        proxy=proxy,
        verify=verify,
        headers={"User-Agent": f"n8n-sdk/{__version__}"},
    )


def _flatten(body: dict[str, Any]) -> dict[str, Any]:
    """Encode nested values as JSON so they fit in a query string or form."""
    return {
        key: value
        if isinstance(value, str | int | float | bool) or value is None
        else json.dumps(value, default=str)
        for key, value in body.items()
    }


def build_request_kwargs(method: RequestMethod, body: dict[str, Any]) -> dict[str, Any]:
    """Keyword arguments for ``httpx.Client.request`` carrying ``body``."""
    if method is RequestMethod.GET:
        return {"params": _flatten(body)}
    if method is RequestMethod.POST_FORM:
        return {"data": _flatten(body)}
    return {"json": body}


def ensure_encodable(method: RequestMethod, body: dict[str, Any]) -> None:
    """Raise N8nValidationError if ``body`` cannot be sent with ``method``."""
    if method in (RequestMethod.GET, RequestMethod.POST_FORM):
        return
    try:
        json.dumps(body, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise N8nValidationError(f"Payload is not JSON-encodable: {e}") from e


def decode_reply(response: httpx.Response) -> dict[str, Any]:
    """Turn a reply body into a dict.

    JSON objects are returned as is, other JSON values are wrapped under
    "data", non-JSON text under "body". An empty body yields {}.
    """
    if not response.content:
        return {}
    try:
        decoded = response.json()
    except ValueError:
        return {"body": response.text}
    if isinstance(decoded, dict):
        return decoded
    return {"data": decoded}


def perform_request(
    client: httpx.Client,
    method: RequestMethod,
    url: str,
    body: dict[str, Any],
    *,
    headers: dict[str, str] | None = None,
    timeout: float | None = None,
) -> httpx.Response:
    """Send one request and classify its failure.

    Raises:
        N8nCommunicationError: On transport errors and 4xx/5xx replies.
            ``retryable`` is True for transport errors, timeouts and 5xx.
    """
    try:
        response = client.request(
            method.http_method,
            url,
            headers=headers,
            timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            **build_request_kwargs(method, body),
        )
    except httpx.TimeoutException as e:
        raise N8nCommunicationError(f"Request to {url} timed out", retryable=True) from e
    except httpx.TransportError as e:
        raise N8nCommunicationError(f"Request to {url} failed: {e}", retryable=True) from e

    if response.status_code >= 400:
        raise N8nCommunicationError(
            f"n8n replied with status {response.status_code}",
            status_code=response.status_code,
            retryable=response.status_code >= 500,
        )
    return response
