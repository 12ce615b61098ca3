"""n8n SDK for Python.

Dispatch payloads to n8n workflows in fire-and-forget, async-with-callback or
sync mode, with retries, a circuit breaker and request correlation.

Public API:
    N8nClient - Dispatch client
    N8nConfig - Client configuration
    N8nPayload, N8nResponseHandler - Contracts for application code
    testing.MockN8nClient - Test double
"""

from n8n_sdk._internal.resilience import CircuitBreaker, CircuitState, RetryPolicy
from n8n_sdk._internal.tracking import RequestTracker
from n8n_sdk._version import __version__
from n8n_sdk.client import N8nClient, get_n8n_client
from n8n_sdk.config import N8nConfig
from n8n_sdk.contracts import N8nClientInterface, N8nPayload, N8nResponseHandler
from n8n_sdk.exceptions import (
    N8nCircuitOpenError,
    N8nCommunicationError,
    N8nConfigError,
    N8nError,
    N8nTimeoutError,
    N8nValidationError,
)
from n8n_sdk.models import (
    CallbackPayload,
    CommunicationMode,
    N8nRequest,
    N8nResponse,
    RequestMethod,
    RequestStatus,
)

__all__ = [
    "__version__",
    "N8nClient",
    "get_n8n_client",
    "N8nConfig",
    "N8nClientInterface",
    "N8nPayload",
    "N8nResponseHandler",
    "CircuitBreaker",
    "CircuitState",
    "RetryPolicy",
    "RequestTracker",
    "CommunicationMode",
    "RequestMethod",
    "RequestStatus",
    "N8nRequest",
    "N8nResponse",
    "CallbackPayload",
    "N8nError",
    "N8nConfigError",
    "N8nValidationError",
    "N8nCommunicationError",
    "N8nCircuitOpenError",
    "N8nTimeoutError",
]
