"""Test helpers for applications that dispatch to n8n."""

from n8n_sdk.testing.mock_client import (
    DEFAULT_REPLY,
    MockN8nClient,
    N8nAssertionError,
    SentRequest,
)

__all__ = [
    "DEFAULT_REPLY",
    "MockN8nClient",
    "N8nAssertionError",
    "SentRequest",
]
