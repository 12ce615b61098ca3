"""Public models for the n8n SDK."""

from n8n_sdk.models.enums import CommunicationMode, RequestMethod, RequestStatus
from n8n_sdk.models.messages import (
    CallbackPayload,
    N8nRequest,
    N8nResponse,
    new_request_id,
)

__all__ = [
    "CommunicationMode",
    "RequestMethod",
    "RequestStatus",
    "N8nRequest",
    "N8nResponse",
    "CallbackPayload",
    "new_request_id",
]
