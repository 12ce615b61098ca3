"""Contracts between the SDK and application code.

Application work items subclass ``N8nPayload``; async callers pass an object
implementing ``N8nResponseHandler``. ``N8nClientInterface`` is satisfied by both
``N8nClient`` and ``testing.MockN8nClient`` so either can be injected.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from n8n_sdk.models import CommunicationMode, N8nResponse, RequestMethod

# A pydantic model class, a dataclass/TypedDict type, or a decode function.
ResponseTarget = type[Any] | Callable[[dict[str, Any]], Any]


class N8nPayload(ABC):
    """A work item that can be dispatched to an n8n workflow.

    Example:
        class ReviewRequest(N8nPayload):
            def __init__(self, text: str) -> None:
                self.text = text

            def serialize(self) -> dict[str, Any]:
                return {"text": self.text}

            def response_target_type(self):
                return ReviewResult  # a pydantic model
    """

    @abstractmethod
    def serialize(self) -> dict[str, Any]:
        """Return the request body sent to the workflow."""

    def request_method(self) -> RequestMethod:
        return RequestMethod.POST_JSON

    def response_target_type(self) -> ResponseTarget | None:
        """Type (or decode function) the raw reply should be mapped onto."""
        return None


@runtime_checkable
class N8nResponseHandler(Protocol):
    """Receives replies for dispatches made with ``send_with_callback``."""

    def on_response(self, raw_reply: dict[str, Any], request_id: str) -> None: ...


class N8nClientInterface(Protocol):
    """Operations shared by the real client and the test double."""

    @property
    def client_id(self) -> str: ...

    def send(
        self,
        payload: N8nPayload,
        workflow_id: str,
        mode: CommunicationMode = CommunicationMode.FIRE_AND_FORGET,
    ) -> N8nResponse: ...

    def send_with_callback(
        self,
        payload: N8nPayload,
        workflow_id: str,
        handler: N8nResponseHandler,
    ) -> str: ...

    def send_sync(
        self,
        payload: N8nPayload,
        workflow_id: str,
        timeout: float | None = None,
    ) -> N8nResponse: ...

    def is_healthy(self) -> bool: ...
