"""Pydantic models for requests sent to n8n and the replies they produce."""

import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field

from n8n_sdk.models.enums import CommunicationMode, RequestMethod, RequestStatus

# =============================================================================
# Requests
# =============================================================================


def new_request_id() -> str:
    """Return a random identifier that is never reused within the process."""
    return uuid.uuid4().hex


class N8nRequest(BaseModel):
    """A dispatch in flight.

    Created by the client at dispatch time and held by the request tracker
    until it reaches a terminal status. Status only moves forward:
    pending -> completed or pending -> failed.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    request_id: str = Field(default_factory=new_request_id)
    workflow_id: str = Field(min_length=1)
    mode: CommunicationMode = CommunicationMode.FIRE_AND_FORGET
    method: RequestMethod = RequestMethod.POST_JSON
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    status: RequestStatus = RequestStatus.PENDING
    error: str | None = None

    payload: Any = Field(default=None, exclude=True, repr=False)
    handler: Any = Field(default=None, exclude=True, repr=False)

    @property
    def is_pending(self) -> bool:
        return self.status is RequestStatus.PENDING

    def mark_completed(self) -> None:
        self._transition(RequestStatus.COMPLETED)

    def mark_failed(self, error: str) -> None:
        self._transition(RequestStatus.FAILED)
        self.error = error

    def _transition(self, status: RequestStatus) -> None:
        if not self.is_pending:
            raise ValueError(
                f"Request {self.request_id} is already {self.status.value}, "
                f"cannot move to {status.value}"
            )
        self.status = status


# =============================================================================
# Responses
# =============================================================================


class N8nResponse(BaseModel):
    """Reply to a dispatch. Immutable once built.

    Fields:
        request_id: Identifier of the request this reply belongs to
        data: Raw reply decoded from the workflow
        mapped: Typed result built from ``data``, or None when the payload
            asked for no mapping or the reply did not fit the target type
        status_code: HTTP status code of the reply
        error: Transport error message, if any
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    request_id: str
    data: dict[str, Any] = Field(default_factory=dict)
    mapped: Any = None
    status_code: int = 200
    error: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 300 and self.error is None


class CallbackPayload(BaseModel):
    """Body n8n posts back to the application for async dispatches."""

    request_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("request_id", "uuid", "_n8n_request_id"),
    )
    response: dict[str, Any] = Field(default_factory=dict)
