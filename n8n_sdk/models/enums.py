"""Enumerations shared by the client, the tracker and the test double."""

from enum import StrEnum


class CommunicationMode(StrEnum):
    """How a dispatch waits for the workflow's reply."""

    FIRE_AND_FORGET = "fire_and_forget"
    ASYNC_WITH_CALLBACK = "async_with_callback"
    SYNC = "sync"


class RequestMethod(StrEnum):
    """HTTP method and body encoding used to reach the workflow webhook."""

    GET = "GET"
    POST_JSON = "POST_JSON"
    POST_FORM = "POST_FORM"
    PUT = "PUT"
    PATCH = "PATCH"

    @property
    def http_method(self) -> str:
        if self in (RequestMethod.POST_JSON, RequestMethod.POST_FORM):
            return "POST"
        return self.value


class RequestStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
