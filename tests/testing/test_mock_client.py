"""Tests for MockN8nClient."""

from typing import Any

import pytest
from pydantic import BaseModel

from n8n_sdk.contracts import N8nPayload
from n8n_sdk.exceptions import N8nCommunicationError
from n8n_sdk.models import CommunicationMode
from n8n_sdk.testing import DEFAULT_REPLY, MockN8nClient, N8nAssertionError, SentRequest


class ReviewResult(BaseModel):
    status: str
    message: str
    timestamp: int


class MessagePayload(N8nPayload):
    def __init__(self, message: str, target: Any = None) -> None:
        self.message = message
        self.target = target

    def serialize(self) -> dict[str, Any]:
        return {"message": self.message, "priority": "high"}

    def response_target_type(self):
        return self.target


class RecordingHandler:
    def __init__(self) -> None:
        self.calls: list[tuple[dict[str, Any], str]] = []

    def on_response(self, raw_reply: dict[str, Any], request_id: str) -> None:
        self.calls.append((raw_reply, request_id))


@pytest.fixture
def client() -> MockN8nClient:
    return MockN8nClient()


@pytest.fixture
def payload() -> MessagePayload:
    return MessagePayload("test message")


class TestDispatch:
    """Tests for the dispatch operations."""

    def test_send_returns_queued_reply(self, client, payload):
        """Should return the queued reply with status 200."""
        client.will_return({"status": "success", "score": 95})

        result = client.send(payload, "workflow-123")

        assert result.request_id == "mock-id-1"
        assert result.data == {"status": "success", "score": 95}
        assert result.status_code == 200
        assert result.success is True

    def test_send_with_callback_invokes_handler_once(self, client, payload):
        """Should hand the queued reply and the returned id to the handler."""
        client.will_return({"result": "ok"})
        handler = RecordingHandler()

        request_id = client.send_with_callback(payload, "workflow-123", handler)

        assert request_id == "mock-id-1"
        assert handler.calls == [({"result": "ok"}, "mock-id-1")]

    def test_send_sync_returns_reply(self, client, payload):
        """Should return the queued reply for sync sends."""
        client.will_return({"data": "sync response"})

        result = client.send_sync(payload, "workflow-456", 60)

        assert result.request_id == "mock-id-1"
        assert result.data == {"data": "sync response"}
        assert client.requests[0].timeout == 60

    def test_default_reply_when_queue_empty(self, client, payload):
        """Should fall back to the default reply."""
        result = client.send(payload, "workflow-123")
        assert result.data == {"status": "ok", "message": "Mock response"}

    def test_default_reply_is_not_shared(self, client, payload):
        """Should not let callers mutate the default reply."""
        client.send(payload, "workflow-1").data["status"] = "changed"
        assert DEFAULT_REPLY["status"] == "ok"
        assert client.send(payload, "workflow-2").data["status"] == "ok"

    def test_replies_consumed_in_fifo_order(self, client, payload):
        """Should consume queued replies strictly in order."""
        client.will_return_sequence([{"response": 1}, {"response": 2}, {"response": 3}])

        results = [client.send(payload, f"workflow-{n}") for n in (1, 2, 3)]

        assert [r.data for r in results] == [{"response": 1}, {"response": 2}, {"response": 3}]

    def test_will_return_chains(self, client, payload):
        """Should queue chained will_return calls in order."""
        client.will_return({"n": 1}).will_return({"n": 2})

        assert client.send(payload, "wf").data == {"n": 1}
        assert client.send(payload, "wf").data == {"n": 2}
        assert client.send(payload, "wf").data == DEFAULT_REPLY

    def test_ids_increment_sequentially(self, client, payload):
        """Should issue mock-id-1, mock-id-2, ..."""
        ids = [
            client.send(payload, "workflow-1").request_id,
            client.send_with_callback(payload, "workflow-2", RecordingHandler()),
            client.send_sync(payload, "workflow-3").request_id,
        ]
        assert ids == ["mock-id-1", "mock-id-2", "mock-id-3"]

    def test_maps_response(self, client):
        """Should map replies onto the payload's target type."""
        client.will_return({"status": "ok", "message": "looks good", "timestamp": 1234567890})

        result = client.send(MessagePayload("test", ReviewResult), "workflow-123")

        assert isinstance(result.mapped, ReviewResult)
        assert result.mapped.status == "ok"
        assert result.mapped.message == "looks good"
        assert result.mapped.timestamp == 1234567890

    def test_mapping_failure_gives_no_mapped_result(self, client):
        """Should leave mapped empty when required fields are missing."""
        client.will_return({"status": "ok"})
        result = client.send(MessagePayload("test", ReviewResult), "workflow-123")
        assert result.mapped is None


class TestWillThrow:
    """Tests for injected failures."""

    def test_throws_on_next_call(self, client, payload):
        """Should raise the injected exception."""
        client.will_throw(N8nCommunicationError("Test error", 500))

        with pytest.raises(N8nCommunicationError, match="Test error"):
            client.send(payload, "workflow-123")

    def test_throws_only_once(self, client, payload):
        """Should clear the injected exception after raising it."""
        client.will_throw(RuntimeError("once"))

        with pytest.raises(RuntimeError):
            client.send_sync(payload, "workflow-123")

        assert client.send(payload, "workflow-123").success is True

    def test_failed_call_not_recorded(self, client, payload):
        """Should not record or number the call that raised."""
        client.will_throw(RuntimeError("boom"))
        with pytest.raises(RuntimeError):
            client.send_with_callback(payload, "workflow-123", RecordingHandler())

        client.assert_nothing_sent()
        assert client.send(payload, "workflow-123").request_id == "mock-id-1"


class TestAssertions:
    """Tests for assertion helpers."""

    def test_assert_sent(self, client, payload):
        """Should pass when a request was sent to the workflow."""
        client.send(payload, "workflow-123")
        client.assert_sent("workflow-123")

    def test_assert_sent_fails(self, client):
        """Should raise N8nAssertionError naming the workflow."""
        with pytest.raises(
            N8nAssertionError,
            match='Failed asserting that a request was sent to workflow "workflow-123"',
        ):
            client.assert_sent("workflow-123")

    def test_assertion_error_is_distinct(self):
        """Should be an AssertionError but not an SDK error."""
        assert issubclass(N8nAssertionError, AssertionError)
        assert not issubclass(N8nAssertionError, N8nCommunicationError)

    def test_assert_sent_with_predicate(self, client, payload):
        """Should filter on the recorded request."""
        client.send(payload, "workflow-123")
        client.send_sync(payload, "workflow-123")

        client.assert_sent("workflow-123", lambda r: r.method == "send")
        client.assert_sent("workflow-123", lambda r: r.mode is CommunicationMode.SYNC)
        with pytest.raises(N8nAssertionError):
            client.assert_sent("workflow-123", lambda r: r.method == "send_with_callback")

    def test_assert_not_sent(self, client, payload):
        """Should pass when nothing was sent to the workflow."""
        client.send(payload, "workflow-123")
        client.assert_not_sent("workflow-456")

    def test_assert_not_sent_fails(self, client, payload):
        """Should raise when a request was sent to the workflow."""
        client.send(payload, "workflow-123")

        with pytest.raises(
            N8nAssertionError,
            match='Failed asserting that no request was sent to workflow "workflow-123"',
        ):
            client.assert_not_sent("workflow-123")

    def test_assert_not_sent_with_predicate(self, client, payload):
        """Should only count requests matching the predicate."""
        client.send(payload, "workflow-123")
        client.assert_not_sent("workflow-123", lambda r: r.mode is CommunicationMode.SYNC)

    def test_assert_sent_count(self, client, payload):
        """Should pass for the exact count."""
        for n in (1, 2, 3):
            client.send(payload, f"workflow-{n}")
        client.assert_sent_count(3)

    def test_assert_sent_count_fails(self, client, payload):
        """Should name both expected and actual counts."""
        client.send(payload, "workflow-1")

        with pytest.raises(N8nAssertionError) as exc_info:
            client.assert_sent_count(3)

        assert str(exc_info.value) == (
            "Failed asserting that exactly 3 request(s) were sent. Actually sent 1."
        )

    def test_assert_nothing_sent(self, client):
        """Should pass on a fresh client."""
        client.assert_nothing_sent()

    def test_assert_nothing_sent_fails(self, client, payload):
        """Should raise once something was sent."""
        client.send(payload, "workflow-1")
        with pytest.raises(N8nAssertionError):
            client.assert_nothing_sent()

    def test_assert_sent_with_payload(self, client, payload):
        """Should match a subset of the serialized payload."""
        client.send(payload, "workflow-123")
        client.assert_sent_with_payload("workflow-123", {"message": "test message"})

    def test_assert_sent_with_payload_fails(self, client, payload):
        """Should raise when a value differs or a key is missing."""
        client.send(payload, "workflow-123")

        with pytest.raises(N8nAssertionError, match="payload containing"):
            client.assert_sent_with_payload("workflow-123", {"message": "other"})
        with pytest.raises(N8nAssertionError):
            client.assert_sent_with_payload("workflow-123", {"missing": None})


class TestInspection:
    """Tests for request log inspection."""

    def test_get_requests(self, client):
        """Should return every recorded request in order."""
        client.send(MessagePayload("first"), "workflow-1")
        client.send(MessagePayload("second"), "workflow-2")

        requests = client.get_requests()

        assert len(requests) == 2
        assert all(isinstance(r, SentRequest) for r in requests)
        assert [r.workflow_id for r in requests] == ["workflow-1", "workflow-2"]
        assert requests[0].payload.message == "first"

    def test_get_requests_for(self, client, payload):
        """Should filter by workflow id."""
        client.send(payload, "workflow-1")
        client.send(payload, "workflow-2")
        client.send(payload, "workflow-1")

        assert len(client.get_requests_for("workflow-1")) == 2

    def test_records_mode(self, client, payload):
        """Should record the communication mode of each call."""
        client.send(payload, "workflow-1", CommunicationMode.FIRE_AND_FORGET)
        client.send_sync(payload, "workflow-2")
        client.send_with_callback(payload, "workflow-3", RecordingHandler())

        assert [r.mode for r in client.requests] == [
            CommunicationMode.FIRE_AND_FORGET,
            CommunicationMode.SYNC,
            CommunicationMode.ASYNC_WITH_CALLBACK,
        ]

    def test_records_handler(self, client, payload):
        """Should keep the handler on callback requests."""
        handler = RecordingHandler()
        client.send_with_callback(payload, "workflow-1", handler)
        assert client.requests[0].handler is handler

    def test_requests_is_a_copy(self, client, payload):
        """Should not expose the internal log."""
        client.send(payload, "workflow-1")
        client.requests.clear()
        client.assert_sent_count(1)


class TestResetAndSettings:
    """Tests for reset() and client settings."""

    def test_reset_clears_everything(self, client, payload):
        """Should clear the log, the queue and the pending exception."""
        client.will_return({"data": "test"})
        client.send(payload, "workflow-1")
        client.will_return({"queued": True}).will_throw(RuntimeError("pending"))

        client.reset()

        client.assert_nothing_sent()
        result = client.send(payload, "workflow-2")
        assert result.data == {"status": "ok", "message": "Mock response"}
        assert result.request_id == "mock-id-1"

    def test_client_id(self, client):
        """Should default to mock-client and be configurable."""
        assert client.client_id == "mock-client"
        client.with_client_id("custom-client")
        assert client.client_id == "custom-client"

    def test_health_status(self, client):
        """Should report the configured health status."""
        assert client.is_healthy() is True
        client.with_health_status(False)
        assert client.is_healthy() is False
