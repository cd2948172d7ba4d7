"""Tests for the Tavus HTTP client."""
import json

import httpx
import pytest

from app.exceptions import ConfigurationError, RemoteServiceError
from app.services.tavus_service import TavusService


def make_service(handler, api_key="test-key") -> TavusService:
    return TavusService(
        api_key=api_key,
        base_url="https://tavus.test/v2",
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


async def test_create_conversation_sends_key_and_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "conversation_id": "c123",
            "conversation_url": "https://tavus.daily.co/c123",
            "status": "active",
            "created_at": "2030-01-01T10:00:00Z",
            "callback_url": None,
        })

    conversation = await make_service(handler).create_conversation({"replica_id": "r1", "persona_id": "p1"})

    assert conversation.conversation_id == "c123"
    assert conversation.conversation_url == "https://tavus.daily.co/c123"
    assert seen["method"] == "POST"
    assert seen["url"] == "https://tavus.test/v2/conversations"
    assert seen["key"] == "test-key"
    assert seen["body"] == {"replica_id": "r1", "persona_id": "p1"}


async def test_provider_error_surfaces_status_and_body():
    def handler(request):
        return httpx.Response(400, text='{"message": "Invalid replica_id"}')

    with pytest.raises(RemoteServiceError) as exc_info:
        await make_service(handler).create_conversation({"replica_id": "nope"})

    assert exc_info.value.status_code == 400
    assert exc_info.value.body == '{"message": "Invalid replica_id"}'
    assert "Invalid replica_id" in exc_info.value.message


@pytest.mark.parametrize("status_code, body", [
    (409, "conflict"),
    (410, "gone"),
    (400, '{"error": "Conversation has already ended"}'),
])
async def test_ending_an_ended_conversation_is_success(status_code, body):
    def handler(request):
        return httpx.Response(status_code, text=body)

    assert await make_service(handler).end_conversation("c123") is False


async def test_end_conversation():
    def handler(request):
        assert request.url.path == "/v2/conversations/c123/end"
        return httpx.Response(200)

    assert await make_service(handler).end_conversation("c123") is True


async def test_end_conversation_other_errors_propagate():
    def handler(request):
        return httpx.Response(500, text="boom")

    with pytest.raises(RemoteServiceError) as exc_info:
        await make_service(handler).end_conversation("c123")
    assert exc_info.value.status_code == 500


async def test_timeouts_become_remote_errors():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(RemoteServiceError):
        await make_service(handler).get_conversation("c123")


async def test_missing_api_key_is_a_configuration_error():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(ConfigurationError):
        await make_service(handler, api_key="").get_conversation("c123")
