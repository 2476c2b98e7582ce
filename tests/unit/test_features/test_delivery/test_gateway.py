"""Tests for the push gateway HTTP client."""

from __future__ import annotations

import json

import httpx
import pytest

from delivery_service.features.delivery.adapters.gateway import PushGatewayClient, PushMessage
from delivery_service.features.delivery.exceptions import PushGatewayError

URL = "https://push.test/v1/messages:send"


def _client(handler) -> PushGatewayClient:
    return PushGatewayClient(URL, "secret", transport=httpx.MockTransport(handler))


class TestPushGatewayClient:
    """Request shape and error mapping."""

    @pytest.mark.asyncio
    async def test_posts_message_with_bearer_token(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"name": "messages/42"})

        client = _client(handler)
        try:
            message_id = await client.send(PushMessage("tok-1", {"notification_id": "n-1"}))
        finally:
            await client.close()

        assert message_id == "messages/42"
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == URL
        assert request.headers["Authorization"] == "Bearer secret"
        assert json.loads(request.content) == {
            "message": {"token": "tok-1", "data": {"notification_id": "n-1"}}
        }

    @pytest.mark.asyncio
    async def test_success_without_body(self):
        client = _client(lambda request: httpx.Response(204))
        try:
            assert await client.send(PushMessage("tok-1")) == ""
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_error_code_from_details(self):
        body = {
            "error": {
                "status": "NOT_FOUND",
                "message": "Requested entity was not found.",
                "details": [{"errorCode": "UNREGISTERED"}],
            }
        }
        client = _client(lambda request: httpx.Response(404, json=body))
        try:
            with pytest.raises(PushGatewayError) as exc_info:
                await client.send(PushMessage("tok-1"))
        finally:
            await client.close()

        assert exc_info.value.code == "UNREGISTERED"
        assert exc_info.value.status_code == 404
        assert exc_info.value.is_invalid_token is True
        assert str(exc_info.value) == "UNREGISTERED: Requested entity was not found."

    @pytest.mark.asyncio
    async def test_error_code_from_status(self):
        body = {"error": {"status": "UNAVAILABLE", "message": "Try again"}}
        client = _client(lambda request: httpx.Response(503, json=body))
        try:
            with pytest.raises(PushGatewayError) as exc_info:
                await client.send(PushMessage("tok-1"))
        finally:
            await client.close()

        assert exc_info.value.code == "UNAVAILABLE"
        assert exc_info.value.is_invalid_token is False

    @pytest.mark.asyncio
    async def test_error_without_json_body(self):
        client = _client(lambda request: httpx.Response(502, text="Bad Gateway"))
        try:
            with pytest.raises(PushGatewayError) as exc_info:
                await client.send(PushMessage("tok-1"))
        finally:
            await client.close()

        assert exc_info.value.code == "http-502"
        assert str(exc_info.value) == "http-502"

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)
        try:
            with pytest.raises(PushGatewayError) as exc_info:
                await client.send(PushMessage("tok-1"))
        finally:
            await client.close()

        assert exc_info.value.code == "transport-error"
        assert "connection refused" in str(exc_info.value)
