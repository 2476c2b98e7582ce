"""HTTP client for the push gateway.

The gateway accepts one data-only message per request:

    POST <gateway_url>
    Authorization: Bearer <api_key>
    {"message": {"token": "...", "data": {"notification_id": "...", ...}}}

Errors come back as ``{"error": {"status": "UNREGISTERED", "message": "...",
"details": [{"errorCode": "UNREGISTERED"}]}}``; the most specific code found
is surfaced as ``PushGatewayError.code``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any

import httpx

from delivery_service.features.delivery.exceptions import PushGatewayError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PushMessage:
    """A data-only push message. All data values are strings."""

    token: str
    data: dict[str, str] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        return {"message": {"token": self.token, "data": dict(self.data)}}


def _error_code(body: Any, status_code: int) -> tuple[str, str]:
    if not isinstance(body, dict) or not isinstance(body.get("error"), dict):
        return f"http-{status_code}", ""
    error = body["error"]
    message = str(error.get("message", ""))
    for detail in error.get("details") or []:
        if isinstance(detail, dict) and detail.get("errorCode"):
            return str(detail["errorCode"]), message
    if error.get("status"):
        return str(error["status"]), message
    return f"http-{status_code}", message


class PushGatewayClient:
    """Sends ``PushMessage`` objects to the gateway.

    Args:
        url: Gateway send endpoint
        api_key: Bearer credential
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Authorization": f"Bearer {api_key}"},
            transport=transport,
        )

    async def send(self, message: PushMessage) -> str:
        """Send one message.

        Returns:
            Gateway message id (empty if the gateway returned none)

        Raises:
            PushGatewayError: On a non-2xx response or a transport failure.
        """
        try:
            response = await self._client.post(self.url, json=message.to_json())
        except httpx.HTTPError as e:
            raise PushGatewayError("transport-error", str(e) or type(e).__name__) from e

        if response.is_success:
            try:
                body = response.json()
            except ValueError:
                return ""
            return str(body.get("name", "")) if isinstance(body, dict) else ""

        try:
            body = response.json()
        except ValueError:
            body = None
        code, detail = _error_code(body, response.status_code)
        logger.debug(
            "Push gateway rejected message",
            extra={"status_code": response.status_code, "code": code},
        )
        raise PushGatewayError(code, detail, status_code=response.status_code)

    async def close(self) -> None:
        await self._client.aclose()


__all__ = ["PushGatewayClient", "PushMessage"]
