"""
WhatsApp gateway client.

Read-only channel status for inboxes, fetched from the external gateway's
HTTP API with the inbox's own session token.
"""

import logging

import httpx

from inboxdesk.exceptions import ErrorCode, UpstreamError
from inboxdesk.models.inbox import Inbox

logger = logging.getLogger(__name__)


class WhatsAppGateway:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        admin_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.admin_token = admin_token
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def get_session_status(self, inbox: Inbox) -> dict:
        """
        Return `{"connected": bool, "loggedIn": bool, ...}` for the inbox.

        Inboxes without a gateway token are reported as not configured
        without calling the gateway.
        """
        if not inbox.gateway_token:
            return {"connected": False, "loggedIn": False, "status": "not_configured"}

        try:
            async with self._client() as client:
                response = await client.get("/session/status", headers={"token": inbox.gateway_token})
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"WhatsApp gateway returned {e.response.status_code} for inbox {inbox.id}")
            raise UpstreamError(
                "WhatsApp gateway returned an error", service="whatsapp", error_code=ErrorCode.GATEWAY_ERROR
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"WhatsApp gateway request failed for inbox {inbox.id}: {str(e)}")
            raise UpstreamError(
                "WhatsApp gateway is unavailable", service="whatsapp", error_code=ErrorCode.GATEWAY_ERROR
            ) from e

        data = payload.get("data", payload) if isinstance(payload, dict) else {}
        connected = bool(data.get("Connected", data.get("connected", False)))
        logged_in = bool(data.get("LoggedIn", data.get("loggedIn", False)))
        return {
            "connected": connected,
            "loggedIn": logged_in,
            "status": "connected" if connected and logged_in else "disconnected",
        }
