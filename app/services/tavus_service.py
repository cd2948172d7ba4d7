"""Tavus conversational video API service."""
import logging
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.exceptions import ConfigurationError, RemoteServiceError
from app.models.conversation import Conversation

logger = logging.getLogger(__name__)

# Responses Tavus gives when asked to end a conversation that is already over
ALREADY_ENDED_STATUSES = {409, 410}


class TavusService:
    """Service for Tavus API operations."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.tavus_api_key if api_key is None else api_key
        self.base_url = (base_url or settings.tavus_base_url).rstrip("/")
        self.timeout = settings.tavus_timeout_seconds if timeout is None else timeout
        self.transport = transport

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def client(self) -> httpx.AsyncClient:
        """Get HTTP client bound to the Tavus base URL."""
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def create_conversation(self, request: Dict[str, Any]) -> Conversation:
        """Create a new conversation (POST /conversations)."""
        logger.info("Creating Tavus conversation %r", request.get("conversation_name"))
        response = await self._send("POST", "/conversations", json=request)
        if response.is_error:
            raise self._error(response)
        conversation = Conversation(**response.json())
        logger.info("Tavus conversation created: %s", conversation.conversation_id)
        return conversation

    async def end_conversation(self, conversation_id: str) -> bool:
        """End a conversation; returns False when Tavus reports it was already over."""
        response = await self._send("POST", f"/conversations/{conversation_id}/end")
        if response.is_success:
            logger.info("Tavus conversation %s ended", conversation_id)
            return True
        if self._already_ended(response):
            logger.info("Tavus conversation %s was already ended", conversation_id)
            return False
        raise self._error(response)

    async def get_conversation(self, conversation_id: str) -> Dict[str, Any]:
        """Current status payload for a conversation."""
        response = await self._send("GET", f"/conversations/{conversation_id}")
        if response.is_error:
            raise self._error(response)
        return response.json()

    async def _send(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> httpx.Response:
        if not self.is_configured():
            raise ConfigurationError("Tavus API key not configured")
        async with self.client() as client:
            try:
                return await client.request(
                    method,
                    path,
                    headers={
                        "Content-Type": "application/json",
                        "x-api-key": self.api_key,
                    },
                    json=json,
                )
            except httpx.TimeoutException as e:
                raise RemoteServiceError(f"Tavus API timed out: {method} {path}") from e
            except httpx.HTTPError as e:
                raise RemoteServiceError(f"Tavus API unreachable: {e}") from e

    @staticmethod
    def _already_ended(response: httpx.Response) -> bool:
        if response.status_code in ALREADY_ENDED_STATUSES:
            return True
        return response.status_code == 400 and "ended" in response.text.lower()

    @staticmethod
    def _error(response: httpx.Response) -> RemoteServiceError:
        logger.error("Tavus API error: %s %s", response.status_code, response.text)
        return RemoteServiceError(
            f"Tavus API error: {response.status_code} {response.text}",
            status_code=response.status_code,
            body=response.text,
        )
