"""HTTP client for the knowledge-assistant service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from workflowAgent.assistant.types import SdkRequest, SdkResponse

LOGGER = logging.getLogger(__name__)

CHAT_PATH = "/chat"


class HttpxAssistantClient:
    """Streams chat responses from the assistant service over ``httpx``.

    A shared ``httpx.AsyncClient`` may be passed in (tests use
    ``httpx.MockTransport``); otherwise one is created per request.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._http_client = http_client

    def _headers(self, user_id: str) -> dict:
        headers = {
            "Content-Type": "application/json",
            "X-User-Id": user_id,
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @asynccontextmanager
    async def chat(self, request: SdkRequest, user_id: str) -> AsyncIterator[SdkResponse]:
        url = f"{self.base_url}{CHAT_PATH}"
        LOGGER.info(f"Assistant request: session={request.session_id or 'new'}")

        if self._http_client is not None:
            async with self._http_client.stream(
                "POST",
                url,
                json=request.to_json(),
                headers=self._headers(user_id),
                timeout=self.timeout if self.timeout is not None else httpx.USE_CLIENT_DEFAULT,
            ) as response:
                yield SdkResponse(status_code=response.status_code, body=response.aiter_bytes())
            return

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            async with client.stream(
                "POST", url, json=request.to_json(), headers=self._headers(user_id)
            ) as response:
                yield SdkResponse(status_code=response.status_code, body=response.aiter_bytes())


__all__ = ["HttpxAssistantClient", "CHAT_PATH"]
