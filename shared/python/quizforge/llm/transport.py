"""HTTP collaborator used by provider adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from quizforge.config import get_settings


@dataclass(slots=True)
class TransportResponse:
    """Status, decoded JSON body (when there is one) and raw text of a call."""

    status_code: int
    body: Any = None
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpTransport(ABC):
    """Performs one POST keyed by endpoint and payload."""

    @abstractmethod
    async def post_json(
        self,
        endpoint: str,
        *,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> TransportResponse:
        """POST `payload` as JSON; transport errors propagate to the caller."""


class HttpxTransport(HttpTransport):
    """Default transport on `httpx.AsyncClient`."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        settings = get_settings()
        seconds = float(timeout_seconds or settings.request_timeout_seconds)
        self._timeout = httpx.Timeout(timeout=seconds, connect=min(10.0, seconds))
        self._client = client

    async def post_json(
        self,
        endpoint: str,
        *,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> TransportResponse:
        if self._client is not None:
            response = await self._client.post(
                endpoint, headers=headers, json=payload, timeout=self._timeout
            )
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(endpoint, headers=headers, json=payload)
        return _to_transport_response(response)


def _to_transport_response(response: httpx.Response) -> TransportResponse:
    text = response.text
    try:
        body = response.json()
    except ValueError:
        body = None
    return TransportResponse(status_code=response.status_code, body=body, text=text)
