"""Transport boundary: one network round trip per call.

Transports return the decoded success payload or raise one of the raw failures
from ``fintrack.errors``. They know nothing about retries or credentials.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Protocol

import httpx

from .errors import HTTPStatusFailure, TransportFailure


class Transport(Protocol):
    async def get(self, path: str, *, headers: Dict[str, str]) -> Any: ...

    async def post(self, path: str, *, headers: Dict[str, str], body: Any = None) -> Any: ...

    async def put(self, path: str, *, headers: Dict[str, str], body: Any = None) -> Any: ...

    async def delete(self, path: str, *, headers: Dict[str, str]) -> Any: ...


def decode_response(resp: httpx.Response) -> Any:
    """Decode a 2xx response; 204 and empty bodies become ``{}``."""
    if resp.status_code == 204 or not resp.content:
        return {}
    try:
        return resp.json()
    except ValueError:
        return resp.text


class HttpxTransport:
    """``httpx.AsyncClient``-backed transport rooted at ``base_url``."""

    def __init__(self, base_url: str, *, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def _send(self, method: str, path: str, headers: Dict[str, str], body: Any = None) -> Any:
        content = json.dumps(body) if body is not None else None
        try:
            resp = await self._client.request(method, path, headers=headers, content=content)
        except httpx.TimeoutException as e:
            raise TransportFailure(f"Request timeout: {e}") from e
        except httpx.HTTPError as e:
            raise TransportFailure(f"Network error: {e}") from e
        if not resp.is_success:
            raise HTTPStatusFailure(resp.status_code, resp.reason_phrase, resp.text)
        return decode_response(resp)

    async def get(self, path: str, *, headers: Dict[str, str]) -> Any:
        return await self._send("GET", path, headers)

    async def post(self, path: str, *, headers: Dict[str, str], body: Any = None) -> Any:
        return await self._send("POST", path, headers, body)

    async def put(self, path: str, *, headers: Dict[str, str], body: Any = None) -> Any:
        return await self._send("PUT", path, headers, body)

    async def delete(self, path: str, *, headers: Dict[str, str]) -> Any:
        return await self._send("DELETE", path, headers)

    async def aclose(self) -> None:
        await self._client.aclose()
