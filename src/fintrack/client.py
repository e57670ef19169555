"""Resilient async client for the finance backend.

Every feature reaches the backend through ``ApiClient``. One call to
``get``/``post``/``put``/``delete`` is a logical request that may span several
transport attempts:

- transient failures (retryable status or connectivity message) are retried
  with exponential backoff and jitter, up to ``RetryPolicy.max_retries``;
- an authentication failure on the first attempt triggers one shared token
  refresh, after which the request is replayed with a fresh retry budget;
- whatever is left is raised as exactly one ``ApiError`` subclass.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from .auth import AuthCoordinator
from .classify import classify_failure
from .config import settings
from .errors import ApiError, AuthenticationError
from .retry import RetryPolicy
from .storage import FileStorage, MemoryStorage, SessionStorage
from .transport import HttpxTransport, Transport

logger = logging.getLogger(__name__)

_NO_REFRESH_PATHS = ("/auth/login", "/auth/register")


@dataclass
class AttemptContext:
    path: str
    method: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    attempt: int = 0


class ApiClient:
    def __init__(
        self,
        transport: Optional[Transport] = None,
        *,
        storage: Optional[SessionStorage] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
        rng: Optional[random.Random] = None,
        **overrides: Any,
    ) -> None:
        self._settings = settings()
        for k, v in overrides.items():
            if not hasattr(self._settings, k):
                raise AttributeError(f"Unknown setting: {k}")
            setattr(self._settings, k, v)
        s = self._settings
        self._owns_transport = transport is None
        self._transport: Transport = transport or HttpxTransport(s.base_url, timeout=s.timeout)
        if storage is None:
            storage = FileStorage(s.storage_path) if s.storage_path else MemoryStorage()
        self._policy = policy or s.retry_policy()
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()
        self.auth = AuthCoordinator(storage, self._transport, refresh_path=s.refresh_path)
        self._no_refresh = {s.refresh_path, *_NO_REFRESH_PATHS}

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def set_test_max_retries(self, max_retries: int) -> None:
        """Override the retry budget so tests avoid real backoff delays."""
        self._policy = self._policy.with_max_retries(max(0, int(max_retries)))

    async def get(self, path: str) -> Any:
        return await self._request("GET", path)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self._request("POST", path, body)

    async def put(self, path: str, body: Any = None) -> Any:
        return await self._request("PUT", path, body)

    async def delete(self, path: str) -> Any:
        return await self._request("DELETE", path)

    async def health_check(self) -> str:
        try:
            result = await self._transport.get("/health", headers=self._base_headers())
        except Exception as e:
            error = classify_failure(e, self._policy)
            if isinstance(error, ApiError) and error.status:
                raise error from e
            raise ApiError(0, "Health check failed") from e
        return result if isinstance(result, str) else "OK"

    async def aclose(self) -> None:
        if self._owns_transport and isinstance(self._transport, HttpxTransport):
            await self._transport.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    @staticmethod
    def _base_headers() -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    async def _send(self, ctx: AttemptContext) -> Any:
        t = self._transport
        if ctx.method == "GET":
            return await t.get(ctx.path, headers=ctx.headers)
        if ctx.method == "POST":
            return await t.post(ctx.path, headers=ctx.headers, body=ctx.body)
        if ctx.method == "PUT":
            return await t.put(ctx.path, headers=ctx.headers, body=ctx.body)
        if ctx.method == "DELETE":
            return await t.delete(ctx.path, headers=ctx.headers)
        raise ValueError(f"Unsupported HTTP method: {ctx.method}")

    async def _request(self, method: str, path: str, body: Any = None) -> Any:
        ctx = AttemptContext(path=path, method=method, body=body)
        refreshed = False
        while True:
            ctx.headers = self.auth.attach_auth_header(self._base_headers())
            logger.debug("%s %s attempt %d", method, path, ctx.attempt)
            try:
                return await self._send(ctx)
            except Exception as e:
                failure = e
            error = classify_failure(failure, self._policy)
            if error is None:
                raise failure
            if error is not failure:
                error.__cause__ = failure

            if isinstance(error, AuthenticationError):
                if ctx.attempt == 0 and not refreshed and path not in self._no_refresh:
                    refreshed = True
                    await self.auth.refresh()
                    ctx.attempt = 0
                    continue
                if refreshed or path == self.auth.refresh_path:
                    # rejected with a token that was just issued, or the refresh itself was rejected
                    self.auth.clear_session()
                raise error

            if self._policy.should_retry(ctx.attempt, error):
                wait = self._policy.delay(ctx.attempt, self._rng)
                logger.debug(
                    "%s %s failed with %s (status %d); retry %d/%d in %.2fs",
                    method,
                    path,
                    error.kind.value,
                    error.status,
                    ctx.attempt + 1,
                    self._policy.max_retries,
                    wait,
                )
                await self._sleep(wait)
                ctx.attempt += 1
                continue

            if ctx.attempt and self._policy.is_retryable(error):
                logger.warning("%s %s gave up after %d retries: %s", method, path, ctx.attempt, error.kind.value)
            raise error
