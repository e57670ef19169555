"""Bearer credentials and token refresh.

``AuthCoordinator`` owns the session storage on behalf of the request layer.
Refresh is single-flight: while one refresh is running every other caller that
hits an authentication failure awaits the same task instead of starting its own.

``AuthService`` holds the account operations (login, register, logout,
onboarding) on top of an ``ApiClient``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from .errors import ApiError, AuthenticationError, ConflictError, ServerError, ValidationError
from .storage import Session, SessionStorage, clear_session, load_session, save_session

if TYPE_CHECKING:
    from .client import ApiClient
    from .transport import Transport

logger = logging.getLogger(__name__)


class AuthCoordinator:
    def __init__(self, storage: SessionStorage, transport: "Transport", *, refresh_path: str = "/auth/refresh") -> None:
        self.storage = storage
        self.transport = transport
        self.refresh_path = refresh_path
        self._refresh_task: Optional[asyncio.Task] = None
        # bumped on every clear; a refresh that outlives a clear must not store
        self._epoch = 0

    @property
    def refresh_in_flight(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def session(self) -> Optional[Session]:
        return load_session(self.storage)

    def store_session(self, session: Session, *, keep_refresh_token: bool = True) -> None:
        save_session(self.storage, session, keep_refresh_token=keep_refresh_token)

    def clear_session(self) -> None:
        clear_session(self.storage)
        self._epoch += 1

    def attach_auth_header(self, headers: Dict[str, str]) -> Dict[str, str]:
        """Return a copy of ``headers`` carrying the current bearer token, if any."""
        out = dict(headers)
        session = self.session()
        if session is not None:
            out["Authorization"] = f"Bearer {session.token}"
        return out

    async def refresh(self) -> Session:
        """Refresh the session, joining an in-flight refresh when there is one.

        Raises ``AuthenticationError`` (after clearing the session) when the
        refresh fails for any reason.
        """
        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.get_running_loop().create_task(self._perform_refresh())
            self._refresh_task = task
        else:
            logger.debug("Joining in-flight token refresh")
        # shield: a waiter being cancelled must not cancel the shared refresh
        return await asyncio.shield(task)

    async def _perform_refresh(self) -> Session:
        try:
            current = self.session()
            if current is None:
                logger.info("No stored session to refresh")
                self.clear_session()
                raise AuthenticationError()
            epoch = self._epoch
            logger.info("Refreshing access token")
            headers = {"Content-Type": "application/json", "Authorization": f"Bearer {current.token}"}
            body = {"refresh_token": current.refresh_token} if current.refresh_token else None
            try:
                payload = await self.transport.post(self.refresh_path, headers=headers, body=body)
                if not isinstance(payload, dict):
                    raise ValueError(f"unexpected refresh payload: {type(payload).__name__}")
                renewed = Session.from_payload(payload, refresh_token=current.refresh_token)
            except Exception as e:
                logger.warning("Token refresh failed: %s", type(e).__name__)
                self.clear_session()
                raise AuthenticationError() from e
            if self._epoch != epoch:
                logger.info("Session was cleared during token refresh, discarding renewed token")
                raise AuthenticationError()
            self.store_session(renewed)
            return renewed
        finally:
            if self._refresh_task is asyncio.current_task():
                self._refresh_task = None


class AuthService:
    """Account operations for the finance backend."""

    def __init__(self, client: "ApiClient") -> None:
        self.client = client

    @property
    def coordinator(self) -> AuthCoordinator:
        return self.client.auth

    def get_token(self) -> Optional[str]:
        session = self.coordinator.session()
        return session.token if session else None

    async def login(self, email: str, password: str) -> Session:
        try:
            payload = await self.client.post("/auth/login", {"email": email, "password": password})
        except AuthenticationError as e:
            raise AuthenticationError("Invalid email or password") from e
        except ServerError as e:
            raise ServerError(e.status, "Server error. Please try again later.") from e
        return self._store(payload)

    async def register(self, email: str, password: str) -> Session:
        try:
            payload = await self.client.post("/auth/register", {"email": email, "password": password})
        except ConflictError as e:
            raise ConflictError("Email already exists") from e
        except ValidationError as e:
            raise ValidationError("Invalid registration data", details=e.details) from e
        return self._store(payload)

    async def logout(self) -> Any:
        try:
            return await self.client.post("/auth/logout")
        finally:
            self.coordinator.clear_session()

    async def complete_onboarding(self) -> Any:
        payload = await self.client.put("/auth/onboarding/complete")
        session = self.coordinator.session()
        if session is not None:
            session.onboarding_completed = True
            self.coordinator.store_session(session)
        return payload

    async def validate_session(self) -> bool:
        if self.get_token() is None:
            return False
        try:
            await self.client.get("/providers/status")
        except AuthenticationError:
            self.coordinator.clear_session()
            return False
        except ApiError as e:
            logger.warning("Session validation failed: %s", e.kind.value)
            return False
        return True

    def _store(self, payload: Any) -> Session:
        if not isinstance(payload, dict):
            raise ApiError(0, "Unexpected authentication response")
        try:
            session = Session.from_payload(payload)
        except ValueError as e:
            raise ApiError(0, "Unexpected authentication response") from e
        self.coordinator.store_session(session, keep_refresh_token=False)
        return session
