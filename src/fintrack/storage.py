"""Session persistence.

Storages are plain key/value stores. ``FileStorage`` keeps a small JSON file
so a CLI session survives between invocations; ``MemoryStorage`` is what tests
and short-lived scripts use.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

TOKEN_KEY = "auth_token"
REFRESH_TOKEN_KEY = "refresh_token"
SESSION_META_KEY = "session_meta"


class SessionStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def clear(self) -> None: ...


class MemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._store: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._store.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._store[key] = value

    def remove_item(self, key: str) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()


def default_storage_path() -> Path:
    base = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "fintrack" / "session.json"


class FileStorage:
    """JSON-file backed storage; every write rewrites the whole file."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else default_storage_path()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError:
            logger.warning("Ignoring unreadable session file %s", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        try:
            os.chmod(self.path, 0o600)
        except OSError:  # pragma: no cover - platform dependent
            pass

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


@dataclass
class Session:
    token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[str] = None
    user_id: Optional[str] = None
    onboarding_completed: bool = False

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], *, refresh_token: Optional[str] = None) -> "Session":
        token = payload.get("token")
        if not token:
            raise ValueError("auth response did not include a token")
        return cls(
            token=str(token),
            refresh_token=payload.get("refresh_token") or refresh_token,
            expires_at=payload.get("expires_at"),
            user_id=payload.get("user_id"),
            onboarding_completed=bool(payload.get("onboarding_completed", False)),
        )


def save_session(storage: SessionStorage, session: Session, *, keep_refresh_token: bool = True) -> None:
    """Persist ``session``.

    A session without a refresh token leaves the stored one in place unless
    ``keep_refresh_token`` is false, in which case the stale one is removed.
    """
    storage.set_item(TOKEN_KEY, session.token)
    if session.refresh_token:
        storage.set_item(REFRESH_TOKEN_KEY, session.refresh_token)
    elif not keep_refresh_token:
        storage.remove_item(REFRESH_TOKEN_KEY)
    meta = {
        "user_id": session.user_id,
        "expires_at": session.expires_at,
        "onboarding_completed": session.onboarding_completed,
    }
    storage.set_item(SESSION_META_KEY, json.dumps(meta))


def load_session(storage: SessionStorage) -> Optional[Session]:
    token = storage.get_item(TOKEN_KEY)
    if not token:
        return None
    meta: Dict[str, Any] = {}
    raw_meta = storage.get_item(SESSION_META_KEY)
    if raw_meta:
        try:
            meta = json.loads(raw_meta)
        except ValueError:
            meta = {}
    return Session(
        token=token,
        refresh_token=storage.get_item(REFRESH_TOKEN_KEY),
        expires_at=meta.get("expires_at"),
        user_id=meta.get("user_id"),
        onboarding_completed=bool(meta.get("onboarding_completed", False)),
    )


def clear_session(storage: SessionStorage) -> None:
    storage.remove_item(TOKEN_KEY)
    storage.remove_item(REFRESH_TOKEN_KEY)
    storage.remove_item(SESSION_META_KEY)
