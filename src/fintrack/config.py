from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, asdict
from typing import Any
import os

from .retry import RetryPolicy


@dataclass
class Settings:
    """Client configuration with environment overlay.

    Retry knobs are copied into a ``RetryPolicy`` owned by each ``ApiClient``;
    changing settings afterwards does not affect clients already built.
    """

    base_url: str = "http://localhost:8080/api"
    timeout: float = 30.0

    # retry/backoff (seconds)
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 5.0

    # auth
    refresh_path: str = "/auth/refresh"
    storage_path: str | None = None  # None -> in-memory session (the CLI defaults to ~/.config/fintrack)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_retries=self.max_retries, base_delay=self.base_delay, max_delay=self.max_delay)


_global_settings = Settings()
_stack: list[Settings] = []


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def _from_env(s: Settings) -> Settings:
    return Settings(
        base_url=os.getenv("FINTRACK_BASE_URL", s.base_url),
        timeout=_env_number("FINTRACK_TIMEOUT", s.timeout, float),
        max_retries=_env_number("FINTRACK_MAX_RETRIES", s.max_retries, int),
        base_delay=s.base_delay,
        max_delay=s.max_delay,
        refresh_path=s.refresh_path,
        storage_path=os.getenv("FINTRACK_STORAGE_PATH", s.storage_path),
    )


def configure(**kwargs: Any) -> None:
    """Configure global client defaults.

    Example:
        configure(base_url="https://budget.example.com/api", max_retries=5)
    """
    global _global_settings
    for k, v in kwargs.items():
        if not hasattr(_global_settings, k):
            raise AttributeError(f"Unknown setting: {k}")
        setattr(_global_settings, k, v)


@contextmanager
def config(**kwargs: Any):
    """Temporarily apply settings within a context."""
    global _global_settings
    _stack.append(Settings(**asdict(_global_settings)))
    try:
        configure(**kwargs)
        yield
    finally:
        prev = _stack.pop()
        _global_settings = prev


def settings() -> Settings:
    """Return the effective merged settings (env overlaid on current)."""
    return _from_env(_global_settings)
