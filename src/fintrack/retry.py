"""Retry and backoff decisions for the request layer.

The policy is a pure value object: it never sleeps and never performs I/O.
``ApiClient`` asks it whether a classified failure may be retried and how long
to wait before the next attempt.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from .errors import ApiError

DEFAULT_RETRYABLE_STATUSES = frozenset({429, 502, 503, 504})
DEFAULT_RETRYABLE_MESSAGES = (
    "failed to fetch",
    "timeout",
    "aborted",
    "dns resolution failed",
    "network error",
    "connection reset",
)

JITTER_RATIO = 0.3
MAX_EXPONENT = 1023


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 5.0
    retryable_statuses: frozenset[int] = field(default=DEFAULT_RETRYABLE_STATUSES)
    retryable_messages: tuple[str, ...] = field(default=DEFAULT_RETRYABLE_MESSAGES)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.base_delay < 0 or self.base_delay > self.max_delay:
            raise ValueError(f"expected 0 <= base_delay <= max_delay, got {self.base_delay} / {self.max_delay}")
        object.__setattr__(self, "retryable_statuses", frozenset(self.retryable_statuses))
        object.__setattr__(self, "retryable_messages", tuple(m.lower() for m in self.retryable_messages))

    @classmethod
    def from_values(
        cls,
        *,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 5.0,
        statuses: Iterable[int] | None = None,
        messages: Iterable[str] | None = None,
    ) -> "RetryPolicy":
        return cls(
            max_retries=max_retries,
            base_delay=base_delay,
            max_delay=max_delay,
            retryable_statuses=frozenset(statuses) if statuses is not None else DEFAULT_RETRYABLE_STATUSES,
            retryable_messages=tuple(messages) if messages is not None else DEFAULT_RETRYABLE_MESSAGES,
        )

    def with_max_retries(self, max_retries: int) -> "RetryPolicy":
        return replace(self, max_retries=max_retries)

    def is_retryable_status(self, status: int) -> bool:
        return status in self.retryable_statuses

    def is_retryable_message(self, message: str | None) -> bool:
        if not message:
            return False
        lowered = message.lower()
        return any(phrase in lowered for phrase in self.retryable_messages)

    def is_retryable(self, error: BaseException) -> bool:
        """True when the failure is transient by status or by message."""
        if isinstance(error, ApiError) and self.is_retryable_status(error.status):
            return True
        return self.is_retryable_message(str(error))

    def should_retry(self, attempt: int, error: BaseException) -> bool:
        return attempt < self.max_retries and self.is_retryable(error)

    def backoff(self, attempt: int) -> float:
        """Exponential delay for ``attempt``, capped at ``max_delay``."""
        # 2.0 ** 1024 overflows a float
        return min(self.base_delay * (2.0 ** min(attempt, MAX_EXPONENT)), self.max_delay)

    def delay(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """Backoff plus up to 30% uniform jitter."""
        base = self.backoff(attempt)
        uniform = rng.uniform if rng is not None else random.uniform
        return base + uniform(0.0, JITTER_RATIO * base)
