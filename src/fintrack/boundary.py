"""Helpers for code that displays API failures to people.

``categorize`` buckets the error taxonomy into the four display categories
used by error screens, and ``sanitize_message`` strips credential-looking
fragments before anything is shown or logged.
"""

from __future__ import annotations

import re

from .errors import ApiError, ErrorKind

_SENSITIVE_PATTERNS = [
    re.compile(r"api_key=[\w-]+", re.IGNORECASE),
    re.compile(r"password=\w+", re.IGNORECASE),
    re.compile(r"token=[\w-]+", re.IGNORECASE),
    re.compile(r"key=[\w-]+", re.IGNORECASE),
    re.compile(r"secret=\w+", re.IGNORECASE),
]

_CONNECTIVITY_HINTS = ("failed to fetch", "network error", "dns resolution")

_USER_MESSAGES = {
    ErrorKind.VALIDATION: "Some of the information you entered is invalid.",
    ErrorKind.AUTHENTICATION: "Your session has expired. Please sign in again.",
    ErrorKind.FORBIDDEN: "You do not have access to this resource.",
    ErrorKind.NOT_FOUND: "We could not find what you were looking for.",
    ErrorKind.CONFLICT: "This conflicts with something that already exists.",
    ErrorKind.SERVER: "The service is temporarily unavailable. Please try again.",
    ErrorKind.NETWORK: "Unable to reach the server. Check your connection and try again.",
    ErrorKind.GENERIC: "Something went wrong.",
}

RETRYABLE_KINDS = frozenset({ErrorKind.SERVER, ErrorKind.NETWORK})


def categorize(error: BaseException) -> str:
    """Return one of ``auth``, ``network``, ``server`` or ``generic``."""
    if isinstance(error, ApiError):
        if error.kind is ErrorKind.AUTHENTICATION:
            return "auth"
        if error.kind is ErrorKind.NETWORK:
            return "network"
        if error.status >= 500:
            return "server"
    message = str(error).lower()
    if "authentication required" in message:
        return "auth"
    if any(hint in message for hint in _CONNECTIVITY_HINTS):
        return "network"
    return "generic"


def sanitize_message(message: str) -> str:
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub("[REDACTED]", sanitized)
    return sanitized


def user_message(error: BaseException) -> str:
    """Text suitable for showing to the person who triggered the request."""
    if isinstance(error, ApiError):
        if error.kind is ErrorKind.VALIDATION and getattr(error, "details", None):
            fields = "; ".join(f"{k}: {v}" for k, v in error.details.items())
            return sanitize_message(f"{_USER_MESSAGES[error.kind]} {fields}")
        return _USER_MESSAGES[error.kind]
    return _USER_MESSAGES[ErrorKind.GENERIC]


def can_retry(error: BaseException) -> bool:
    """Whether offering a manual "try again" action makes sense."""
    return isinstance(error, ApiError) and error.kind in RETRYABLE_KINDS
