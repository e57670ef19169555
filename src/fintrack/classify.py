"""Map raw transport failures onto the ApiError taxonomy.

A status is only trusted when it was captured while parsing a response
(``HTTPStatusFailure``). Message-only failures become ``NetworkError`` when they
look like connectivity problems; anything else is left for the caller to
re-raise untouched.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Tuple

from .errors import (
    ApiError,
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    HTTPStatusFailure,
    NetworkError,
    NotFoundError,
    ServerError,
    ValidationError,
)
from .retry import RetryPolicy

MAX_TEXT_MESSAGE = 500
_MESSAGE_FIELDS = ("message", "error", "detail", "msg")
_SERVER_STATUSES = {500, 502, 503, 504}


def _status_message(status: int, reason: str) -> str:
    return f"{status} {reason or 'Error'}"


def _parse_body(body_text: str) -> Tuple[bool, Any]:
    if not body_text or not body_text.strip():
        return False, None
    try:
        return True, json.loads(body_text)
    except ValueError:
        return False, None


def extract_message(status: int, reason: str, body_text: str) -> Tuple[str, Optional[str], Any]:
    """Return ``(message, code, parsed_body)`` for an error response."""
    parsed_ok, data = _parse_body(body_text)
    if not parsed_ok:
        text = (body_text or "").strip()
        if text and len(text) < MAX_TEXT_MESSAGE:
            return text, None, None
        return _status_message(status, reason), None, None

    message = "Request failed"
    code: Optional[str] = None
    if isinstance(data, dict):
        for key in _MESSAGE_FIELDS:
            value = data.get(key)
            if value:
                message = value if isinstance(value, str) else json.dumps(value)
                break
        raw_code = data.get("code")
        if raw_code:
            code = str(raw_code)
    elif isinstance(data, str) and data:
        message = data
    return message, code, data


def _validation_details(data: Any) -> Optional[dict[str, str]]:
    if not isinstance(data, dict):
        return None
    for key in ("details", "errors"):
        value = data.get(key)
        if isinstance(value, dict) and value:
            return {str(field): str(msg) for field, msg in value.items()}
    return None


def error_from_response(status: int, reason: str = "", body_text: str = "") -> ApiError:
    message, code, data = extract_message(status, reason, body_text)
    if status == 400:
        error: ApiError = ValidationError(message, details=_validation_details(data))
    elif status == 401:
        error = AuthenticationError(message)
    elif status == 403:
        error = ForbiddenError(message)
    elif status == 404:
        error = NotFoundError(message)
    elif status == 409:
        error = ConflictError(message)
    elif status in _SERVER_STATUSES:
        error = ServerError(status, message)
    else:
        error = ApiError(status, message, code)
    if code:
        error.code = code
    return error


def classify_failure(failure: BaseException, policy: RetryPolicy) -> Optional[ApiError]:
    """Classify ``failure``; ``None`` means it must propagate unmodified."""
    if isinstance(failure, ApiError):
        return failure
    if isinstance(failure, HTTPStatusFailure):
        return error_from_response(failure.status, failure.reason, failure.body_text)
    message = str(failure)
    if policy.is_retryable_message(message):
        return NetworkError(message)
    return None
