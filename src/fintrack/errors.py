from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER = "server"
    NETWORK = "network"
    GENERIC = "generic"


class ApiError(Exception):
    """Base error for API failures; also the generic kind for unmapped statuses."""

    kind = ErrorKind.GENERIC

    def __init__(self, status: int, message: str = "Request failed", code: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.message = message
        self.code = code

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "status": self.status, "message": self.message, "code": self.code}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, message={self.message!r}, code={self.code!r})"


class ValidationError(ApiError):
    """400 Bad Request; may carry field-level messages in details."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str = "Invalid input data", details: dict[str, str] | None = None) -> None:
        super().__init__(400, message, "VALIDATION_ERROR")
        self.details = details

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.details:
            data["details"] = dict(self.details)
        return data


class AuthenticationError(ApiError):
    """401 Unauthorized, or a session that could not be refreshed."""

    kind = ErrorKind.AUTHENTICATION

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(401, message, "AUTH_REQUIRED")


class ForbiddenError(ApiError):
    kind = ErrorKind.FORBIDDEN

    def __init__(self, message: str = "Access forbidden") -> None:
        super().__init__(403, message, "FORBIDDEN")


class NotFoundError(ApiError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(404, message, "NOT_FOUND")


class ConflictError(ApiError):
    kind = ErrorKind.CONFLICT

    def __init__(self, message: str = "Resource conflict") -> None:
        super().__init__(409, message, "CONFLICT")


class ServerError(ApiError):
    """5xx from the backend."""

    kind = ErrorKind.SERVER

    def __init__(self, status: int, message: str = "Server error occurred") -> None:
        super().__init__(status, message, "SERVER_ERROR")


class NetworkError(ApiError):
    """Connectivity failure; no HTTP status was received."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str = "Network connection failed") -> None:
        super().__init__(0, message, "NETWORK_ERROR")


# Raw failures raised by transports. These never reach callers of ApiClient
# except for an unclassifiable TransportFailure, which is re-raised as-is.


class TransportFailure(Exception):
    """Message-only failure from the network layer (timeouts, DNS, resets)."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class HTTPStatusFailure(Exception):
    """Non-2xx response captured while parsing the transport's reply."""

    def __init__(self, status: int, reason: str = "", body_text: str = "") -> None:
        super().__init__(f"HTTP {status}")
        self.status = status
        self.reason = reason
        self.body_text = body_text
