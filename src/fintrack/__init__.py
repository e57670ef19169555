"""
fintrack – Python client for the personal-finance backend

Public surface:
- Client: ApiClient (get/post/put/delete with retries and token refresh), AuthService
- Errors: ApiError taxonomy tagged by ErrorKind
- Retry: RetryPolicy
- Sessions: Session, MemoryStorage, FileStorage
- Transport: HttpxTransport
- Config: configure, config (context manager), settings
- Display helpers: categorize, sanitize_message, user_message
"""

__version__ = "0.3.0"

from .config import configure, config, settings, Settings
from .client import ApiClient, AttemptContext
from .auth import AuthCoordinator, AuthService
from .retry import RetryPolicy
from .storage import Session, SessionStorage, MemoryStorage, FileStorage
from .transport import Transport, HttpxTransport
from .errors import (
    ErrorKind,
    ApiError,
    ValidationError,
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    ConflictError,
    ServerError,
    NetworkError,
    TransportFailure,
    HTTPStatusFailure,
)
from .classify import classify_failure, error_from_response
from .boundary import categorize, sanitize_message, user_message, can_retry

__all__ = [
    # Config
    "configure",
    "config",
    "settings",
    "Settings",
    # Client
    "ApiClient",
    "AttemptContext",
    "AuthCoordinator",
    "AuthService",
    "RetryPolicy",
    # Sessions
    "Session",
    "SessionStorage",
    "MemoryStorage",
    "FileStorage",
    # Transport
    "Transport",
    "HttpxTransport",
    # Errors
    "ErrorKind",
    "ApiError",
    "ValidationError",
    "AuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "ServerError",
    "NetworkError",
    "TransportFailure",
    "HTTPStatusFailure",
    "classify_failure",
    "error_from_response",
    # Display helpers
    "categorize",
    "sanitize_message",
    "user_message",
    "can_retry",
    "__version__",
]
