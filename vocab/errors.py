"""
Error taxonomy for API calls and the classification used by the session monitor.
"""

from dataclasses import dataclass
from typing import Optional

SERVER_ERROR = 'server_error'
NETWORK_ERROR = 'network_error'

_NETWORK_HINTS = ('network', 'fetch', 'connection')


class ApiError(Exception):
    """A failed API call. `status` is None when no HTTP response was received."""

    def __init__(self, message: str, status: Optional[int] = None, endpoint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.endpoint = endpoint


class UnauthorizedError(ApiError):
    """Token missing, invalid or expired on the server. Re-login fixes it."""


class ForbiddenError(ApiError):
    """Authenticated but not allowed. Re-login does not help."""


class ServerError(ApiError):
    """5xx response."""


class NetworkError(ApiError):
    """No usable HTTP response (connection refused, timeout, DNS...)."""


def error_for_status(status: int, message: str, endpoint: Optional[str] = None) -> ApiError:
    if status == 401:
        return UnauthorizedError(message or 'Unauthorized', status, endpoint)
    if status == 403:
        return ForbiddenError(message or 'Forbidden', status, endpoint)
    if status >= 500:
        return ServerError(message or 'Server error', status, endpoint)
    return ApiError(message or f"HTTP {status}", status, endpoint)


@dataclass(frozen=True)
class ErrorClassification:
    event_type: str
    reason: str
    status: Optional[int] = None


def classify_error(error: BaseException) -> ErrorClassification:
    """Map an exception raised by an API call onto a logout event type and reason."""
    status = getattr(error, 'status', None)
    message = str(error).lower()

    if status == 401:
        return ErrorClassification(SERVER_ERROR, 'Unauthorized - session may have expired', status)
    if status == 403:
        return ErrorClassification(SERVER_ERROR, 'Forbidden - insufficient permissions', status)
    if status is not None and status >= 500:
        return ErrorClassification(SERVER_ERROR, 'Server error', status)
    if not status or any(hint in message for hint in _NETWORK_HINTS):
        return ErrorClassification(NETWORK_ERROR, 'Network connectivity issue', status)
    return ErrorClassification(SERVER_ERROR, 'Unknown API error', status)
