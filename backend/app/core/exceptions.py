"""
Custom exceptions for the application.
"""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from app.models.rate_limit import RateLimitInfo


class CobaltError(Exception):
    """Base exception for cobalt-chat."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(CobaltError):
    """Resource not found (or not owned by the caller)."""

    pass


class ConflictError(CobaltError):
    """Duplicate resource detected."""

    pass


class ValidationError(CobaltError):
    """Validation error."""

    pass


class RateLimitedError(CobaltError):
    """Message quota exhausted for the current window."""

    def __init__(self, message: str, info: "RateLimitInfo"):
        super().__init__(message, details=info)
        self.info = info


class UpstreamUnavailableError(CobaltError):
    """Upstream completion API failed, timed out or refused the request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, details={"status_code": status_code})
        self.status_code = status_code


class StreamCancelledError(CobaltError):
    """Downstream client went away while a reply was streaming."""

    pass


class AuthenticationError(CobaltError):
    """Authentication failed."""

    pass


class ConfigurationError(CobaltError):
    """Required configuration is missing or invalid."""

    pass
