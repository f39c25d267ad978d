"""
Shared error handling for the Orchestrix BFF.
"""

from http import HTTPStatus
from typing import Any, Dict, Optional

from opentelemetry import trace
from pydantic import BaseModel


def reason_phrase(status_code: int) -> str:
    """Return the standard reason phrase for a status code."""
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


class ErrorResponse(BaseModel):
    """Standard error response format: ``{error, message}`` plus extras."""

    error: str
    message: str
    details: Optional[Any] = None
    trace_id: Optional[str] = None


def current_trace_id() -> Optional[str]:
    """Trace id of the active span, if one is recording."""
    current_span = trace.get_current_span()
    if current_span and current_span.is_recording():
        span_context = current_span.get_span_context()
        if span_context.trace_id != 0:
            return f"{span_context.trace_id:032x}"
    return None


class BffException(Exception):
    """Base exception for the BFF; carries the HTTP status it maps to."""

    status_code: int = 500

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Any] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            error=reason_phrase(self.status_code),
            message=self.message,
            details=self.details,
            trace_id=current_trace_id(),
        )


class ValidationError(BffException):
    """Malformed request input."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Any] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class AuthenticationError(BffException):
    """Missing bearer token."""

    status_code = 401

    def __init__(self, message: str = "Token required", details: Optional[Any] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class AuthorizationError(BffException):
    """Caller lacks every role the route accepts."""

    status_code = 403

    def __init__(self, message: str = "Forbidden", details: Optional[Any] = None):
        super().__init__("AUTHORIZATION_ERROR", message, details)


class NotFoundError(BffException):
    """Resource absent."""

    status_code = 404

    def __init__(self, resource: str = "Resource", details: Optional[Any] = None):
        super().__init__("NOT_FOUND", f"{resource} not found", details)


class UpstreamError(BffException):
    """Non-2xx answer from the orchestration API.

    ``status`` is the upstream status code and is passed through unchanged;
    ``details`` is the parsed JSON body when it parses, otherwise the raw text.
    """

    def __init__(self, status: int, message: str = "Upstream request failed", details: Optional[Any] = None):
        self.status = status
        super().__init__("UPSTREAM_ERROR", message, details, status_code=status)


class TransportError(BffException):
    """The orchestration API could not be reached."""

    def __init__(self, message: str = "Upstream unavailable", details: Optional[Any] = None, timed_out: bool = False):
        self.timed_out = timed_out
        super().__init__(
            "TRANSPORT_ERROR",
            message,
            details,
            status_code=504 if timed_out else 502,
        )


class RateLimitError(BffException):
    """Rate limiting errors."""

    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded", details: Optional[Any] = None, retry_after: int = 60):
        self.retry_after = retry_after
        super().__init__("RATE_LIMIT_ERROR", message, details)
