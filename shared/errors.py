"""
Shared error handling for the media catalog access gateway.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    code: str
    details: Dict[str, Any] = {}
    request_id: Optional[str] = None


class GatewayException(Exception):
    """Base exception for gateway errors."""

    status_code: int = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            error=self.message,
            code=self.code,
            details=self.details,
            request_id=request_id_var.get(),
        )


class ValidationError(GatewayException):
    """Missing or malformed client input."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NoPrincipalError(GatewayException):
    """The upstream knows no principal to scope the call to."""

    def __init__(self, message: str = "No users found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NO_PRINCIPAL", message, details)


class RateLimitedError(GatewayException):
    """Rate limiting errors."""

    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded", details: Optional[Dict[str, Any]] = None,
                 retry_after: Optional[int] = None):
        self.retry_after = retry_after
        super().__init__("RATE_LIMITED", message, details)


class UpstreamError(GatewayException):
    """Upstream answered with a non-success status."""

    def __init__(self, status: int, body: Any, path: str = ""):
        self.upstream_status = status
        self.body = body
        self.path = path
        super().__init__(
            "UPSTREAM_ERROR",
            f"Upstream request failed with status {status}",
            {"upstream_status": status, "body": body, "path": path},
        )

    @property
    def is_rate_limited(self) -> bool:
        return self.upstream_status == 429

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return 429 if self.is_rate_limited else 500


class TransportError(GatewayException):
    """No response from the upstream (connect failure, DNS, timeout)."""

    def __init__(self, message: str = "Upstream unreachable", details: Optional[Dict[str, Any]] = None):
        super().__init__("TRANSPORT_ERROR", message, details)


class RetriesExhaustedError(GatewayException):
    """Still rate limited after the bounded retry budget."""

    status_code = 429

    def __init__(self, message: str = "Too many requests, please try again later.",
                 attempts: int = 0, last_exception: Optional[Exception] = None):
        self.attempts = attempts
        self.last_exception = last_exception
        super().__init__("RETRIES_EXHAUSTED", message, {"attempts": attempts})
