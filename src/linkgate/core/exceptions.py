"""
Custom exceptions for LinkGate service.

Provides structured error handling with appropriate HTTP status codes.
Session and link failures are deliberately coarse: callers never learn
whether a token or opaque ID was unknown, expired or already used.
"""

from typing import Any, Dict, Optional


class LinkGateException(Exception):
    """Base exception for LinkGate service."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class MalformedRequestError(LinkGateException):
    """Raised when request validation fails."""

    def __init__(self, message: str = "Malformed request", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="malformed_request",
            details=details,
        )


class InvalidCredentialError(LinkGateException):
    """Raised when a presented access key is not on the allow-list."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_code="access_denied",
        )


class SessionInvalidError(LinkGateException):
    """Raised for unknown, expired or missing session tokens alike."""

    def __init__(self, message: str = "Session invalid") -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_code="session_invalid",
        )


class PayloadDecryptError(LinkGateException):
    """
    Raised when an encrypted payload cannot be decrypted.

    Never rendered directly; the gateway converts it to SessionInvalidError.
    """

    def __init__(self, message: str = "DECRYPTION_FAILED") -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_code="decryption_failed",
        )


class LinkNotFoundError(LinkGateException):
    """Raised for unknown, expired or already redeemed opaque IDs alike."""

    def __init__(self, message: str = "Link expired or already used") -> None:
        super().__init__(
            message=message,
            status_code=404,
            error_code="link_not_found",
        )


class ContentNotFoundError(LinkGateException):
    """Raised when the content source has no post for an identifier."""

    def __init__(self, message: str = "Post not found") -> None:
        super().__init__(
            message=message,
            status_code=404,
            error_code="content_not_found",
        )


class UpstreamUnavailableError(LinkGateException):
    """Raised when the content source cannot be reached."""

    def __init__(self, message: str = "Content source unavailable", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=502,
            error_code="upstream_unavailable",
            details=details,
        )


class RateLimitError(LinkGateException):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
    ) -> None:
        details = {}
        if retry_after:
            details["retry_after"] = retry_after

        super().__init__(
            message=message,
            status_code=429,
            error_code="rate_limit_exceeded",
            details=details,
        )


class StoreError(LinkGateException):
    """Raised when the key-value store cannot be read or written."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code="store_error",
            details=details,
        )
