"""
Base exception classes for application-wide error handling.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures (400)
    ├── NotFoundError - Resource not found (404)
    ├── PermissionDeniedError - Authorization failures (403)
    └── ExternalServiceError - Third-party service failures (500)

Each class declares the HTTP status views should answer with, so an API
view can turn any domain error into a response with a single handler:

    try:
        checkout = SubscriptionService.create_subscription(...)
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.status_code)

Note:
    These exceptions are for domain/business logic errors.
    DRF handles API-layer exceptions (serialization, authentication, etc.).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, upstream status, etc.)
        status_code: HTTP status an API view should map this error to
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Plan not found",
                "error_code": "PLAN_NOT_FOUND",
                "details": {"plan_id": "p1"}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails after the serializer layer.

    Example:
        if amount_cents <= min_amount_cents:
            raise ValidationError(
                "Amount is too low",
                error_code="AMOUNT_TOO_LOW",
                details={"amount_cents": amount_cents}
            )
    """

    default_error_code: str = "VALIDATION_ERROR"
    status_code: int = 400


class NotFoundError(BaseApplicationError):
    """Raised when a requested resource does not exist."""

    default_error_code: str = "NOT_FOUND"
    status_code: int = 404


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the caller may not act on a resource.

    Note:
        For authentication failures (missing/invalid API key), use DRF's
        AuthenticationFailed. Use this for authorization failures, e.g.
        cancelling a subscription owned by another customer.
    """

    default_error_code: str = "PERMISSION_DENIED"
    status_code: int = 403


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for the main service API and other upstreams. Log the original
    error for debugging; the client only sees ``message``.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    status_code: int = 500
