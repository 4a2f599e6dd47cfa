"""
Payment-specific exceptions.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Payment record lookup failures (404)
    ├── PaymentValidationError - Request/business validation failures (400)
    │   └── CustomerReferenceMissingError - Plan change for a user without
    │       a Stripe customer (400)
    └── PaymentProcessingError - Payment processing failures (500)
        └── StripeError - Base for all Stripe errors
            ├── StripeCardDeclinedError - Card declined (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            │   └── StripeResourceMissingError - Object does not exist
            ├── StripeRateLimitError - Rate limited (transient, retry)
            └── StripeAPIUnavailableError - API unavailable (transient, retry)

    SubscriptionOwnershipError - Subscription belongs to another customer (403)

    EntitlementServiceError - Main service call failed (500)
    └── EntitlementNotFoundError - Main service answered 404
    PlanNotFoundError - Requested plan does not exist (404)
    PlanConfigurationError - Plan has no Stripe price attached (500)

Usage:
    from payments.exceptions import StripeResourceMissingError

    try:
        stripe_adapter.cancel_subscription(subscription_id)
    except StripeResourceMissingError:
        # Already gone - cancelling is idempotent
        pass
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    Example:
        try:
            TokenPurchaseService.create_token_purchase(...)
        except PaymentError as e:
            return Response(e.to_dict(), status=e.status_code)
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """
    Raised when a payment record cannot be found.

    Example:
        payment = Payment.objects.filter(id=payment_id).first()
        if not payment:
            raise PaymentNotFoundError(
                "Payment not found",
                details={"payment_id": str(payment_id)}
            )
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"
    status_code: int = 404


class PaymentValidationError(PaymentError):
    """
    Raised when payment validation fails.

    Use for:
    - Non-positive token amounts
    - Amounts at or below the Stripe minimum charge
    - Missing required request fields
    """

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"
    status_code: int = 400


class CustomerReferenceMissingError(PaymentValidationError):
    """
    Raised when a plan change is requested for a user with no Stripe
    customer. Plan changes never create customers.
    """

    default_error_code: str = "STRIPE_CUSTOMER_MISSING"


class PaymentProcessingError(PaymentError):
    """Raised when payment processing fails upstream."""

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's error code (e.g. ``resource_missing``)
        decline_code: Card decline code (if applicable)
        is_retryable: True for transient errors safe to retry with backoff
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """Card was declined by the issuing bank."""

    default_error_code: str = "CARD_DECLINED"


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters or a failed signature verification.

    Examples:
    - Invalid price id on subscription create
    - Webhook signature mismatch
    - Invalid API key
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"


class StripeResourceMissingError(StripeInvalidRequestError):
    """
    The referenced Stripe object does not exist (``resource_missing``).

    Cancelling a subscription that raises this is treated as already done.
    """

    default_error_code: str = "STRIPE_RESOURCE_MISSING"


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Too many requests to the Stripe API."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """Stripe could not be reached or answered with a server error."""

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


# =============================================================================
# Subscription Ownership
# =============================================================================


class SubscriptionOwnershipError(PermissionDeniedError):
    """
    Raised when a subscription to cancel belongs to a different Stripe
    customer (or user) than the caller.
    """

    default_error_code: str = "SUBSCRIPTION_NOT_OWNED"


# =============================================================================
# Main Service (Entitlement) Exceptions
# =============================================================================


class EntitlementServiceError(ExternalServiceError):
    """
    Raised when a call to the main service fails.

    Attributes:
        upstream_status: HTTP status returned by the main service, or None
            when the request never got a response (timeout, DNS, ...)
    """

    default_error_code: str = "MAIN_SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        upstream_status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        super().__init__(message, error_code=error_code, details=details)
        self.upstream_status = upstream_status


class EntitlementNotFoundError(EntitlementServiceError):
    """The main service answered 404 for the requested resource."""

    default_error_code: str = "MAIN_SERVICE_NOT_FOUND"


class PlanNotFoundError(NotFoundError):
    """The requested plan does not exist on the main service."""

    default_error_code: str = "PLAN_NOT_FOUND"


class PlanConfigurationError(BaseApplicationError):
    """The plan exists but has no Stripe price attached."""

    default_error_code: str = "PLAN_MISCONFIGURED"
