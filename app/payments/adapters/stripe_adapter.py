"""
Stripe API adapter for billing operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions used by the service: customers, subscriptions,
one-time PaymentIntents and webhook signature verification.

Features:
- API key and API version passed explicitly on every request (no
  module-level ``stripe.api_key``)
- Configurable timeout and network retries
- Automatic error translation to domain exceptions
- Structured logging with timing metrics

An adapter is built once per process by ``payments.context`` from Django
settings and injected wherever Stripe access is needed.

Usage:
    adapter = StripeAdapter(api_key="sk_test_...", api_version="2022-11-15")

    result = adapter.create_subscription(
        CreateSubscriptionParams(
            customer_id="cus_123",
            price_id="price_123",
            metadata={"appUserId": "u1", "websiteId": "w1", "planId": "p1"},
        )
    )
    client_secret = result.client_secret
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import stripe

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeResourceMissingError,
)


RESOURCE_MISSING = "resource_missing"


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreateCustomerParams:
    """
    Parameters for creating a Stripe Customer.

    Attributes:
        email: Customer email from the main service
        metadata: Key-value pairs (``appUserId`` links back to the user)
    """

    email: str | None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class CustomerResult:
    id: str
    email: str | None = None


@dataclass
class CreateSubscriptionParams:
    """
    Parameters for creating a Stripe Subscription.

    The subscription is created with ``payment_behavior=default_incomplete``
    so it stays incomplete until the first invoice is paid client-side
    with the returned client secret.

    Attributes:
        customer_id: Stripe Customer ID (cus_xxx)
        price_id: Stripe Price ID (price_xxx) of the plan
        metadata: Business context echoed back on every related event
    """

    customer_id: str
    price_id: str
    metadata: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.customer_id:
            raise ValueError("customer_id is required")
        if not self.price_id:
            raise ValueError("price_id is required")


@dataclass
class SubscriptionResult:
    """
    Result from Stripe Subscription operations.

    Attributes:
        id: Subscription ID (sub_xxx)
        status: incomplete, active, canceled, ...
        customer_id: Owning Stripe Customer ID
        currency: Subscription currency (lowercase)
        client_secret: Secret of the first invoice's PaymentIntent, only
            present on create
        metadata: Attached metadata
    """

    id: str
    status: str
    customer_id: str | None = None
    currency: str | None = None
    client_secret: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class CreatePaymentIntentParams:
    """
    Parameters for creating a one-time Stripe PaymentIntent.

    Attributes:
        amount_cents: Amount in smallest currency unit
        currency: ISO 4217 currency code
        metadata: Key-value pairs (userId, websiteId, tokensAmount)
    """

    amount_cents: int
    currency: str
    metadata: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.currency:
            raise ValueError("currency is required")


@dataclass
class PaymentIntentResult:
    id: str
    status: str
    amount_cents: int
    currency: str
    client_secret: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def _field(obj: Any, name: str) -> Any:
    """Read a field from a Stripe object or a plain dict, None if missing."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_id(value: Any) -> str | None:
    """Collapse an expandable field (id string or expanded object) to its id."""
    if value is None or isinstance(value, str):
        return value
    return _field(value, "id")


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    Holds only configuration; safe to share between request threads.

    Args:
        api_key: Stripe secret key
        api_version: Pinned Stripe API version sent with every request
        timeout_seconds: HTTP timeout for Stripe calls
        max_retries: Network retries performed by the Stripe client
    """

    def __init__(
        self,
        api_key: str,
        api_version: str | None = None,
        timeout_seconds: int = 10,
        max_retries: int = 2,
    ) -> None:
        self.api_key = api_key
        self.api_version = api_version
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self._configure_stripe()

    def _configure_stripe(self) -> None:
        """Configure the Stripe HTTP client with timeout and retries."""
        stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout_seconds)
        stripe.max_network_retries = self.max_retries

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    def _request_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"api_key": self.api_key}
        if self.api_version:
            options["stripe_version"] = self.api_version
        return options

    def _call(self, operation: str, log_context: dict[str, Any], func, *args, **kwargs):
        """
        Run one Stripe call with timing, logging and error translation.

        Raises:
            StripeError subclasses (see _handle_stripe_error)
        """
        logger = self.get_logger()
        log_context = {"operation": operation, **log_context}

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            result = func(*args, **kwargs, **self._request_options())
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "stripe_object_id": _field(result, "id"),
                "duration_ms": duration_ms,
            },
        )
        return result

    # =========================================================================
    # Customers
    # =========================================================================

    def create_customer(self, params: CreateCustomerParams) -> CustomerResult:
        """
        Create a Stripe Customer.

        Raises:
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
        """
        customer = self._call(
            "create_customer",
            {"app_user_id": params.metadata.get("appUserId")},
            stripe.Customer.create,
            email=params.email,
            metadata=params.metadata,
        )
        return CustomerResult(id=customer.id, email=_field(customer, "email"))

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def create_subscription(self, params: CreateSubscriptionParams) -> SubscriptionResult:
        """
        Create an incomplete Subscription and return its first-invoice
        client secret.

        Raises:
            StripeInvalidRequestError: Invalid customer or price
            StripeAPIUnavailableError: Stripe service unavailable
        """
        subscription = self._call(
            "create_subscription",
            {"customer_id": params.customer_id, "price_id": params.price_id},
            stripe.Subscription.create,
            customer=params.customer_id,
            items=[{"price": params.price_id}],
            payment_behavior="default_incomplete",
            expand=["latest_invoice.payment_intent"],
            metadata=params.metadata,
        )

        latest_invoice = _field(subscription, "latest_invoice")
        payment_intent = _field(latest_invoice, "payment_intent")

        return self._to_subscription_result(
            subscription,
            client_secret=_field(payment_intent, "client_secret"),
        )

    def retrieve_subscription(self, subscription_id: str) -> SubscriptionResult:
        """
        Retrieve a Subscription.

        Raises:
            StripeResourceMissingError: No such subscription
        """
        subscription = self._call(
            "retrieve_subscription",
            {"subscription_id": subscription_id},
            stripe.Subscription.retrieve,
            subscription_id,
        )
        return self._to_subscription_result(subscription)

    def cancel_subscription(
        self,
        subscription_id: str,
        invoice_now: bool = True,
    ) -> SubscriptionResult:
        """
        Cancel a Subscription immediately.

        Args:
            subscription_id: Subscription to cancel
            invoice_now: Generate a final invoice for pending usage/proration

        Raises:
            StripeResourceMissingError: Subscription no longer exists
        """
        subscription = self._call(
            "cancel_subscription",
            {"subscription_id": subscription_id},
            stripe.Subscription.cancel,
            subscription_id,
            invoice_now=invoice_now,
        )
        return self._to_subscription_result(subscription)

    @staticmethod
    def _to_subscription_result(
        subscription: Any,
        client_secret: str | None = None,
    ) -> SubscriptionResult:
        return SubscriptionResult(
            id=subscription.id,
            status=_field(subscription, "status"),
            customer_id=_as_id(_field(subscription, "customer")),
            currency=_field(subscription, "currency"),
            client_secret=client_secret,
            metadata=dict(_field(subscription, "metadata") or {}),
        )

    # =========================================================================
    # Payment Intents
    # =========================================================================

    def create_payment_intent(self, params: CreatePaymentIntentParams) -> PaymentIntentResult:
        """
        Create a one-time PaymentIntent.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
        """
        intent = self._call(
            "create_payment_intent",
            {"amount_cents": params.amount_cents, "currency": params.currency},
            stripe.PaymentIntent.create,
            amount=params.amount_cents,
            currency=params.currency,
            metadata=params.metadata,
        )
        return PaymentIntentResult(
            id=intent.id,
            status=_field(intent, "status"),
            amount_cents=_field(intent, "amount"),
            currency=_field(intent, "currency"),
            client_secret=_field(intent, "client_secret"),
            metadata=dict(_field(intent, "metadata") or {}),
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook_signature(
        self,
        payload: bytes,
        signature: str,
        secret: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw webhook payload bytes
            signature: Stripe-Signature header value
            secret: Signing secret of the endpoint that received it

        Returns:
            Parsed event data dict

        Raises:
            StripeInvalidRequestError: Invalid signature or payload
        """
        try:
            event = stripe.Webhook.construct_event(payload, signature, secret)
        except stripe.SignatureVerificationError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook payload",
                stripe_code="invalid_payload",
                details={"error": str(e)},
            ) from e
        return event.to_dict()

    # =========================================================================
    # Error Handling
    # =========================================================================

    def _handle_stripe_error(
        self,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeResourceMissingError: Referenced object does not exist
            StripeInvalidRequestError: Invalid request or authentication
            StripeRateLimitError: Rate limited
            StripeAPIUnavailableError: Connection or server error
        """
        logger = self.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            ) from error

        if isinstance(error, stripe.InvalidRequestError):
            if error.code == RESOURCE_MISSING:
                logger.warning(
                    "Stripe resource missing",
                    extra={**log_context, "stripe_code": error.code},
                )
                raise StripeResourceMissingError(
                    str(error.user_message or error),
                    stripe_code=error.code,
                ) from error

            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise StripeInvalidRequestError(
                str(error.user_message or error),
                stripe_code=error.code,
            ) from error

        if isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        if isinstance(error, stripe.APIConnectionError):
            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        if isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        if isinstance(error, stripe.StripeError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        logger.error(
            f"Unexpected error from Stripe: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise StripeAPIUnavailableError(
            f"Unexpected Stripe error: {error}",
            stripe_code="unknown_error",
        ) from error
