"""
Billing context: the collaborators every billing operation needs.

A BillingContext bundles the Stripe adapter, the main service client and
the billing constants. It is built once per process from Django settings
and passed explicitly to the correlator, reconciler and orchestrators.

Usage:
    from payments.context import get_billing_context

    ctx = get_billing_context()
    SubscriptionService.create_subscription(ctx, user_id="u1", ...)

Tests swap the context with ``set_billing_context(...)`` and reset it with
``set_billing_context(None)``.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from django.conf import settings

from payments.adapters import EntitlementClient, StripeAdapter


@dataclass(frozen=True)
class BillingConfig:
    """
    Billing constants read from settings.

    Attributes:
        token_coefficient: Tokens per one unit of currency
        min_amount_cents: Purchases at or below this amount are rejected
        default_currency: Currency used when a request names none
        service_api_key: Shared key for service-to-service calls
        subscription_webhook_secret: Signing secret of the subscription endpoint
        purchase_webhook_secret: Signing secret of the token purchase endpoint
    """

    token_coefficient: int = 20
    min_amount_cents: int = 50
    default_currency: str = "usd"
    service_api_key: str = ""
    subscription_webhook_secret: str = ""
    purchase_webhook_secret: str = ""

    @classmethod
    def from_settings(cls) -> BillingConfig:
        return cls(
            token_coefficient=settings.TOKEN_COEFFICIENT_MULTIPLIER,
            min_amount_cents=settings.MIN_CHARGE_AMOUNT_CENTS,
            default_currency=settings.DEFAULT_CURRENCY,
            service_api_key=settings.PAYMENT_SERVICE_API_KEY,
            subscription_webhook_secret=settings.STRIPE_SUBSCRIPTION_WEBHOOK_SECRET,
            purchase_webhook_secret=settings.STRIPE_PURCHASE_WEBHOOK_SECRET,
        )


@dataclass
class BillingContext:
    stripe: StripeAdapter
    entitlements: EntitlementClient
    config: BillingConfig

    @classmethod
    def from_settings(cls) -> BillingContext:
        return cls(
            stripe=StripeAdapter(
                api_key=settings.STRIPE_SECRET_KEY,
                api_version=settings.STRIPE_API_VERSION,
                timeout_seconds=settings.STRIPE_API_TIMEOUT_SECONDS,
                max_retries=settings.STRIPE_MAX_RETRIES,
            ),
            entitlements=EntitlementClient(
                base_url=settings.MAIN_SERVICE_API_BASE_URL,
                service_api_key=settings.PAYMENT_SERVICE_API_KEY,
                timeout_seconds=settings.MAIN_SERVICE_TIMEOUT_SECONDS,
                max_retries=settings.MAIN_SERVICE_MAX_RETRIES,
            ),
            config=BillingConfig.from_settings(),
        )


_context: BillingContext | None = None
_lock = threading.Lock()


def get_billing_context() -> BillingContext:
    """Return the process-wide context, building it on first use."""
    global _context
    if _context is None:
        with _lock:
            if _context is None:
                _context = BillingContext.from_settings()
    return _context


def set_billing_context(context: BillingContext | None) -> None:
    """Replace the process-wide context (None rebuilds it on next use)."""
    global _context
    with _lock:
        _context = context
