"""
Adapters for the external services billing depends on.

All outbound calls go through these adapters so that timeouts, retries,
error translation and logging are handled in one place:

- StripeAdapter: customers, subscriptions, PaymentIntents, webhook
  signature verification
- EntitlementClient: the main service (users, plans, website entitlements)

Usage:
    from payments.adapters import CreatePaymentIntentParams
    from payments.context import get_billing_context

    ctx = get_billing_context()
    result = ctx.stripe.create_payment_intent(
        CreatePaymentIntentParams(amount_cents=500, currency="usd")
    )
    ctx.entitlements.add_credits("w1", 100, payment_id)
"""

from payments.adapters.entitlement_client import (
    EntitlementClient,
    MainServiceUser,
    Plan,
)
from payments.adapters.stripe_adapter import (
    CreateCustomerParams,
    CreatePaymentIntentParams,
    CreateSubscriptionParams,
    CustomerResult,
    PaymentIntentResult,
    StripeAdapter,
    SubscriptionResult,
)

__all__ = [
    "CreateCustomerParams",
    "CreatePaymentIntentParams",
    "CreateSubscriptionParams",
    "CustomerResult",
    "EntitlementClient",
    "MainServiceUser",
    "PaymentIntentResult",
    "Plan",
    "StripeAdapter",
    "SubscriptionResult",
]
