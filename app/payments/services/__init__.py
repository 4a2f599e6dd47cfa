"""
Payment services.

This module provides:
- PaymentStore: Keyed persistence and state transitions for Payment rows
- SubscriptionService: Create, change plan and cancel subscriptions
- TokenPurchaseService: One-time token purchases

Usage:
    from payments.context import get_billing_context
    from payments.services import SubscriptionService, TokenPurchaseService

    ctx = get_billing_context()

    checkout = SubscriptionService.create_subscription(
        ctx, user_id="u1", website_id="w1", plan_id="p1", auth_token=token
    )

    purchase = TokenPurchaseService.create_token_purchase(
        ctx, user_id="u1", website_id="w1", tokens_amount=100
    )
"""

from payments.services.payment_store import PaymentStore
from payments.services.subscription_service import (
    SubscriptionCancellation,
    SubscriptionCheckout,
    SubscriptionService,
)
from payments.services.token_purchase_service import (
    TokenPurchaseCheckout,
    TokenPurchaseService,
    tokens_to_amount_cents,
)

__all__ = [
    "PaymentStore",
    "SubscriptionCancellation",
    "SubscriptionCheckout",
    "SubscriptionService",
    "TokenPurchaseCheckout",
    "TokenPurchaseService",
    "tokens_to_amount_cents",
]
