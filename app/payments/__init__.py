"""
Payments app for Stripe integration.

This app handles:
- Subscription lifecycle (create, change plan, cancel)
- One-time token purchases
- Webhook correlation and payment state reconciliation
- Entitlement confirmations to the main service

Usage:
    from payments.context import get_billing_context
    from payments.services import SubscriptionService

    checkout = SubscriptionService.create_subscription(
        get_billing_context(),
        user_id="u1",
        website_id="w1",
        plan_id="p1",
        auth_token=token,
    )
"""
