"""
Payment models.

- Payment: Internal ledger row for one subscription or token purchase attempt
- WebhookEvent: Audit log of verified Stripe webhook deliveries
"""

from payments.models.payment import Payment, PaymentQuerySet
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "Payment",
    "PaymentQuerySet",
    "WebhookEvent",
]
