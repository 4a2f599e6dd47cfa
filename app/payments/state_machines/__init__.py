"""
State machine enums for payment models.
"""

from payments.state_machines.states import (
    PaymentStatus,
    PaymentType,
    SubscriptionFlow,
    WebhookEventStatus,
    WebhookSource,
)

__all__ = [
    "PaymentStatus",
    "PaymentType",
    "SubscriptionFlow",
    "WebhookEventStatus",
    "WebhookSource",
]
