"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration.

Payment States (django-fsm, forward-only):
    pending → succeeded | failed | canceled
    failed → succeeded (retried invoice / intent paid) | canceled
    succeeded → failed (renewal invoice failed) | canceled
    canceled is terminal; nothing returns to pending.

WebhookEvent States:
    pending → processing → processed | failed
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    States for the Payment model lifecycle.

    Terminal state: CANCELED
    """

    PENDING = "PENDING", "Pending"
    SUCCEEDED = "SUCCEEDED", "Succeeded"
    FAILED = "FAILED", "Failed"
    CANCELED = "CANCELED", "Canceled"


class PaymentType(models.TextChoices):
    """Kind of purchase a Payment record tracks."""

    SUBSCRIPTION = "SUBSCRIPTION", "Subscription"
    TOKEN_PURCHASE = "TOKEN_PURCHASE", "Token Purchase"


class SubscriptionFlow(models.TextChoices):
    """
    Flow tag stamped into subscription metadata at creation time.

    Stripe echoes it back on every related event; only these two flows
    trigger a plan-change confirmation on the main service.
    """

    INITIAL_SUBSCRIPTION = "initial_subscription", "Initial Subscription"
    PLAN_CHANGE = "plan_change", "Plan Change"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for webhook events.

    PROCESSED events are acknowledged again on redelivery without being
    reapplied. FAILED events are reprocessed when Stripe redelivers them.
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class WebhookSource(models.TextChoices):
    """Which signed endpoint received a webhook event."""

    SUBSCRIPTIONS = "subscriptions", "Subscriptions"
    TOKEN_PURCHASES = "token_purchases", "Token Purchases"
