"""
Payment model: the unit of reconciliation.

A Payment row tracks one payment attempt, either a recurring subscription
(correlated by Stripe subscription id) or a one-time token purchase
(correlated by Stripe PaymentIntent id). Rows are created PENDING by the
orchestrators, or lazily by webhook reconciliation when Stripe reports a
reference this service has not seen yet. They are never deleted.

Usage:
    from payments.models import Payment
    from payments.state_machines import PaymentStatus, PaymentType

    payment = Payment.objects.create(
        user_id="u1",
        website_id="w1",
        payment_type=PaymentType.TOKEN_PURCHASE,
        amount_cents=500,
        stripe_payment_intent_id="pi_123",
    )

    # State transitions using django-fsm
    payment.mark_succeeded()
    payment.save()
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin

from payments.state_machines import PaymentStatus, PaymentType


class PaymentQuerySet(models.QuerySet):
    """Lookups by correlation key."""

    def for_payment_intent(self, payment_intent_id: str) -> PaymentQuerySet:
        return self.filter(stripe_payment_intent_id=payment_intent_id)

    def for_subscription(self, subscription_id: str) -> PaymentQuerySet:
        return self.filter(stripe_subscription_id=subscription_id)

    def for_user(self, user_id: str) -> PaymentQuerySet:
        return self.filter(user_id=user_id).order_by("-created_at")


class Payment(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
    """
    Internal ledger row for one payment attempt.

    State Flow:
        PENDING -> SUCCEEDED | FAILED | CANCELED
        FAILED -> SUCCEEDED | CANCELED
        SUCCEEDED -> FAILED | CANCELED

    Fields:
        user_id / website_id: Identifiers owned by the main service
        payment_type: SUBSCRIPTION or TOKEN_PURCHASE
        amount_cents: Amount in smallest currency unit (0 allowed for
            backfilled subscription rows until the first invoice)
        currency: ISO 4217 code (lowercase)
        status: Current FSM state (protected, use transitions)
        stripe_payment_intent_id: PaymentIntent id (pi_xxx), unique
        stripe_subscription_id: Subscription id (sub_xxx), unique
        *_at timestamps: When each non-pending status was reached
        failure_reason: Last failure message reported by Stripe
    """

    # ==========================================================================
    # Ownership
    # ==========================================================================

    user_id = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Main service user id",
    )

    website_id = models.CharField(
        max_length=255,
        help_text="Main service website id ('unknown' for backfilled rows without one)",
    )

    # ==========================================================================
    # Amount & Type
    # ==========================================================================

    payment_type = models.CharField(
        max_length=20,
        choices=PaymentType.choices,
        help_text="Subscription or one-time token purchase",
    )

    amount_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Amount in smallest currency unit (e.g., cents)",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    description = models.CharField(
        max_length=255,
        blank=True,
        default="",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current payment status (managed by FSM)",
    )

    # ==========================================================================
    # Stripe Correlation Keys
    # ==========================================================================

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe PaymentIntent ID (pi_xxx) - one-time payments",
    )

    stripe_subscription_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Subscription ID (sub_xxx) - recurring payments",
    )

    # ==========================================================================
    # State Timestamps & Failure Info
    # ==========================================================================

    succeeded_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)

    failure_reason = models.TextField(
        null=True,
        blank=True,
        help_text="Last failure message reported by Stripe",
    )

    objects = PaymentQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(fields=["user_id", "created_at"], name="payment_user_created_idx"),
            models.Index(fields=["website_id", "status"], name="payment_website_status_idx"),
        ]

    def __str__(self) -> str:
        amount_display = f"{self.amount_cents / 100:.2f} {self.currency.upper()}"
        return f"Payment({self.id}, {self.status}, {amount_display})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=[PaymentStatus.PENDING, PaymentStatus.FAILED],
        target=PaymentStatus.SUCCEEDED,
    )
    def mark_succeeded(self):
        """
        Transition: PENDING/FAILED -> SUCCEEDED

        Stripe confirmed the invoice or PaymentIntent was paid.
        """
        self.succeeded_at = timezone.now()
        self.failure_reason = None

    @transition(
        field=status,
        source=[PaymentStatus.PENDING, PaymentStatus.SUCCEEDED],
        target=PaymentStatus.FAILED,
    )
    def mark_failed(self, reason: str | None = None):
        """
        Transition: PENDING/SUCCEEDED -> FAILED

        SUCCEEDED -> FAILED covers a renewal invoice failing on the
        subscription's current record.
        """
        self.failed_at = timezone.now()
        if reason:
            self.failure_reason = reason

    @transition(
        field=status,
        source=[
            PaymentStatus.PENDING,
            PaymentStatus.SUCCEEDED,
            PaymentStatus.FAILED,
        ],
        target=PaymentStatus.CANCELED,
    )
    def mark_canceled(self):
        """Transition: any non-terminal status -> CANCELED"""
        self.canceled_at = timezone.now()
