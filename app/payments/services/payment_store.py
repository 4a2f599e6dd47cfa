"""
Payment record store.

PaymentStore is the single place that reads and writes Payment rows.
Orchestrators use it to seed PENDING records; the webhook reconciler uses
it to find records by Stripe reference, backfill missing ones and move
them through the state machine.

Status changes never raise for business reasons:
    - Applying the current status again is a no-op
    - A transition the state machine does not allow is logged and skipped

Usage:
    from payments.services import PaymentStore
    from payments.state_machines import PaymentStatus

    payment = PaymentStore.find_by_subscription("sub_123")
    result = PaymentStore.apply_status(payment, PaymentStatus.SUCCEEDED)
    if not result.success:
        ...  # transition was skipped, see result.error_code
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from django.utils import timezone

from django_fsm import can_proceed

from core.services import BaseService, ServiceResult

from payments.exceptions import PaymentNotFoundError
from payments.models import Payment
from payments.state_machines import PaymentStatus, PaymentType

if TYPE_CHECKING:
    from django.db.models import QuerySet


# Target status -> transition method on Payment
TRANSITIONS: dict[str, str] = {
    PaymentStatus.SUCCEEDED: "mark_succeeded",
    PaymentStatus.FAILED: "mark_failed",
    PaymentStatus.CANCELED: "mark_canceled",
}


class PaymentStore(BaseService):
    """
    Keyed persistence for Payment records.

    All methods are class methods - no instance state is maintained.
    """

    # =========================================================================
    # Lookups
    # =========================================================================

    @classmethod
    def get(cls, payment_id: uuid.UUID | str) -> Payment:
        """
        Get a payment by internal id.

        Raises:
            PaymentNotFoundError: No such payment
        """
        payment = Payment.objects.filter(id=payment_id).first()
        if payment is None:
            raise PaymentNotFoundError(
                "Payment not found",
                details={"payment_id": str(payment_id)},
            )
        return payment

    @classmethod
    def find_by_payment_intent(cls, payment_intent_id: str) -> Payment | None:
        return Payment.objects.for_payment_intent(payment_intent_id).first()

    @classmethod
    def find_by_subscription(cls, subscription_id: str) -> Payment | None:
        return Payment.objects.for_subscription(subscription_id).first()

    @classmethod
    def list_for_user(cls, user_id: str) -> QuerySet[Payment]:
        """All payments of a user, newest first."""
        return Payment.objects.for_user(user_id)

    # =========================================================================
    # Creation
    # =========================================================================

    @classmethod
    def create_pending(
        cls,
        *,
        user_id: str,
        website_id: str,
        payment_type: str,
        amount_cents: int,
        currency: str,
        description: str = "",
        stripe_payment_intent_id: str | None = None,
        stripe_subscription_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Payment:
        """Create a PENDING payment seeded by an orchestrator."""
        payment = Payment.objects.create(
            user_id=user_id,
            website_id=website_id,
            payment_type=payment_type,
            amount_cents=amount_cents,
            currency=currency.lower(),
            description=description,
            stripe_payment_intent_id=stripe_payment_intent_id,
            stripe_subscription_id=stripe_subscription_id,
            metadata=metadata or {},
        )

        cls.get_logger().info(
            "Payment created",
            extra={
                "payment_id": str(payment.id),
                "payment_type": payment_type,
                "amount_cents": amount_cents,
                "stripe_payment_intent_id": stripe_payment_intent_id,
                "stripe_subscription_id": stripe_subscription_id,
            },
        )
        return payment

    @classmethod
    def get_or_create_for_subscription(
        cls,
        subscription_id: str,
        *,
        user_id: str,
        website_id: str | None,
        amount_cents: int = 0,
        currency: str = "usd",
        description: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> tuple[Payment, bool]:
        """
        Find the record of a subscription, creating a PENDING one if absent.

        The unique ``stripe_subscription_id`` column keeps concurrent first
        sightings of the same subscription down to one row.

        Returns:
            (payment, created)
        """
        with cls.atomic():
            payment, created = Payment.objects.get_or_create(
                stripe_subscription_id=subscription_id,
                defaults={
                    "user_id": user_id,
                    "website_id": website_id or "unknown",
                    "payment_type": PaymentType.SUBSCRIPTION,
                    "amount_cents": amount_cents,
                    "currency": (currency or "usd").lower(),
                    "description": description,
                    "metadata": metadata or {},
                },
            )

        if created:
            cls.get_logger().info(
                "Payment backfilled for subscription",
                extra={
                    "payment_id": str(payment.id),
                    "stripe_subscription_id": subscription_id,
                    "user_id": user_id,
                },
            )
        return payment, created

    # =========================================================================
    # Updates
    # =========================================================================

    @classmethod
    def apply_status(
        cls,
        payment: Payment,
        status: str,
        reason: str | None = None,
    ) -> ServiceResult[Payment]:
        """
        Move a payment to ``status`` through its state machine.

        The row is locked for the duration of the check and the write.

        Returns:
            ServiceResult with the (reloaded) payment. Failure codes:
            - INVALID_STATUS: status has no transition (e.g. PENDING)
            - INVALID_TRANSITION: current status does not allow it
        """
        logger = cls.get_logger()
        log_context = {
            "payment_id": str(payment.id),
            "target_status": status,
        }

        method_name = TRANSITIONS.get(status)
        if method_name is None:
            logger.warning("No transition leads to status", extra=log_context)
            return ServiceResult.failure(
                f"Cannot move a payment to {status}",
                error_code="INVALID_STATUS",
            )

        with cls.atomic():
            locked = Payment.objects.select_for_update().get(pk=payment.pk)
            log_context["current_status"] = locked.status

            if locked.status == status:
                logger.debug("Payment already in target status", extra=log_context)
                return ServiceResult.success(locked)

            transition = getattr(locked, method_name)
            if not can_proceed(transition):
                logger.warning("Status transition not allowed, skipping", extra=log_context)
                return ServiceResult.failure(
                    f"Cannot move payment from {locked.status} to {status}",
                    error_code="INVALID_TRANSITION",
                )

            if status == PaymentStatus.FAILED:
                transition(reason=reason)
            else:
                transition()
            locked.save()

        logger.info("Payment status updated", extra=log_context)
        return ServiceResult.success(locked)

    @classmethod
    def correct_zero_amount(
        cls,
        payment: Payment,
        amount_cents: int,
        currency: str | None,
    ) -> Payment:
        """
        Fill in the amount of a record created before it was known.

        Only rows still at amount 0 are touched, so the first paid invoice
        wins and later ones never overwrite it.
        """
        if not amount_cents:
            return payment

        fields = {"amount_cents": amount_cents}
        if currency:
            fields["currency"] = currency.lower()

        updated = Payment.objects.filter(pk=payment.pk, amount_cents=0).update(
            updated_at=timezone.now(), **fields
        )
        if updated:
            for name, value in fields.items():
                setattr(payment, name, value)
            cls.get_logger().info(
                "Payment amount corrected from invoice",
                extra={"payment_id": str(payment.id), **fields},
            )
        return payment
