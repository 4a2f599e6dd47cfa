"""
Tests for payment domain models.

Tests model field constraints, defaults, querysets and basic
functionality for Payment and WebhookEvent.
"""

import uuid
from datetime import timedelta

import pytest
from django.db import IntegrityError
from django.utils import timezone

from payments.models import Payment, WebhookEvent
from payments.state_machines import (
    PaymentStatus,
    PaymentType,
    WebhookEventStatus,
    WebhookSource,
)
from payments.tests.factories import PaymentFactory, WebhookEventFactory


# =============================================================================
# Payment Tests
# =============================================================================


class TestPaymentModel:
    """Tests for Payment model."""

    def test_create_with_required_fields(self, db):
        payment = Payment.objects.create(
            user_id="u1",
            website_id="w1",
            payment_type=PaymentType.TOKEN_PURCHASE,
            amount_cents=500,
            stripe_payment_intent_id="pi_123",
        )

        assert isinstance(payment.pk, uuid.UUID)
        assert payment.status == PaymentStatus.PENDING
        assert payment.currency == "usd"
        assert payment.metadata == {}
        assert payment.stripe_subscription_id is None

    def test_payment_intent_id_unique(self, db):
        PaymentFactory(stripe_payment_intent_id="pi_dup")

        with pytest.raises(IntegrityError):
            PaymentFactory(stripe_payment_intent_id="pi_dup")

    def test_subscription_id_unique(self, db):
        PaymentFactory(subscription=True, stripe_subscription_id="sub_dup")

        with pytest.raises(IntegrityError):
            PaymentFactory(subscription=True, stripe_subscription_id="sub_dup")

    def test_many_rows_without_references(self, db):
        """NULL references do not collide on the unique columns."""
        PaymentFactory(stripe_payment_intent_id=None)
        PaymentFactory(stripe_payment_intent_id=None)

        assert Payment.objects.filter(stripe_payment_intent_id__isnull=True).count() == 2

    def test_status_is_protected(self, db):
        payment = PaymentFactory()

        with pytest.raises(AttributeError):
            payment.status = PaymentStatus.SUCCEEDED

    def test_str(self, db):
        payment = PaymentFactory(amount_cents=1999, currency="usd")

        assert str(payment) == f"Payment({payment.id}, PENDING, 19.99 USD)"


class TestPaymentQuerySet:
    def test_for_payment_intent(self, db, pending_purchase):
        assert Payment.objects.for_payment_intent("pi_123").get() == pending_purchase

    def test_for_subscription(self, db, pending_subscription):
        assert Payment.objects.for_subscription("sub_123").get() == pending_subscription

    def test_for_user_newest_first(self, db):
        first = PaymentFactory(user_id="u1")
        second = PaymentFactory(user_id="u1")
        Payment.objects.filter(pk=first.pk).update(
            created_at=timezone.now() - timedelta(hours=1)
        )
        PaymentFactory(user_id="u2")

        assert list(Payment.objects.for_user("u1")) == [second, first]


# =============================================================================
# WebhookEvent Tests
# =============================================================================


class TestWebhookEventModel:
    """Tests for WebhookEvent model."""

    def test_stripe_event_id_unique(self, db):
        WebhookEventFactory(stripe_event_id="evt_dup")

        with pytest.raises(IntegrityError):
            WebhookEventFactory(stripe_event_id="evt_dup")

    def test_processing_lifecycle(self, db):
        event = WebhookEventFactory()

        event.mark_processing()
        assert event.status == WebhookEventStatus.PROCESSING
        assert event.attempts == 1

        event.mark_failed("boom")
        assert event.status == WebhookEventStatus.FAILED
        assert event.error_message == "boom"
        assert event.is_processed is False

        event.mark_processing()
        event.mark_processed()
        event.save()

        event = WebhookEvent.objects.get(pk=event.pk)
        assert event.is_processed is True
        assert event.attempts == 2
        assert event.error_message is None
        assert event.processed_at is not None

    def test_source_choices(self, db):
        event = WebhookEventFactory(source=WebhookSource.SUBSCRIPTIONS)

        assert event.get_source_display() == "Subscriptions"
