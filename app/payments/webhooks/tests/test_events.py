"""
Tests for event correlation.

Tests cover:
- Subject parsing per event family
- Identifier recovery from subscription / PaymentIntent metadata
- Invoice correlation through a subscription fetch, including failures
"""

from unittest.mock import MagicMock

import pytest

from payments.adapters import StripeAdapter, SubscriptionResult
from payments.exceptions import StripeAPIUnavailableError
from payments.webhooks.events import (
    CorrelatedContext,
    EventCorrelator,
    InvoiceSubject,
    PaymentIntentSubject,
    SubscriptionSubject,
    UnhandledSubject,
    invoice_subscription_id,
)

from .conftest import invoice_event, payment_intent_event, subscription_event


@pytest.fixture
def stripe_adapter():
    return MagicMock(spec=StripeAdapter)


@pytest.fixture
def correlator(stripe_adapter):
    return EventCorrelator(stripe_adapter)


class TestSubscriptionEvents:
    def test_reads_own_metadata(self, correlator, stripe_adapter):
        event = correlator.correlate(subscription_event())

        assert isinstance(event.subject, SubscriptionSubject)
        assert event.subject.customer_id == "cus_1"
        assert event.context == CorrelatedContext(
            user_id="u1",
            website_id="w1",
            plan_id="p1",
            subscription_id="sub_123",
            flow="initial_subscription",
        )
        stripe_adapter.retrieve_subscription.assert_not_called()

    def test_empty_metadata(self, correlator):
        event = correlator.correlate(subscription_event(metadata={}))

        assert event.context.user_id is None
        assert event.context.subscription_id == "sub_123"


class TestInvoiceEvents:
    def test_fetches_subscription_metadata(self, correlator, stripe_adapter):
        stripe_adapter.retrieve_subscription.return_value = SubscriptionResult(
            id="sub_123",
            status="active",
            metadata={"appUserId": "u1", "websiteId": "w1", "planId": "p1", "type": "plan_change"},
        )

        event = correlator.correlate(invoice_event())

        assert isinstance(event.subject, InvoiceSubject)
        assert event.subject.amount_paid == 2000
        assert event.context.user_id == "u1"
        assert event.context.flow == "plan_change"
        stripe_adapter.retrieve_subscription.assert_called_once_with("sub_123")

    def test_fetch_failure_keeps_subscription_id(self, correlator, stripe_adapter):
        stripe_adapter.retrieve_subscription.side_effect = StripeAPIUnavailableError("down")

        event = correlator.correlate(invoice_event())

        assert event.context == CorrelatedContext(subscription_id="sub_123")

    def test_invoice_without_subscription(self, correlator, stripe_adapter):
        event = correlator.correlate(invoice_event(subscription_id=None))

        assert event.context == CorrelatedContext()
        stripe_adapter.retrieve_subscription.assert_not_called()

    def test_subscription_id_from_parent(self):
        invoice = {
            "id": "in_1",
            "subscription": None,
            "parent": {"subscription_details": {"subscription": "sub_nested"}},
        }

        assert invoice_subscription_id(invoice) == "sub_nested"

    def test_expanded_subscription(self):
        assert invoice_subscription_id({"subscription": {"id": "sub_obj"}}) == "sub_obj"


class TestPaymentIntentEvents:
    def test_reads_metadata(self, correlator):
        event = correlator.correlate(payment_intent_event())

        assert isinstance(event.subject, PaymentIntentSubject)
        assert event.context.user_id == "u1"
        assert event.context.website_id == "w1"
        assert event.context.payment_intent_id == "pi_123"
        assert event.context.tokens_amount == 100

    def test_app_user_id_fallback(self, correlator):
        event = correlator.correlate(payment_intent_event(metadata={"appUserId": "u9"}))

        assert event.context.user_id == "u9"
        assert event.context.tokens_amount is None

    def test_bad_tokens_amount_is_ignored(self, correlator):
        event = correlator.correlate(payment_intent_event(metadata={"tokensAmount": "lots"}))

        assert event.context.tokens_amount is None

    def test_last_error_message(self, correlator):
        event = correlator.correlate(
            payment_intent_event(
                event_type="payment_intent.payment_failed", last_error="Card declined"
            )
        )

        assert event.subject.last_error_message == "Card declined"


class TestUnhandledEvents:
    def test_other_event_types(self, correlator):
        event = correlator.correlate(
            {"id": "evt_x", "type": "charge.refunded", "data": {"object": {"object": "charge"}}}
        )

        assert event.subject == UnhandledSubject("charge")
        assert event.context == CorrelatedContext()

    def test_as_log_context_drops_empty_fields(self):
        context = CorrelatedContext(user_id="u1", subscription_id="sub_1")

        assert context.as_log_context() == {"user_id": "u1", "subscription_id": "sub_1"}
