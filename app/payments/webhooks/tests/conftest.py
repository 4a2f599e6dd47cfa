"""
Pytest fixtures for webhook tests.

Provides builders for Stripe event payloads (as they arrive after
signature verification) and a request factory for the webhook views.
"""

import pytest
from django.test import RequestFactory


# =============================================================================
# Event Payload Builders
# =============================================================================


def subscription_event(
    event_type: str = "customer.subscription.created",
    subscription_id: str = "sub_123",
    metadata: dict | None = None,
    event_id: str = "evt_sub_1",
    currency: str = "usd",
) -> dict:
    return {
        "id": event_id,
        "type": event_type,
        "data": {
            "object": {
                "id": subscription_id,
                "object": "subscription",
                "customer": "cus_1",
                "status": "incomplete",
                "currency": currency,
                "metadata": (
                    metadata
                    if metadata is not None
                    else {
                        "appUserId": "u1",
                        "websiteId": "w1",
                        "planId": "p1",
                        "type": "initial_subscription",
                    }
                ),
            }
        },
    }


def invoice_event(
    event_type: str = "invoice.payment_succeeded",
    subscription_id: str | None = "sub_123",
    amount_paid: int = 2000,
    event_id: str = "evt_inv_1",
    invoice_id: str = "in_1",
) -> dict:
    return {
        "id": event_id,
        "type": event_type,
        "data": {
            "object": {
                "id": invoice_id,
                "object": "invoice",
                "customer": "cus_1",
                "subscription": subscription_id,
                "amount_paid": amount_paid,
                "currency": "usd",
            }
        },
    }


def payment_intent_event(
    event_type: str = "payment_intent.succeeded",
    payment_intent_id: str = "pi_123",
    metadata: dict | None = None,
    event_id: str = "evt_pi_1",
    last_error: str | None = None,
) -> dict:
    obj = {
        "id": payment_intent_id,
        "object": "payment_intent",
        "amount": 500,
        "currency": "usd",
        "metadata": (
            metadata
            if metadata is not None
            else {"userId": "u1", "websiteId": "w1", "tokensAmount": "100"}
        ),
    }
    if last_error:
        obj["last_payment_error"] = {"message": last_error}
    return {"id": event_id, "type": event_type, "data": {"object": obj}}


@pytest.fixture
def rf():
    """Request factory for creating test requests."""
    return RequestFactory()
