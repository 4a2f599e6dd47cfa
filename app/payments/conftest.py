"""
Pytest fixtures shared by all payment tests.

The billing context is replaced with mocks for every test that asks for
``billing_context``: Stripe and the main service are never called.

Usage:
    def test_purchase(billing_context):
        billing_context.stripe.create_payment_intent.return_value = ...
        TokenPurchaseService.create_token_purchase(billing_context, ...)
"""

from unittest.mock import MagicMock

import pytest

from payments.adapters import EntitlementClient, StripeAdapter
from payments.context import BillingConfig, BillingContext, set_billing_context
from payments.state_machines import PaymentStatus
from payments.tests.factories import PaymentFactory

SERVICE_API_KEY = "test-service-key"


# =============================================================================
# Billing Context
# =============================================================================


@pytest.fixture
def billing_config():
    return BillingConfig(
        token_coefficient=20,
        min_amount_cents=50,
        default_currency="usd",
        service_api_key=SERVICE_API_KEY,
        subscription_webhook_secret="whsec_subscriptions",
        purchase_webhook_secret="whsec_purchases",
    )


@pytest.fixture
def billing_context(billing_config):
    """Install a context with mocked Stripe and main service clients."""
    ctx = BillingContext(
        stripe=MagicMock(spec=StripeAdapter),
        entitlements=MagicMock(spec=EntitlementClient),
        config=billing_config,
    )
    set_billing_context(ctx)
    yield ctx
    set_billing_context(None)


# =============================================================================
# Payment Fixtures
# =============================================================================


@pytest.fixture
def pending_purchase(db):
    """Pending token purchase for website w1."""
    return PaymentFactory(
        user_id="u1",
        website_id="w1",
        stripe_payment_intent_id="pi_123",
        metadata={"tokensAmount": 100},
    )


@pytest.fixture
def pending_subscription(db):
    """Pending subscription record for sub_123."""
    return PaymentFactory(
        subscription=True,
        user_id="u1",
        website_id="w1",
        stripe_subscription_id="sub_123",
    )


@pytest.fixture
def succeeded_subscription(db):
    return PaymentFactory(
        subscription=True,
        user_id="u1",
        website_id="w1",
        stripe_subscription_id="sub_123",
        status=PaymentStatus.SUCCEEDED,
    )


@pytest.fixture
def canceled_subscription(db):
    return PaymentFactory(
        subscription=True,
        user_id="u1",
        website_id="w1",
        stripe_subscription_id="sub_123",
        status=PaymentStatus.CANCELED,
    )
