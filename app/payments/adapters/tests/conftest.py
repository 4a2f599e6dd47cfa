"""
Pytest fixtures for adapter tests.

This module provides fixtures for testing the Stripe adapter and the main
service client: mock Stripe API objects, Stripe errors and a mocked HTTP
session.

Sections:
    - Mock Stripe Object Fixtures
    - Mock Stripe Error Fixtures
    - Mock Stripe Client Fixtures
    - Main Service Fixtures
"""

from dataclasses import dataclass
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import requests
import stripe

from payments.adapters import EntitlementClient, StripeAdapter


# =============================================================================
# Mock Stripe Object Fixtures
# =============================================================================


@dataclass
class MockStripeObject:
    """Mock Stripe API object with to_dict support."""

    data: dict[str, Any]

    def __getattr__(self, name: str) -> Any:
        if name == "data":
            return self.__dict__["data"]
        return self.data.get(name)

    def to_dict(self) -> dict[str, Any]:
        return self.data


@pytest.fixture
def mock_customer():
    """Create a mock Customer response."""

    def _create(id: str = "cus_test123", email: str = "user@example.com") -> MockStripeObject:
        return MockStripeObject({"id": id, "object": "customer", "email": email})

    return _create


@pytest.fixture
def mock_subscription():
    """Create a mock Subscription response."""

    def _create(
        id: str = "sub_test123",
        status: str = "incomplete",
        customer: Any = "cus_test123",
        currency: str = "usd",
        metadata: dict | None = None,
        client_secret: str | None = None,
    ) -> MockStripeObject:
        data = {
            "id": id,
            "object": "subscription",
            "status": status,
            "customer": customer,
            "currency": currency,
            "metadata": metadata or {},
        }
        if client_secret:
            data["latest_invoice"] = MockStripeObject(
                {
                    "id": "in_test123",
                    "payment_intent": MockStripeObject(
                        {"id": "pi_test123", "client_secret": client_secret}
                    ),
                }
            )
        return MockStripeObject(data)

    return _create


@pytest.fixture
def mock_payment_intent():
    """Create a mock PaymentIntent response."""

    def _create(
        id: str = "pi_test123456",
        status: str = "requires_payment_method",
        amount: int = 500,
        currency: str = "usd",
        client_secret: str = "pi_test123456_secret_abc123",
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "payment_intent",
                "status": status,
                "amount": amount,
                "currency": currency,
                "client_secret": client_secret,
                "metadata": metadata or {},
            }
        )

    return _create


# =============================================================================
# Mock Stripe Error Fixtures
# =============================================================================


@pytest.fixture
def card_error():
    """Create a Stripe CardError."""
    error = stripe.CardError(
        message="Your card was declined.",
        param=None,
        code="card_declined",
    )
    error.decline_code = "generic_decline"
    return error


@pytest.fixture
def invalid_request_error():
    """Create a Stripe InvalidRequestError."""

    def _create(
        message: str = "No such subscription: 'sub_missing'",
        param: str | None = "id",
        code: str | None = "resource_missing",
    ) -> stripe.InvalidRequestError:
        return stripe.InvalidRequestError(message=message, param=param, code=code)

    return _create


@pytest.fixture
def rate_limit_error():
    return stripe.RateLimitError(message="Too many requests hit the API too quickly.")


@pytest.fixture
def api_connection_error():
    return stripe.APIConnectionError(message="Could not connect to Stripe.")


@pytest.fixture
def api_error():
    return stripe.APIError(message="Something went wrong on Stripe's end.")


@pytest.fixture
def authentication_error():
    return stripe.AuthenticationError(message="Invalid API Key provided.")


@pytest.fixture
def signature_verification_error():
    return stripe.SignatureVerificationError(
        message="Unable to verify webhook signature.",
        sig_header="bad_signature",
    )


# =============================================================================
# Mock Stripe Client Fixtures
# =============================================================================


@pytest.fixture
def adapter():
    return StripeAdapter(api_key="sk_test_123", api_version="2022-11-15")


@pytest.fixture
def mock_stripe_customer(mock_customer):
    """Mock stripe.Customer API."""
    with patch("stripe.Customer") as mock:
        mock.create.return_value = mock_customer()
        yield mock


@pytest.fixture
def mock_stripe_subscription(mock_subscription):
    """Mock stripe.Subscription API."""
    with patch("stripe.Subscription") as mock:
        mock.create.return_value = mock_subscription(client_secret="pi_test123_secret_abc")
        mock.retrieve.return_value = mock_subscription(status="active")
        mock.cancel.return_value = mock_subscription(status="canceled")
        yield mock


@pytest.fixture
def mock_stripe_payment_intent(mock_payment_intent):
    """Mock stripe.PaymentIntent API."""
    with patch("stripe.PaymentIntent") as mock:
        mock.create.return_value = mock_payment_intent()
        yield mock


@pytest.fixture
def mock_stripe_webhook():
    """Mock stripe.Webhook API."""
    with patch("stripe.Webhook") as mock:
        mock.construct_event.return_value = MockStripeObject(
            {
                "id": "evt_test123",
                "type": "payment_intent.succeeded",
                "data": {"object": {"id": "pi_test123", "object": "payment_intent"}},
            }
        )
        yield mock


# =============================================================================
# Main Service Fixtures
# =============================================================================


def make_response(status_code: int = 200, json_body: Any = None) -> MagicMock:
    """Build a mock ``requests.Response``."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.ok = status_code < 400
    if json_body is None:
        response.content = b""
        response.json.side_effect = ValueError("No JSON")
    else:
        response.content = b"{...}"
        response.json.return_value = json_body
    return response


@pytest.fixture
def http_session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def entitlement_client(http_session):
    return EntitlementClient(
        base_url="https://main.example.com/api/",
        service_api_key="svc-key",
        session=http_session,
    )
