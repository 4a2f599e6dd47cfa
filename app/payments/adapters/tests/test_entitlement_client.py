"""
Tests for the main service client.

Tests cover:
- Payload parsing (users, plans)
- Request shape (paths, headers, bodies) for each operation
- Error mapping (404, other non-2xx, transport errors)
- Retry configuration of the default session
"""

from decimal import Decimal

import pytest
import requests

from payments.adapters import EntitlementClient, MainServiceUser, Plan
from payments.exceptions import EntitlementNotFoundError, EntitlementServiceError

from .conftest import make_response


# =============================================================================
# Payload Parsing
# =============================================================================


class TestMainServiceUser:
    def test_from_payload(self):
        user = MainServiceUser.from_payload(
            {"_id": "u1", "email": "user@example.com", "stripeCusId": "cus_1"}
        )

        assert user.id == "u1"
        assert user.email == "user@example.com"
        assert user.stripe_customer_id == "cus_1"

    def test_empty_customer_id_is_none(self):
        user = MainServiceUser.from_payload({"id": "u1", "stripeCusId": ""})

        assert user.stripe_customer_id is None


class TestPlan:
    def test_from_payload(self):
        plan = Plan.from_payload(
            {
                "_id": "p1",
                "name": "Pro",
                "priceMonthly": 19.99,
                "stripePriceId": "price_1",
            }
        )

        assert plan.id == "p1"
        assert plan.price_monthly == Decimal("19.99")
        assert plan.price_monthly_cents == 1999
        assert plan.stripe_price_id == "price_1"

    def test_price_rounds_half_up(self):
        plan = Plan(id="p1", name="Odd", price_monthly=Decimal("0.125"))

        assert plan.price_monthly_cents == 13

    def test_missing_price_is_zero(self):
        plan = Plan.from_payload({"_id": "free", "name": "Free"})

        assert plan.price_monthly_cents == 0
        assert plan.stripe_price_id is None


# =============================================================================
# Operations
# =============================================================================


class TestEntitlementClientRequests:
    def test_get_user_forwards_auth_token(self, entitlement_client, http_session):
        http_session.request.return_value = make_response(
            200, {"_id": "u1", "email": "user@example.com", "stripeCusId": None}
        )

        user = entitlement_client.get_user("u1", auth_token="tok")

        assert user.id == "u1"
        assert user.stripe_customer_id is None
        args, kwargs = http_session.request.call_args
        assert args == ("GET", "https://main.example.com/api/users/u1")
        assert kwargs["headers"] == {"x-auth-token": "tok"}
        assert kwargs["timeout"] == 10

    def test_set_customer_id(self, entitlement_client, http_session):
        http_session.request.return_value = make_response(204)

        entitlement_client.set_customer_id("u1", "cus_1", auth_token="tok")

        args, kwargs = http_session.request.call_args
        assert args == ("PUT", "https://main.example.com/api/users/u1/customerId")
        assert kwargs["json"] == {"stripeCustomerId": "cus_1"}
        assert kwargs["headers"] == {"x-auth-token": "tok"}

    def test_get_plan_sends_no_auth(self, entitlement_client, http_session):
        http_session.request.return_value = make_response(
            200, {"_id": "p1", "name": "Pro", "priceMonthly": 20, "stripePriceId": "price_1"}
        )

        plan = entitlement_client.get_plan("p1")

        assert plan.price_monthly_cents == 2000
        assert http_session.request.call_args.kwargs["headers"] is None

    def test_confirm_plan_change_uses_service_key(self, entitlement_client, http_session):
        http_session.request.return_value = make_response(200, {"ok": True})

        entitlement_client.confirm_plan_change("w1", "p1", "sub_1", "pay-1")

        args, kwargs = http_session.request.call_args
        assert args == ("PUT", "https://main.example.com/api/websites/w1/confirm-plan-change")
        assert kwargs["json"] == {
            "newPlanId": "p1",
            "newStripeSubscriptionId": "sub_1",
            "paymentId": "pay-1",
        }
        assert kwargs["headers"] == {"x-payment-service-api-key": "svc-key"}

    def test_add_credits(self, entitlement_client, http_session):
        http_session.request.return_value = make_response(200, {"ok": True})

        entitlement_client.add_credits("w1", 100, "pay-1")

        args, kwargs = http_session.request.call_args
        assert args == ("PUT", "https://main.example.com/api/websites/w1/add-credits")
        assert kwargs["json"] == {"tokensToAdd": 100, "paymentId": "pay-1"}
        assert kwargs["headers"] == {"x-payment-service-api-key": "svc-key"}


# =============================================================================
# Error Mapping
# =============================================================================


class TestEntitlementClientErrors:
    def test_404_raises_not_found(self, entitlement_client, http_session):
        http_session.request.return_value = make_response(404, {"message": "Plan not found"})

        with pytest.raises(EntitlementNotFoundError) as exc_info:
            entitlement_client.get_plan("missing")

        assert exc_info.value.upstream_status == 404

    def test_error_status_uses_upstream_message(self, entitlement_client, http_session):
        http_session.request.return_value = make_response(401, {"message": "Invalid token"})

        with pytest.raises(EntitlementServiceError) as exc_info:
            entitlement_client.get_user("u1", auth_token="bad")

        assert exc_info.value.message == "Invalid token"
        assert exc_info.value.upstream_status == 401
        assert not isinstance(exc_info.value, EntitlementNotFoundError)

    def test_error_status_without_json_body(self, entitlement_client, http_session):
        http_session.request.return_value = make_response(500)

        with pytest.raises(EntitlementServiceError) as exc_info:
            entitlement_client.add_credits("w1", 100, "pay-1")

        assert "500" in exc_info.value.message

    def test_transport_error(self, entitlement_client, http_session):
        http_session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(EntitlementServiceError) as exc_info:
            entitlement_client.get_user("u1", auth_token="tok")

        assert exc_info.value.upstream_status is None
        assert exc_info.value.details["operation"] == "get_user"


class TestDefaultSession:
    def test_only_gets_are_retried(self):
        client = EntitlementClient(
            base_url="https://main.example.com/api",
            service_api_key="svc-key",
            max_retries=3,
        )

        retry = client.session.get_adapter("https://main.example.com").max_retries
        assert retry.total == 3
        assert retry.allowed_methods == frozenset({"GET"})
        assert 503 in retry.status_forcelist
