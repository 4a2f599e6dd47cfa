"""
HTTP client for the main service that owns users, plans and websites.

The main service is the system of record for entitlements. This service
reads users and plans from it, stores the Stripe customer id on the user,
and reports confirmed payments back so plans and credits are applied.

Authentication:
    - User-scoped calls forward the caller's ``x-auth-token``
    - Website calls send the shared key as ``x-payment-service-api-key``

Only idempotent GETs are retried automatically. PUTs are sent once per
call; the main service deduplicates confirmations by payment id.

Usage:
    client = EntitlementClient(
        base_url="https://main.example.com/api",
        service_api_key="shared-key",
    )
    user = client.get_user("u1", auth_token="...")
    client.confirm_plan_change("w1", "p1", "sub_123", payment_id)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from payments.exceptions import EntitlementNotFoundError, EntitlementServiceError


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class MainServiceUser:
    """
    User as returned by ``GET /users/<id>``.

    Attributes:
        id: Main service user id (``_id``)
        email: User email, used when creating the Stripe customer
        stripe_customer_id: Stripe Customer ID (``stripeCusId``), if any
    """

    id: str
    email: str | None = None
    stripe_customer_id: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> MainServiceUser:
        return cls(
            id=str(payload.get("_id") or payload.get("id") or ""),
            email=payload.get("email"),
            stripe_customer_id=payload.get("stripeCusId") or None,
        )


@dataclass
class Plan:
    """
    Plan as returned by ``GET /plans/<id>``.

    Attributes:
        id: Plan id (``_id``)
        name: Display name used in payment descriptions
        price_monthly: Monthly price in major currency units
        stripe_price_id: Stripe Price ID; plans without one cannot be sold
    """

    id: str
    name: str
    price_monthly: Decimal
    stripe_price_id: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Plan:
        return cls(
            id=str(payload.get("_id") or payload.get("id") or ""),
            name=payload.get("name") or "",
            price_monthly=Decimal(str(payload.get("priceMonthly") or 0)),
            stripe_price_id=payload.get("stripePriceId") or None,
        )

    @property
    def price_monthly_cents(self) -> int:
        return int((self.price_monthly * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# =============================================================================
# Client
# =============================================================================


class EntitlementClient:
    """
    Client for the main service REST API.

    Args:
        base_url: Main service API root (no trailing slash needed)
        service_api_key: Shared key sent on service-to-service calls
        timeout_seconds: Per-request timeout
        max_retries: Retries for GETs on connection errors and 502/503/504
    """

    SERVICE_KEY_HEADER = "x-payment-service-api-key"
    AUTH_TOKEN_HEADER = "x-auth-token"

    def __init__(
        self,
        base_url: str,
        service_api_key: str,
        timeout_seconds: float = 10,
        max_retries: int = 2,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.service_api_key = service_api_key
        self.timeout_seconds = timeout_seconds
        self.session = session or self._build_session(max_retries)

    @staticmethod
    def _build_session(max_retries: int) -> requests.Session:
        retry = Retry(
            total=max_retries,
            backoff_factor=0.5,
            status_forcelist=(502, 503, 504),
            allowed_methods=frozenset({"GET"}),
            raise_on_status=False,
        )
        session = requests.Session()
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({"Accept": "application/json"})
        return session

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Users
    # =========================================================================

    def get_user(self, user_id: str, auth_token: str) -> MainServiceUser:
        """
        Fetch a user.

        Raises:
            EntitlementNotFoundError: User does not exist
            EntitlementServiceError: Any other failure
        """
        payload = self._request(
            "GET",
            f"/users/{user_id}",
            operation="get_user",
            headers={self.AUTH_TOKEN_HEADER: auth_token},
        )
        return MainServiceUser.from_payload(payload or {})

    def set_customer_id(self, user_id: str, customer_id: str, auth_token: str) -> None:
        """Store the Stripe customer id on the user."""
        self._request(
            "PUT",
            f"/users/{user_id}/customerId",
            operation="set_customer_id",
            json={"stripeCustomerId": customer_id},
            headers={self.AUTH_TOKEN_HEADER: auth_token},
        )

    # =========================================================================
    # Plans
    # =========================================================================

    def get_plan(self, plan_id: str) -> Plan:
        """
        Fetch plan details (public endpoint, no auth header).

        Raises:
            EntitlementNotFoundError: Plan does not exist
        """
        payload = self._request("GET", f"/plans/{plan_id}", operation="get_plan")
        return Plan.from_payload(payload or {})

    # =========================================================================
    # Websites
    # =========================================================================

    def confirm_plan_change(
        self,
        website_id: str,
        plan_id: str,
        subscription_id: str,
        payment_id: str,
    ) -> None:
        """Tell the main service a subscription for the plan is paid."""
        self._request(
            "PUT",
            f"/websites/{website_id}/confirm-plan-change",
            operation="confirm_plan_change",
            json={
                "newPlanId": plan_id,
                "newStripeSubscriptionId": subscription_id,
                "paymentId": str(payment_id),
            },
            headers={self.SERVICE_KEY_HEADER: self.service_api_key},
        )

    def add_credits(self, website_id: str, tokens: int, payment_id: str) -> None:
        """Credit purchased tokens to a website."""
        self._request(
            "PUT",
            f"/websites/{website_id}/add-credits",
            operation="add_credits",
            json={"tokensToAdd": tokens, "paymentId": str(payment_id)},
            headers={self.SERVICE_KEY_HEADER: self.service_api_key},
        )

    # =========================================================================
    # Transport
    # =========================================================================

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Perform one request and decode the JSON body.

        Raises:
            EntitlementNotFoundError: 404 response
            EntitlementServiceError: Transport error or other non-2xx response
        """
        logger = self.get_logger()
        url = f"{self.base_url}{path}"
        log_context = {"operation": operation, "method": method, "url": url}

        start_time = time.time()
        try:
            response = self.session.request(
                method,
                url,
                json=json,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.error(
                f"Main service request failed: {type(e).__name__}",
                extra={**log_context, "duration_ms": (time.time() - start_time) * 1000},
            )
            raise EntitlementServiceError(
                f"Main service unreachable during {operation}",
                details={"operation": operation, "error": str(e)},
            ) from e

        duration_ms = (time.time() - start_time) * 1000
        log_context = {
            **log_context,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }

        if response.status_code == 404:
            logger.warning("Main service resource not found", extra=log_context)
            raise EntitlementNotFoundError(
                f"Main service returned 404 during {operation}",
                upstream_status=404,
                details={"operation": operation},
            )

        if not response.ok:
            message = self._error_message(response)
            logger.error(
                "Main service returned an error",
                extra={**log_context, "upstream_error": message},
            )
            raise EntitlementServiceError(
                message or f"Main service returned {response.status_code} during {operation}",
                upstream_status=response.status_code,
                details={"operation": operation},
            )

        logger.info("Main service call completed", extra=log_context)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    @staticmethod
    def _error_message(response: requests.Response) -> str | None:
        """Pull ``message`` / ``error`` out of an error body, if JSON."""
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            return body.get("message") or body.get("error")
        return None
