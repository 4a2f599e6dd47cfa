"""
Event correlation for verified Stripe webhook events.

EventCorrelator turns a raw event dict into a CorrelatedEvent: a typed
subject (what the event is about) plus the business identifiers
(user, website, plan, flow) needed to reconcile it.

Where identifiers come from:
    - customer.subscription.*: the subscription's own metadata
    - invoice.*: metadata of the invoice's subscription, fetched from Stripe
    - payment_intent.*: the PaymentIntent's own metadata
    - anything else: nothing (the reconciler logs and ignores it)

The subscription fetch for invoices is the only side effect, and it is
read-only. If it fails the identifiers are left empty.

Usage:
    correlator = EventCorrelator(ctx.stripe)
    event = correlator.correlate(event_data)
    if isinstance(event.subject, InvoiceSubject):
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from payments.exceptions import StripeError
from payments.metadata import (
    META_APP_USER_ID,
    META_FLOW,
    META_PLAN_ID,
    META_TOKENS_AMOUNT,
    META_USER_ID,
    META_WEBSITE_ID,
)

if TYPE_CHECKING:
    from payments.adapters import StripeAdapter


logger = logging.getLogger(__name__)


# =============================================================================
# Subjects
# =============================================================================


@dataclass(frozen=True)
class SubscriptionSubject:
    id: str
    customer_id: str | None
    status: str | None
    currency: str | None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InvoiceSubject:
    id: str
    subscription_id: str | None
    amount_paid: int
    currency: str | None
    customer_id: str | None


@dataclass(frozen=True)
class PaymentIntentSubject:
    id: str
    amount: int
    currency: str | None
    metadata: dict[str, Any] = field(default_factory=dict)
    last_error_message: str | None = None


@dataclass(frozen=True)
class UnhandledSubject:
    object_type: str | None = None


Subject = Union[SubscriptionSubject, InvoiceSubject, PaymentIntentSubject, UnhandledSubject]


@dataclass(frozen=True)
class CorrelatedContext:
    """
    Business identifiers recovered for an event. Any field may be None.

    Attributes:
        user_id: Main service user id
        website_id: Main service website id
        plan_id: Plan the subscription was created for
        subscription_id: Stripe Subscription ID
        payment_intent_id: Stripe PaymentIntent ID
        flow: ``initial_subscription`` or ``plan_change``
        tokens_amount: Tokens bought (token purchases only)
    """

    user_id: str | None = None
    website_id: str | None = None
    plan_id: str | None = None
    subscription_id: str | None = None
    payment_intent_id: str | None = None
    flow: str | None = None
    tokens_amount: int | None = None

    def as_log_context(self) -> dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass(frozen=True)
class CorrelatedEvent:
    event_id: str
    event_type: str
    subject: Subject
    context: CorrelatedContext


# =============================================================================
# Helpers
# =============================================================================


def _as_id(value: Any) -> str | None:
    """Collapse an expandable field (id string or expanded object) to its id."""
    if value is None or isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        return value.get("id")
    return getattr(value, "id", None)


def _parse_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-integer metadata value", extra={"value": value})
        return None


def invoice_subscription_id(invoice: dict[str, Any]) -> str | None:
    """
    Subscription referenced by an invoice.

    Older API versions put it on ``subscription``; newer ones nest it under
    ``parent.subscription_details.subscription``.
    """
    subscription_id = _as_id(invoice.get("subscription"))
    if subscription_id:
        return subscription_id

    parent = invoice.get("parent") or {}
    details = parent.get("subscription_details") or {}
    return _as_id(details.get("subscription"))


# =============================================================================
# Correlator
# =============================================================================


class EventCorrelator:
    """
    Classify events and recover their business identifiers.

    Args:
        stripe_adapter: Used to fetch an invoice's subscription metadata
    """

    def __init__(self, stripe_adapter: StripeAdapter) -> None:
        self.stripe = stripe_adapter

    def correlate(self, event: dict[str, Any]) -> CorrelatedEvent:
        event_id = event.get("id") or ""
        event_type = event.get("type") or ""
        obj = (event.get("data") or {}).get("object") or {}

        if event_type.startswith("customer.subscription."):
            subject, context = self._correlate_subscription(obj)
        elif event_type.startswith("invoice."):
            subject, context = self._correlate_invoice(obj, event_id)
        elif event_type.startswith("payment_intent."):
            subject, context = self._correlate_payment_intent(obj)
        else:
            subject, context = UnhandledSubject(obj.get("object")), CorrelatedContext()

        return CorrelatedEvent(
            event_id=event_id,
            event_type=event_type,
            subject=subject,
            context=context,
        )

    def _correlate_subscription(
        self, obj: dict[str, Any]
    ) -> tuple[SubscriptionSubject, CorrelatedContext]:
        metadata = dict(obj.get("metadata") or {})
        subject = SubscriptionSubject(
            id=obj.get("id") or "",
            customer_id=_as_id(obj.get("customer")),
            status=obj.get("status"),
            currency=obj.get("currency"),
            metadata=metadata,
        )
        return subject, self._subscription_context(subject.id, metadata)

    def _correlate_invoice(
        self, obj: dict[str, Any], event_id: str
    ) -> tuple[InvoiceSubject, CorrelatedContext]:
        subscription_id = invoice_subscription_id(obj)
        subject = InvoiceSubject(
            id=obj.get("id") or "",
            subscription_id=subscription_id,
            amount_paid=obj.get("amount_paid") or 0,
            currency=obj.get("currency"),
            customer_id=_as_id(obj.get("customer")),
        )

        if not subscription_id:
            return subject, CorrelatedContext()

        try:
            subscription = self.stripe.retrieve_subscription(subscription_id)
        except StripeError as e:
            logger.error(
                "Could not fetch subscription for invoice",
                extra={
                    "stripe_event_id": event_id,
                    "invoice_id": subject.id,
                    "subscription_id": subscription_id,
                    "error": e.message,
                },
            )
            return subject, CorrelatedContext(subscription_id=subscription_id)

        return subject, self._subscription_context(subscription_id, subscription.metadata)

    def _correlate_payment_intent(
        self, obj: dict[str, Any]
    ) -> tuple[PaymentIntentSubject, CorrelatedContext]:
        metadata = dict(obj.get("metadata") or {})
        last_error = obj.get("last_payment_error") or {}
        subject = PaymentIntentSubject(
            id=obj.get("id") or "",
            amount=obj.get("amount") or 0,
            currency=obj.get("currency"),
            metadata=metadata,
            last_error_message=last_error.get("message"),
        )
        context = CorrelatedContext(
            user_id=metadata.get(META_USER_ID) or metadata.get(META_APP_USER_ID),
            website_id=metadata.get(META_WEBSITE_ID),
            payment_intent_id=subject.id or None,
            tokens_amount=_parse_int(metadata.get(META_TOKENS_AMOUNT)),
        )
        return subject, context

    @staticmethod
    def _subscription_context(
        subscription_id: str, metadata: dict[str, Any]
    ) -> CorrelatedContext:
        return CorrelatedContext(
            user_id=metadata.get(META_APP_USER_ID),
            website_id=metadata.get(META_WEBSITE_ID),
            plan_id=metadata.get(META_PLAN_ID),
            subscription_id=subscription_id or None,
            flow=metadata.get(META_FLOW),
        )
