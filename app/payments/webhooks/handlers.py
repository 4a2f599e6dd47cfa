"""
Reconciliation handlers for correlated Stripe events.

This module provides a handler registry and the per-event-type policy that
moves Payment records through their state machine and triggers entitlement
confirmations on the main service.

Handlers never raise for business reasons. A missing identifier, an
unknown record or a disallowed transition is logged and reported through
the returned ServiceResult; the webhook is acknowledged either way.
Main service failures are logged and swallowed (no retry).

Usage:
    from payments.webhooks.handlers import reconcile, register_handler

    @register_handler("custom.event")
    def handle_custom_event(event: CorrelatedEvent, ctx: BillingContext) -> ServiceResult:
        ...

    result = reconcile(correlated_event, ctx)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from core.services import ServiceResult

from payments.exceptions import EntitlementServiceError
from payments.metadata import META_TOKENS_AMOUNT
from payments.services import PaymentStore
from payments.state_machines import PaymentStatus, SubscriptionFlow
from payments.webhooks.events import (
    CorrelatedEvent,
    InvoiceSubject,
    PaymentIntentSubject,
    SubscriptionSubject,
)

if TYPE_CHECKING:
    from payments.context import BillingContext
    from payments.models import Payment


logger = logging.getLogger(__name__)

Handler = Callable[[CorrelatedEvent, "BillingContext"], ServiceResult]

CONFIRMING_FLOWS = frozenset(
    {SubscriptionFlow.INITIAL_SUBSCRIPTION, SubscriptionFlow.PLAN_CHANGE}
)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
RECONCILIATION_HANDLERS: dict[str, Handler] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a reconciliation handler.

    Args:
        event_type: The Stripe event type (e.g., "invoice.payment_succeeded")
    """

    def decorator(func: Handler) -> Handler:
        RECONCILIATION_HANDLERS[event_type] = func
        logger.debug(f"Registered reconciliation handler for {event_type}")
        return func

    return decorator


def reconcile(event: CorrelatedEvent, ctx: BillingContext) -> ServiceResult:
    """
    Dispatch a correlated event to its handler.

    Unhandled event types are logged and reported as success.
    """
    handler = RECONCILIATION_HANDLERS.get(event.event_type)
    log_context = {
        "stripe_event_id": event.event_id,
        "event_type": event.event_type,
        **event.context.as_log_context(),
    }

    if not handler:
        logger.info(
            f"Unhandled event type: {event.event_type}",
            extra=log_context,
        )
        return ServiceResult.success(None)

    logger.info(f"Reconciling {event.event_type}", extra=log_context)
    return handler(event, ctx)


def _skip(event: CorrelatedEvent, reason: str, error_code: str) -> ServiceResult:
    logger.warning(
        f"{event.event_type}: {reason}",
        extra={
            "stripe_event_id": event.event_id,
            "event_type": event.event_type,
            **event.context.as_log_context(),
        },
    )
    return ServiceResult.failure(reason, error_code=error_code)


# =============================================================================
# Subscription Handlers
# =============================================================================


@register_handler("customer.subscription.created")
def handle_subscription_created(event: CorrelatedEvent, ctx: BillingContext) -> ServiceResult:
    """
    Make sure a record exists for a new subscription.

    Subscriptions created through this service already have a PENDING
    record. Ones created elsewhere (dashboard, another client) are
    backfilled with amount 0 until their first invoice is paid. A record
    that already moved past PENDING is left as it is.
    """
    context = event.context
    if not context.user_id or not context.subscription_id:
        return _skip(event, "missing user id or subscription id", "MISSING_CONTEXT")

    currency = None
    if isinstance(event.subject, SubscriptionSubject):
        currency = event.subject.currency

    payment, created = PaymentStore.get_or_create_for_subscription(
        context.subscription_id,
        user_id=context.user_id,
        website_id=context.website_id,
        amount_cents=0,
        currency=currency or ctx.config.default_currency,
        description=f"Subscription {context.subscription_id}",
        metadata={"planId": context.plan_id, "flow": context.flow},
    )

    if not created and payment.status != PaymentStatus.PENDING:
        logger.info(
            "Subscription record already past pending, leaving it",
            extra={
                "stripe_event_id": event.event_id,
                "payment_id": str(payment.id),
                "status": payment.status,
            },
        )

    return ServiceResult.success(payment)


@register_handler("customer.subscription.updated")
def handle_subscription_updated(event: CorrelatedEvent, ctx: BillingContext) -> ServiceResult:
    """Status changes arrive through invoice events; nothing to do here."""
    logger.info(
        "Subscription updated, no action",
        extra={
            "stripe_event_id": event.event_id,
            "subscription_id": event.context.subscription_id,
        },
    )
    return ServiceResult.success(None)


@register_handler("customer.subscription.deleted")
def handle_subscription_deleted(event: CorrelatedEvent, ctx: BillingContext) -> ServiceResult:
    """Cancel the subscription's record. Nothing is created if it is missing."""
    context = event.context
    if not context.user_id or not context.subscription_id:
        return _skip(event, "missing user id or subscription id", "MISSING_CONTEXT")

    payment = PaymentStore.find_by_subscription(context.subscription_id)
    if payment is None:
        return _skip(event, "no payment for subscription", "PAYMENT_NOT_FOUND")

    return PaymentStore.apply_status(payment, PaymentStatus.CANCELED)


# =============================================================================
# Invoice Handlers
# =============================================================================


@register_handler("invoice.payment_succeeded")
def handle_invoice_payment_succeeded(
    event: CorrelatedEvent, ctx: BillingContext
) -> ServiceResult:
    """
    Mark the subscription's record paid and confirm the plan.

    A record created before the amount was known (amount 0) takes the
    invoice's ``amount_paid`` and currency. The plan is confirmed on the
    main service for initial subscriptions and plan changes only; renewals
    need no confirmation.
    """
    context = event.context
    if not context.subscription_id or not context.user_id or not context.website_id:
        return _skip(
            event,
            "missing subscription id, user id or website id",
            "MISSING_CONTEXT",
        )

    amount_paid = 0
    currency = ctx.config.default_currency
    description = f"Subscription {context.subscription_id}"
    if isinstance(event.subject, InvoiceSubject):
        amount_paid = event.subject.amount_paid
        currency = event.subject.currency or currency
        description = f"Subscription payment for invoice {event.subject.id}"

    payment, created = PaymentStore.get_or_create_for_subscription(
        context.subscription_id,
        user_id=context.user_id,
        website_id=context.website_id,
        amount_cents=amount_paid,
        currency=currency,
        description=description,
        metadata={"planId": context.plan_id, "flow": context.flow},
    )

    result = PaymentStore.apply_status(payment, PaymentStatus.SUCCEEDED)
    if not result.success:
        return result
    payment = result.data

    # Only a record that actually reached SUCCEEDED takes the invoice amount
    if not created and payment.amount_cents == 0:
        payment = PaymentStore.correct_zero_amount(payment, amount_paid, currency)

    if context.flow in CONFIRMING_FLOWS and context.plan_id:
        _confirm_plan_change(event, ctx, payment)

    return ServiceResult.success(payment)


@register_handler("invoice.payment_failed")
def handle_invoice_payment_failed(event: CorrelatedEvent, ctx: BillingContext) -> ServiceResult:
    """Mark the subscription's record failed. No entitlement call is made."""
    context = event.context
    if not context.subscription_id or not context.user_id:
        return _skip(event, "missing subscription id or user id", "MISSING_CONTEXT")

    payment = PaymentStore.find_by_subscription(context.subscription_id)
    if payment is None:
        return _skip(event, "no payment for subscription", "PAYMENT_NOT_FOUND")

    invoice_id = event.subject.id if isinstance(event.subject, InvoiceSubject) else None
    return PaymentStore.apply_status(
        payment,
        PaymentStatus.FAILED,
        reason=f"Invoice {invoice_id} payment failed" if invoice_id else "Invoice payment failed",
    )


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(
    event: CorrelatedEvent, ctx: BillingContext
) -> ServiceResult:
    """Mark the token purchase paid and credit the tokens to the website."""
    context = event.context
    if not context.payment_intent_id:
        return _skip(event, "missing payment intent id", "MISSING_CONTEXT")

    payment = PaymentStore.find_by_payment_intent(context.payment_intent_id)
    if payment is None:
        return _skip(event, "no payment for payment intent", "PAYMENT_NOT_FOUND")

    result = PaymentStore.apply_status(payment, PaymentStatus.SUCCEEDED)
    if not result.success:
        return result
    payment = result.data

    tokens = context.tokens_amount or payment.get_meta(META_TOKENS_AMOUNT)
    website_id = context.website_id or payment.website_id
    if tokens and tokens > 0 and website_id:
        try:
            ctx.entitlements.add_credits(website_id, tokens, str(payment.id))
        except EntitlementServiceError as e:
            logger.error(
                "Adding credits failed",
                extra={
                    "stripe_event_id": event.event_id,
                    "payment_id": str(payment.id),
                    "website_id": website_id,
                    "tokens": tokens,
                    "error": e.message,
                },
            )
        else:
            logger.info(
                "Credits added",
                extra={
                    "stripe_event_id": event.event_id,
                    "payment_id": str(payment.id),
                    "website_id": website_id,
                    "tokens": tokens,
                },
            )

    return ServiceResult.success(payment)


@register_handler("payment_intent.payment_failed")
def handle_payment_intent_failed(event: CorrelatedEvent, ctx: BillingContext) -> ServiceResult:
    """Mark the token purchase failed with Stripe's error message."""
    context = event.context
    if not context.payment_intent_id:
        return _skip(event, "missing payment intent id", "MISSING_CONTEXT")

    payment = PaymentStore.find_by_payment_intent(context.payment_intent_id)
    if payment is None:
        return _skip(event, "no payment for payment intent", "PAYMENT_NOT_FOUND")

    reason = None
    if isinstance(event.subject, PaymentIntentSubject):
        reason = event.subject.last_error_message
    return PaymentStore.apply_status(
        payment,
        PaymentStatus.FAILED,
        reason=reason or "Payment failed",
    )


# =============================================================================
# Entitlements
# =============================================================================


def _confirm_plan_change(event: CorrelatedEvent, ctx: BillingContext, payment: Payment) -> None:
    context = event.context
    log_context = {
        "stripe_event_id": event.event_id,
        "payment_id": str(payment.id),
        "website_id": context.website_id,
        "plan_id": context.plan_id,
        "subscription_id": context.subscription_id,
    }
    try:
        ctx.entitlements.confirm_plan_change(
            context.website_id,
            context.plan_id,
            context.subscription_id,
            str(payment.id),
        )
    except EntitlementServiceError as e:
        logger.error(
            "Plan change confirmation failed",
            extra={**log_context, "error": e.message},
        )
        return
    logger.info("Plan change confirmed", extra=log_context)
