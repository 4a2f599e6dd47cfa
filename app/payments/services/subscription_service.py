"""
Subscription orchestration: create, change plan and cancel.

Each operation coordinates the main service (users, plans), Stripe
(customers, subscriptions) and the payment store, and returns what the
client needs to confirm the first invoice.

Subscriptions are created incomplete; the PENDING record seeded here is
moved forward by the webhook reconciler once Stripe reports the invoice.

Errors are raised as domain exceptions. Views map them to HTTP through
``BaseApplicationError.status_code``:
    - PlanNotFoundError: 404
    - CustomerReferenceMissingError: 400
    - SubscriptionOwnershipError: 403
    - PlanConfigurationError, EntitlementServiceError, StripeError: 500

Usage:
    from payments.services import SubscriptionService

    checkout = SubscriptionService.create_subscription(
        ctx,
        user_id="u1",
        website_id="w1",
        plan_id="p1",
        auth_token=request.headers["X-Auth-Token"],
    )
    return {"clientSecret": checkout.client_secret, ...}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.services import BaseService

from payments.adapters import (
    CreateCustomerParams,
    CreateSubscriptionParams,
    Plan,
    SubscriptionResult,
)
from payments.exceptions import (
    CustomerReferenceMissingError,
    EntitlementNotFoundError,
    PlanConfigurationError,
    PlanNotFoundError,
    StripeResourceMissingError,
    SubscriptionOwnershipError,
)
from payments.metadata import (
    META_APP_USER_ID,
    META_FLOW,
    META_PLAN_ID,
    META_WEBSITE_ID,
)
from payments.services.payment_store import PaymentStore
from payments.state_machines import PaymentStatus, SubscriptionFlow

if TYPE_CHECKING:
    from payments.context import BillingContext
    from payments.models import Payment


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class SubscriptionCheckout:
    """
    A new incomplete subscription and its seeded record.

    Attributes:
        subscription_id: Stripe Subscription ID
        client_secret: Secret used client-side to pay the first invoice
        payment: PENDING record tracking the subscription
    """

    subscription_id: str
    client_secret: str | None
    payment: Payment


@dataclass
class SubscriptionCancellation:
    subscription_id: str
    payment: Payment | None


# =============================================================================
# Subscription Service
# =============================================================================


class SubscriptionService(BaseService):
    """
    Orchestrates subscription lifecycles.

    All methods are class methods; collaborators come from the
    BillingContext passed as the first argument.
    """

    @classmethod
    def create_subscription(
        cls,
        ctx: BillingContext,
        *,
        user_id: str,
        website_id: str,
        plan_id: str,
        auth_token: str,
    ) -> SubscriptionCheckout:
        """
        Start a first subscription for a website.

        Creates the Stripe customer on first use and stores it on the user.

        Raises:
            EntitlementServiceError: User fetch or customer persist failed
            PlanNotFoundError: Unknown plan
            PlanConfigurationError: Plan has no Stripe price
            StripeError: Stripe call failed
        """
        logger = cls.get_logger()
        log_context = {"user_id": user_id, "website_id": website_id, "plan_id": plan_id}
        logger.info("Creating subscription", extra=log_context)

        user = ctx.entitlements.get_user(user_id, auth_token)
        customer_id = user.stripe_customer_id
        if not customer_id:
            customer = ctx.stripe.create_customer(
                CreateCustomerParams(email=user.email, metadata={META_APP_USER_ID: user_id})
            )
            customer_id = customer.id
            # A failure here leaves an orphan customer in Stripe; it is surfaced.
            ctx.entitlements.set_customer_id(user_id, customer_id, auth_token)
            logger.info(
                "Stripe customer created",
                extra={**log_context, "customer_id": customer_id},
            )

        plan = cls._resolve_plan(ctx, plan_id)
        subscription = ctx.stripe.create_subscription(
            CreateSubscriptionParams(
                customer_id=customer_id,
                price_id=plan.stripe_price_id,
                metadata=cls._metadata(
                    user_id, website_id, plan_id, SubscriptionFlow.INITIAL_SUBSCRIPTION
                ),
            )
        )

        payment = cls._seed_payment(
            ctx,
            subscription,
            plan,
            user_id=user_id,
            website_id=website_id,
            flow=SubscriptionFlow.INITIAL_SUBSCRIPTION,
            description=f"Initial subscription to {plan.name} plan",
        )

        logger.info(
            "Subscription created",
            extra={
                **log_context,
                "subscription_id": subscription.id,
                "payment_id": str(payment.id),
            },
        )
        return SubscriptionCheckout(
            subscription_id=subscription.id,
            client_secret=subscription.client_secret,
            payment=payment,
        )

    @classmethod
    def change_subscription_plan(
        cls,
        ctx: BillingContext,
        *,
        user_id: str,
        website_id: str,
        new_plan_id: str,
        auth_token: str,
        old_subscription_id: str | None = None,
    ) -> SubscriptionCheckout:
        """
        Replace a website's subscription with one for another plan.

        The old subscription (if given) is cancelled immediately with a
        final invoice. One that no longer exists in Stripe counts as
        already cancelled.

        Raises:
            CustomerReferenceMissingError: User has no Stripe customer
            PlanNotFoundError / PlanConfigurationError: Bad target plan
            SubscriptionOwnershipError: Old subscription is not the user's
            StripeError: Any other Stripe failure
        """
        logger = cls.get_logger()
        log_context = {
            "user_id": user_id,
            "website_id": website_id,
            "new_plan_id": new_plan_id,
            "old_subscription_id": old_subscription_id,
        }
        logger.info("Changing subscription plan", extra=log_context)

        user = ctx.entitlements.get_user(user_id, auth_token)
        customer_id = user.stripe_customer_id
        if not customer_id:
            raise CustomerReferenceMissingError(
                "User does not have a Stripe customer ID.",
                details={"user_id": user_id},
            )

        plan = cls._resolve_plan(ctx, new_plan_id)

        if old_subscription_id:
            cls._cancel_previous_subscription(ctx, old_subscription_id, customer_id)

        subscription = ctx.stripe.create_subscription(
            CreateSubscriptionParams(
                customer_id=customer_id,
                price_id=plan.stripe_price_id,
                metadata=cls._metadata(
                    user_id, website_id, new_plan_id, SubscriptionFlow.PLAN_CHANGE
                ),
            )
        )

        payment = cls._seed_payment(
            ctx,
            subscription,
            plan,
            user_id=user_id,
            website_id=website_id,
            flow=SubscriptionFlow.PLAN_CHANGE,
            description=(
                f"Subscription plan change to {plan.name} "
                f"from {old_subscription_id or 'N/A'}"
            ),
        )

        logger.info(
            "Subscription plan changed",
            extra={
                **log_context,
                "subscription_id": subscription.id,
                "payment_id": str(payment.id),
            },
        )
        return SubscriptionCheckout(
            subscription_id=subscription.id,
            client_secret=subscription.client_secret,
            payment=payment,
        )

    @classmethod
    def cancel_subscription(
        cls,
        ctx: BillingContext,
        *,
        subscription_id: str,
        user_id: str,
    ) -> SubscriptionCancellation:
        """
        Cancel a subscription on behalf of its owner.

        Cancelling a subscription Stripe no longer knows is a success.

        Raises:
            SubscriptionOwnershipError: Local record or subscription metadata
                names another user
            StripeError: Any other Stripe failure
        """
        logger = cls.get_logger()
        log_context = {"subscription_id": subscription_id, "user_id": user_id}

        payment = PaymentStore.find_by_subscription(subscription_id)
        if payment is not None and payment.user_id != user_id:
            raise SubscriptionOwnershipError(
                "Subscription does not belong to this user.",
                details={"subscription_id": subscription_id},
            )

        try:
            subscription = ctx.stripe.retrieve_subscription(subscription_id)
        except StripeResourceMissingError:
            logger.info("Subscription already gone from Stripe", extra=log_context)
        else:
            owner = subscription.metadata.get(META_APP_USER_ID)
            if owner and owner != user_id:
                raise SubscriptionOwnershipError(
                    "Subscription does not belong to this user.",
                    details={"subscription_id": subscription_id},
                )
            try:
                ctx.stripe.cancel_subscription(subscription_id, invoice_now=True)
            except StripeResourceMissingError:
                logger.info("Subscription already gone from Stripe", extra=log_context)

        if payment is not None:
            result = PaymentStore.apply_status(payment, PaymentStatus.CANCELED)
            if result.success:
                payment = result.data

        logger.info("Subscription canceled", extra=log_context)
        return SubscriptionCancellation(subscription_id=subscription_id, payment=payment)

    # =========================================================================
    # Helpers
    # =========================================================================

    @classmethod
    def _resolve_plan(cls, ctx: BillingContext, plan_id: str) -> Plan:
        try:
            plan = ctx.entitlements.get_plan(plan_id)
        except EntitlementNotFoundError as e:
            raise PlanNotFoundError(
                "Plan not found.",
                details={"plan_id": plan_id},
            ) from e

        if not plan.stripe_price_id:
            cls.get_logger().error(
                "Plan has no Stripe price",
                extra={"plan_id": plan_id},
            )
            raise PlanConfigurationError(
                "Plan is not configured for Stripe payments.",
                details={"plan_id": plan_id},
            )
        return plan

    @classmethod
    def _cancel_previous_subscription(
        cls,
        ctx: BillingContext,
        subscription_id: str,
        customer_id: str,
    ) -> None:
        logger = cls.get_logger()
        log_context = {"subscription_id": subscription_id, "customer_id": customer_id}

        try:
            previous = ctx.stripe.retrieve_subscription(subscription_id)
        except StripeResourceMissingError:
            logger.warning("Previous subscription not found in Stripe", extra=log_context)
            return

        if previous.customer_id != customer_id:
            logger.warning("Previous subscription owned by another customer", extra=log_context)
            raise SubscriptionOwnershipError(
                "Old subscription does not belong to this user.",
                details={"subscription_id": subscription_id},
            )

        try:
            ctx.stripe.cancel_subscription(subscription_id, invoice_now=True)
        except StripeResourceMissingError:
            logger.warning("Previous subscription already canceled", extra=log_context)
            return

        logger.info("Previous subscription canceled", extra=log_context)

    @staticmethod
    def _metadata(user_id: str, website_id: str, plan_id: str, flow: str) -> dict[str, str]:
        return {
            META_APP_USER_ID: user_id,
            META_WEBSITE_ID: website_id,
            META_PLAN_ID: plan_id,
            META_FLOW: str(flow),
        }

    @classmethod
    def _seed_payment(
        cls,
        ctx: BillingContext,
        subscription: SubscriptionResult,
        plan: Plan,
        *,
        user_id: str,
        website_id: str,
        flow: str,
        description: str,
    ) -> Payment:
        """
        Create the PENDING record for a new subscription.

        ``customer.subscription.created`` may already have backfilled it
        with amount 0; in that case the amount is filled in.
        """
        amount_cents = plan.price_monthly_cents
        if amount_cents > 0:
            currency = subscription.currency or ctx.config.default_currency
        else:
            currency = ctx.config.default_currency

        payment, created = PaymentStore.get_or_create_for_subscription(
            subscription.id,
            user_id=user_id,
            website_id=website_id,
            amount_cents=amount_cents,
            currency=currency,
            description=description,
            metadata={"planId": plan.id, "flow": str(flow)},
        )
        if not created:
            PaymentStore.correct_zero_amount(payment, amount_cents, currency)
        return payment
