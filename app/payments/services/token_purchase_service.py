"""
Token purchase orchestration.

Tokens are sold as one-time PaymentIntents. The price is derived from the
token count and the configured coefficient (tokens per currency unit):

    amount_cents = round_half_up(tokens / coefficient * 100)

Purchases at or below the Stripe minimum charge are rejected before
Stripe is called. Credits are added to the website by the webhook
reconciler once ``payment_intent.succeeded`` arrives.

Usage:
    from payments.services import TokenPurchaseService

    checkout = TokenPurchaseService.create_token_purchase(
        ctx, user_id="u1", website_id="w1", tokens_amount=100
    )
    return {"clientSecret": checkout.client_secret, "paymentId": str(checkout.payment.id)}
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from core.services import BaseService

from payments.adapters import CreatePaymentIntentParams
from payments.exceptions import PaymentValidationError
from payments.metadata import META_TOKENS_AMOUNT, META_USER_ID, META_WEBSITE_ID
from payments.services.payment_store import PaymentStore
from payments.state_machines import PaymentType

if TYPE_CHECKING:
    from payments.context import BillingContext
    from payments.models import Payment


@dataclass
class TokenPurchaseCheckout:
    client_secret: str | None
    payment: Payment


def tokens_to_amount_cents(tokens_amount: int, coefficient: int) -> int:
    """
    Price of ``tokens_amount`` tokens in cents, rounded half up.

    >>> tokens_to_amount_cents(100, 20)
    500
    >>> tokens_to_amount_cents(11, 20)
    55
    """
    amount = Decimal(tokens_amount) / Decimal(coefficient) * 100
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class TokenPurchaseService(BaseService):
    """Creates PaymentIntents for token purchases."""

    @classmethod
    def create_token_purchase(
        cls,
        ctx: BillingContext,
        *,
        user_id: str,
        website_id: str,
        tokens_amount: int,
        currency: str | None = None,
    ) -> TokenPurchaseCheckout:
        """
        Create a PaymentIntent and its PENDING record.

        Raises:
            PaymentValidationError: Non-positive token count, or an amount
                at or below the minimum charge
            StripeError: PaymentIntent creation failed
        """
        logger = cls.get_logger()
        config = ctx.config

        if tokens_amount <= 0:
            raise PaymentValidationError(
                "Invalid tokens amount.",
                error_code="INVALID_TOKENS_AMOUNT",
                details={"tokens_amount": tokens_amount},
            )

        amount_cents = tokens_to_amount_cents(tokens_amount, config.token_coefficient)
        if amount_cents <= config.min_amount_cents:
            raise PaymentValidationError(
                f"Amount is too low for Stripe payment "
                f"(min ${config.min_amount_cents / 100:.2f}).",
                error_code="AMOUNT_TOO_LOW",
                details={
                    "amount_cents": amount_cents,
                    "min_amount_cents": config.min_amount_cents,
                },
            )

        currency = (currency or config.default_currency).lower()
        log_context = {
            "user_id": user_id,
            "website_id": website_id,
            "tokens_amount": tokens_amount,
            "amount_cents": amount_cents,
            "currency": currency,
        }
        logger.info("Creating token purchase", extra=log_context)

        intent = ctx.stripe.create_payment_intent(
            CreatePaymentIntentParams(
                amount_cents=amount_cents,
                currency=currency,
                metadata={
                    META_USER_ID: user_id,
                    META_WEBSITE_ID: website_id,
                    META_TOKENS_AMOUNT: str(tokens_amount),
                },
            )
        )

        payment = PaymentStore.create_pending(
            user_id=user_id,
            website_id=website_id,
            payment_type=PaymentType.TOKEN_PURCHASE,
            amount_cents=amount_cents,
            currency=currency,
            description=f"Token purchase: {tokens_amount} tokens",
            stripe_payment_intent_id=intent.id,
            metadata={META_TOKENS_AMOUNT: tokens_amount},
        )

        logger.info(
            "Token purchase created",
            extra={
                **log_context,
                "payment_intent_id": intent.id,
                "payment_id": str(payment.id),
            },
        )
        return TokenPurchaseCheckout(client_secret=intent.client_secret, payment=payment)
