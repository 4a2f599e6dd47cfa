"""
DRF serializers for payments app.

Request and response bodies use the camelCase keys the main service and
frontend already speak; fields map them onto snake_case through
``source``.

This module provides serializers for:
- Subscription creation, plan change and cancellation requests
- Token purchase requests
- Payment records and checkout responses

Usage:
    serializer = CreateSubscriptionSerializer(data=request.data)
    if serializer.is_valid():
        user_id = serializer.validated_data["user_id"]
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import Payment


# =============================================================================
# Requests
# =============================================================================


class CreateSubscriptionSerializer(serializers.Serializer):
    userId = serializers.CharField(source="user_id")
    websiteId = serializers.CharField(source="website_id")
    planId = serializers.CharField(source="plan_id")


class ChangeSubscriptionPlanSerializer(serializers.Serializer):
    """
    Plan change request.

    ``oldStripeSubscriptionId`` is optional: a website on a free plan has
    no subscription to cancel.
    """

    userId = serializers.CharField(source="user_id")
    websiteId = serializers.CharField(source="website_id")
    oldStripeSubscriptionId = serializers.CharField(
        source="old_subscription_id",
        required=False,
        allow_null=True,
        allow_blank=True,
    )
    newPlanId = serializers.CharField(source="new_plan_id")


class CancelSubscriptionSerializer(serializers.Serializer):
    userId = serializers.CharField(source="user_id")


class CreateTokenPurchaseSerializer(serializers.Serializer):
    """
    Token purchase request.

    The token count is only type-checked here; the purchase service
    rejects non-positive counts and amounts below the minimum charge.
    """

    userId = serializers.CharField(source="user_id")
    websiteId = serializers.CharField(source="website_id")
    tokensAmount = serializers.IntegerField(source="tokens_amount")
    currency = serializers.CharField(
        max_length=3,
        min_length=3,
        required=False,
        allow_null=True,
    )


# =============================================================================
# Responses
# =============================================================================


class PaymentSerializer(serializers.ModelSerializer):
    """Payment record as returned by the user listing."""

    userId = serializers.CharField(source="user_id", read_only=True)
    websiteId = serializers.CharField(source="website_id", read_only=True)
    paymentType = serializers.CharField(source="payment_type", read_only=True)
    amountCents = serializers.IntegerField(source="amount_cents", read_only=True)
    stripePaymentIntentId = serializers.CharField(
        source="stripe_payment_intent_id", read_only=True
    )
    stripeSubscriptionId = serializers.CharField(
        source="stripe_subscription_id", read_only=True
    )
    failureReason = serializers.CharField(source="failure_reason", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "userId",
            "websiteId",
            "paymentType",
            "amountCents",
            "currency",
            "status",
            "description",
            "stripePaymentIntentId",
            "stripeSubscriptionId",
            "failureReason",
            "metadata",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields


class PaymentStatusSerializer(serializers.Serializer):
    status = serializers.CharField()


class SubscriptionCheckoutSerializer(serializers.Serializer):
    subscriptionId = serializers.CharField()
    clientSecret = serializers.CharField(allow_null=True)
    paymentId = serializers.UUIDField()


class PlanChangeResponseSerializer(serializers.Serializer):
    message = serializers.CharField()
    newSubscriptionId = serializers.CharField()
    clientSecret = serializers.CharField(allow_null=True)
    paymentId = serializers.UUIDField()


class SubscriptionCancellationSerializer(serializers.Serializer):
    subscriptionId = serializers.CharField()
    status = serializers.CharField()
    paymentId = serializers.UUIDField(allow_null=True)


class TokenPurchaseCheckoutSerializer(serializers.Serializer):
    clientSecret = serializers.CharField(allow_null=True)
    paymentId = serializers.UUIDField()


class ErrorSerializer(serializers.Serializer):
    """Body of every domain error response (``BaseApplicationError.to_dict``)."""

    error = serializers.CharField()
    error_code = serializers.CharField()
    details = serializers.DictField(required=False)
