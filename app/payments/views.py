"""
DRF views for payments app.

This module provides API views for:
- Subscription creation, plan change and cancellation
- Token purchases
- Payment status and history lookups for the main service

Related files:
    - services/: SubscriptionService, TokenPurchaseService, PaymentStore
    - serializers.py: Request/response serializers
    - authentication.py: MainServiceApiKeyAuthentication
    - webhooks/views.py: Stripe webhook endpoints
    - urls.py: URL routing

Endpoints:
    POST /subscriptions - Create a subscription
    POST /subscriptions/change-plan - Change plan (service key)
    DELETE /subscriptions/<id> - Cancel a subscription (service key)
    POST /token-purchases - Buy tokens
    GET /payments/<id>/status - Payment status (service key)
    GET /payments/users/<userId> - Payments of a user (service key)

Domain errors are returned as ``BaseApplicationError.to_dict()`` with the
error's own status code.
"""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema

from core.exceptions import BaseApplicationError, ValidationError

from payments.authentication import MainServiceApiKeyAuthentication
from payments.context import get_billing_context
from payments.serializers import (
    CancelSubscriptionSerializer,
    ChangeSubscriptionPlanSerializer,
    CreateSubscriptionSerializer,
    CreateTokenPurchaseSerializer,
    ErrorSerializer,
    PaymentSerializer,
    PaymentStatusSerializer,
    PlanChangeResponseSerializer,
    SubscriptionCancellationSerializer,
    SubscriptionCheckoutSerializer,
    TokenPurchaseCheckoutSerializer,
)
from payments.services import PaymentStore, SubscriptionService, TokenPurchaseService

logger = logging.getLogger(__name__)

AUTH_TOKEN_HEADER = "X-Auth-Token"

AUTH_TOKEN_PARAMETER = OpenApiParameter(
    name=AUTH_TOKEN_HEADER,
    type=str,
    location=OpenApiParameter.HEADER,
    description="Main service user token, forwarded on user lookups",
    required=True,
)

SERVICE_KEY_PARAMETER = OpenApiParameter(
    name=MainServiceApiKeyAuthentication.header,
    type=str,
    location=OpenApiParameter.HEADER,
    description="Shared key of the main service",
    required=True,
)


def error_response(error: BaseApplicationError) -> Response:
    return Response(error.to_dict(), status=error.status_code)


def validation_error_response(message: str, errors: dict | None = None) -> Response:
    return error_response(ValidationError(message, details=errors))


class ServiceKeyProtectedView(APIView):
    """Base for endpoints only the main service may call."""

    authentication_classes = [MainServiceApiKeyAuthentication]
    permission_classes = [IsAuthenticated]


# =============================================================================
# Subscriptions
# =============================================================================


class CreateSubscriptionView(APIView):
    """
    Create an incomplete subscription for a website.

    POST /subscriptions

    Request body:
        {"userId": "u1", "websiteId": "w1", "planId": "p1"}

    Returns:
        201 {"subscriptionId", "clientSecret", "paymentId"}
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="create_subscription",
        summary="Create subscription",
        request=CreateSubscriptionSerializer,
        parameters=[AUTH_TOKEN_PARAMETER],
        responses={
            201: SubscriptionCheckoutSerializer,
            400: OpenApiResponse(ErrorSerializer, description="Missing fields or token"),
            404: OpenApiResponse(ErrorSerializer, description="Plan not found"),
            500: OpenApiResponse(ErrorSerializer, description="Upstream failure"),
        },
        tags=["Payments - Subscriptions"],
    )
    def post(self, request):
        serializer = CreateSubscriptionSerializer(data=request.data)
        auth_token = request.headers.get(AUTH_TOKEN_HEADER)
        if not serializer.is_valid() or not auth_token:
            return validation_error_response(
                "Missing userId, websiteId, planId, or X-Auth-Token header.",
                serializer.errors or None,
            )

        data = serializer.validated_data
        try:
            checkout = SubscriptionService.create_subscription(
                get_billing_context(),
                user_id=data["user_id"],
                website_id=data["website_id"],
                plan_id=data["plan_id"],
                auth_token=auth_token,
            )
        except BaseApplicationError as e:
            logger.warning(
                "Subscription creation failed",
                extra={"user_id": data["user_id"], "error_code": e.error_code},
            )
            return error_response(e)

        return Response(
            {
                "subscriptionId": checkout.subscription_id,
                "clientSecret": checkout.client_secret,
                "paymentId": str(checkout.payment.id),
            },
            status=status.HTTP_201_CREATED,
        )


class ChangeSubscriptionPlanView(ServiceKeyProtectedView):
    """
    Replace a website's subscription with one for a new plan.

    POST /subscriptions/change-plan

    Request body:
        {
            "userId": "u1",
            "websiteId": "w1",
            "oldStripeSubscriptionId": "sub_old",  # optional
            "newPlanId": "p2"
        }

    Returns:
        201 {"message", "newSubscriptionId", "clientSecret", "paymentId"}
    """

    @extend_schema(
        operation_id="change_subscription_plan",
        summary="Change subscription plan",
        request=ChangeSubscriptionPlanSerializer,
        parameters=[AUTH_TOKEN_PARAMETER, SERVICE_KEY_PARAMETER],
        responses={
            201: PlanChangeResponseSerializer,
            400: OpenApiResponse(ErrorSerializer, description="Invalid request or no customer"),
            401: OpenApiResponse(description="Missing or invalid service key"),
            403: OpenApiResponse(ErrorSerializer, description="Old subscription not owned"),
            404: OpenApiResponse(ErrorSerializer, description="Plan not found"),
            500: OpenApiResponse(ErrorSerializer, description="Upstream failure"),
        },
        tags=["Payments - Subscriptions"],
    )
    def post(self, request):
        serializer = ChangeSubscriptionPlanSerializer(data=request.data)
        auth_token = request.headers.get(AUTH_TOKEN_HEADER)
        if not serializer.is_valid() or not auth_token:
            return validation_error_response(
                "Missing userId, websiteId, newPlanId, or X-Auth-Token header.",
                serializer.errors or None,
            )

        data = serializer.validated_data
        try:
            checkout = SubscriptionService.change_subscription_plan(
                get_billing_context(),
                user_id=data["user_id"],
                website_id=data["website_id"],
                new_plan_id=data["new_plan_id"],
                old_subscription_id=data.get("old_subscription_id") or None,
                auth_token=auth_token,
            )
        except BaseApplicationError as e:
            logger.warning(
                "Plan change failed",
                extra={"user_id": data["user_id"], "error_code": e.error_code},
            )
            return error_response(e)

        return Response(
            {
                "message": "Subscription plan change initiated.",
                "newSubscriptionId": checkout.subscription_id,
                "clientSecret": checkout.client_secret,
                "paymentId": str(checkout.payment.id),
            },
            status=status.HTTP_201_CREATED,
        )


class CancelSubscriptionView(ServiceKeyProtectedView):
    """
    Cancel a subscription immediately.

    DELETE /subscriptions/<subscription_id>

    ``userId`` is read from the body, or from the query string.
    """

    @extend_schema(
        operation_id="cancel_subscription",
        summary="Cancel subscription",
        request=CancelSubscriptionSerializer,
        parameters=[
            SERVICE_KEY_PARAMETER,
            OpenApiParameter(
                name="userId",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Owner of the subscription (if not in the body)",
                required=False,
            ),
        ],
        responses={
            200: SubscriptionCancellationSerializer,
            400: OpenApiResponse(ErrorSerializer, description="Missing userId"),
            401: OpenApiResponse(description="Missing or invalid service key"),
            403: OpenApiResponse(ErrorSerializer, description="Subscription not owned"),
            500: OpenApiResponse(ErrorSerializer, description="Stripe failure"),
        },
        tags=["Payments - Subscriptions"],
    )
    def delete(self, request, subscription_id: str):
        data = request.data if request.data else request.query_params
        serializer = CancelSubscriptionSerializer(data=data)
        if not serializer.is_valid():
            return validation_error_response("Missing userId.", serializer.errors)

        user_id = serializer.validated_data["user_id"]
        try:
            cancellation = SubscriptionService.cancel_subscription(
                get_billing_context(),
                subscription_id=subscription_id,
                user_id=user_id,
            )
        except BaseApplicationError as e:
            logger.warning(
                "Subscription cancellation failed",
                extra={
                    "subscription_id": subscription_id,
                    "user_id": user_id,
                    "error_code": e.error_code,
                },
            )
            return error_response(e)

        payment = cancellation.payment
        return Response(
            {
                "subscriptionId": cancellation.subscription_id,
                "status": "canceled",
                "paymentId": str(payment.id) if payment else None,
            }
        )


# =============================================================================
# Token Purchases
# =============================================================================


class CreateTokenPurchaseView(APIView):
    """
    Start a one-time token purchase.

    POST /token-purchases

    Request body:
        {"userId": "u1", "websiteId": "w1", "tokensAmount": 100, "currency": "usd"}

    Returns:
        201 {"clientSecret", "paymentId"}
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="create_token_purchase",
        summary="Buy tokens",
        request=CreateTokenPurchaseSerializer,
        responses={
            201: TokenPurchaseCheckoutSerializer,
            400: OpenApiResponse(ErrorSerializer, description="Invalid amount"),
            500: OpenApiResponse(ErrorSerializer, description="Stripe failure"),
        },
        tags=["Payments - Token Purchases"],
    )
    def post(self, request):
        serializer = CreateTokenPurchaseSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(
                "Missing userId, websiteId, or tokensAmount.",
                serializer.errors,
            )

        data = serializer.validated_data
        try:
            checkout = TokenPurchaseService.create_token_purchase(
                get_billing_context(),
                user_id=data["user_id"],
                website_id=data["website_id"],
                tokens_amount=data["tokens_amount"],
                currency=data.get("currency"),
            )
        except BaseApplicationError as e:
            logger.warning(
                "Token purchase failed",
                extra={"user_id": data["user_id"], "error_code": e.error_code},
            )
            return error_response(e)

        return Response(
            {
                "clientSecret": checkout.client_secret,
                "paymentId": str(checkout.payment.id),
            },
            status=status.HTTP_201_CREATED,
        )


# =============================================================================
# Payment Records
# =============================================================================


class PaymentStatusView(ServiceKeyProtectedView):
    """GET /payments/<payment_id>/status"""

    @extend_schema(
        operation_id="get_payment_status",
        summary="Get payment status",
        parameters=[SERVICE_KEY_PARAMETER],
        responses={
            200: PaymentStatusSerializer,
            401: OpenApiResponse(description="Missing or invalid service key"),
            404: OpenApiResponse(ErrorSerializer, description="Payment not found"),
        },
        tags=["Payments - Records"],
    )
    def get(self, request, payment_id):
        try:
            payment = PaymentStore.get(payment_id)
        except BaseApplicationError as e:
            return error_response(e)
        return Response({"status": payment.status})


class UserPaymentsView(ServiceKeyProtectedView):
    """GET /payments/users/<user_id> - newest first"""

    @extend_schema(
        operation_id="list_user_payments",
        summary="List payments of a user",
        parameters=[SERVICE_KEY_PARAMETER],
        responses={
            200: PaymentSerializer(many=True),
            401: OpenApiResponse(description="Missing or invalid service key"),
        },
        tags=["Payments - Records"],
    )
    def get(self, request, user_id: str):
        payments = PaymentStore.list_for_user(user_id)
        return Response(PaymentSerializer(payments, many=True).data)
