"""
URL configuration for the payments app.

Routes (no trailing slashes, mounted at the site root):
    - POST /subscriptions - Create subscription
    - POST /subscriptions/webhook - Stripe webhook (subscription secret)
    - POST /subscriptions/change-plan - Change plan
    - DELETE /subscriptions/<id> - Cancel subscription
    - POST /token-purchases - Buy tokens
    - POST /token-purchases/webhook - Stripe webhook (purchase secret)
    - GET /payments/<uuid>/status - Payment status
    - GET /payments/users/<userId> - Payments of a user

Usage:
    # In config/urls.py
    urlpatterns = [
        path("", include("payments.urls")),
    ]
"""

from django.urls import path

from payments import views
from payments.webhooks.views import subscription_webhook, token_purchase_webhook

app_name = "payments"

urlpatterns = [
    # Subscriptions (static segments before the id route)
    path("subscriptions", views.CreateSubscriptionView.as_view(), name="create_subscription"),
    path("subscriptions/webhook", subscription_webhook, name="subscription_webhook"),
    path(
        "subscriptions/change-plan",
        views.ChangeSubscriptionPlanView.as_view(),
        name="change_subscription_plan",
    ),
    path(
        "subscriptions/<str:subscription_id>",
        views.CancelSubscriptionView.as_view(),
        name="cancel_subscription",
    ),
    # Token purchases
    path(
        "token-purchases",
        views.CreateTokenPurchaseView.as_view(),
        name="create_token_purchase",
    ),
    path("token-purchases/webhook", token_purchase_webhook, name="token_purchase_webhook"),
    # Payment records
    path(
        "payments/<uuid:payment_id>/status",
        views.PaymentStatusView.as_view(),
        name="payment_status",
    ),
    path(
        "payments/users/<str:user_id>",
        views.UserPaymentsView.as_view(),
        name="user_payments",
    ),
]
