"""
URL configuration for the payment service.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface (read-only audit)
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /subscriptions                 - Create subscription (POST)
    /subscriptions/webhook         - Stripe subscription webhook (POST)
    /subscriptions/change-plan     - Change plan (POST)
    /subscriptions/{id}            - Cancel subscription (DELETE)
    /token-purchases               - Buy tokens (POST)
    /token-purchases/webhook       - Stripe purchase webhook (POST)
    /payments/{id}/status          - Payment status (GET)
    /payments/users/{userId}       - Payments of a user (GET)

Payment routes have no trailing slash; the main service and Stripe
dashboard are configured with these exact paths.

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # Payments
    path("", include("payments.urls")),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Payment Service Admin"
admin.site.site_title = "Payment Service"
admin.site.index_title = "Payments audit"
