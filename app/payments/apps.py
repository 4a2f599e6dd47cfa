"""
Payments app configuration.

This app reconciles Stripe payments with the internal payment records and
the main service's entitlements:
- Subscription and token purchase orchestration
- Webhook correlation and reconciliation
- Payment record lookups
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
