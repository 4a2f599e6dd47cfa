"""
Payment admin configuration.

Read-only audit views of payment records and webhook events. Status
changes go through the service layer and webhooks, never through admin.
"""

from django.contrib import admin

from payments.models import Payment, WebhookEvent

__all__ = [
    "PaymentAdmin",
    "WebhookEventAdmin",
]


class ReadOnlyAdminMixin:
    """Disable add/change/delete; records are an audit trail."""

    def has_add_permission(self, request, obj=None) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Payment)
class PaymentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """
    Admin configuration for Payment.

    Provides visibility into payment records and their states.
    """

    list_display = [
        "id",
        "user_id",
        "website_id",
        "payment_type",
        "amount_display",
        "status",
        "created_at",
    ]
    list_filter = ["status", "payment_type", "currency", "created_at"]
    search_fields = [
        "id",
        "user_id",
        "website_id",
        "stripe_payment_intent_id",
        "stripe_subscription_id",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "user_id", "website_id", "payment_type", "status"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("amount_cents", "currency", "description"),
            },
        ),
        (
            "Stripe References",
            {
                "fields": ("stripe_payment_intent_id", "stripe_subscription_id"),
            },
        ),
        (
            "State Timestamps",
            {
                "fields": ("succeeded_at", "failed_at", "canceled_at"),
                "classes": ("collapse",),
            },
        ),
        (
            "Failure Info",
            {
                "fields": ("failure_reason",),
                "classes": ("collapse",),
            },
        ),
        (
            "Metadata",
            {
                "fields": ("metadata",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    @admin.display(description="Amount")
    def amount_display(self, obj: Payment) -> str:
        return f"{obj.amount_cents / 100:.2f} {obj.currency.upper()}"


@admin.register(WebhookEvent)
class WebhookEventAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Provides visibility into webhook processing status.
    """

    list_display = [
        "id",
        "stripe_event_id",
        "event_type",
        "source",
        "status",
        "attempts",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "source", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "stripe_event_id", "event_type", "source", "status"),
            },
        ),
        (
            "Processing",
            {
                "fields": ("processed_at", "attempts"),
            },
        ),
        (
            "Error Info",
            {
                "fields": ("error_message",),
                "classes": ("collapse",),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )
