"""
WebhookEvent model: audit log and redelivery guard for Stripe events.

Every event that passes signature verification is stored once, keyed by its
Stripe event id. A redelivered event that was already processed is
acknowledged without touching payments again; a failed one is reprocessed.

Usage:
    event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id="evt_123",
        defaults={"event_type": "invoice.payment_succeeded", "payload": data},
    )
    if event.is_processed:
        return JsonResponse({"received": True})
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import WebhookEventStatus, WebhookSource


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    One verified Stripe webhook delivery.

    Processing Flow:
        1. Signature verified by the webhook view
        2. get_or_create by stripe_event_id
        3. PROCESSED -> acknowledge, stop
        4. mark_processing, correlate + reconcile
        5. mark_processed or mark_failed (the webhook is acknowledged either way)

    Fields:
        stripe_event_id: Unique Stripe Event ID (evt_xxx)
        event_type: Stripe event type
        source: Which signed endpoint received it
        payload: Full verified event JSON
        status: Processing status
        attempts: Number of processing attempts
        error_message: Last unexpected processing error
        processed_at: When processing last completed
    """

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type (e.g., 'invoice.payment_succeeded')",
    )

    source = models.CharField(
        max_length=20,
        choices=WebhookSource.choices,
        help_text="Webhook endpoint that received the event",
    )

    payload = models.JSONField(
        help_text="Full webhook payload from Stripe (JSON)",
    )

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )

    attempts = models.PositiveSmallIntegerField(default=0)

    error_message = models.TextField(null=True, blank=True)

    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="webhook_status_created_idx"),
            models.Index(fields=["event_type", "created_at"], name="webhook_type_created_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    # Helpers below do not save; callers persist with update_fields.

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.attempts += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message
