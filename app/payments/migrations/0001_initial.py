import uuid

import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Payment",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Flexible key-value metadata storage",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "user_id",
                    models.CharField(
                        db_index=True,
                        help_text="Main service user id",
                        max_length=255,
                    ),
                ),
                (
                    "website_id",
                    models.CharField(
                        help_text="Main service website id ('unknown' for backfilled rows without one)",
                        max_length=255,
                    ),
                ),
                (
                    "payment_type",
                    models.CharField(
                        choices=[
                            ("SUBSCRIPTION", "Subscription"),
                            ("TOKEN_PURCHASE", "Token Purchase"),
                        ],
                        help_text="Subscription or one-time token purchase",
                        max_length=20,
                    ),
                ),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Amount in smallest currency unit (e.g., cents)",
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="usd",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "description",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("SUCCEEDED", "Succeeded"),
                            ("FAILED", "Failed"),
                            ("CANCELED", "Canceled"),
                        ],
                        db_index=True,
                        default="PENDING",
                        help_text="Current payment status (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "stripe_payment_intent_id",
                    models.CharField(
                        blank=True,
                        help_text="Stripe PaymentIntent ID (pi_xxx) - one-time payments",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "stripe_subscription_id",
                    models.CharField(
                        blank=True,
                        help_text="Stripe Subscription ID (sub_xxx) - recurring payments",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                ("succeeded_at", models.DateTimeField(blank=True, null=True)),
                ("failed_at", models.DateTimeField(blank=True, null=True)),
                ("canceled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "failure_reason",
                    models.TextField(
                        blank=True,
                        help_text="Last failure message reported by Stripe",
                        null=True,
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment",
                "verbose_name_plural": "Payments",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["user_id", "created_at"],
                        name="payment_user_created_idx",
                    ),
                    models.Index(
                        fields=["website_id", "status"],
                        name="payment_website_status_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "stripe_event_id",
                    models.CharField(
                        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe event type (e.g., 'invoice.payment_succeeded')",
                        max_length=100,
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("subscriptions", "Subscriptions"),
                            ("token_purchases", "Token Purchases"),
                        ],
                        help_text="Webhook endpoint that received the event",
                        max_length=20,
                    ),
                ),
                (
                    "payload",
                    models.JSONField(help_text="Full webhook payload from Stripe (JSON)"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("attempts", models.PositiveSmallIntegerField(default=0)),
                ("error_message", models.TextField(blank=True, null=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"],
                        name="webhook_status_created_idx",
                    ),
                    models.Index(
                        fields=["event_type", "created_at"],
                        name="webhook_type_created_idx",
                    ),
                ],
            },
        ),
    ]
