"""
Webhook endpoint views for Stripe.

Two endpoints receive Stripe events, each signed with its own secret:
    - /subscriptions/webhook: subscription and invoice events
    - /token-purchases/webhook: payment intent events

Each view:
1. Verifies the webhook signature
2. Creates/retrieves the WebhookEvent record (idempotent)
3. Correlates and reconciles the event inline
4. Acknowledges with ``{"received": true}``

Once the signature is verified the event is always acknowledged. Business
failures are logged by the reconciler; unexpected errors mark the
WebhookEvent failed so a redelivery reprocesses it.

Usage:
    # In urls.py
    from payments.webhooks.views import subscription_webhook, token_purchase_webhook

    urlpatterns = [
        path("subscriptions/webhook", subscription_webhook),
        path("token-purchases/webhook", token_purchase_webhook),
    ]
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.context import get_billing_context
from payments.exceptions import StripeInvalidRequestError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus, WebhookSource
from payments.webhooks.events import EventCorrelator
from payments.webhooks.handlers import reconcile

if TYPE_CHECKING:
    from payments.context import BillingContext


logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def subscription_webhook(request: HttpRequest) -> HttpResponse:
    """Receive subscription and invoice events."""
    ctx = get_billing_context()
    return _handle_webhook(
        ctx,
        request,
        secret=ctx.config.subscription_webhook_secret,
        source=WebhookSource.SUBSCRIPTIONS,
    )


@csrf_exempt
@require_POST
def token_purchase_webhook(request: HttpRequest) -> HttpResponse:
    """Receive payment intent events for token purchases."""
    ctx = get_billing_context()
    return _handle_webhook(
        ctx,
        request,
        secret=ctx.config.purchase_webhook_secret,
        source=WebhookSource.TOKEN_PURCHASES,
    )


def _handle_webhook(
    ctx: BillingContext,
    request: HttpRequest,
    secret: str,
    source: str,
) -> HttpResponse:
    """
    Verify, record and reconcile one Stripe event.

    Returns:
        HttpResponse with status:
        - 200: Event accepted (new, duplicate or failed internally)
        - 400: Missing/invalid signature or malformed event

    Example Stripe-Signature header:
        t=1614556800,v1=xxx,v0=yyy
    """
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    if not signature:
        logger.warning(
            "Webhook received without Stripe-Signature header",
            extra={"source": source},
        )
        return HttpResponse("Missing signature", status=400)

    # Step 1: Verify signature
    try:
        event_data = ctx.stripe.verify_webhook_signature(payload, signature, secret)
    except StripeInvalidRequestError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"source": source, "error": e.message},
        )
        return HttpResponse("Invalid signature", status=400)
    except Exception as e:
        logger.error(
            f"Unexpected error verifying webhook: {type(e).__name__}",
            extra={"source": source},
            exc_info=True,
        )
        return HttpResponse("Verification error", status=400)

    stripe_event_id = event_data.get("id")
    event_type = event_data.get("type")

    if not stripe_event_id or not event_type:
        logger.warning("Webhook missing required fields", extra={"source": source})
        return HttpResponse("Invalid event", status=400)

    log_context = {
        "stripe_event_id": stripe_event_id,
        "event_type": event_type,
        "source": source,
    }
    logger.info(f"Received Stripe webhook: {event_type}", extra=log_context)

    # Step 2: Create/get WebhookEvent (idempotent)
    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event_id,
        defaults={
            "event_type": event_type,
            "source": source,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    if not created and webhook_event.is_processed:
        logger.info("Webhook already processed, returning success", extra=log_context)
        return JsonResponse({"received": True})

    webhook_event.mark_processing()
    webhook_event.save(update_fields=["status", "attempts", "updated_at"])

    # Step 3: Correlate and reconcile
    start_time = time.time()
    try:
        event = EventCorrelator(ctx.stripe).correlate(event_data)
        result = reconcile(event, ctx)
    except Exception as e:
        logger.exception(
            f"Webhook processing failed: {type(e).__name__}",
            extra=log_context,
        )
        webhook_event.mark_failed(f"{type(e).__name__}: {e}")
        webhook_event.save(update_fields=["status", "error_message", "updated_at"])
        return JsonResponse({"received": True})

    webhook_event.mark_processed()
    webhook_event.save(
        update_fields=["status", "processed_at", "error_message", "updated_at"]
    )

    logger.info(
        "Webhook processed",
        extra={
            **log_context,
            "success": result.success,
            "error_code": result.error_code,
            "duration_ms": (time.time() - start_time) * 1000,
        },
    )

    # Step 4: Acknowledge
    return JsonResponse({"received": True})
