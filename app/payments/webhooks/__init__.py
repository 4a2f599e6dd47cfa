"""
Webhook handling for payment events from Stripe.

- events: EventCorrelator, which turns raw events into typed subjects plus
  business identifiers
- handlers: the reconciliation policy per event type
- views: the two signed webhook endpoints

Events are verified, stored idempotently and reconciled inline.
"""
