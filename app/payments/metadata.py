"""
Metadata keys stamped on Stripe objects.

Stripe echoes metadata back on every event about the object, which is how
webhook events are tied to users, websites and plans. The main service
reads the same keys, so they must not change.
"""

# Subscriptions and customers
META_APP_USER_ID = "appUserId"
META_WEBSITE_ID = "websiteId"
META_PLAN_ID = "planId"
META_FLOW = "type"

# Payment intents (``userId`` falls back to ``appUserId``)
META_USER_ID = "userId"
META_TOKENS_AMOUNT = "tokensAmount"
