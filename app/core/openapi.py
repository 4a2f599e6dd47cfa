"""
OpenAPI schema customizations for drf-spectacular.

This module provides hooks to customize the generated OpenAPI schema,
such as tag descriptions for better documentation organization in ReDoc.

Tag naming follows the pattern: [App Name] - [Group Name]
Examples:
- Payments - Subscriptions (create, change plan, cancel)
- Payments - Token Purchases (one-time purchases)
- Payments - Records (status and history lookups)
"""

TAG_DESCRIPTIONS = {
    "Payments - Subscriptions": (
        "Stripe subscriptions for websites: first subscription, plan changes "
        "and cancellation. Returned client secrets pay the first invoice."
    ),
    "Payments - Token Purchases": (
        "One-time token purchases. Credits are added once Stripe confirms "
        "the payment."
    ),
    "Payments - Records": (
        "Payment status and history, for the main service only "
        "(X-Main-Service-Api-Key)."
    ),
}


def describe_payment_tags(result, generator, request, public):
    """
    Postprocessing hook adding descriptions to the tags used by views.

    Only tags that appear on at least one operation are listed, in the
    order of TAG_DESCRIPTIONS.
    """
    used_tags = set()
    for methods in result.get("paths", {}).values():
        for operation in methods.values():
            if isinstance(operation, dict):
                used_tags.update(operation.get("tags", []))

    result["tags"] = [
        {"name": name, "description": description}
        for name, description in TAG_DESCRIPTIONS.items()
        if name in used_tags
    ]
    return result
