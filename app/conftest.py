"""
Root pytest configuration for the Django project.

pytest-django reads DJANGO_SETTINGS_MODULE from pyproject.toml and sets
Django up. Payment fixtures live in payments/conftest.py, webhook payload
builders in payments/webhooks/tests/conftest.py.
"""

import pytest


def pytest_configure():
    """Adjust settings for the test run."""
    from django.conf import settings

    # Use fast password hasher for tests (admin users only)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full request-to-webhook workflows)
    - test_views.py, test_handlers.py, service tests → integration
    - test_models.py, test_state_transitions.py, adapter tests, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    # Filename patterns for each category
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_handlers.py",
        "test_payment_store.py",
        "test_subscription_service.py",
        "test_token_purchase_service.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_exceptions.py",
        "test_services.py",
        "test_events.py",
        "test_state_transitions.py",
        "test_stripe_adapter.py",
        "test_entitlement_client.py",
        "test_authentication.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = item.path.name

        # Check patterns in priority order
        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            # Default: integration (safe for Django where most tests hit DB)
            item.add_marker(pytest.mark.integration)
