"""
Tests for the service layer base classes.
"""

import logging

import pytest

from core.services import BaseService, ServiceResult


class TestServiceResult:
    def test_success(self):
        result = ServiceResult.success({"id": 1})

        assert result.success is True
        assert result.data == {"id": 1}
        assert result.error is None
        assert bool(result) is True

    def test_failure(self):
        result = ServiceResult.failure("Cannot move payment", error_code="INVALID_TRANSITION")

        assert result.success is False
        assert result.data is None
        assert result.error_code == "INVALID_TRANSITION"
        assert bool(result) is False


class ExampleService(BaseService):
    pass


class TestBaseService:
    def test_logger_named_after_class(self):
        logger = ExampleService.get_logger()

        assert isinstance(logger, logging.Logger)
        assert logger.name == f"{__name__}.ExampleService"

    @pytest.mark.django_db(transaction=True)
    def test_atomic_rolls_back(self):
        from payments.models import WebhookEvent

        with pytest.raises(RuntimeError):
            with ExampleService.atomic():
                WebhookEvent.objects.create(
                    stripe_event_id="evt_rollback",
                    event_type="invoice.payment_succeeded",
                    source="subscriptions",
                    payload={},
                )
                raise RuntimeError("abort")

        assert not WebhookEvent.objects.filter(stripe_event_id="evt_rollback").exists()
