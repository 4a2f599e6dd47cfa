"""
Tests for Payment state transitions using django-fsm.

Valid paths:
    PENDING -> SUCCEEDED | FAILED | CANCELED
    FAILED -> SUCCEEDED | CANCELED
    SUCCEEDED -> FAILED | CANCELED
"""

import pytest
from django_fsm import TransitionNotAllowed, can_proceed

from payments.models import Payment
from payments.state_machines import PaymentStatus
from payments.tests.factories import PaymentFactory


class TestPaymentTransitions:
    """Tests for Payment state machine transitions."""

    # -------------------------------------------------------------------------
    # Valid Transitions
    # -------------------------------------------------------------------------

    def test_pending_to_succeeded(self, db):
        payment = PaymentFactory()

        payment.mark_succeeded()
        payment.save()

        payment = Payment.objects.get(pk=payment.pk)
        assert payment.status == PaymentStatus.SUCCEEDED
        assert payment.succeeded_at is not None

    def test_pending_to_failed_records_reason(self, db):
        payment = PaymentFactory()

        payment.mark_failed(reason="Your card was declined.")
        payment.save()

        payment = Payment.objects.get(pk=payment.pk)
        assert payment.status == PaymentStatus.FAILED
        assert payment.failed_at is not None
        assert payment.failure_reason == "Your card was declined."

    def test_failed_to_succeeded_clears_reason(self, db):
        payment = PaymentFactory(status=PaymentStatus.FAILED, failure_reason="declined")

        payment.mark_succeeded()
        payment.save()

        assert payment.status == PaymentStatus.SUCCEEDED
        assert payment.failure_reason is None

    def test_succeeded_to_failed(self, db):
        """A failed renewal invoice moves a paid subscription to FAILED."""
        payment = PaymentFactory(subscription=True, status=PaymentStatus.SUCCEEDED)

        payment.mark_failed(reason="Invoice in_2 payment failed")

        assert payment.status == PaymentStatus.FAILED

    @pytest.mark.parametrize(
        "status",
        [PaymentStatus.PENDING, PaymentStatus.SUCCEEDED, PaymentStatus.FAILED],
    )
    def test_any_non_terminal_to_canceled(self, db, status):
        payment = PaymentFactory(status=status)

        payment.mark_canceled()

        assert payment.status == PaymentStatus.CANCELED
        assert payment.canceled_at is not None

    # -------------------------------------------------------------------------
    # Invalid Transitions
    # -------------------------------------------------------------------------

    def test_canceled_is_terminal(self, db):
        payment = PaymentFactory(status=PaymentStatus.CANCELED)

        assert not can_proceed(payment.mark_succeeded)
        assert not can_proceed(payment.mark_failed)
        assert not can_proceed(payment.mark_canceled)

        with pytest.raises(TransitionNotAllowed):
            payment.mark_succeeded()

    def test_succeeded_cannot_succeed_again(self, db):
        payment = PaymentFactory(status=PaymentStatus.SUCCEEDED)

        with pytest.raises(TransitionNotAllowed):
            payment.mark_succeeded()

    def test_failed_cannot_fail_again(self, db):
        payment = PaymentFactory(status=PaymentStatus.FAILED)

        with pytest.raises(TransitionNotAllowed):
            payment.mark_failed()
