"""
Base service layer patterns for business logic encapsulation.

This module provides:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with a per-service logger and transaction helper

Pattern Comparison:
    - ServiceResult: Use for expected outcomes a caller inspects but does not
      propagate (a webhook handler skipping an event, a missing record)
    - Exceptions: Use for failures the caller must surface (upstream errors,
      validation errors on a synchronous request)

Usage:
    from core.services import BaseService, ServiceResult

    class PaymentStore(BaseService):
        @classmethod
        def mark_failed(cls, payment_id) -> ServiceResult[Payment]:
            with cls.atomic():
                ...
            cls.get_logger().info("Payment marked failed")
            return ServiceResult.success(payment)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code
        errors: Field-level errors for validation failures
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result carrying ``data``."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code
            errors: Field-level errors (for validation failures)
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Services are stateless: use @classmethod and pass collaborators in
    explicitly (see payments.context.BillingContext).
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class (module + class)
        for easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around ``django.db.transaction.atomic`` that makes
        transaction boundaries explicit in service code.
        """
        with transaction.atomic():
            yield
