"""
Abstract base model shared by every persisted entity in the service.

Payment records and webhook audit rows both need creation and modification
timestamps for auditing and for newest-first listings, so those fields live
here instead of being repeated per model.

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin

    class Payment(UUIDPrimaryKeyMixin, BaseModel):
        amount_cents = models.PositiveBigIntegerField()
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """
    Abstract model adding ``created_at`` / ``updated_at`` timestamps.

    Fields:
        created_at: Set once on insert, indexed for time-ordered queries
        updated_at: Refreshed on every save (including ``update_fields``
            saves that list it explicitly)
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self.pk})"
