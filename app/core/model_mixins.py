"""
Model mixins combined with BaseModel.

Available Mixins:
    UUIDPrimaryKeyMixin: UUID primary key, so payment ids handed to the main
        service are not guessable and can be generated before insert
    MetadataMixin: JSON key-value storage for audit context that has no
        dedicated column (plan id, flow tag, token count, ...)

Note:
    Always list mixins before BaseModel in inheritance.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.db import models

if TYPE_CHECKING:
    from typing import Any


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use a random UUID as primary key instead of an auto-increment integer.

    Fields:
        id: UUIDField primary key (uuid4, generated in Python)
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class MetadataMixin(models.Model):
    """
    Flexible JSON metadata storage.

    Usage:
        payment.get_meta("tokensAmount")  # None if unset
    """

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Flexible key-value metadata storage",
    )

    class Meta:
        abstract = True

    def get_meta(self, key: str, default: Any = None) -> Any:
        """Get a metadata value by key, or ``default`` if missing."""
        return (self.metadata or {}).get(key, default)
