"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the payments app. No billing logic lives
here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - MetadataMixin: Flexible JSON metadata storage

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes and HTTP status
    - ValidationError, NotFoundError, PermissionDeniedError,
      ExternalServiceError

Views (import from core.views):
    - health_check: Database health probe

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

from .exceptions import (
    BaseApplicationError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .services import BaseService, ServiceResult

__all__ = [
    "BaseService",
    "ServiceResult",
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ExternalServiceError",
]
