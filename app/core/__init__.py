"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the domain apps:

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)
    - VersionedModel: BaseModel with an atomically incremented version

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes and HTTP status
    - ValidationError, NotFoundError, PermissionDeniedError, ConflictError,
      InsufficientResourceError, ExternalServiceError

Views (import from core.views):
    - health_check: Database/cache probe for orchestration
"""
