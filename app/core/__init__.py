"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks shared by the domain apps. No chat or
notification logic lives here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling
    - ErrorKind: Failure categories (bad_request, forbidden, not_found, conflict)

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - NotFoundError: 404 for code paths with no ServiceResult to return
    - api_exception_handler: Renders application and DRF errors in the
      failed-result shape

Views (import from core.views):
    - health_check: Liveness/readiness endpoint
    - service_error_response: Failed ServiceResult -> DRF Response

Note:
    Django models are NOT imported here to avoid AppRegistryNotReady
    errors. Import them directly from their modules.
"""

from .services import BaseService, ErrorKind, ServiceResult

__all__ = [
    "BaseService",
    "ErrorKind",
    "ServiceResult",
]
