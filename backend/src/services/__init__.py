"""
Service layer for business logic.

Service classes are imported from their own modules
(``backend.src.services.event_service`` etc.); this package only re-exports
the exception hierarchy so that models can import GUID helpers from
``backend.src.services.guid`` without pulling in every service.
"""

from backend.src.services.exceptions import (
    ServiceError,
    NotFoundError,
    ConflictError,
    ValidationError,
    PermissionDeniedError,
)

__all__ = [
    "ServiceError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "PermissionDeniedError",
]
