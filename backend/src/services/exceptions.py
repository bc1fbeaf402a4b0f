"""
Custom exceptions for the service layer.

Each exception type maps to one error kind of the HTTP surface:

- ValidationError -> 400 (validation)
- PermissionDeniedError -> 403 (forbidden)
- NotFoundError -> 404 (not_found), also used for cross-tenant access
- ConflictError -> 409 (conflict)
"""

from typing import Any, Optional


class ServiceError(Exception):
    """Base exception for service layer errors."""
    pass


class NotFoundError(ServiceError):
    """Raised when a requested resource is not found (or not in scope)."""

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier} not found")


class ConflictError(ServiceError):
    """Raised when an operation conflicts with existing state."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(ServiceError):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


class PermissionDeniedError(ServiceError):
    """Raised when the acting member's role does not allow an operation."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
