"""
Middleware components for the gigboard backend.

This module provides:
- PrincipalContext / GroupContext: request context dataclasses
- get_principal_context: bearer credential -> authenticated principal
- require_auth: FastAPI dependency requiring authentication
- require_membership / require_group_role / require_group_admin /
  require_group_owner: group tenancy gates
"""

from backend.src.middleware.tenant import (
    GroupContext,
    PrincipalContext,
    get_principal_context,
    require_group_admin,
    require_group_owner,
    require_group_role,
    require_membership,
)
from backend.src.middleware.auth import require_auth

__all__ = [
    "GroupContext",
    "PrincipalContext",
    "get_principal_context",
    "require_auth",
    "require_group_admin",
    "require_group_owner",
    "require_group_role",
    "require_membership",
]
