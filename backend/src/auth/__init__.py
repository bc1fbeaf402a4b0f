"""
Authentication module for the gigboard backend.

Bearer credentials are issued by an external identity provider. This
module turns a credential into a ResolvedPrincipal; provisioning the
matching User row and building request context happens in
``backend.src.middleware.tenant``.

Components:
- principal_resolver: Resolver interface and the HS256 JWT adapter
"""

from backend.src.auth.principal_resolver import (
    InvalidCredentialError,
    JWTPrincipalResolver,
    PrincipalResolver,
    ResolvedPrincipal,
    build_principal_resolver,
)

__all__ = [
    "InvalidCredentialError",
    "JWTPrincipalResolver",
    "PrincipalResolver",
    "ResolvedPrincipal",
    "build_principal_resolver",
]
