"""
Authentication dependencies for API routes.

Provides:
- require_auth: Any authenticated principal

These are thin wrappers around the context dependencies in tenant.py for
clearer API semantics.
"""

from fastapi import Depends

from backend.src.middleware.tenant import PrincipalContext, get_principal_context


async def require_auth(
    ctx: PrincipalContext = Depends(get_principal_context)
) -> PrincipalContext:
    """
    FastAPI dependency that requires authentication.

    Raises:
        HTTPException 401: If not authenticated
        HTTPException 429: If the client is blocked after repeated failures

    Example:
        @router.get("/groups")
        async def list_groups(ctx: PrincipalContext = Depends(require_auth)):
            return group_service.list_for_user(ctx.user_id)
    """
    # get_principal_context already raises 401 if not authenticated
    return ctx


__all__ = [
    "require_auth",
    "PrincipalContext",
]
