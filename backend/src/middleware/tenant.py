"""
Request context dependencies for authentication and group tenancy.

Provides:
- PrincipalContext: the authenticated user of a request
- GroupContext: the caller's membership in the group named by the path
- get_principal_context: bearer credential -> PrincipalContext (401)
- require_membership: PrincipalContext + {group_guid} -> GroupContext (400/403)
- require_group_role / require_group_admin / require_group_owner: role gates

Failed credential validations are counted per client IP in the TTLStore
found on ``app.state.auth_failures``. After too many failures inside the
window the IP is blocked with 429 for a cool-down period.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from backend.src.auth.principal_resolver import (
    InvalidCredentialError,
    PrincipalResolver,
    build_principal_resolver,
)
from backend.src.config.settings import AppSettings, get_settings
from backend.src.db.database import get_db
from backend.src.models import MembershipRole
from backend.src.services.exceptions import ConflictError, NotFoundError
from backend.src.utils.client_ip import get_client_ip
from backend.src.utils.logging_config import get_logger
from backend.src.utils.ttl_store import TTLStore


logger = get_logger("auth")

_FAILURE_KEY = "auth-failures"
_BLOCK_KEY = "auth-blocked"
# Failures before a warning is logged (blocking happens at the configured threshold)
_FAILURE_WARN = 5


@dataclass
class PrincipalContext:
    """
    The authenticated user of the current request.

    Attributes:
        user_id: Internal user ID for database queries
        user_guid: User's external GUID (usr_xxx)
        email: Verified email, if any
        phone: Verified phone, if any
        profile_completed: Whether the global profile is complete
        is_platform_admin: Platform-wide administrator flag

    Usage:
        @router.get("/me")
        async def me(ctx: PrincipalContext = Depends(get_principal_context)):
            return user_service.get_by_id(ctx.user_id)
    """

    user_id: int
    user_guid: str
    email: Optional[str] = None
    phone: Optional[str] = None
    profile_completed: bool = False
    is_platform_admin: bool = False

    def __post_init__(self):
        if not self.user_id or not self.user_guid:
            raise ValueError("user_id and user_guid are required")


@dataclass
class GroupContext:
    """
    The caller's membership in the group addressed by the request path.

    All group-scoped service calls take ``group_id`` from here, never from
    client input.
    """

    group_id: int
    group_guid: str
    group_name: str
    membership_id: int
    membership_guid: str
    role: str
    user_id: int
    user_guid: str


# ---------------------------------------------------------------------------
# Failed credential tracking
# ---------------------------------------------------------------------------

def get_failure_store(request: Request) -> TTLStore:
    """The application's failed-credential store (created on first use)."""
    store = getattr(request.app.state, "auth_failures", None)
    if store is None:
        store = TTLStore()
        request.app.state.auth_failures = store
    return store


def get_principal_resolver(request: Request) -> Optional[PrincipalResolver]:
    """The application's principal resolver (built from settings on first use)."""
    state = request.app.state
    if not hasattr(state, "principal_resolver"):
        state.principal_resolver = build_principal_resolver(get_settings())
    return state.principal_resolver


def _is_blocked(store: TTLStore, ip: str) -> bool:
    return (_BLOCK_KEY, ip) in store


def _record_failure(store: TTLStore, ip: str, settings: AppSettings) -> None:
    count = store.incr((_FAILURE_KEY, ip), settings.auth_failure_window_seconds)
    if count >= settings.auth_failure_block_threshold:
        store.put((_BLOCK_KEY, ip), True, settings.auth_failure_block_seconds)
        store.pop((_FAILURE_KEY, ip))
        logger.warning(
            "Blocking client after repeated invalid credentials",
            extra={
                "event": "auth.blocked",
                "client_ip": ip,
                "failure_count": count,
                "block_seconds": settings.auth_failure_block_seconds,
            },
        )
    elif count >= _FAILURE_WARN:
        logger.warning(
            "Repeated invalid credentials",
            extra={"event": "auth.failures", "client_ip": ip, "failure_count": count},
        )


def _unauthenticated(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

async def get_principal_context(
    request: Request,
    db: Session = Depends(get_db),
) -> PrincipalContext:
    """
    FastAPI dependency resolving the bearer credential into a principal.

    The User row is provisioned on the first successful resolution.

    Raises:
        HTTPException 401: Missing or invalid credential
        HTTPException 429: Client IP blocked after repeated failures
    """
    from backend.src.services.user_service import UserService

    settings = get_settings()
    store = get_failure_store(request)
    client_ip = get_client_ip(request)

    if _is_blocked(store, client_ip):
        logger.info(
            "Rejected credential from blocked client",
            extra={"event": "auth.rejected", "client_ip": client_ip},
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many failed authentication attempts. Try again later.",
        )

    auth_header = request.headers.get("Authorization", "")
    scheme, _, credential = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not credential.strip():
        raise _unauthenticated("Authentication required")

    resolver = get_principal_resolver(request)
    if resolver is None:
        raise _unauthenticated("Authentication is not configured")

    try:
        principal = resolver.resolve(credential.strip())
    except InvalidCredentialError as e:
        _record_failure(store, client_ip, settings)
        raise _unauthenticated(str(e))

    try:
        user = UserService(db).get_or_create_by_subject(principal)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    store.pop((_FAILURE_KEY, client_ip))

    return PrincipalContext(
        user_id=user.id,
        user_guid=user.guid,
        email=user.email,
        phone=user.phone,
        profile_completed=user.profile_completed,
        is_platform_admin=user.is_platform_admin,
    )


async def require_membership(
    request: Request,
    group_guid: str,
    principal: PrincipalContext = Depends(get_principal_context),
    db: Session = Depends(get_db),
) -> GroupContext:
    """
    FastAPI dependency requiring membership of the group in the path.

    An unknown group GUID is answered like a group the caller does not
    belong to, so group existence is not disclosed.

    Raises:
        HTTPException 400: group_guid is blank
        HTTPException 403: Group unknown or caller not a member
    """
    from backend.src.services.group_service import GroupService
    from backend.src.services.membership_service import MembershipService

    if not group_guid or not group_guid.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Group id is required",
        )

    forbidden = HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not a member of this group",
    )

    try:
        group = GroupService(db).get_by_guid(group_guid.strip())
    except NotFoundError:
        raise forbidden

    membership = MembershipService(db).get_membership(principal.user_id, group.id)
    if membership is None:
        logger.info(
            "Group access denied",
            extra={"user_guid": principal.user_guid, "group_guid": group_guid},
        )
        raise forbidden

    ctx = GroupContext(
        group_id=group.id,
        group_guid=group.guid,
        group_name=group.name,
        membership_id=membership.id,
        membership_guid=membership.guid,
        role=membership.role,
        user_id=principal.user_id,
        user_guid=principal.user_guid,
    )
    request.state.group_context = ctx
    return ctx


def require_group_role(*roles: str) -> Callable:
    """
    Build a dependency that requires one of ``roles`` in the path's group.

    Example:
        @router.delete("/{group_guid}")
        async def delete_group(ctx: GroupContext = Depends(require_group_owner)):
            ...
    """
    allowed = frozenset(getattr(r, "value", r) for r in roles)

    async def _require_role(
        ctx: GroupContext = Depends(require_membership),
    ) -> GroupContext:
        if ctx.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role for this action",
            )
        return ctx

    return _require_role


require_group_admin = require_group_role(MembershipRole.OWNER, MembershipRole.ADMIN)
require_group_owner = require_group_role(MembershipRole.OWNER)
