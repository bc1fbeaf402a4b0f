"""
Groups API endpoints.

Provides endpoints for:
- Listing the caller's groups and creating new ones
- Reading, updating (admin) and deleting (owner) a group
- Managing the group's members and their roles

Design:
- Membership is checked before anything else; an unknown group answers
  403 like a group the caller does not belong to
- Role rules for member management live in MembershipService; these
  endpoints only gate on the coarse role (admin or owner)
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.middleware.auth import require_auth
from backend.src.middleware.tenant import (
    GroupContext,
    PrincipalContext,
    require_group_admin,
    require_group_owner,
    require_membership,
)
from backend.src.models import Group, Membership
from backend.src.schemas.common import DeleteResponse
from backend.src.schemas.group import (
    GroupCreate,
    GroupListResponse,
    GroupResponse,
    GroupUpdate,
)
from backend.src.schemas.membership import (
    MemberCreate,
    MemberListResponse,
    MembershipResponse,
    MemberUpdate,
)
from backend.src.services.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from backend.src.services.group_service import GroupService
from backend.src.services.membership_service import MembershipService
from backend.src.services.user_service import UserService
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(prefix="/groups", tags=["Groups"])


# ============================================================================
# Dependencies
# ============================================================================


def get_group_service(db: Session = Depends(get_db)) -> GroupService:
    """Create GroupService instance with database session."""
    return GroupService(db=db)


def get_membership_service(db: Session = Depends(get_db)) -> MembershipService:
    """Create MembershipService instance with database session."""
    return MembershipService(db=db)


def _group_response(group: Group, membership: Optional[Membership] = None) -> GroupResponse:
    response = GroupResponse.model_validate(group)
    if membership is not None:
        response.role = membership.role
        response.membership_guid = membership.guid
    return response


def _enum_values(values):
    return [v.value for v in values] if values is not None else None


# ============================================================================
# Group Endpoints
# ============================================================================


@router.get("", response_model=GroupListResponse, summary="List my groups")
async def list_groups(
    ctx: PrincipalContext = Depends(require_auth),
    group_service: GroupService = Depends(get_group_service),
    membership_service: MembershipService = Depends(get_membership_service),
) -> GroupListResponse:
    """Groups the caller belongs to, each with the caller's role."""
    try:
        memberships = {
            m.group_id: m for m in membership_service.list_memberships(ctx.user_id)
        }
        groups = group_service.list_for_user(ctx.user_id)
        return GroupListResponse(
            groups=[_group_response(g, memberships.get(g.id)) for g in groups],
            total=len(groups),
        )

    except Exception as e:
        logger.error(f"Error listing groups: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list groups",
        )


@router.post(
    "",
    response_model=GroupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a group",
)
async def create_group(
    group_data: GroupCreate,
    ctx: PrincipalContext = Depends(require_auth),
    group_service: GroupService = Depends(get_group_service),
    membership_service: MembershipService = Depends(get_membership_service),
) -> GroupResponse:
    """
    Create a group; the caller becomes its owner.

    Raises:
        400: Invalid name or event types, or no alias available
    """
    try:
        group = group_service.create(
            name=group_data.name,
            creator_user_id=ctx.user_id,
            description=group_data.description,
            allowed_event_types=_enum_values(group_data.allowed_event_types),
            display_name=group_data.display_name,
            icon=group_data.icon,
            color=group_data.color,
        )
        logger.info(
            f"Created group: {group.guid}",
            extra={"group_guid": group.guid, "user_guid": ctx.user_guid},
        )
        return _group_response(group, membership_service.get_membership(ctx.user_id, group.id))

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating group: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create group",
        )


@router.get("/{group_guid}", response_model=GroupResponse, summary="Get a group")
async def get_group(
    ctx: GroupContext = Depends(require_membership),
    group_service: GroupService = Depends(get_group_service),
    membership_service: MembershipService = Depends(get_membership_service),
) -> GroupResponse:
    try:
        group = group_service.get_by_id(ctx.group_id)
        return _group_response(group, membership_service.get_membership(ctx.user_id, group.id))

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting group {ctx.group_guid}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get group",
        )


@router.patch("/{group_guid}", response_model=GroupResponse, summary="Update a group")
async def update_group(
    group_data: GroupUpdate,
    ctx: GroupContext = Depends(require_group_admin),
    group_service: GroupService = Depends(get_group_service),
    membership_service: MembershipService = Depends(get_membership_service),
) -> GroupResponse:
    """
    Update a group (owners and admins).

    Raises:
        400: Invalid values
        403: Caller is a plain member
    """
    try:
        group = group_service.update(
            ctx.group_id,
            name=group_data.name,
            description=group_data.description,
            avatar_url=group_data.avatar_url,
            allowed_event_types=_enum_values(group_data.allowed_event_types),
        )
        return _group_response(group, membership_service.get_membership(ctx.user_id, group.id))

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating group {ctx.group_guid}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update group",
        )


@router.delete("/{group_guid}", response_model=DeleteResponse, summary="Delete a group")
async def delete_group(
    ctx: GroupContext = Depends(require_group_owner),
    group_service: GroupService = Depends(get_group_service),
) -> DeleteResponse:
    """Delete a group with all its events, songs and memberships (owners only)."""
    try:
        group_service.delete(ctx.group_id)
        logger.info(
            f"Deleted group: {ctx.group_guid}",
            extra={"group_guid": ctx.group_guid, "user_guid": ctx.user_guid},
        )
        return DeleteResponse(message="Group deleted successfully", deleted_guid=ctx.group_guid)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Error deleting group {ctx.group_guid}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete group",
        )


# ============================================================================
# Member Endpoints
# ============================================================================


@router.get("/{group_guid}/members", response_model=MemberListResponse, summary="List members")
async def list_members(
    ctx: GroupContext = Depends(require_membership),
    membership_service: MembershipService = Depends(get_membership_service),
) -> MemberListResponse:
    try:
        members = membership_service.list_group_members(ctx.group_id)
        return MemberListResponse(
            members=[MembershipResponse.from_membership(m) for m in members],
            total=len(members),
        )

    except Exception as e:
        logger.error(f"Error listing members: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list members",
        )


@router.post(
    "/{group_guid}/members",
    response_model=MembershipResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a member",
)
async def add_member(
    member_data: MemberCreate,
    ctx: GroupContext = Depends(require_group_admin),
    db: Session = Depends(get_db),
    membership_service: MembershipService = Depends(get_membership_service),
) -> MembershipResponse:
    """
    Add an existing user to the group (owners and admins).

    Raises:
        400: Invalid role or color
        403: Only an owner can add another owner
        404: User not found
        409: User is already a member
    """
    try:
        user = UserService(db).get_by_guid(member_data.user_guid)
        membership = membership_service.add_member(
            group_id=ctx.group_id,
            user_id=user.id,
            role=member_data.role.value,
            display_name=member_data.display_name,
            icon=member_data.icon,
            color=member_data.color,
            acting_role=ctx.role,
        )
        return MembershipResponse.from_membership(membership)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except PermissionDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except Exception as e:
        logger.error(f"Error adding member: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add member",
        )


@router.patch(
    "/{group_guid}/members/{membership_guid}",
    response_model=MembershipResponse,
    summary="Update a member",
)
async def update_member(
    membership_guid: str,
    member_data: MemberUpdate,
    ctx: GroupContext = Depends(require_membership),
    membership_service: MembershipService = Depends(get_membership_service),
) -> MembershipResponse:
    """
    Change a member's role and/or per-group profile.

    Members may edit their own profile; role changes need an admin, and
    granting or revoking ownership needs an owner.

    Raises:
        400: Invalid role or color
        403: Policy forbids the change (including demoting the last owner)
        404: Membership not in this group
    """
    try:
        membership = membership_service.get_by_guid(ctx.group_id, membership_guid)
        if member_data.role is not None:
            membership = membership_service.change_role(
                ctx.group_id, membership_guid, member_data.role.value, ctx.membership_id
            )
        fields = member_data.model_dump(exclude_unset=True, exclude={"role"})
        if fields:
            membership = membership_service.update_profile(
                ctx.group_id, membership_guid, ctx.membership_id, **fields
            )
        return MembershipResponse.from_membership(membership)

    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Membership {membership_guid} not found",
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except PermissionDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating member {membership_guid}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update member",
        )


@router.delete(
    "/{group_guid}/members/{membership_guid}",
    response_model=DeleteResponse,
    summary="Remove a member",
)
async def remove_member(
    membership_guid: str,
    ctx: GroupContext = Depends(require_membership),
    membership_service: MembershipService = Depends(get_membership_service),
) -> DeleteResponse:
    """
    Remove a member, or leave the group when the GUID is the caller's own.

    The member's authored group events, readiness marks and vetoes are
    removed with the membership.

    Raises:
        403: Policy forbids the removal (including the last owner leaving)
        404: Membership not in this group
    """
    try:
        membership_service.remove_member(ctx.group_id, membership_guid, ctx.membership_id)
        return DeleteResponse(message="Member removed successfully", deleted_guid=membership_guid)

    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Membership {membership_guid} not found",
        )
    except PermissionDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    except Exception as e:
        logger.error(f"Error removing member {membership_guid}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to remove member",
        )
