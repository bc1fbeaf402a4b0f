"""
Users API endpoints for the caller's own profile and unavailability.

Provides endpoints for:
- Reading and updating the caller's global profile
- Listing, creating, updating and deleting the caller's unavailability

Unavailability is a personal event: it belongs to the caller, never to a
group, and no other user can read or change it through these endpoints.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.middleware.auth import require_auth
from backend.src.middleware.tenant import PrincipalContext
from backend.src.models import EventType
from backend.src.schemas.common import DeleteResponse
from backend.src.schemas.event import (
    EventResponse,
    UnavailabilityCreate,
    UnavailabilityUpdate,
)
from backend.src.schemas.membership import MembershipResponse
from backend.src.schemas.user import MeResponse, UserProfileUpdate, UserResponse
from backend.src.services.event_service import EventDraft, EventService, TenantKey
from backend.src.services.exceptions import NotFoundError, ValidationError
from backend.src.services.membership_service import MembershipService
from backend.src.services.user_service import UserService
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db=db)


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    return EventService(db=db)


# ============================================================================
# Profile Endpoints
# ============================================================================


@router.get("/me", response_model=MeResponse)
async def get_me(
    ctx: PrincipalContext = Depends(require_auth),
    db: Session = Depends(get_db),
) -> MeResponse:
    """The caller's profile with every group membership."""
    try:
        user = UserService(db).get_by_id(ctx.user_id)
        memberships = MembershipService(db).list_memberships(ctx.user_id)
        return MeResponse(
            user=UserResponse.model_validate(user),
            memberships=[MembershipResponse.from_membership(m) for m in memberships],
        )

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Error loading profile: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load profile",
        )


@router.put("/me", response_model=UserResponse)
async def update_me(
    profile: UserProfileUpdate,
    ctx: PrincipalContext = Depends(require_auth),
    user_service: UserService = Depends(get_user_service),
) -> UserResponse:
    """
    Update the caller's profile.

    Only fields present in the body change.

    Raises:
        400: A name field was sent blank
    """
    try:
        user = user_service.update_profile(
            ctx.user_id, profile.model_dump(exclude_unset=True)
        )
        return UserResponse.model_validate(user)

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating profile: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile",
        )


# ============================================================================
# Unavailability Endpoints
# ============================================================================


@router.get("/me/unavailability", response_model=List[EventResponse])
async def list_unavailability(
    start_date: Optional[date] = Query(None, description="First day (inclusive)"),
    end_date: Optional[date] = Query(None, description="Last day (inclusive)"),
    ctx: PrincipalContext = Depends(require_auth),
    event_service: EventService = Depends(get_event_service),
) -> List[EventResponse]:
    if start_date and end_date and end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date cannot be before start_date",
        )
    try:
        events = event_service.list_personal_events(ctx.user_id, start_date, end_date)
        return [EventResponse.from_event(e) for e in events]

    except Exception as e:
        logger.error(f"Error listing unavailability: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list unavailability",
        )


@router.post(
    "/me/unavailability",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_unavailability(
    data: UnavailabilityCreate,
    ctx: PrincipalContext = Depends(require_auth),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    """
    Mark the caller unavailable for one or more days.

    Example:
        POST /api/users/me/unavailability
        {"date": "2026-04-02", "end_date": "2026-04-09", "notes": "Holiday"}
    """
    try:
        event = event_service.create_personal_event(
            ctx.user_id,
            EventDraft(
                event_type=EventType.UNAVAILABLE.value,
                event_date=data.event_date,
                end_date=data.end_date,
                title=data.title,
                notes=data.notes,
                recurrence=data.recurring,
            ),
        )
        logger.info(
            f"Created unavailability: {event.guid}",
            extra={"event_guid": event.guid, "user_guid": ctx.user_guid},
        )
        return EventResponse.from_event(event)

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating unavailability: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create unavailability",
        )


@router.patch("/me/unavailability/{event_guid}", response_model=EventResponse)
async def update_unavailability(
    event_guid: str,
    data: UnavailabilityUpdate,
    ctx: PrincipalContext = Depends(require_auth),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    try:
        event = event_service.update_event(
            TenantKey.principal(ctx.user_id), event_guid, data.to_patch()
        )
        return EventResponse.from_event(event)

    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_guid} not found",
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating unavailability {event_guid}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update unavailability",
        )


@router.delete("/me/unavailability/{event_guid}", response_model=DeleteResponse)
async def delete_unavailability(
    event_guid: str,
    ctx: PrincipalContext = Depends(require_auth),
    event_service: EventService = Depends(get_event_service),
) -> DeleteResponse:
    try:
        deleted = event_service.delete_event(TenantKey.principal(ctx.user_id), event_guid)
    except Exception as e:
        logger.error(f"Error deleting unavailability {event_guid}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete unavailability",
        )

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_guid} not found",
        )
    return DeleteResponse(message="Unavailability deleted successfully", deleted_guid=event_guid)
