"""
Group events API endpoints.

Provides endpoints for:
- Listing a group's events in a date window
- Getting, creating, updating and deleting group events
- Checking a proposed event for conflicts

Design:
- Every endpoint requires membership of the group in the path
- The group scope always comes from the membership check, never from the
  request body, so an event GUID of another group answers 404
- Conflict checks are advisory and always return 200 with a report
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.middleware.tenant import GroupContext, require_membership
from backend.src.schemas.common import DeleteResponse
from backend.src.schemas.conflict import ConflictCheckRequest, ConflictReportResponse
from backend.src.schemas.event import EventCreate, EventResponse, EventUpdate
from backend.src.services.conflict_service import ConflictCandidate, ConflictService
from backend.src.services.event_service import EventDraft, EventService, TenantKey
from backend.src.services.exceptions import NotFoundError, ValidationError
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/groups/{group_guid}/events",
    tags=["Events"],
)


# ============================================================================
# Dependencies
# ============================================================================


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    """Create EventService instance with database session."""
    return EventService(db=db)


def get_conflict_service(db: Session = Depends(get_db)) -> ConflictService:
    """Create ConflictService instance with database session."""
    return ConflictService(db=db)


# ============================================================================
# API Endpoints
# ============================================================================


@router.get(
    "",
    response_model=List[EventResponse],
    summary="List group events",
    description="Events of the group overlapping the optional date window",
)
async def list_events(
    start_date: Optional[date] = Query(None, description="First day (inclusive)"),
    end_date: Optional[date] = Query(None, description="Last day (inclusive)"),
    ctx: GroupContext = Depends(require_membership),
    event_service: EventService = Depends(get_event_service),
) -> List[EventResponse]:
    """
    List events of the group.

    A multi-day event is returned when any of its days falls inside the
    window.

    Example:
        GET /api/groups/grp_xxx/events?start_date=2026-03-01&end_date=2026-03-31
    """
    if start_date and end_date and end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date cannot be before start_date",
        )
    try:
        events = event_service.list_group_events(ctx.group_id, start_date, end_date)
        return [EventResponse.from_event(e) for e in events]

    except Exception as e:
        logger.error(f"Error listing events: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list events",
        )


@router.post(
    "/check-conflicts",
    response_model=ConflictReportResponse,
    summary="Check a proposed event for conflicts",
)
async def check_conflicts(
    request: ConflictCheckRequest,
    ctx: GroupContext = Depends(require_membership),
    conflict_service: ConflictService = Depends(get_conflict_service),
) -> ConflictReportResponse:
    """
    Report events overlapping a proposal.

    Request Body:
        date: First day of the proposal
        end_date: Last day (optional)
        type: Proposed event type
        membership_guid: Member the check is about (defaults to the caller)
        exclude_event_guid: Event being edited
    """
    try:
        subject_user_id = conflict_service.resolve_subject_user_id(
            ctx.group_id, ctx.user_id, request.membership_guid
        )
        report = conflict_service.check_conflicts(
            group_id=ctx.group_id,
            candidate=ConflictCandidate(
                event_type=request.event_type.value,
                event_date=request.event_date,
                end_date=request.end_date,
            ),
            subject_user_id=subject_user_id,
            exclude_event_guid=request.exclude_event_guid,
        )
        return ConflictReportResponse(
            same_kind_conflicts=[EventResponse.from_event(e) for e in report.same_kind_conflicts],
            unavailability_conflicts=[
                EventResponse.from_event(e) for e in report.unavailability_conflicts
            ],
            affected_group_events=[
                EventResponse.from_event(e) for e in report.affected_group_events
            ],
            has_conflicts=report.has_conflicts,
        )

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.error(f"Error checking conflicts: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to check conflicts",
        )


@router.get(
    "/{event_guid}",
    response_model=EventResponse,
    summary="Get a group event",
)
async def get_event(
    event_guid: str,
    ctx: GroupContext = Depends(require_membership),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    try:
        event = event_service.get_event(TenantKey.group(ctx.group_id), event_guid)
        return EventResponse.from_event(event)

    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_guid} not found",
        )
    except Exception as e:
        logger.error(f"Error getting event {event_guid}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get event",
        )


@router.post(
    "",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a group event",
)
async def create_event(
    event_data: EventCreate,
    ctx: GroupContext = Depends(require_membership),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    """
    Create an event owned by the group, authored by the caller's membership.

    Raises:
        400: Invalid or contradictory fields (e.g. public gig without venue)
    """
    try:
        fields = event_data.model_dump()
        fields["event_type"] = event_data.event_type.value
        event = event_service.create_group_event(
            group_id=ctx.group_id,
            authored_by_membership_id=ctx.membership_id,
            draft=EventDraft(**fields),
        )

        logger.info(
            f"Created event: {event.guid}",
            extra={"event_guid": event.guid, "group_guid": ctx.group_guid},
        )
        return EventResponse.from_event(event)

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating event: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create event",
        )


@router.patch(
    "/{event_guid}",
    response_model=EventResponse,
    summary="Update a group event",
)
async def update_event(
    event_guid: str,
    event_data: EventUpdate,
    ctx: GroupContext = Depends(require_membership),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    """
    Partially update a group event.

    Raises:
        400: The merged event is invalid
        404: Event not found in this group
    """
    try:
        event = event_service.update_event(
            TenantKey.group(ctx.group_id), event_guid, event_data.to_patch()
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
        logger.error(f"Error updating event {event_guid}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update event",
        )


@router.delete(
    "/{event_guid}",
    response_model=DeleteResponse,
    summary="Delete a group event",
)
async def delete_event(
    event_guid: str,
    ctx: GroupContext = Depends(require_membership),
    event_service: EventService = Depends(get_event_service),
) -> DeleteResponse:
    try:
        deleted = event_service.delete_event(TenantKey.group(ctx.group_id), event_guid)
    except Exception as e:
        logger.error(f"Error deleting event {event_guid}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete event",
        )

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_guid} not found",
        )
    return DeleteResponse(message="Event deleted successfully", deleted_guid=event_guid)
