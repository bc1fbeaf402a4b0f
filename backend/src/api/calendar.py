"""
Unified calendar API endpoint.

GET /api/groups/{group_guid}/calendar returns the group's own events, the
personal events of its members, and the events of other groups those
members belong to, in three lists that never share an event.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.middleware.tenant import GroupContext, require_membership
from backend.src.schemas.calendar import (
    ForeignGroupEventResponse,
    MemberEventResponse,
    UnifiedCalendarResponse,
)
from backend.src.schemas.event import EventResponse
from backend.src.services.calendar_service import CalendarService
from backend.src.services.exceptions import ValidationError
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/groups/{group_guid}/calendar",
    tags=["Calendar"],
)


def get_calendar_service(db: Session = Depends(get_db)) -> CalendarService:
    """Create CalendarService instance with database session."""
    return CalendarService(db=db)


@router.get(
    "",
    response_model=UnifiedCalendarResponse,
    summary="Get the unified group calendar",
)
async def get_calendar(
    start_date: Optional[date] = Query(None, description="First day (inclusive)"),
    end_date: Optional[date] = Query(None, description="Last day (inclusive)"),
    ctx: GroupContext = Depends(require_membership),
    calendar_service: CalendarService = Depends(get_calendar_service),
) -> UnifiedCalendarResponse:
    """
    Example:
        GET /api/groups/grp_xxx/calendar?start_date=2026-03-01&end_date=2026-03-31

        Response:
        {
          "group_events": [...],
          "personal_events": [{..., "membership_guid": "mem_xxx", "member_display_name": "Sam"}],
          "other_group_events": [{..., "group_guid": "grp_yyy", "group_name": "Side Project"}]
        }
    """
    try:
        calendar = calendar_service.get_unified_calendar(ctx.group_id, start_date, end_date)

        return UnifiedCalendarResponse(
            group_events=[EventResponse.from_event(e) for e in calendar.group_events],
            personal_events=[
                MemberEventResponse.from_event(
                    item.event,
                    membership_guid=item.membership_guid,
                    member_display_name=item.display_name,
                    member_color=item.color,
                )
                for item in calendar.personal_events
            ],
            other_group_events=[
                ForeignGroupEventResponse.from_event(
                    item.event,
                    group_guid=item.group_guid,
                    group_name=item.group_name,
                )
                for item in calendar.other_group_events
            ],
        )

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.error(f"Error building calendar: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build calendar",
        )
