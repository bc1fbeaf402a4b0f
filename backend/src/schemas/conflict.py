"""
Pydantic schemas for conflict checks.

Provides data validation and serialization for:
- Conflict check requests (a proposed event, optionally for another member)
- Conflict reports (three disjoint lists of overlapping events)
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from backend.src.models import EventType
from backend.src.schemas.event import EventResponse


# ============================================================================
# Request Schemas
# ============================================================================


class ConflictCheckRequest(BaseModel):
    """
    A proposed event to check against stored commitments.

    Attributes:
        event_date: First day of the proposal (JSON key ``date``)
        end_date: Last day (inclusive)
        event_type: Proposed type (JSON key ``type``)
        membership_guid: Member the check is about (defaults to the caller)
        exclude_event_guid: Event being edited, ignored in the result
    """

    event_date: date = Field(..., alias="date")
    end_date: Optional[date] = Field(default=None)
    event_type: EventType = Field(..., alias="type")
    membership_guid: Optional[str] = Field(default=None, description="Member (mem_xxx)")
    exclude_event_guid: Optional[str] = Field(default=None, description="Event (evt_xxx)")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "date": "2026-03-01",
                "type": "rehearsal",
                "exclude_event_guid": "evt_01hgw2bbg0000000000000001",
            }
        },
    }


# ============================================================================
# Response Schemas
# ============================================================================


class ConflictReportResponse(BaseModel):
    """
    Result of a conflict check.

    Conflicts are advisory; a report with entries never blocks saving.
    """

    same_kind_conflicts: List[EventResponse] = Field(default_factory=list)
    unavailability_conflicts: List[EventResponse] = Field(default_factory=list)
    affected_group_events: List[EventResponse] = Field(default_factory=list)
    has_conflicts: bool = False
