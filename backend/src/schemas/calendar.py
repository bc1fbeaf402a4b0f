"""
Pydantic schemas for the unified group calendar.
"""

from typing import List

from pydantic import BaseModel, Field

from backend.src.schemas.event import EventResponse


class MemberEventResponse(EventResponse):
    """A member's personal event, shown with their identity in the group."""

    membership_guid: str = Field(..., description="Member (mem_xxx)")
    member_display_name: str
    member_color: str


class ForeignGroupEventResponse(EventResponse):
    """
    An event of another group a member also belongs to.

    group_guid / group_name name the other group.
    """

    is_other_group: bool = True


class UnifiedCalendarResponse(BaseModel):
    """The three calendar sources; no event appears in more than one list."""

    group_events: List[EventResponse] = Field(default_factory=list)
    personal_events: List[MemberEventResponse] = Field(default_factory=list)
    other_group_events: List[ForeignGroupEventResponse] = Field(default_factory=list)
