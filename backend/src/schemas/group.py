"""
Group Pydantic schemas for API request/response validation.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

from backend.src.models import EventType


# ============================================================================
# Request Schemas
# ============================================================================


class GroupCreate(BaseModel):
    """
    Request schema for creating a group.

    The creator becomes the owner; display_name/icon/color set the creator's
    identity inside the new group.
    """

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    allowed_event_types: Optional[List[EventType]] = Field(
        default=None,
        description="Group event types this group schedules (default: all)",
    )
    display_name: Optional[str] = Field(default=None, max_length=255)
    icon: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=None, max_length=20)

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "The Night Owls",
                "allowed_event_types": ["rehearsal", "public_gig", "meeting"],
                "display_name": "Sam (drums)",
                "icon": "drum",
                "color": "#ef4444",
            }
        }
    }


class GroupUpdate(BaseModel):
    """Request schema for updating a group (admins and owners)."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    avatar_url: Optional[str] = Field(default=None, max_length=2000)
    allowed_event_types: Optional[List[EventType]] = Field(default=None)


# ============================================================================
# Response Schemas
# ============================================================================


class GroupResponse(BaseModel):
    """Response schema for a single group."""

    guid: str = Field(..., description="Group GUID (grp_xxx)")
    name: str
    slug: str
    description: Optional[str] = None
    avatar_url: Optional[str] = None
    allowed_event_types: List[str]
    created_at: datetime

    # Caller's membership, when listed from the caller's point of view
    role: Optional[str] = Field(default=None, description="Caller's role")
    membership_guid: Optional[str] = Field(default=None, description="Caller's membership")

    @field_serializer("created_at")
    @classmethod
    def serialize_datetime_utc(cls, v: datetime) -> str:
        return v.isoformat() + "Z" if v else None

    model_config = {"from_attributes": True}


class GroupListResponse(BaseModel):
    """Response schema for the caller's groups."""

    groups: List[GroupResponse]
    total: int
