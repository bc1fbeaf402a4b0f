"""
Membership Pydantic schemas for API request/response validation.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

from backend.src.models import Membership, MembershipRole


# ============================================================================
# Request Schemas
# ============================================================================


class MemberCreate(BaseModel):
    """Request schema for adding a user to a group (admins and owners)."""

    user_guid: str = Field(..., description="User GUID (usr_xxx)")
    role: MembershipRole = Field(default=MembershipRole.MEMBER)
    display_name: str = Field(..., min_length=1, max_length=255)
    icon: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=None, max_length=20)

    model_config = {
        "json_schema_extra": {
            "example": {
                "user_guid": "usr_01hgw2bbg0000000000000001",
                "role": "member",
                "display_name": "Alex (bass)",
                "icon": "guitar",
                "color": "#3b82f6",
            }
        }
    }


class MemberUpdate(BaseModel):
    """
    Request schema for changing a member's role or per-group profile.

    Role changes follow the role policy: owners and admins manage members,
    only owners grant or revoke ownership.
    """

    role: Optional[MembershipRole] = Field(default=None)
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    icon: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=None, max_length=20)


# ============================================================================
# Response Schemas
# ============================================================================


class MembershipResponse(BaseModel):
    """Response schema for a membership."""

    guid: str = Field(..., description="Membership GUID (mem_xxx)")
    user_guid: str
    group_guid: str
    group_name: str
    role: str
    display_name: str
    icon: str
    color: str
    joined_at: datetime

    @field_serializer("joined_at")
    @classmethod
    def serialize_datetime_utc(cls, v: datetime) -> str:
        return v.isoformat() + "Z" if v else None

    @classmethod
    def from_membership(cls, membership: Membership) -> "MembershipResponse":
        return cls(
            guid=membership.guid,
            user_guid=membership.user.guid,
            group_guid=membership.group.guid,
            group_name=membership.group.name,
            role=membership.role,
            display_name=membership.display_name,
            icon=membership.icon,
            color=membership.color,
            joined_at=membership.joined_at,
        )


class MemberListResponse(BaseModel):
    members: List[MembershipResponse]
    total: int
