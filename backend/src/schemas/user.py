"""
User Pydantic schemas for API request/response validation.

Covers the caller's own profile (GET/PUT /users/me).
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

from backend.src.schemas.membership import MembershipResponse


# ============================================================================
# Request Schemas
# ============================================================================


class UserProfileUpdate(BaseModel):
    """
    Request schema for updating the caller's profile.

    Only fields present in the body change; the profile counts as complete
    once first name, last name, display name, hometown and instrument are set.
    """

    display_name: Optional[str] = Field(default=None, max_length=255)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    hometown: Optional[str] = Field(default=None, max_length=255)
    instrument: Optional[str] = Field(default=None, max_length=100)
    avatar_url: Optional[str] = Field(default=None, max_length=2000)

    model_config = {
        "json_schema_extra": {
            "example": {
                "first_name": "Sam",
                "last_name": "Rivera",
                "display_name": "Sam",
                "hometown": "Leeds",
                "instrument": "Drums",
            }
        }
    }


# ============================================================================
# Response Schemas
# ============================================================================


class UserResponse(BaseModel):
    """Response schema for a user profile."""

    guid: str = Field(..., description="User GUID (usr_xxx)")
    email: Optional[str] = None
    phone: Optional[str] = None
    display_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    hometown: Optional[str] = None
    instrument: Optional[str] = None
    avatar_url: Optional[str] = None
    profile_completed: bool
    created_at: datetime

    @field_serializer("created_at")
    @classmethod
    def serialize_datetime_utc(cls, v: datetime) -> str:
        return v.isoformat() + "Z" if v else None

    model_config = {"from_attributes": True}


class MeResponse(BaseModel):
    """The caller's profile with every group membership."""

    user: UserResponse
    memberships: List[MembershipResponse]
