"""
Pydantic schemas for API request/response validation.

This module exports all schema classes for use in API endpoints.
"""

from backend.src.schemas.common import DeleteResponse, ErrorResponse
from backend.src.schemas.event import (
    EventCreate,
    EventUpdate,
    EventResponse,
    UnavailabilityCreate,
    UnavailabilityUpdate,
)
from backend.src.schemas.conflict import ConflictCheckRequest, ConflictReportResponse
from backend.src.schemas.calendar import (
    ForeignGroupEventResponse,
    MemberEventResponse,
    UnifiedCalendarResponse,
)
from backend.src.schemas.group import (
    GroupCreate,
    GroupUpdate,
    GroupResponse,
    GroupListResponse,
)
from backend.src.schemas.membership import (
    MemberCreate,
    MemberUpdate,
    MembershipResponse,
    MemberListResponse,
)
from backend.src.schemas.user import UserProfileUpdate, UserResponse, MeResponse
from backend.src.schemas.song import (
    SongCreate,
    SongResponse,
    SongListResponse,
    ReadinessUpdate,
    ReadinessResponse,
    VetoResponse,
)

__all__ = [
    "DeleteResponse",
    "ErrorResponse",
    "EventCreate",
    "EventUpdate",
    "EventResponse",
    "UnavailabilityCreate",
    "UnavailabilityUpdate",
    "ConflictCheckRequest",
    "ConflictReportResponse",
    "ForeignGroupEventResponse",
    "MemberEventResponse",
    "UnifiedCalendarResponse",
    "GroupCreate",
    "GroupUpdate",
    "GroupResponse",
    "GroupListResponse",
    "MemberCreate",
    "MemberUpdate",
    "MembershipResponse",
    "MemberListResponse",
    "UserProfileUpdate",
    "UserResponse",
    "MeResponse",
    "SongCreate",
    "SongResponse",
    "SongListResponse",
    "ReadinessUpdate",
    "ReadinessResponse",
    "VetoResponse",
]
