"""
Pydantic schemas for event API request/response validation.

Provides data validation and serialization for:
- Group event creation and partial updates
- Personal unavailability creation and partial updates
- Event API responses (group, personal and foreign-group events)

Design:
- Field-level rules (types, lengths, date parsing) live here; cross-field
  business rules (venue vs location, allowed types) live in EventService
- GUIDs are exposed, never internal IDs
- Dates are inclusive; a missing end_date means a single-day event
"""

import json
from datetime import datetime, date, time
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, field_serializer

from backend.src.models import Event, EventType


# ============================================================================
# Request Schemas
# ============================================================================


class EventCreate(BaseModel):
    """
    Schema for creating a group event.

    Required:
        event_type: One of the group event types
        event_date: First day of the event

    Optional:
        end_date: Last day for multi-day events (inclusive)
        title: Title (clients fall back to the type label)
        start_time / end_time: Omit both for an all-day event
        is_public: Defaults to the event type's default (gigs and festivals
            are public)
        venue: Required for public rehearsals/performances
        location: Required for private rehearsals/performances
        notes: Free text
    """

    event_type: EventType = Field(..., description="Event type")
    event_date: date = Field(..., description="First day of the event")
    end_date: Optional[date] = Field(default=None, description="Last day (inclusive)")
    title: Optional[str] = Field(default=None, max_length=255)
    start_time: Optional[time] = Field(default=None, description="Start time")
    end_time: Optional[time] = Field(default=None, description="End time")
    is_public: Optional[bool] = Field(default=None)
    venue: Optional[str] = Field(default=None, max_length=255)
    location: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=5000)

    model_config = {
        "json_schema_extra": {
            "example": {
                "event_type": "public_gig",
                "event_date": "2026-03-15",
                "start_time": "20:00",
                "end_time": "23:00",
                "venue": "The Lexington, London",
                "title": "Album launch",
            }
        }
    }


class EventUpdate(BaseModel):
    """
    Schema for a partial event update.

    Only fields present in the request body are changed; the merged event
    is validated as a whole.
    """

    event_type: Optional[EventType] = Field(default=None)
    event_date: Optional[date] = Field(default=None)
    end_date: Optional[date] = Field(default=None)
    title: Optional[str] = Field(default=None, max_length=255)
    start_time: Optional[time] = Field(default=None)
    end_time: Optional[time] = Field(default=None)
    is_public: Optional[bool] = Field(default=None)
    venue: Optional[str] = Field(default=None, max_length=255)
    location: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=5000)

    @field_validator("event_type", "event_date")
    @classmethod
    def validate_not_null(cls, v):
        """event_type and event_date can be changed but not cleared."""
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    def to_patch(self) -> Dict[str, Any]:
        """Fields explicitly sent by the client, enums as values."""
        patch = self.model_dump(exclude_unset=True)
        if "event_type" in patch:
            patch["event_type"] = patch["event_type"].value
        return patch

    model_config = {
        "json_schema_extra": {
            "example": {
                "venue": "Moth Club, London",
                "start_time": "19:30",
            }
        }
    }


class UnavailabilityCreate(BaseModel):
    """
    Schema for marking the caller unavailable.

    ``recurring`` is stored as given and never expanded.
    """

    event_date: date = Field(..., alias="date", description="First unavailable day")
    end_date: Optional[date] = Field(default=None, description="Last unavailable day")
    title: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=5000)
    recurring: Optional[Dict[str, Any]] = Field(default=None)

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "date": "2026-04-02",
                "end_date": "2026-04-09",
                "notes": "Holiday",
            }
        },
    }


class UnavailabilityUpdate(BaseModel):
    """Schema for a partial unavailability update."""

    event_date: Optional[date] = Field(default=None, alias="date")
    end_date: Optional[date] = Field(default=None)
    title: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=5000)
    recurring: Optional[Dict[str, Any]] = Field(default=None)

    @field_validator("event_date")
    @classmethod
    def validate_date_not_null(cls, v: Optional[date]) -> date:
        if v is None:
            raise ValueError("date cannot be null")
        return v

    def to_patch(self) -> Dict[str, Any]:
        patch = self.model_dump(exclude_unset=True)
        if "recurring" in patch:
            patch["recurrence"] = patch.pop("recurring")
        return patch

    model_config = {"populate_by_name": True}


# ============================================================================
# Response Schemas
# ============================================================================


class EventResponse(BaseModel):
    """
    Schema for event API responses.

    Exactly one of group_guid / owner_user_guid is set.
    """

    guid: str = Field(..., description="Event GUID (evt_xxx)")
    event_type: str
    title: Optional[str] = None

    event_date: date
    end_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_all_day: bool

    is_public: bool
    venue: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    recurring: Optional[Dict[str, Any]] = None

    group_guid: Optional[str] = Field(default=None, description="Owning group (grp_xxx)")
    group_name: Optional[str] = None
    authored_by_membership_guid: Optional[str] = Field(default=None)
    owner_user_guid: Optional[str] = Field(default=None, description="Owner of a personal event")

    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    @classmethod
    def serialize_datetime_utc(cls, v: datetime) -> str:
        """Serialize datetime as ISO 8601 with explicit UTC timezone."""
        return v.isoformat() + "Z" if v else None

    @classmethod
    def from_event(cls, event: Event, **extra) -> "EventResponse":
        """Build a response from an Event row; ``extra`` adds or overrides fields."""
        data = dict(
            guid=event.guid,
            event_type=event.event_type,
            title=event.title,
            event_date=event.event_date,
            end_date=event.end_date,
            start_time=event.start_time,
            end_time=event.end_time,
            is_all_day=event.is_all_day,
            is_public=event.is_public,
            venue=event.venue,
            location=event.location,
            notes=event.notes,
            recurring=json.loads(event.recurrence_json) if event.recurrence_json else None,
            group_guid=event.group.guid if event.group is not None else None,
            group_name=event.group.name if event.group is not None else None,
            authored_by_membership_guid=(
                event.authored_by.guid if event.authored_by is not None else None
            ),
            owner_user_guid=event.owner.guid if event.owner is not None else None,
            created_at=event.created_at,
            updated_at=event.updated_at,
        )
        data.update(extra)
        return cls(**data)

    model_config = {
        "json_schema_extra": {
            "example": {
                "guid": "evt_01hgw2bbg0000000000000001",
                "event_type": "rehearsal",
                "title": None,
                "event_date": "2026-03-01",
                "end_date": None,
                "start_time": "19:00:00",
                "end_time": "22:00:00",
                "is_all_day": False,
                "is_public": False,
                "venue": None,
                "location": "Studio B",
                "group_guid": "grp_01hgw2bbg0000000000000001",
                "group_name": "The Night Owls",
                "authored_by_membership_guid": "mem_01hgw2bbg0000000000000001",
                "owner_user_guid": None,
                "created_at": "2026-01-10T12:00:00Z",
                "updated_at": "2026-01-10T12:00:00Z",
            }
        }
    }
