"""
Event model for calendar entries.

An Event is either group-owned (rehearsals, gigs, meetings...) or personal
(a member's unavailability, visible to every group that member belongs to).
Exactly one of ``group_id`` / ``owner_user_id`` is set.

Design Rationale:
- Event types form a closed enum; business rules branch on the EVENT_KINDS
  table rather than on type strings
- Dates are inclusive: a multi-day event spans [event_date, end_date]
- Missing start/end times mean an all-day event
- location (private events) and venue (public events) are mutually exclusive
- recurrence_json is stored verbatim for personal events and never expanded
"""

import enum
from dataclasses import dataclass
from datetime import datetime, date
from typing import Dict

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, Time, Text,
    ForeignKey, Index, CheckConstraint, event as sa_event
)
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class EventType(str, enum.Enum):
    """Closed set of event types."""
    REHEARSAL = "rehearsal"
    RECORDING = "recording"
    PUBLIC_GIG = "public_gig"
    PRIVATE_BOOKING = "private_booking"
    FESTIVAL = "festival"
    MEETING = "meeting"
    OPEN_SLOT = "open_slot"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class EventKind:
    """
    Behaviour flags for one EventType.

    Attributes:
        is_personal: Owned by a user, not a group
        commits_group: Takes part in group conflict checks (rehearsals and
            performances)
        needs_place: A venue (public) or location (private) is required
        public_by_default: Default for is_public when the client omits it
    """
    is_personal: bool = False
    commits_group: bool = False
    needs_place: bool = False
    public_by_default: bool = False


EVENT_KINDS: Dict[EventType, EventKind] = {
    EventType.REHEARSAL: EventKind(commits_group=True, needs_place=True),
    EventType.RECORDING: EventKind(commits_group=True, needs_place=True),
    EventType.PUBLIC_GIG: EventKind(
        commits_group=True, needs_place=True, public_by_default=True
    ),
    EventType.PRIVATE_BOOKING: EventKind(commits_group=True, needs_place=True),
    EventType.FESTIVAL: EventKind(
        commits_group=True, needs_place=True, public_by_default=True
    ),
    EventType.MEETING: EventKind(),
    EventType.OPEN_SLOT: EventKind(),
    EventType.UNAVAILABLE: EventKind(is_personal=True),
}

GROUP_EVENT_TYPES = tuple(t for t, k in EVENT_KINDS.items() if not k.is_personal)
PERSONAL_EVENT_TYPES = tuple(t for t, k in EVENT_KINDS.items() if k.is_personal)


def kind_of(event_type) -> EventKind:
    """Look up the EventKind for an EventType or its string value."""
    return EVENT_KINDS[EventType(event_type)]


class Event(Base, GuidMixin):
    """
    Calendar event.

    Attributes:
        id: Primary key (internal, never exposed)
        uuid / guid: External identifier (evt_xxx)

        Ownership (exactly one side is set):
            group_id: Owning group for group events
            authored_by_membership_id: Membership that created the group event
            owner_user_id: Owning user for personal events

        Core Fields:
            event_type: EventType value
            title: Optional title (clients fall back to the type label)
            notes: Free text

        Time Fields:
            event_date: First day (inclusive)
            end_date: Last day (inclusive), NULL for single-day events
            start_time / end_time: NULL for all-day events
            is_all_day: Derived on write

        Place Fields:
            is_public: Public events carry a venue, private ones a location
            venue: Public venue name/address
            location: Private location

        recurrence_json: Opaque recurrence descriptor (personal events only)

    Indexes:
        - (group_id, event_date) for group calendar reads
        - (owner_user_id, event_date) for personal calendar reads
    """

    __tablename__ = "events"

    GUID_PREFIX = "evt"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Ownership
    group_id = Column(
        Integer,
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    authored_by_membership_id = Column(
        Integer,
        ForeignKey("memberships.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    owner_user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    # Core fields
    event_type = Column(String(30), nullable=False)
    title = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    # Time fields
    event_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    is_all_day = Column(Boolean, default=False, nullable=False)

    # Place fields
    is_public = Column(Boolean, default=False, nullable=False)
    venue = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)

    recurrence_json = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    group = relationship("Group", lazy="select")
    authored_by = relationship("Membership", lazy="select")
    owner = relationship(
        "User",
        back_populates="personal_events",
        foreign_keys=[owner_user_id],
        lazy="select",
    )

    __table_args__ = (
        CheckConstraint(
            "(group_id IS NULL) <> (owner_user_id IS NULL)",
            name="ck_events_single_owner",
        ),
        Index("idx_events_group_date", "group_id", "event_date"),
        Index("idx_events_owner_date", "owner_user_id", "event_date"),
    )

    @property
    def kind(self) -> EventKind:
        return kind_of(self.event_type)

    @property
    def is_personal(self) -> bool:
        return self.owner_user_id is not None

    @property
    def last_date(self) -> date:
        """Last day covered by the event (inclusive)."""
        return self.end_date or self.event_date

    def __repr__(self) -> str:
        return (
            f"<Event("
            f"id={self.id}, "
            f"type='{self.event_type}', "
            f"date={self.event_date}, "
            f"group_id={self.group_id}, "
            f"owner_user_id={self.owner_user_id}"
            f")>"
        )

    def __str__(self) -> str:
        return f"{self.title or self.event_type} - {self.event_date}"


def check_single_owner(group_id, owner_user_id) -> None:
    """
    Enforce that an event has exactly one owner.

    Raises:
        ValueError: If both or neither of group_id / owner_user_id are set
    """
    if (group_id is None) == (owner_user_id is None):
        raise ValueError(
            "An event must belong to exactly one of a group or a user"
        )


@sa_event.listens_for(Event, "before_insert")
@sa_event.listens_for(Event, "before_update")
def _validate_event_owner(mapper, connection, target: Event) -> None:
    check_single_owner(target.group_id, target.owner_user_id)
