"""
Unified calendar for one group.

Merges three sources into a single read view:
- the group's own events
- personal events (unavailability) of every member of the group
- events of other groups that any member also belongs to, annotated with
  that group's GUID and name

Design:
- A fixed number of set-based queries regardless of member or group count
  (members -> personal events -> foreign memberships -> foreign events)
- Every event appears at most once across the three lists
- Read-only; works inside the request session
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from backend.src.models import Event, Group, Membership
from backend.src.services.event_service import EventService
from backend.src.services.membership_service import MembershipService
from backend.src.services.exceptions import ValidationError
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


@dataclass
class MemberEvent:
    """A personal event with the owner's identity inside the viewed group."""
    event: Event
    membership_guid: str
    display_name: str
    color: str


@dataclass
class ForeignGroupEvent:
    """An event of another group, annotated with that group."""
    event: Event
    group_guid: str
    group_name: str


@dataclass
class UnifiedCalendar:
    group_events: List[Event] = field(default_factory=list)
    personal_events: List[MemberEvent] = field(default_factory=list)
    other_group_events: List[ForeignGroupEvent] = field(default_factory=list)


class CalendarService:
    """
    Build the unified calendar of a group.

    Usage:
        >>> service = CalendarService(db_session)
        >>> calendar = service.get_unified_calendar(group.id, date(2025, 3, 1), date(2025, 3, 31))
        >>> [e.group_name for e in calendar.other_group_events]
        ['Side Project']
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_service = EventService(db)
        self.membership_service = MembershipService(db)

    def get_unified_calendar(
        self,
        group_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> UnifiedCalendar:
        """
        Aggregate the calendar of a group for a date window.

        Args:
            group_id: Group being viewed
            start_date: First day of the window (inclusive), None = open
            end_date: Last day of the window (inclusive), None = open

        Returns:
            UnifiedCalendar whose three lists never share an event

        Raises:
            ValidationError: If end_date is before start_date
        """
        if start_date and end_date and end_date < start_date:
            raise ValidationError("end_date cannot be before start_date", field="end_date")

        calendar = UnifiedCalendar()
        seen_ids = set()

        # 1. Group events
        for event in self.event_service.list_group_events(group_id, start_date, end_date):
            if event.id not in seen_ids:
                seen_ids.add(event.id)
                calendar.group_events.append(event)

        # 2. Members of the group
        members = self.membership_service.list_group_members(group_id)
        member_by_user: Dict[int, Membership] = {m.user_id: m for m in members}
        if not member_by_user:
            return calendar

        # 3. Personal events of those members
        personal = self.event_service.list_personal_events_for_users(
            member_by_user.keys(), start_date, end_date
        )
        for event in personal:
            if event.id in seen_ids:
                continue
            seen_ids.add(event.id)
            member = member_by_user[event.owner_user_id]
            calendar.personal_events.append(
                MemberEvent(
                    event=event,
                    membership_guid=member.guid,
                    display_name=member.display_name,
                    color=member.color,
                )
            )

        # 4. Events of other groups the members belong to
        foreign_group_ids = {
            gid
            for (gid,) in (
                self.db.query(Membership.group_id)
                .filter(
                    Membership.user_id.in_(list(member_by_user.keys())),
                    Membership.group_id != group_id,
                )
                .distinct()
                .all()
            )
        }
        if foreign_group_ids:
            groups = {
                g.id: g
                for g in self.db.query(Group).filter(Group.id.in_(list(foreign_group_ids))).all()
            }
            foreign = self.event_service.list_events_for_groups(
                foreign_group_ids, start_date, end_date
            )
            for event in foreign:
                if event.id in seen_ids:
                    continue
                seen_ids.add(event.id)
                group = groups[event.group_id]
                calendar.other_group_events.append(
                    ForeignGroupEvent(
                        event=event,
                        group_guid=group.guid,
                        group_name=group.name,
                    )
                )

        logger.debug(
            "Built unified calendar",
            extra={
                "group_id": group_id,
                "group_events": len(calendar.group_events),
                "personal_events": len(calendar.personal_events),
                "other_group_events": len(calendar.other_group_events),
                "foreign_groups": len(foreign_group_ids),
            },
        )
        return calendar
