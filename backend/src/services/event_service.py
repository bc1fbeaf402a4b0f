"""
Event repository: scoped storage of group and personal events.

Every mutation names its tenant with a TenantKey. A group-scoped key can
only reach events whose group_id matches; a principal-scoped key can only
reach that user's personal events. Anything else is reported as
NotFoundError (update) or False (delete), so a cross-tenant GUID behaves
exactly like an unknown one.

Design:
- Date-range reads use inclusive overlap: an event spanning
  [event_date, end_date] is returned when it touches the window at all
- Validation happens before anything is written
- Personal events are always all-day and carry no venue
- Group events must use a type the group allows
"""

import enum
import json
from dataclasses import dataclass
from datetime import date, time
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.src.models import (
    Event, EventType, Group, Membership, EVENT_KINDS
)
from backend.src.models.event import check_single_owner
from backend.src.utils.logging_config import get_logger
from backend.src.services.exceptions import NotFoundError, ValidationError
from backend.src.services.guid import GuidService


logger = get_logger("services")


class TenantKind(str, enum.Enum):
    """Owner scope of an event mutation."""
    GROUP = "group"
    PRINCIPAL = "principal"


@dataclass(frozen=True)
class TenantKey:
    """
    Scope of an event read or mutation.

    Attributes:
        kind: GROUP for group-owned events, PRINCIPAL for personal events
        id: Internal group ID or user ID
    """
    kind: TenantKind
    id: int

    @classmethod
    def group(cls, group_id: int) -> "TenantKey":
        return cls(TenantKind.GROUP, group_id)

    @classmethod
    def principal(cls, user_id: int) -> "TenantKey":
        return cls(TenantKind.PRINCIPAL, user_id)


@dataclass
class EventDraft:
    """Fields of a new event, before validation."""
    event_type: str
    event_date: date
    end_date: Optional[date] = None
    title: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_public: Optional[bool] = None
    venue: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    recurrence: Optional[Dict[str, Any]] = None

    def as_fields(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "event_date": self.event_date,
            "end_date": self.end_date,
            "title": self.title,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "is_public": self.is_public,
            "venue": self.venue,
            "location": self.location,
            "notes": self.notes,
            "recurrence": self.recurrence,
        }


# Fields a patch may touch
PATCHABLE_FIELDS = frozenset(EventDraft.__dataclass_fields__.keys())


class EventService:
    """
    Service for calendar events.

    Usage:
        >>> service = EventService(db_session)
        >>> draft = EventDraft(event_type="rehearsal", event_date=date(2025, 3, 1),
        ...                    location="Studio B")
        >>> event = service.create_group_event(group.id, membership.id, draft)
        >>> service.delete_event(TenantKey.group(group.id), event.guid)
        True
    """

    def __init__(self, db: Session):
        """
        Initialize event service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_group_events(
        self,
        group_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Event]:
        """Events owned by one group that overlap the window."""
        return self.list_events_for_groups([group_id], start_date, end_date)

    def list_events_for_groups(
        self,
        group_ids: Iterable[int],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Event]:
        """
        Events owned by any of the given groups that overlap the window.

        One query regardless of how many groups are requested.
        """
        group_ids = list(set(group_ids))
        if not group_ids:
            return []
        query = self.db.query(Event).filter(Event.group_id.in_(group_ids))
        return self._in_range(query, start_date, end_date).all()

    def list_personal_events(
        self,
        user_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Event]:
        """Personal events of one user that overlap the window."""
        return self.list_personal_events_for_users([user_id], start_date, end_date)

    def list_personal_events_for_users(
        self,
        user_ids: Iterable[int],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Event]:
        """Personal events of any of the given users that overlap the window."""
        user_ids = list(set(user_ids))
        if not user_ids:
            return []
        query = self.db.query(Event).filter(Event.owner_user_id.in_(user_ids))
        return self._in_range(query, start_date, end_date).all()

    def get_event(self, tenant: TenantKey, guid: str) -> Event:
        """
        Get an event inside a tenant scope.

        Raises:
            NotFoundError: If the GUID is malformed, unknown, or owned by
                another tenant
        """
        event = self._find(tenant, guid)
        if event is None:
            raise NotFoundError("Event", guid)
        return event

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_group_event(
        self, group_id: int, authored_by_membership_id: int, draft: EventDraft
    ) -> Event:
        """
        Create a group-owned event.

        Args:
            group_id: Owning group
            authored_by_membership_id: Membership creating the event; must
                belong to the group
            draft: Event fields

        Raises:
            NotFoundError: If the group does not exist
            ValidationError: If the draft is invalid or the author is not a
                member of the group
        """
        group = self.db.query(Group).filter(Group.id == group_id).first()
        if group is None:
            raise NotFoundError("Group", group_id)

        author = (
            self.db.query(Membership)
            .filter(
                Membership.id == authored_by_membership_id,
                Membership.group_id == group_id,
            )
            .first()
        )
        if author is None:
            raise ValidationError(
                "Event author must be a member of the group",
                field="authored_by_membership_id",
            )

        values = self._validate(draft.as_fields(), group=group)
        event = Event(
            group_id=group_id,
            authored_by_membership_id=authored_by_membership_id,
            **values,
        )
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)

        logger.info(
            "Created group event",
            extra={
                "event_guid": event.guid,
                "group_guid": group.guid,
                "event_type": event.event_type,
            },
        )
        return event

    def create_event(
        self,
        draft: EventDraft,
        group_id: Optional[int] = None,
        authored_by_membership_id: Optional[int] = None,
        owner_user_id: Optional[int] = None,
    ) -> Event:
        """
        Create an event owned by exactly one of a group or a user.

        Raises:
            ValidationError: If both or neither owner is given, or the draft
                is invalid
        """
        try:
            check_single_owner(group_id, owner_user_id)
        except ValueError as e:
            raise ValidationError(str(e), field="owner")
        if group_id is not None:
            return self.create_group_event(group_id, authored_by_membership_id, draft)
        return self.create_personal_event(owner_user_id, draft)

    def create_personal_event(self, user_id: int, draft: EventDraft) -> Event:
        """
        Create a personal event (unavailability) owned by a user.

        Raises:
            ValidationError: If the draft is invalid
        """
        values = self._validate(draft.as_fields(), group=None)
        event = Event(owner_user_id=user_id, **values)
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)

        logger.info(
            "Created personal event",
            extra={"event_guid": event.guid, "user_id": user_id},
        )
        return event

    def update_event(self, tenant: TenantKey, guid: str, patch: Dict[str, Any]) -> Event:
        """
        Apply a partial update to an event inside a tenant scope.

        The patch is merged with the stored values and the result is
        validated as a whole before anything is written.

        Args:
            tenant: Scope the caller is acting in
            guid: Event GUID
            patch: Fields to change (keys from EventDraft)

        Raises:
            NotFoundError: If the event is absent or owned by another tenant
            ValidationError: If the merged event is invalid
        """
        event = self.get_event(tenant, guid)

        unknown = set(patch) - PATCHABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Unknown event fields: {', '.join(sorted(unknown))}"
            )

        merged = self._current_fields(event)
        merged.update(patch)
        group = event.group if event.group_id is not None else None
        values = self._validate(
            merged, group=group, check_allowed="event_type" in patch
        )

        for key, value in values.items():
            setattr(event, key, value)
        self.db.commit()
        self.db.refresh(event)

        logger.info(
            "Updated event",
            extra={"event_guid": event.guid, "fields": sorted(patch.keys())},
        )
        return event

    def delete_event(self, tenant: TenantKey, guid: str) -> bool:
        """
        Delete an event inside a tenant scope.

        Returns:
            True if deleted, False if absent or owned by another tenant
        """
        event = self._find(tenant, guid)
        if event is None:
            return False

        self.db.delete(event)
        self.db.commit()

        logger.info("Deleted event", extra={"event_guid": guid})
        return True

    def delete_events_authored_by(self, membership_id: int, commit: bool = True) -> int:
        """
        Delete every event authored by a membership.

        Args:
            membership_id: Author membership
            commit: Commit immediately; False when part of a larger removal

        Returns:
            Number of events deleted
        """
        count = (
            self.db.query(Event)
            .filter(Event.authored_by_membership_id == membership_id)
            .delete(synchronize_session=False)
        )
        if commit:
            self.db.commit()
        return count

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _in_range(query, start_date: Optional[date], end_date: Optional[date]):
        """Apply the inclusive-overlap filter and calendar ordering."""
        last_day = func.coalesce(Event.end_date, Event.event_date)
        if start_date is not None:
            query = query.filter(last_day >= start_date)
        if end_date is not None:
            query = query.filter(Event.event_date <= end_date)
        return query.order_by(
            Event.event_date.asc(),
            Event.start_time.asc(),
            Event.id.asc(),
        )

    def _find(self, tenant: TenantKey, guid: str) -> Optional[Event]:
        if not GuidService.validate_guid(guid, Event.GUID_PREFIX):
            return None
        try:
            uuid_value = GuidService.parse_guid(guid, Event.GUID_PREFIX)
        except ValueError:
            return None

        query = self.db.query(Event).filter(Event.uuid == uuid_value)
        if tenant.kind == TenantKind.GROUP:
            query = query.filter(Event.group_id == tenant.id)
        else:
            query = query.filter(Event.owner_user_id == tenant.id)
        return query.first()

    @staticmethod
    def _current_fields(event: Event) -> Dict[str, Any]:
        return {
            "event_type": event.event_type,
            "event_date": event.event_date,
            "end_date": event.end_date,
            "title": event.title,
            "start_time": event.start_time,
            "end_time": event.end_time,
            "is_public": event.is_public,
            "venue": event.venue,
            "location": event.location,
            "notes": event.notes,
            "recurrence": json.loads(event.recurrence_json) if event.recurrence_json else None,
        }

    def _validate(self, fields: Dict[str, Any], group: Optional[Group],
                  check_allowed: bool = True) -> Dict[str, Any]:
        """
        Validate event fields and derive the stored values.

        Args:
            fields: Complete set of EventDraft fields
            group: Owning group, or None for a personal event
            check_allowed: Whether the type must be in the group's current
                allowed_event_types. False for updates that keep the stored
                type.

        Returns:
            Column values ready to set on an Event

        Raises:
            ValidationError: On missing or contradictory fields
        """
        raw_type = fields.get("event_type")
        if not raw_type:
            raise ValidationError("event_type is required", field="event_type")
        try:
            event_type = EventType(raw_type)
        except ValueError:
            raise ValidationError(
                f"Unknown event type '{raw_type}'. Expected one of: "
                f"{', '.join(t.value for t in EventType)}",
                field="event_type",
            )
        kind = EVENT_KINDS[event_type]

        if group is None and not kind.is_personal:
            raise ValidationError(
                f"'{event_type.value}' events belong to a group", field="event_type"
            )
        if group is not None:
            if kind.is_personal:
                raise ValidationError(
                    f"'{event_type.value}' events are personal and cannot belong to a group",
                    field="event_type",
                )
            if check_allowed and event_type.value not in group.allowed_event_types:
                raise ValidationError(
                    f"Group does not allow '{event_type.value}' events",
                    field="event_type",
                )

        event_date = fields.get("event_date")
        if event_date is None:
            raise ValidationError("event_date is required", field="event_date")
        end_date = fields.get("end_date")
        if end_date is not None and end_date < event_date:
            raise ValidationError(
                "end_date cannot be before event_date", field="end_date"
            )
        if end_date == event_date:
            end_date = None

        start_time = fields.get("start_time")
        end_time = fields.get("end_time")
        if end_time is not None and start_time is None:
            raise ValidationError("end_time requires start_time", field="end_time")

        title = _clean(fields.get("title"))
        notes = _clean(fields.get("notes"))
        venue = _clean(fields.get("venue"))
        location = _clean(fields.get("location"))
        recurrence = fields.get("recurrence")

        if kind.is_personal:
            # Unavailability blocks whole days and is never public
            start_time = end_time = None
            is_public = False
            venue = location = None
        else:
            if recurrence:
                raise ValidationError(
                    "Recurrence is only supported for personal events",
                    field="recurrence",
                )
            is_public = fields.get("is_public")
            if is_public is None:
                is_public = kind.public_by_default
            if is_public:
                if kind.needs_place and not venue:
                    raise ValidationError("Public events require a venue", field="venue")
                location = None
            else:
                if kind.needs_place and not location:
                    raise ValidationError(
                        "Private events require a location", field="location"
                    )
                venue = None

        is_all_day = kind.is_personal or (start_time is None and end_time is None)

        return {
            "event_type": event_type.value,
            "event_date": event_date,
            "end_date": end_date,
            "title": title,
            "start_time": start_time,
            "end_time": end_time,
            "is_all_day": is_all_day,
            "is_public": bool(is_public),
            "venue": venue,
            "location": location,
            "notes": notes,
            "recurrence_json": json.dumps(recurrence) if recurrence else None,
        }


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None

