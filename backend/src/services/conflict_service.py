"""
Conflict detection between a proposed event and existing commitments.

Provides:
- detect_conflicts(): pure classification of overlapping events
- ConflictService: loads the relevant events for a group or a member and
  runs the detector

Design:
- Conflicts are computed at query time and never persisted
- Conflicts are advisory: they are returned as data and never block a write
- Overlap is inclusive on both ends: an event ending on the 5th overlaps a
  candidate starting on the 5th; events on adjacent days do not overlap
- Which events are compared is decided by the EVENT_KINDS flags, never by
  type names
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from backend.src.models import EventType, kind_of
from backend.src.services.event_service import EventService
from backend.src.services.membership_service import MembershipService
from backend.src.services.exceptions import ValidationError
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


@dataclass(frozen=True)
class ConflictCandidate:
    """
    A proposed event, reduced to what conflict detection needs.

    Attributes:
        event_type: EventType value of the proposal
        event_date: First day (inclusive)
        end_date: Last day (inclusive), None for single-day proposals
    """
    event_type: str
    event_date: date
    end_date: Optional[date] = None

    @property
    def last_date(self) -> date:
        return self.end_date or self.event_date


@dataclass
class ConflictReport:
    """
    Result of a conflict check. The three lists never share an event.

    Attributes:
        same_kind_conflicts: Rehearsals/performances overlapping a
            rehearsal/performance candidate
        unavailability_conflicts: Member unavailability overlapping a
            rehearsal/performance candidate
        affected_group_events: Rehearsals/performances overlapping an
            unavailability candidate
    """
    same_kind_conflicts: List = field(default_factory=list)
    unavailability_conflicts: List = field(default_factory=list)
    affected_group_events: List = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(
            self.same_kind_conflicts
            or self.unavailability_conflicts
            or self.affected_group_events
        )

    @property
    def total(self) -> int:
        return (
            len(self.same_kind_conflicts)
            + len(self.unavailability_conflicts)
            + len(self.affected_group_events)
        )


def _last_date(event) -> date:
    return event.end_date or event.event_date


def intervals_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Inclusive interval overlap on calendar days."""
    return a_start <= b_end and a_end >= b_start


def detect_conflicts(
    candidate: ConflictCandidate,
    existing_events: Iterable,
    exclude_event_guid: Optional[str] = None,
) -> ConflictReport:
    """
    Classify existing events that overlap a candidate.

    Pure function: no I/O and no shared state.

    Args:
        candidate: The proposed event
        existing_events: Events to compare against (anything with guid,
            event_type, event_date and end_date attributes)
        exclude_event_guid: Event to ignore, typically the event being
            edited so it does not conflict with itself

    Returns:
        ConflictReport; empty when the candidate type neither commits the
        group nor is personal (meetings, open slots)
    """
    report = ConflictReport()
    candidate_kind = kind_of(candidate.event_type)
    if not (candidate_kind.commits_group or candidate_kind.is_personal):
        return report

    seen = set()
    for event in existing_events:
        if exclude_event_guid and event.guid == exclude_event_guid:
            continue
        key = event.guid
        if key in seen:
            continue
        if not intervals_overlap(
            candidate.event_date, candidate.last_date,
            event.event_date, _last_date(event),
        ):
            continue

        event_kind = kind_of(event.event_type)
        if candidate_kind.commits_group:
            if event_kind.commits_group:
                report.same_kind_conflicts.append(event)
                seen.add(key)
            elif event_kind.is_personal:
                report.unavailability_conflicts.append(event)
                seen.add(key)
        elif event_kind.commits_group:
            report.affected_group_events.append(event)
            seen.add(key)

    return report


class ConflictService:
    """
    Load candidate-relevant events from the database and detect conflicts.

    Usage:
        >>> service = ConflictService(db_session)
        >>> candidate = ConflictCandidate("rehearsal", date(2025, 3, 1))
        >>> report = service.check_conflicts(group.id, candidate, user.id)
        >>> report.has_conflicts
        False
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_service = EventService(db)
        self.membership_service = MembershipService(db)

    # =========================================================================
    # Subject resolution
    # =========================================================================

    def resolve_subject_user_id(
        self,
        group_id: int,
        acting_user_id: int,
        membership_guid: Optional[str] = None,
    ) -> int:
        """
        Pick whose commitments a check is about.

        Args:
            group_id: Group the request is scoped to
            acting_user_id: Caller
            membership_guid: Optional member of the same group to check for

        Raises:
            NotFoundError: If membership_guid is not a member of the group
        """
        if not membership_guid:
            return acting_user_id
        return self.membership_service.get_by_guid(group_id, membership_guid).user_id

    # =========================================================================
    # Conflict check
    # =========================================================================

    def check_conflicts(
        self,
        group_id: int,
        candidate: ConflictCandidate,
        subject_user_id: int,
        exclude_event_guid: Optional[str] = None,
    ) -> ConflictReport:
        """
        Check a proposed event against stored commitments.

        For a rehearsal/performance the group's own events and the personal
        events of every group member are compared. For an unavailability the
        group events of every group the subject belongs to are compared.

        Args:
            group_id: Group the proposal is made in
            candidate: Proposed event
            subject_user_id: Member the proposal is about (unavailability)
            exclude_event_guid: Event being edited, ignored in the result

        Raises:
            ValidationError: If the candidate's type or dates are invalid
        """
        self._validate_candidate(candidate)
        kind = kind_of(candidate.event_type)
        start, end = candidate.event_date, candidate.last_date

        if kind.commits_group:
            member_ids = [
                m.user_id for m in self.membership_service.list_group_members(group_id)
            ]
            existing = self.event_service.list_group_events(group_id, start, end)
            existing += self.event_service.list_personal_events_for_users(
                member_ids, start, end
            )
        elif kind.is_personal:
            group_ids = [
                m.group_id
                for m in self.membership_service.list_memberships(subject_user_id)
            ]
            existing = self.event_service.list_events_for_groups(group_ids, start, end)
        else:
            existing = []

        report = detect_conflicts(candidate, existing, exclude_event_guid)

        logger.info(
            "Conflict check",
            extra={
                "group_id": group_id,
                "event_type": candidate.event_type,
                "compared": len(existing),
                "conflicts": report.total,
            },
        )
        return report

    @staticmethod
    def _validate_candidate(candidate: ConflictCandidate) -> None:
        try:
            EventType(candidate.event_type)
        except ValueError:
            raise ValidationError(
                f"Unknown event type '{candidate.event_type}'", field="event_type"
            )
        if candidate.end_date is not None and candidate.end_date < candidate.event_date:
            raise ValidationError("end_date cannot be before event_date", field="end_date")

