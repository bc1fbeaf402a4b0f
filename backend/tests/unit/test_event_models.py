"""
Unit tests for the Event model and event kind table.
"""

from datetime import date

import pytest

from backend.src.models import Event, EventType
from backend.src.models.event import (
    EVENT_KINDS,
    GROUP_EVENT_TYPES,
    PERSONAL_EVENT_TYPES,
    check_single_owner,
    kind_of,
)


class TestEventKinds:
    def test_every_type_has_a_kind(self):
        assert set(EVENT_KINDS) == set(EventType)

    def test_only_unavailable_is_personal(self):
        assert PERSONAL_EVENT_TYPES == (EventType.UNAVAILABLE,)
        assert EventType.UNAVAILABLE not in GROUP_EVENT_TYPES
        assert len(GROUP_EVENT_TYPES) == len(EventType) - 1

    @pytest.mark.parametrize("event_type", [
        "rehearsal", "recording", "public_gig", "private_booking", "festival",
    ])
    def test_committing_types(self, event_type):
        kind = kind_of(event_type)
        assert kind.commits_group
        assert kind.needs_place

    @pytest.mark.parametrize("event_type", ["meeting", "open_slot", "unavailable"])
    def test_non_committing_types(self, event_type):
        assert not kind_of(event_type).commits_group

    def test_public_by_default(self):
        public = {t for t, k in EVENT_KINDS.items() if k.public_by_default}
        assert public == {EventType.PUBLIC_GIG, EventType.FESTIVAL}

    def test_kind_of_accepts_enum(self):
        assert kind_of(EventType.MEETING) is EVENT_KINDS[EventType.MEETING]

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            kind_of("party")


class TestSingleOwner:
    @pytest.mark.parametrize("group_id,owner_user_id", [(1, 2), (None, None)])
    def test_rejects_both_or_neither(self, group_id, owner_user_id):
        with pytest.raises(ValueError):
            check_single_owner(group_id, owner_user_id)

    @pytest.mark.parametrize("group_id,owner_user_id", [(1, None), (None, 2)])
    def test_accepts_exactly_one(self, group_id, owner_user_id):
        check_single_owner(group_id, owner_user_id)


class TestEventProperties:
    def test_last_date_single_day(self):
        event = Event(event_type="meeting", event_date=date(2026, 3, 1))
        assert event.last_date == date(2026, 3, 1)

    def test_last_date_range(self):
        event = Event(event_type="unavailable", event_date=date(2026, 3, 1),
                      end_date=date(2026, 3, 4), owner_user_id=7)
        assert event.last_date == date(2026, 3, 4)
        assert event.is_personal
        assert event.kind.is_personal

    def test_guid_prefix(self, make_user, make_unavailability):
        event = make_unavailability(make_user())
        assert event.guid.startswith("evt_")
