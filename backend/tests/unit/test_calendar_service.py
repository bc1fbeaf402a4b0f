"""
Unit tests for CalendarService (unified calendar aggregation).
"""

from datetime import date

import pytest

from backend.src.services.calendar_service import CalendarService
from backend.src.services.exceptions import ValidationError


@pytest.fixture
def scene(make_user, make_group, make_member):
    """Two bands sharing one musician, plus an unrelated band."""
    sam, alex, jo, stranger = make_user(), make_user(), make_user(), make_user()
    owls = make_group(sam, name="The Night Owls")
    make_member(owls, alex, display_name="Alex (bass)", color="#3b82f6")
    side = make_group(alex, name="Side Project")
    make_member(side, jo)
    unrelated = make_group(stranger, name="Unrelated")
    return {
        "sam": sam, "alex": alex, "jo": jo, "stranger": stranger,
        "owls": owls, "side": side, "unrelated": unrelated,
    }


class TestUnifiedCalendar:
    def test_three_sources_annotated(self, test_db_session, scene, make_group_event,
                                     make_unavailability, membership_of):
        owls_gig = make_group_event(scene["owls"], scene["sam"], event_type="public_gig",
                                    event_date=date(2026, 3, 10))
        alex_away = make_unavailability(scene["alex"], date(2026, 3, 12), date(2026, 3, 14))
        side_rehearsal = make_group_event(scene["side"], scene["alex"],
                                          event_date=date(2026, 3, 11))
        # Not visible: a stranger's band and a non-member's unavailability
        make_group_event(scene["unrelated"], scene["stranger"], event_date=date(2026, 3, 11))
        make_unavailability(scene["jo"], date(2026, 3, 11))

        calendar = CalendarService(test_db_session).get_unified_calendar(
            scene["owls"].id, date(2026, 3, 1), date(2026, 3, 31)
        )

        assert [e.id for e in calendar.group_events] == [owls_gig.id]

        assert len(calendar.personal_events) == 1
        personal = calendar.personal_events[0]
        assert personal.event.id == alex_away.id
        assert personal.membership_guid == membership_of(scene["owls"], scene["alex"]).guid
        assert personal.display_name == "Alex (bass)"
        assert personal.color == "#3b82f6"

        assert len(calendar.other_group_events) == 1
        foreign = calendar.other_group_events[0]
        assert foreign.event.id == side_rehearsal.id
        assert foreign.group_guid == scene["side"].guid
        assert foreign.group_name == "Side Project"

    def test_no_event_appears_twice(self, test_db_session, scene, make_group_event,
                                    make_member):
        # Sam joins the side project too: its events are reachable through two members
        make_member(scene["side"], scene["sam"])
        make_group_event(scene["side"], scene["alex"], event_type="meeting",
                         event_date=date(2026, 3, 5))

        calendar = CalendarService(test_db_session).get_unified_calendar(scene["owls"].id)

        ids = [e.id for e in calendar.group_events]
        ids += [p.event.id for p in calendar.personal_events]
        ids += [f.event.id for f in calendar.other_group_events]
        assert len(ids) == len(set(ids)) == 1

    def test_window_filters_every_source(self, test_db_session, scene, make_group_event,
                                         make_unavailability):
        make_group_event(scene["owls"], scene["sam"], event_date=date(2026, 2, 1))
        make_unavailability(scene["alex"], date(2026, 4, 1))
        make_group_event(scene["side"], scene["alex"], event_date=date(2026, 5, 1))

        calendar = CalendarService(test_db_session).get_unified_calendar(
            scene["owls"].id, date(2026, 3, 1), date(2026, 3, 31)
        )
        assert calendar.group_events == []
        assert calendar.personal_events == []
        assert calendar.other_group_events == []

    def test_inverted_window_rejected(self, test_db_session, scene):
        with pytest.raises(ValidationError):
            CalendarService(test_db_session).get_unified_calendar(
                scene["owls"].id, date(2026, 3, 31), date(2026, 3, 1)
            )
