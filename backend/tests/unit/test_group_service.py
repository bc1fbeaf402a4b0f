"""
Unit tests for GroupService.

Tests cover:
- Group creation with the creator as owner
- Slug generation and collisions
- allowed_event_types validation
- Updates and cascading deletion
"""

from datetime import date

import pytest

from backend.src.models import Event, Group, Membership, Song, SongReadiness
from backend.src.services.exceptions import NotFoundError, ValidationError
from backend.src.services.group_service import GroupService
from backend.src.services.song_service import SongService


class TestCreate:
    def test_creator_becomes_owner(self, test_db_session, make_user, membership_of):
        user = make_user(display_name="Sam")
        group = GroupService(test_db_session).create(
            name="  The Night Owls ", creator_user_id=user.id, icon="drum",
            color="#EF4444",
        )

        assert group.guid.startswith("grp_")
        assert group.name == "The Night Owls"
        assert group.slug == "the-night-owls"
        owner = membership_of(group, user)
        assert owner.role == "owner"
        assert owner.display_name == "Sam"
        assert owner.icon == "drum"
        assert owner.color == "#ef4444"

    def test_duplicate_names_get_distinct_slugs(self, test_db_session, make_user):
        service = GroupService(test_db_session)
        user = make_user()
        first = service.create(name="Echoes", creator_user_id=user.id)
        second = service.create(name="Echoes", creator_user_id=user.id)
        third = service.create(name="echoes!", creator_user_id=user.id)
        assert [first.slug, second.slug, third.slug] == ["echoes", "echoes-2", "echoes-3"]

    def test_blank_name_rejected(self, test_db_session, make_user):
        with pytest.raises(ValidationError) as exc_info:
            GroupService(test_db_session).create(name="   ", creator_user_id=make_user().id)
        assert exc_info.value.field == "name"

    def test_alias_required_without_profile_name(self, test_db_session, make_user):
        user = make_user(display_name=None)
        with pytest.raises(ValidationError) as exc_info:
            GroupService(test_db_session).create(name="Echoes", creator_user_id=user.id)
        assert exc_info.value.field == "display_name"

    def test_unknown_creator(self, test_db_session):
        with pytest.raises(NotFoundError):
            GroupService(test_db_session).create(name="Echoes", creator_user_id=9999)

    def test_allowed_types_canonical_order(self, test_db_session, make_user):
        group = GroupService(test_db_session).create(
            name="Echoes",
            creator_user_id=make_user().id,
            allowed_event_types=["meeting", "rehearsal", "meeting"],
        )
        assert group.allowed_event_types == ["rehearsal", "meeting"]

    def test_allowed_types_default_to_all_group_types(self, make_user, make_group):
        group = make_group(make_user())
        assert "unavailable" not in group.allowed_event_types
        assert "rehearsal" in group.allowed_event_types
        assert "public_gig" in group.allowed_event_types

    @pytest.mark.parametrize("types", [[], ["unavailable"], ["party"]])
    def test_invalid_allowed_types(self, test_db_session, make_user, types):
        with pytest.raises(ValidationError) as exc_info:
            GroupService(test_db_session).create(
                name="Echoes", creator_user_id=make_user().id, allowed_event_types=types
            )
        assert exc_info.value.field == "allowed_event_types"


class TestLookupAndUpdate:
    def test_get_by_guid(self, test_db_session, make_user, make_group):
        group = make_group(make_user())
        service = GroupService(test_db_session)
        assert service.get_by_guid(group.guid).id == group.id
        with pytest.raises(NotFoundError):
            service.get_by_guid("grp_00000000000000000000000000")
        with pytest.raises(NotFoundError):
            service.get_by_guid("garbage")

    def test_list_for_user_only_member_groups(self, test_db_session, make_user, make_group):
        alice, bob = make_user(), make_user()
        mine = make_group(alice, name="B side")
        also_mine = make_group(alice, name="A side")
        make_group(bob, name="Not mine")

        groups = GroupService(test_db_session).list_for_user(alice.id)
        assert [g.id for g in groups] == [also_mine.id, mine.id]

    def test_rename_keeps_slug(self, test_db_session, make_user, make_group):
        group = make_group(make_user(), name="Echoes")
        updated = GroupService(test_db_session).update(
            group.id, name="Echo Chamber", description="Post-punk",
            allowed_event_types=["rehearsal"],
        )
        assert updated.name == "Echo Chamber"
        assert updated.slug == "echoes"
        assert updated.description == "Post-punk"
        assert updated.allowed_event_types == ["rehearsal"]


class TestDelete:
    def test_delete_removes_everything_owned(self, test_db_session, make_user, make_group,
                                             make_group_event, make_unavailability,
                                             membership_of):
        owner = make_user()
        group = make_group(owner)
        keep = make_group(owner, name="Other")
        make_group_event(group, owner, event_type="meeting", event_date=date(2026, 3, 1))
        other_event = make_group_event(keep, owner, event_type="meeting")
        away = make_unavailability(owner)

        songs = SongService(test_db_session)
        ms = membership_of(group, owner)
        song = songs.add_song(group.id, ms.id, "track-1", "Song", "Artist")
        songs.set_readiness(group.id, song.guid, ms.id, "amber")

        GroupService(test_db_session).delete(group.id)

        assert test_db_session.query(Group).filter(Group.id == group.id).first() is None
        assert test_db_session.query(Membership).filter(
            Membership.group_id == group.id
        ).count() == 0
        assert test_db_session.query(Song).count() == 0
        assert test_db_session.query(SongReadiness).count() == 0
        assert {e.id for e in test_db_session.query(Event).all()} == {other_event.id, away.id}
