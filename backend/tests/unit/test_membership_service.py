"""
Unit tests for MembershipService.

Tests cover:
- Membership lookups (never raising for non-members)
- Adding members (duplicates, aliases, owner grants)
- Role policy for removal and role changes, including the last owner
- Cleanup of authored events, readiness marks and vetoes on removal
"""

from datetime import date

import pytest

from backend.src.models import Event, Song, SongReadiness, SongVeto
from backend.src.services.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from backend.src.services.membership_service import MembershipService
from backend.src.services.song_service import SongService


@pytest.fixture
def band(make_user, make_group, make_member):
    owner = make_user(display_name="Olive")
    admin = make_user(display_name="Adam")
    member = make_user(display_name="Mia")
    group = make_group(owner)
    make_member(group, admin, role="admin")
    make_member(group, member)
    return group, owner, admin, member


class TestLookups:
    def test_get_membership_for_non_member_is_none(self, test_db_session, band, make_user):
        group, *_ = band
        outsider = make_user()
        service = MembershipService(test_db_session)
        assert service.get_membership(outsider.id, group.id) is None
        assert service.get_membership(None, group.id) is None

    def test_list_group_members_owners_first(self, test_db_session, band):
        group, owner, admin, member = band
        members = MembershipService(test_db_session).list_group_members(group.id)
        assert [m.user_id for m in members] == [owner.id, admin.id, member.id]
        assert [m.role for m in members] == ["owner", "admin", "member"]

    def test_list_memberships_across_groups(self, test_db_session, band, make_group):
        group, owner, *_ = band
        second = make_group(owner, name="Side Project")
        memberships = MembershipService(test_db_session).list_memberships(owner.id)
        assert {m.group_id for m in memberships} == {group.id, second.id}

    def test_get_by_guid_is_group_scoped(self, test_db_session, band, make_user, make_group,
                                         membership_of):
        group, owner, *_ = band
        other = make_group(make_user(), name="Other")
        guid = membership_of(group, owner).guid
        with pytest.raises(NotFoundError):
            MembershipService(test_db_session).get_by_guid(other.id, guid)


class TestAddMember:
    def test_alias_defaults_to_user_name(self, test_db_session, band, make_user):
        group, *_ = band
        user = make_user(display_name=None, first_name="Jo", last_name="Lee")
        membership = MembershipService(test_db_session).add_member(group.id, user.id)
        assert membership.display_name == "Jo Lee"
        assert membership.role == "member"
        assert membership.icon == "music"
        assert membership.color == "#6b7280"

    def test_duplicate_rejected(self, test_db_session, band):
        group, _, _, member = band
        with pytest.raises(ConflictError):
            MembershipService(test_db_session).add_member(group.id, member.id)

    def test_invalid_color_and_role(self, test_db_session, band, make_user):
        group, *_ = band
        service = MembershipService(test_db_session)
        user = make_user()
        with pytest.raises(ValidationError) as exc_info:
            service.add_member(group.id, user.id, color="red")
        assert exc_info.value.field == "color"
        with pytest.raises(ValidationError) as exc_info:
            service.add_member(group.id, user.id, role="roadie")
        assert exc_info.value.field == "role"

    def test_color_is_lowercased(self, test_db_session, band, make_user):
        group, *_ = band
        membership = MembershipService(test_db_session).add_member(
            group.id, make_user().id, color="#3B82F6"
        )
        assert membership.color == "#3b82f6"

    def test_only_owner_can_add_owner(self, test_db_session, band, make_user):
        group, *_ = band
        service = MembershipService(test_db_session)
        user = make_user()
        with pytest.raises(PermissionDeniedError):
            service.add_member(group.id, user.id, role="owner", acting_role="admin")
        assert service.add_member(
            group.id, user.id, role="owner", acting_role="owner"
        ).role == "owner"

    def test_unknown_user(self, test_db_session, band):
        group, *_ = band
        with pytest.raises(NotFoundError):
            MembershipService(test_db_session).add_member(group.id, 9999)


class TestRemoveMember:
    def test_member_can_leave(self, test_db_session, band, membership_of):
        group, _, _, member = band
        service = MembershipService(test_db_session)
        mine = membership_of(group, member)
        service.remove_member(group.id, mine.guid, mine.id)
        assert service.get_membership(member.id, group.id) is None

    def test_member_cannot_remove_others(self, test_db_session, band, membership_of):
        group, _, admin, member = band
        with pytest.raises(PermissionDeniedError):
            MembershipService(test_db_session).remove_member(
                group.id, membership_of(group, admin).guid, membership_of(group, member).id
            )

    def test_admin_removes_member_but_not_owner(self, test_db_session, band, membership_of):
        group, owner, admin, member = band
        service = MembershipService(test_db_session)
        acting = membership_of(group, admin).id

        with pytest.raises(PermissionDeniedError, match="owner"):
            service.remove_member(group.id, membership_of(group, owner).guid, acting)

        service.remove_member(group.id, membership_of(group, member).guid, acting)
        assert service.get_membership(member.id, group.id) is None

    def test_last_owner_cannot_leave(self, test_db_session, band, membership_of):
        group, owner, *_ = band
        mine = membership_of(group, owner)
        with pytest.raises(PermissionDeniedError, match="last owner"):
            MembershipService(test_db_session).remove_member(group.id, mine.guid, mine.id)

    def test_owner_can_leave_when_another_owner_exists(self, test_db_session, band,
                                                      membership_of):
        group, owner, admin, _ = band
        service = MembershipService(test_db_session)
        owner_ms = membership_of(group, owner)
        service.change_role(group.id, membership_of(group, admin).guid, "owner", owner_ms.id)

        service.remove_member(group.id, owner_ms.guid, owner_ms.id)
        assert service.count_owners(group.id) == 1

    def test_removal_cleans_up_authored_rows(self, test_db_session, band, membership_of,
                                             make_group_event):
        group, owner, _, member = band
        member_ms = membership_of(group, member)
        make_group_event(group, member, event_type="meeting", event_date=date(2026, 3, 1))
        kept = make_group_event(group, owner, event_type="meeting", event_date=date(2026, 3, 2))

        songs = SongService(test_db_session)
        song = songs.add_song(group.id, member_ms.id, "track-1", "Song", "Artist")
        songs.set_readiness(group.id, song.guid, member_ms.id, "green")
        songs.add_veto(group.id, song.guid, member_ms.id)

        MembershipService(test_db_session).remove_member(
            group.id, member_ms.guid, membership_of(group, owner).id
        )

        assert [e.id for e in test_db_session.query(Event).all()] == [kept.id]
        assert test_db_session.query(SongReadiness).count() == 0
        assert test_db_session.query(SongVeto).count() == 0
        remaining = test_db_session.query(Song).one()
        assert remaining.added_by_membership_id is None


class TestChangeRole:
    def test_admin_promotes_member_to_admin(self, test_db_session, band, membership_of):
        group, _, admin, member = band
        updated = MembershipService(test_db_session).change_role(
            group.id, membership_of(group, member).guid, "admin",
            membership_of(group, admin).id,
        )
        assert updated.role == "admin"

    def test_admin_cannot_grant_ownership(self, test_db_session, band, membership_of):
        group, _, admin, member = band
        with pytest.raises(PermissionDeniedError, match="ownership"):
            MembershipService(test_db_session).change_role(
                group.id, membership_of(group, member).guid, "owner",
                membership_of(group, admin).id,
            )

    def test_member_cannot_change_roles(self, test_db_session, band, membership_of):
        group, _, admin, member = band
        with pytest.raises(PermissionDeniedError):
            MembershipService(test_db_session).change_role(
                group.id, membership_of(group, admin).guid, "member",
                membership_of(group, member).id,
            )

    def test_last_owner_cannot_be_demoted(self, test_db_session, band, membership_of):
        group, owner, *_ = band
        mine = membership_of(group, owner)
        with pytest.raises(PermissionDeniedError, match="last owner"):
            MembershipService(test_db_session).change_role(group.id, mine.guid, "admin", mine.id)

    def test_same_role_is_a_no_op(self, test_db_session, band, membership_of):
        group, owner, *_ = band
        mine = membership_of(group, owner)
        assert MembershipService(test_db_session).change_role(
            group.id, mine.guid, "owner", mine.id
        ).role == "owner"


class TestUpdateProfile:
    def test_member_edits_own_alias(self, test_db_session, band, membership_of):
        group, _, _, member = band
        mine = membership_of(group, member)
        updated = MembershipService(test_db_session).update_profile(
            group.id, mine.guid, mine.id, display_name="  Mia (keys) ", icon="piano"
        )
        assert updated.display_name == "Mia (keys)"
        assert updated.icon == "piano"

    def test_member_cannot_edit_others(self, test_db_session, band, membership_of):
        group, _, admin, member = band
        with pytest.raises(PermissionDeniedError):
            MembershipService(test_db_session).update_profile(
                group.id, membership_of(group, admin).guid,
                membership_of(group, member).id, display_name="Boss",
            )

    def test_blank_alias_rejected(self, test_db_session, band, membership_of):
        group, _, _, member = band
        mine = membership_of(group, member)
        with pytest.raises(ValidationError):
            MembershipService(test_db_session).update_profile(
                group.id, mine.guid, mine.id, display_name="   "
            )
