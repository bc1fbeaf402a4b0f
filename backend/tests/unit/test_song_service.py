"""
Unit tests for SongService.

Tests cover:
- Adding songs and rejecting duplicates per group
- Readiness upserts (one row per song and member)
- Idempotent vetoes
- Group scoping of song lookups
"""

import pytest

from backend.src.models import SongReadiness, SongVeto
from backend.src.services.exceptions import ConflictError, NotFoundError, ValidationError
from backend.src.services.song_service import SongService


@pytest.fixture
def band(make_user, make_group, make_member, membership_of):
    owner, member = make_user(), make_user()
    group = make_group(owner)
    make_member(group, member)
    return group, membership_of(group, owner), membership_of(group, member)


class TestSongs:
    def test_add_song_strips_and_stores(self, test_db_session, band):
        group, owner_ms, _ = band
        song = SongService(test_db_session).add_song(
            group.id, owner_ms.id, catalog_id=" 4uLU6hMC ", title=" Mr. Brightside ",
            artist="The Killers", album="Hot Fuss",
        )
        assert song.guid.startswith("sng_")
        assert song.catalog_id == "4uLU6hMC"
        assert song.title == "Mr. Brightside"
        assert song.added_by_membership_id == owner_ms.id

    def test_duplicate_track_in_same_group_rejected(self, test_db_session, band):
        group, owner_ms, member_ms = band
        service = SongService(test_db_session)
        service.add_song(group.id, owner_ms.id, "track-1", "Song", "Artist")
        with pytest.raises(ConflictError):
            service.add_song(group.id, member_ms.id, "track-1", "Song", "Artist")

    def test_same_track_in_two_groups(self, test_db_session, band, make_user, make_group,
                                      membership_of):
        group, owner_ms, _ = band
        other_owner = make_user()
        other = make_group(other_owner, name="Other")
        service = SongService(test_db_session)
        service.add_song(group.id, owner_ms.id, "track-1", "Song", "Artist")
        service.add_song(other.id, membership_of(other, other_owner).id,
                         "track-1", "Song", "Artist")
        assert len(service.list_songs(other.id)) == 1

    def test_required_fields(self, test_db_session, band):
        group, owner_ms, _ = band
        with pytest.raises(ValidationError) as exc_info:
            SongService(test_db_session).add_song(group.id, owner_ms.id, "t", "  ", "Artist")
        assert exc_info.value.field == "title"

    def test_get_song_is_group_scoped(self, test_db_session, band, make_user, make_group):
        group, owner_ms, _ = band
        service = SongService(test_db_session)
        song = service.add_song(group.id, owner_ms.id, "track-1", "Song", "Artist")
        other = make_group(make_user(), name="Other")
        with pytest.raises(NotFoundError):
            service.get_song(other.id, song.guid)
        with pytest.raises(NotFoundError):
            service.get_song(group.id, "sng_bad")

    def test_delete_song_removes_marks(self, test_db_session, band):
        group, owner_ms, member_ms = band
        service = SongService(test_db_session)
        song = service.add_song(group.id, owner_ms.id, "track-1", "Song", "Artist")
        service.set_readiness(group.id, song.guid, member_ms.id, "red")
        service.add_veto(group.id, song.guid, member_ms.id)

        service.delete_song(group.id, song.guid)

        assert service.list_songs(group.id) == []
        assert test_db_session.query(SongReadiness).count() == 0
        assert test_db_session.query(SongVeto).count() == 0


class TestReadiness:
    def test_set_twice_updates_single_row(self, test_db_session, band):
        group, owner_ms, member_ms = band
        service = SongService(test_db_session)
        song = service.add_song(group.id, owner_ms.id, "track-1", "Song", "Artist")

        first = service.set_readiness(group.id, song.guid, member_ms.id, "red")
        second = service.set_readiness(group.id, song.guid, member_ms.id, "green")

        assert first.id == second.id
        assert second.status == "green"
        assert test_db_session.query(SongReadiness).count() == 1

    def test_invalid_status(self, test_db_session, band):
        group, owner_ms, _ = band
        service = SongService(test_db_session)
        song = service.add_song(group.id, owner_ms.id, "track-1", "Song", "Artist")
        with pytest.raises(ValidationError) as exc_info:
            service.set_readiness(group.id, song.guid, owner_ms.id, "purple")
        assert exc_info.value.field == "status"

    def test_remove_readiness(self, test_db_session, band):
        group, owner_ms, _ = band
        service = SongService(test_db_session)
        song = service.add_song(group.id, owner_ms.id, "track-1", "Song", "Artist")
        service.set_readiness(group.id, song.guid, owner_ms.id, "amber")

        assert service.remove_readiness(group.id, song.guid, owner_ms.id) is True
        assert service.remove_readiness(group.id, song.guid, owner_ms.id) is False


class TestVetoes:
    def test_veto_twice_keeps_one_row(self, test_db_session, band):
        group, owner_ms, member_ms = band
        service = SongService(test_db_session)
        song = service.add_song(group.id, owner_ms.id, "track-1", "Song", "Artist")

        first = service.add_veto(group.id, song.guid, member_ms.id)
        second = service.add_veto(group.id, song.guid, member_ms.id)

        assert first.id == second.id
        assert test_db_session.query(SongVeto).count() == 1

    def test_withdraw_veto(self, test_db_session, band):
        group, owner_ms, member_ms = band
        service = SongService(test_db_session)
        song = service.add_song(group.id, owner_ms.id, "track-1", "Song", "Artist")
        service.add_veto(group.id, song.guid, member_ms.id)

        assert service.remove_veto(group.id, song.guid, member_ms.id) is True
        assert service.remove_veto(group.id, song.guid, member_ms.id) is False
