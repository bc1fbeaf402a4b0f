"""
Song list service: a group's songs with per-member readiness and vetoes.

Track metadata comes from an external music catalog; fetching it is the
client's job, this service only stores what it is given.

Design:
- A catalog track can be added to a group once (ConflictError otherwise)
- Readiness and veto writes are single INSERT ... ON CONFLICT statements,
  so concurrent writers for the same (song, membership) pair cannot create
  duplicate rows
- Deleting a song removes its readiness marks and vetoes
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from backend.src.models import Song, SongReadiness, SongVeto, ReadinessStatus
from backend.src.utils.logging_config import get_logger
from backend.src.services.exceptions import NotFoundError, ConflictError, ValidationError
from backend.src.services.guid import GuidService


logger = get_logger("services")

_STATUS_VALUES = tuple(s.value for s in ReadinessStatus)


class SongService:
    """
    Service for a group's song list.

    Usage:
        >>> service = SongService(db_session)
        >>> song = service.add_song(group.id, membership.id, catalog_id="4uLU6hMC",
        ...                         title="Mr. Brightside", artist="The Killers")
        >>> service.set_readiness(group.id, song.guid, membership.id, "green").status
        'green'
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Songs
    # ------------------------------------------------------------------

    def list_songs(self, group_id: int) -> List[Song]:
        """Songs of a group, newest first."""
        return (
            self.db.query(Song)
            .filter(Song.group_id == group_id)
            .order_by(Song.created_at.desc(), Song.id.desc())
            .all()
        )

    def get_song(self, group_id: int, guid: str) -> Song:
        """
        Get a song of this group by GUID.

        Raises:
            NotFoundError: If the GUID is malformed, unknown, or belongs to
                another group
        """
        if not GuidService.validate_guid(guid, "sng"):
            raise NotFoundError("Song", guid)
        try:
            uuid_value = GuidService.parse_guid(guid, "sng")
        except ValueError:
            raise NotFoundError("Song", guid)

        song = (
            self.db.query(Song)
            .filter(Song.uuid == uuid_value, Song.group_id == group_id)
            .first()
        )
        if not song:
            raise NotFoundError("Song", guid)
        return song

    def add_song(
        self,
        group_id: int,
        added_by_membership_id: int,
        catalog_id: str,
        title: str,
        artist: str,
        album: Optional[str] = None,
        catalog_url: Optional[str] = None,
        image_url: Optional[str] = None,
        preview_url: Optional[str] = None,
    ) -> Song:
        """
        Add a catalog track to the group's song list.

        Raises:
            ValidationError: If catalog_id, title or artist is blank
            ConflictError: If the track is already in the group's list
        """
        catalog_id = (catalog_id or "").strip()
        title = (title or "").strip()
        artist = (artist or "").strip()
        for field_name, value in (("catalog_id", catalog_id), ("title", title),
                                  ("artist", artist)):
            if not value:
                raise ValidationError(f"{field_name} is required", field=field_name)

        existing = (
            self.db.query(Song.id)
            .filter(Song.group_id == group_id, Song.catalog_id == catalog_id)
            .first()
        )
        if existing:
            raise ConflictError(f"Song '{title}' is already in this group's list")

        song = Song(
            group_id=group_id,
            added_by_membership_id=added_by_membership_id,
            catalog_id=catalog_id,
            title=title,
            artist=artist,
            album=album,
            catalog_url=catalog_url,
            image_url=image_url,
            preview_url=preview_url,
        )
        try:
            self.db.add(song)
            self.db.commit()
            self.db.refresh(song)
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Duplicate song rejected: {e}")
            raise ConflictError(f"Song '{title}' is already in this group's list")

        logger.info(
            "Added song",
            extra={"song_guid": song.guid, "catalog_id": catalog_id},
        )
        return song

    def delete_song(self, group_id: int, guid: str) -> None:
        """
        Delete a song with its readiness marks and vetoes.

        Raises:
            NotFoundError: If the song is not in this group
        """
        song = self.get_song(group_id, guid)
        self.db.query(SongReadiness).filter(
            SongReadiness.song_id == song.id
        ).delete(synchronize_session=False)
        self.db.query(SongVeto).filter(
            SongVeto.song_id == song.id
        ).delete(synchronize_session=False)
        self.db.delete(song)
        self.db.commit()
        logger.info("Deleted song", extra={"song_guid": guid})

    # ------------------------------------------------------------------
    # Readiness
    # ------------------------------------------------------------------

    def set_readiness(
        self, group_id: int, song_guid: str, membership_id: int, status: str
    ) -> SongReadiness:
        """
        Set a member's readiness for a song (insert or update in one statement).

        Raises:
            NotFoundError: If the song is not in this group
            ValidationError: If status is not red, amber or green
        """
        status = getattr(status, "value", status)
        if status not in _STATUS_VALUES:
            raise ValidationError(
                f"Invalid readiness status '{status}'. Expected one of: "
                f"{', '.join(_STATUS_VALUES)}",
                field="status",
            )
        song = self.get_song(group_id, song_guid)

        insert = self._dialect_insert()
        stmt = insert(SongReadiness).values(
            song_id=song.id,
            membership_id=membership_id,
            status=status,
            updated_at=datetime.utcnow(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[SongReadiness.song_id, SongReadiness.membership_id],
            set_={
                "status": stmt.excluded.status,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        self.db.execute(stmt)
        self.db.commit()

        readiness = (
            self.db.query(SongReadiness)
            .filter(
                SongReadiness.song_id == song.id,
                SongReadiness.membership_id == membership_id,
            )
            .populate_existing()
            .one()
        )
        return readiness

    def remove_readiness(self, group_id: int, song_guid: str, membership_id: int) -> bool:
        """
        Clear a member's readiness mark.

        Returns:
            True if a mark was removed
        """
        song = self.get_song(group_id, song_guid)
        count = (
            self.db.query(SongReadiness)
            .filter(
                SongReadiness.song_id == song.id,
                SongReadiness.membership_id == membership_id,
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return count > 0

    # ------------------------------------------------------------------
    # Vetoes
    # ------------------------------------------------------------------

    def add_veto(self, group_id: int, song_guid: str, membership_id: int) -> SongVeto:
        """
        Veto a song. Vetoing twice is a no-op.

        Raises:
            NotFoundError: If the song is not in this group
        """
        song = self.get_song(group_id, song_guid)

        insert = self._dialect_insert()
        stmt = insert(SongVeto).values(
            song_id=song.id,
            membership_id=membership_id,
            created_at=datetime.utcnow(),
        ).on_conflict_do_nothing(
            index_elements=[SongVeto.song_id, SongVeto.membership_id],
        )
        self.db.execute(stmt)
        self.db.commit()

        return (
            self.db.query(SongVeto)
            .filter(
                SongVeto.song_id == song.id,
                SongVeto.membership_id == membership_id,
            )
            .one()
        )

    def remove_veto(self, group_id: int, song_guid: str, membership_id: int) -> bool:
        """
        Withdraw a veto.

        Returns:
            True if a veto was removed
        """
        song = self.get_song(group_id, song_guid)
        count = (
            self.db.query(SongVeto)
            .filter(
                SongVeto.song_id == song.id,
                SongVeto.membership_id == membership_id,
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return count > 0

    def _dialect_insert(self):
        """INSERT construct supporting ON CONFLICT for the bound database."""
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise NotImplementedError(f"Upserts are not supported on {dialect}")
        return insert
