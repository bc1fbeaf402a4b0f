"""
Song catalog models for a group's practice list.

Songs are imported from an external music catalog (identified by
``catalog_id``); each member marks how ready they are to play a song and
may veto it.

Design Rationale:
- A catalog track can be added to a group only once (unique per group)
- Readiness and vetoes are keyed by (song_id, membership_id) with unique
  constraints so writes can be single INSERT ... ON CONFLICT statements
- Rows cascade away with their song or membership
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, DateTime, Text, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class ReadinessStatus(str, enum.Enum):
    """How ready a member is to perform a song."""
    RED = "red"
    AMBER = "amber"
    GREEN = "green"


class Song(Base, GuidMixin):
    """
    A track in a group's song list.

    Attributes:
        id: Primary key (internal, never exposed)
        uuid / guid: External identifier (sng_xxx)
        group_id: Owning group
        catalog_id: External catalog track id
        title, artist, album: Track metadata
        catalog_url, image_url, preview_url: Links from the catalog
        added_by_membership_id: Membership that added the song
        created_at: Creation timestamp
    """

    __tablename__ = "songs"

    GUID_PREFIX = "sng"

    id = Column(Integer, primary_key=True, autoincrement=True)

    group_id = Column(
        Integer,
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    catalog_id = Column(String(100), nullable=False)
    title = Column(String(255), nullable=False)
    artist = Column(String(255), nullable=False)
    album = Column(String(255), nullable=True)
    catalog_url = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    preview_url = Column(Text, nullable=True)

    added_by_membership_id = Column(
        Integer,
        ForeignKey("memberships.id", ondelete="SET NULL"),
        nullable=True
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    added_by = relationship("Membership", lazy="select")
    readiness = relationship("SongReadiness", lazy="select", passive_deletes=True)
    vetoes = relationship("SongVeto", lazy="select", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("group_id", "catalog_id", name="uq_songs_group_catalog"),
    )

    def __repr__(self) -> str:
        return f"<Song(id={self.id}, title='{self.title}', group_id={self.group_id})>"


class SongReadiness(Base):
    """A member's readiness mark for one song."""

    __tablename__ = "song_readiness"

    id = Column(Integer, primary_key=True, autoincrement=True)
    song_id = Column(
        Integer,
        ForeignKey("songs.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    membership_id = Column(
        Integer,
        ForeignKey("memberships.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    status = Column(String(10), nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    membership = relationship("Membership", lazy="joined")

    __table_args__ = (
        UniqueConstraint("song_id", "membership_id", name="uq_song_readiness_pair"),
    )


class SongVeto(Base):
    """A member's veto on one song."""

    __tablename__ = "song_vetoes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    song_id = Column(
        Integer,
        ForeignKey("songs.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    membership_id = Column(
        Integer,
        ForeignKey("memberships.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    membership = relationship("Membership", lazy="joined")

    __table_args__ = (
        UniqueConstraint("song_id", "membership_id", name="uq_song_vetoes_pair"),
    )
