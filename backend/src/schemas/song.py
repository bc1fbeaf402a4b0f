"""
Song list Pydantic schemas for API request/response validation.

Provides data validation and serialization for:
- Adding catalog tracks to a group's song list
- Per-member readiness (red/amber/green) and vetoes
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

from backend.src.models import ReadinessStatus, Song, SongReadiness, SongVeto


# ============================================================================
# Request Schemas
# ============================================================================


class SongCreate(BaseModel):
    """Track metadata as returned by the music catalog."""

    catalog_id: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=255)
    artist: str = Field(..., min_length=1, max_length=255)
    album: Optional[str] = Field(default=None, max_length=255)
    catalog_url: Optional[str] = Field(default=None, max_length=2000)
    image_url: Optional[str] = Field(default=None, max_length=2000)
    preview_url: Optional[str] = Field(default=None, max_length=2000)

    model_config = {
        "json_schema_extra": {
            "example": {
                "catalog_id": "3n3Ppam7vgaVa1iaRUc9Lp",
                "title": "Mr. Brightside",
                "artist": "The Killers",
                "album": "Hot Fuss",
            }
        }
    }


class ReadinessUpdate(BaseModel):
    status: ReadinessStatus


# ============================================================================
# Response Schemas
# ============================================================================


class ReadinessResponse(BaseModel):
    """One member's readiness for a song."""

    song_guid: str
    membership_guid: str
    status: str
    updated_at: datetime

    @field_serializer("updated_at")
    @classmethod
    def serialize_datetime_utc(cls, v: datetime) -> str:
        return v.isoformat() + "Z" if v else None

    @classmethod
    def from_readiness(cls, song: Song, readiness: SongReadiness) -> "ReadinessResponse":
        return cls(
            song_guid=song.guid,
            membership_guid=readiness.membership.guid,
            status=readiness.status,
            updated_at=readiness.updated_at,
        )


class VetoResponse(BaseModel):
    song_guid: str
    membership_guid: str
    vetoed: bool = True


class SongResponse(BaseModel):
    """A song with every member's readiness and the list of vetoes."""

    guid: str = Field(..., description="Song GUID (sng_xxx)")
    catalog_id: str
    title: str
    artist: str
    album: Optional[str] = None
    catalog_url: Optional[str] = None
    image_url: Optional[str] = None
    preview_url: Optional[str] = None
    added_by_membership_guid: Optional[str] = None
    readiness: List[ReadinessResponse] = Field(default_factory=list)
    vetoed_by: List[str] = Field(default_factory=list, description="Membership GUIDs")
    created_at: datetime

    @field_serializer("created_at")
    @classmethod
    def serialize_datetime_utc(cls, v: datetime) -> str:
        return v.isoformat() + "Z" if v else None

    @classmethod
    def from_song(cls, song: Song) -> "SongResponse":
        return cls(
            guid=song.guid,
            catalog_id=song.catalog_id,
            title=song.title,
            artist=song.artist,
            album=song.album,
            catalog_url=song.catalog_url,
            image_url=song.image_url,
            preview_url=song.preview_url,
            added_by_membership_guid=song.added_by.guid if song.added_by is not None else None,
            readiness=[ReadinessResponse.from_readiness(song, r) for r in song.readiness],
            vetoed_by=[v.membership.guid for v in song.vetoes],
            created_at=song.created_at,
        )


class SongListResponse(BaseModel):
    songs: List[SongResponse]
    total: int


def veto_response(song: Song, veto: SongVeto) -> VetoResponse:
    return VetoResponse(song_guid=song.guid, membership_guid=veto.membership.guid)
