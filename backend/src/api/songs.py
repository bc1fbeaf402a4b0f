"""
Song list API endpoints.

Provides endpoints for:
- Listing, adding and deleting songs of a group
- Setting and clearing the caller's readiness for a song
- Vetoing a song and withdrawing the veto

Readiness and vetoes always act on the caller's own membership.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.middleware.tenant import GroupContext, require_membership
from backend.src.schemas.common import DeleteResponse
from backend.src.schemas.song import (
    ReadinessResponse,
    ReadinessUpdate,
    SongCreate,
    SongListResponse,
    SongResponse,
    VetoResponse,
    veto_response,
)
from backend.src.services.exceptions import ConflictError, NotFoundError, ValidationError
from backend.src.services.song_service import SongService
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/groups/{group_guid}/songs",
    tags=["Songs"],
)


def get_song_service(db: Session = Depends(get_db)) -> SongService:
    """Create SongService instance with database session."""
    return SongService(db=db)


def _song_not_found(song_guid: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Song {song_guid} not found",
    )


# ============================================================================
# Songs
# ============================================================================


@router.get("", response_model=SongListResponse, summary="List songs")
async def list_songs(
    ctx: GroupContext = Depends(require_membership),
    song_service: SongService = Depends(get_song_service),
) -> SongListResponse:
    try:
        songs = song_service.list_songs(ctx.group_id)
        return SongListResponse(
            songs=[SongResponse.from_song(s) for s in songs],
            total=len(songs),
        )

    except Exception as e:
        logger.error(f"Error listing songs: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list songs",
        )


@router.post(
    "",
    response_model=SongResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a song",
)
async def add_song(
    song_data: SongCreate,
    ctx: GroupContext = Depends(require_membership),
    song_service: SongService = Depends(get_song_service),
) -> SongResponse:
    """
    Add a catalog track to the group's song list.

    Raises:
        400: Missing catalog_id, title or artist
        409: Track already in the list
    """
    try:
        song = song_service.add_song(
            group_id=ctx.group_id,
            added_by_membership_id=ctx.membership_id,
            **song_data.model_dump(),
        )
        return SongResponse.from_song(song)

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except Exception as e:
        logger.error(f"Error adding song: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add song",
        )


@router.delete("/{song_guid}", response_model=DeleteResponse, summary="Delete a song")
async def delete_song(
    song_guid: str,
    ctx: GroupContext = Depends(require_membership),
    song_service: SongService = Depends(get_song_service),
) -> DeleteResponse:
    try:
        song_service.delete_song(ctx.group_id, song_guid)
        return DeleteResponse(message="Song deleted successfully", deleted_guid=song_guid)

    except NotFoundError:
        raise _song_not_found(song_guid)
    except Exception as e:
        logger.error(f"Error deleting song {song_guid}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete song",
        )


# ============================================================================
# Readiness
# ============================================================================


@router.put("/{song_guid}/readiness", response_model=ReadinessResponse)
async def set_readiness(
    song_guid: str,
    readiness_data: ReadinessUpdate,
    ctx: GroupContext = Depends(require_membership),
    song_service: SongService = Depends(get_song_service),
) -> ReadinessResponse:
    """Set the caller's readiness (red, amber or green) for a song."""
    try:
        readiness = song_service.set_readiness(
            ctx.group_id, song_guid, ctx.membership_id, readiness_data.status.value
        )
        return ReadinessResponse.from_readiness(
            song_service.get_song(ctx.group_id, song_guid), readiness
        )

    except NotFoundError:
        raise _song_not_found(song_guid)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.error(f"Error setting readiness for {song_guid}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to set readiness",
        )


@router.delete("/{song_guid}/readiness", response_model=DeleteResponse)
async def clear_readiness(
    song_guid: str,
    ctx: GroupContext = Depends(require_membership),
    song_service: SongService = Depends(get_song_service),
) -> DeleteResponse:
    try:
        removed = song_service.remove_readiness(ctx.group_id, song_guid, ctx.membership_id)
    except NotFoundError:
        raise _song_not_found(song_guid)
    except Exception as e:
        logger.error(f"Error clearing readiness for {song_guid}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to clear readiness",
        )

    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No readiness set for this song",
        )
    return DeleteResponse(message="Readiness cleared", deleted_guid=song_guid)


# ============================================================================
# Vetoes
# ============================================================================


@router.post("/{song_guid}/veto", response_model=VetoResponse)
async def veto_song(
    song_guid: str,
    ctx: GroupContext = Depends(require_membership),
    song_service: SongService = Depends(get_song_service),
) -> VetoResponse:
    """Veto a song. Vetoing twice returns the existing veto."""
    try:
        veto = song_service.add_veto(ctx.group_id, song_guid, ctx.membership_id)
        return veto_response(song_service.get_song(ctx.group_id, song_guid), veto)

    except NotFoundError:
        raise _song_not_found(song_guid)
    except Exception as e:
        logger.error(f"Error vetoing song {song_guid}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to veto song",
        )


@router.delete("/{song_guid}/veto", response_model=VetoResponse)
async def withdraw_veto(
    song_guid: str,
    ctx: GroupContext = Depends(require_membership),
    song_service: SongService = Depends(get_song_service),
) -> VetoResponse:
    try:
        song_service.remove_veto(ctx.group_id, song_guid, ctx.membership_id)
    except NotFoundError:
        raise _song_not_found(song_guid)
    except Exception as e:
        logger.error(f"Error withdrawing veto for {song_guid}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to withdraw veto",
        )

    return VetoResponse(song_guid=song_guid, membership_guid=ctx.membership_guid, vetoed=False)
