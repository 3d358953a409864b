"""
Song requirement endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rehearsal.db.session import get_db
from rehearsal.models.song import Song
from rehearsal.schemas.capability import CapabilityIdList, CapabilityResponse
from rehearsal.schemas.song import SongRequirementsResponse
from rehearsal.services.song_service import get_song, set_requirements
from rehearsal.core.security import Identity, get_current_identity

router = APIRouter(prefix="/songs", tags=["Songs"])


def _requirements_response(song: Song) -> SongRequirementsResponse:
    return SongRequirementsResponse(
        song_id=song.id,
        title=song.title,
        capabilities=[CapabilityResponse.model_validate(c) for c in song.required_capabilities],
    )


@router.get("/{song_id}/capabilities", response_model=SongRequirementsResponse)
async def get_song_requirements(
    song_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return _requirements_response(await get_song(db, song_id))


@router.put("/{song_id}/capabilities", response_model=SongRequirementsResponse)
async def set_song_requirements(
    song_id: int,
    data: CapabilityIdList,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Replace the song's requirements. An empty list clears them. Admin only."""
    return _requirements_response(await set_requirements(db, identity, song_id, data.capability_ids))
