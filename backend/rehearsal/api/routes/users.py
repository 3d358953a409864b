"""
Member capability profile endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rehearsal.db.session import get_db
from rehearsal.schemas.capability import CapabilityIdList
from rehearsal.schemas.user import UserProfileResponse
from rehearsal.services.directory_service import get_user, set_user_capabilities
from rehearsal.core.security import Identity, get_current_identity

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserProfileResponse)
async def get_me(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await get_user(db, identity.user_id)


@router.get("/{user_id}/capabilities", response_model=UserProfileResponse)
async def get_user_capabilities(
    user_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await get_user(db, user_id)


@router.put("/{user_id}/capabilities", response_model=UserProfileResponse)
async def set_user_capabilities_endpoint(
    user_id: int,
    data: CapabilityIdList,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Replace the member's capability set. Existing commitments keep what they pledged."""
    return await set_user_capabilities(db, identity, user_id, data.capability_ids)
