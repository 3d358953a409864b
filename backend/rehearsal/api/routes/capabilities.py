"""
Capability catalog endpoints with Redis caching on the listing.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from rehearsal.db.session import get_db
from rehearsal.schemas.capability import CapabilityCreate, CapabilityUpdate, CapabilityResponse
from rehearsal.services.capability_service import (
    create_capability,
    delete_capability,
    list_capabilities,
    update_capability,
)
from rehearsal.services.cache_service import (
    get_cached_capabilities,
    set_cached_capabilities,
    invalidate_capability_cache,
)
from rehearsal.core.security import Identity, get_current_identity
from rehearsal.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/capabilities", tags=["Capabilities"])


@router.get("/", response_model=list[CapabilityResponse])
async def list_capabilities_endpoint(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """
    List the catalog ordered by name.
    Cached in Redis until the next catalog mutation or TTL expiry. Mutations
    commit before invalidating so a concurrent listing cannot re-cache old rows.
    """
    cached = await get_cached_capabilities()
    if cached is not None:
        logger.info("capabilities_list_cache_hit", count=len(cached))
        return [CapabilityResponse(**item) for item in cached]

    capabilities = await list_capabilities(db)
    response = [CapabilityResponse.model_validate(c) for c in capabilities]
    await set_cached_capabilities([c.model_dump() for c in response])
    return response


@router.post("/", response_model=CapabilityResponse, status_code=status.HTTP_201_CREATED)
async def create_capability_endpoint(
    data: CapabilityCreate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    capability = await create_capability(db, identity, data.name, data.icon)
    await db.commit()
    await invalidate_capability_cache()
    return capability


@router.put("/{capability_id}", response_model=CapabilityResponse)
async def update_capability_endpoint(
    capability_id: int,
    data: CapabilityUpdate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    capability = await update_capability(db, identity, capability_id, data.name, data.icon)
    await db.commit()
    await invalidate_capability_cache()
    return capability


@router.delete("/{capability_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_capability_endpoint(
    capability_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Delete an unused capability. 409 while any commitment, song or profile references it."""
    await delete_capability(db, identity, capability_id)
    await db.commit()
    await invalidate_capability_cache()
