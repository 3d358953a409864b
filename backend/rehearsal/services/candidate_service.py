"""
Candidate matcher: who could fill an uncovered capability for a session.

A member already committed to the session is never a candidate, even when
their commitment does not cover the capability. They are treated as
unavailable for it and are not invited twice.
"""

from typing import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from rehearsal.core.logging import get_logger
from rehearsal.models.user import User
from rehearsal.services import commitment_service, directory_service
from rehearsal.services.capability_service import get_capability
from rehearsal.services.session_service import get_session

logger = get_logger(__name__)

HolderLookup = Callable[[AsyncSession, int], Awaitable[list[User]]]
CommittedLookup = Callable[[AsyncSession, int], Awaitable[set[int]]]


async def find_candidates(
    db: AsyncSession,
    session_id: int,
    capability_id: int,
    holder_lookup: HolderLookup = directory_service.capability_holders,
    committed_lookup: CommittedLookup = commitment_service.committed_user_ids,
) -> list[User]:
    """Active holders of the capability with no commitment on the session, by name."""
    await get_session(db, session_id)
    await get_capability(db, capability_id)

    committed = await committed_lookup(db, session_id)
    candidates = [user for user in await holder_lookup(db, capability_id) if user.id not in committed]

    logger.info(
        "candidates_found",
        session_id=session_id,
        capability_id=capability_id,
        count=len(candidates),
    )
    return candidates
