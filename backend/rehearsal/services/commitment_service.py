"""
Commitment ledger: who is coming to a session and what they will cover.

CONCURRENCY STRATEGY: Atomic Upsert on (session_id, user_id)
=============================================================

Problem:
  Two RSVP requests for the same member and session arrive together
  (double click, two devices, an admin editing on the member's behalf).
  A read-then-insert would let both pass the "no commitment yet" check
  and create two rows.

Solution:
  1. A unique constraint on (session_id, user_id) is the final safety net.
  2. The write is a single INSERT ... ON CONFLICT (session_id, user_id)
     DO UPDATE, so the row is created or claimed in one statement and
     the database holds the row lock until the transaction ends.
  3. The covered-capability rows are then replaced (delete + insert)
     inside the same transaction.

  A racing request blocks on the row lock and applies its own capability
  set after the first one commits: last writer wins, sets are never merged.

Validation happens before any write, and the request transaction is
rolled back on error, so a rejected RSVP never leaves partial rows.
"""

from typing import Iterable, Optional

from sqlalchemy import delete, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from rehearsal.core.exceptions import NotFoundError, ValidationError
from rehearsal.core.logging import get_logger
from rehearsal.core.metrics import record_commitment
from rehearsal.core.security import Identity
from rehearsal.models.capability import commitment_capabilities
from rehearsal.models.session import Commitment
from rehearsal.services.capability_service import resolve_capabilities
from rehearsal.services.directory_service import get_user, get_user_capability_ids
from rehearsal.services.session_service import get_session

logger = get_logger(__name__)


def _dialect_insert(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as dialect_insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as dialect_insert
    else:
        raise RuntimeError(f"Commitment upsert is not supported on {dialect}")
    return dialect_insert


async def _upsert_commitment_row(db: AsyncSession, session_id: int, user_id: int) -> int:
    dialect_insert = _dialect_insert(db)
    stmt = (
        dialect_insert(Commitment)
        .values(session_id=session_id, user_id=user_id)
        .on_conflict_do_update(
            index_elements=["session_id", "user_id"],
            set_={"updated_at": func.now()},
        )
        .returning(Commitment.id)
    )
    result = await db.execute(stmt)
    return result.scalar_one()


async def get_commitment(db: AsyncSession, session_id: int, user_id: int) -> Optional[Commitment]:
    result = await db.execute(
        select(Commitment)
        .where(Commitment.session_id == session_id, Commitment.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def commit(
    db: AsyncSession,
    identity: Identity,
    session_id: int,
    user_id: int,
    capability_ids: Iterable[int],
) -> Commitment:
    """
    RSVP ``user_id`` to ``session_id`` covering ``capability_ids``.
    Replaces any earlier commitment of the same member for that session.
    """
    identity.ensure_self_or_admin(user_id, "RSVP")
    wanted = set(capability_ids)
    if not wanted:
        record_commitment("commit", success=False)
        raise ValidationError(
            "Select at least one capability to cover",
            details={"session_id": session_id, "user_id": user_id},
        )

    await get_session(db, session_id)
    await get_user(db, user_id)

    known = await resolve_capabilities(db, wanted)

    not_owned = wanted - await get_user_capability_ids(db, user_id)
    if not_owned:
        record_commitment("commit", success=False)
        names = [c.name for c in known if c.id in not_owned]
        raise ValidationError(
            "You don't have that capability: " + ", ".join(names),
            details={"capability_ids": sorted(not_owned)},
        )

    commitment_id = await _upsert_commitment_row(db, session_id, user_id)
    await db.execute(
        delete(commitment_capabilities).where(commitment_capabilities.c.commitment_id == commitment_id)
    )
    await db.execute(
        insert(commitment_capabilities),
        [{"commitment_id": commitment_id, "capability_id": cid} for cid in sorted(wanted)],
    )
    await db.flush()

    record_commitment("commit", success=True)
    logger.info(
        "commitment_saved",
        commitment_id=commitment_id,
        session_id=session_id,
        user_id=user_id,
        capability_ids=sorted(wanted),
        acting_user_id=identity.user_id,
    )
    return await get_commitment(db, session_id, user_id)


async def cancel(db: AsyncSession, identity: Identity, session_id: int, user_id: int) -> None:
    """Withdraw a member's RSVP. Songs and requirements are not touched."""
    identity.ensure_self_or_admin(user_id, "cancel an RSVP")
    commitment = await get_commitment(db, session_id, user_id)
    if not commitment:
        record_commitment("cancel", success=False)
        raise NotFoundError(
            "No commitment found for this session",
            details={"session_id": session_id, "user_id": user_id},
        )

    commitment_id = commitment.id
    await db.execute(
        delete(commitment_capabilities).where(commitment_capabilities.c.commitment_id == commitment_id)
    )
    await db.execute(delete(Commitment).where(Commitment.id == commitment_id))
    await db.flush()

    record_commitment("cancel", success=True)
    logger.info(
        "commitment_cancelled",
        commitment_id=commitment_id,
        session_id=session_id,
        user_id=user_id,
        acting_user_id=identity.user_id,
    )


async def list_commitments(db: AsyncSession, session_id: int) -> list[Commitment]:
    """Commitments in RSVP order (first RSVP first), with user and capabilities loaded."""
    await get_session(db, session_id)
    result = await db.execute(
        select(Commitment)
        .where(Commitment.session_id == session_id)
        .order_by(Commitment.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def covered_capabilities(db: AsyncSession, session_id: int) -> list[set[int]]:
    """Capability sets pledged by each commitment on the session."""
    result = await db.execute(
        select(commitment_capabilities.c.commitment_id, commitment_capabilities.c.capability_id)
        .join(Commitment, Commitment.id == commitment_capabilities.c.commitment_id)
        .where(Commitment.session_id == session_id)
    )
    pledged: dict[int, set[int]] = {}
    for commitment_id, capability_id in result.all():
        pledged.setdefault(commitment_id, set()).add(capability_id)
    return list(pledged.values())


async def committed_user_ids(db: AsyncSession, session_id: int) -> set[int]:
    result = await db.execute(select(Commitment.user_id).where(Commitment.session_id == session_id))
    return set(result.scalars().all())
