"""
Capability catalog: read-mostly reference data shared by every component.

Names are normalized (trimmed, lower-cased) before they hit the unique
constraint. Deletion is guarded: a capability referenced by a commitment,
a song requirement or a member profile cannot be removed.
"""

from typing import Iterable, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from rehearsal.core.exceptions import ConflictError, NotFoundError, ValidationError
from rehearsal.core.logging import get_logger
from rehearsal.core.security import Identity
from rehearsal.models.capability import (
    Capability,
    commitment_capabilities,
    song_capabilities,
    user_capabilities,
)

logger = get_logger(__name__)

DEFAULT_ICON = "🎸"


def normalize_name(name: str) -> str:
    normalized = (name or "").strip().lower()
    if not normalized:
        raise ValidationError("Capability name is required")
    return normalized


async def list_capabilities(db: AsyncSession) -> list[Capability]:
    result = await db.execute(select(Capability).order_by(Capability.name))
    return list(result.scalars().all())


async def get_capability(db: AsyncSession, capability_id: int) -> Capability:
    capability = await db.get(Capability, capability_id)
    if not capability:
        raise NotFoundError(
            f"Capability {capability_id} not found",
            details={"capability_id": capability_id},
        )
    return capability


async def resolve_capabilities(db: AsyncSession, capability_ids: Iterable[int]) -> list[Capability]:
    """Load capabilities by id, failing on any unknown id."""
    wanted = set(capability_ids)
    if not wanted:
        return []
    result = await db.execute(
        select(Capability).where(Capability.id.in_(wanted)).order_by(Capability.name)
    )
    found = list(result.scalars().all())
    missing = wanted - {c.id for c in found}
    if missing:
        raise NotFoundError(
            "Unknown capability ids: " + ", ".join(str(i) for i in sorted(missing)),
            details={"missing_capability_ids": sorted(missing)},
        )
    return found


async def _find_by_name(db: AsyncSession, name: str) -> Optional[Capability]:
    result = await db.execute(select(Capability).where(Capability.name == name))
    return result.scalar_one_or_none()


async def create_capability(
    db: AsyncSession,
    identity: Identity,
    name: str,
    icon: Optional[str] = None,
) -> Capability:
    identity.ensure_admin("create capabilities")
    normalized = normalize_name(name)
    if await _find_by_name(db, normalized):
        raise ConflictError("Capability already exists", details={"name": normalized})

    capability = Capability(name=normalized, icon=icon or DEFAULT_ICON)
    db.add(capability)
    await db.flush()
    await db.refresh(capability)

    logger.info("capability_created", capability_id=capability.id, name=capability.name)
    return capability


async def update_capability(
    db: AsyncSession,
    identity: Identity,
    capability_id: int,
    name: str,
    icon: Optional[str] = None,
) -> Capability:
    identity.ensure_admin("edit capabilities")
    capability = await get_capability(db, capability_id)
    normalized = normalize_name(name)

    clash = await _find_by_name(db, normalized)
    if clash and clash.id != capability.id:
        raise ConflictError("Capability name already exists", details={"name": normalized})

    capability.name = normalized
    if icon:
        capability.icon = icon
    await db.flush()
    await db.refresh(capability)

    logger.info("capability_updated", capability_id=capability.id, name=capability.name)
    return capability


async def capability_usage(db: AsyncSession, capability_id: int) -> dict[str, int]:
    """Count references per owner kind: commitments, songs, users."""
    usage = {}
    for label, table in (
        ("commitments", commitment_capabilities),
        ("songs", song_capabilities),
        ("users", user_capabilities),
    ):
        count = await db.scalar(
            select(func.count()).select_from(table).where(table.c.capability_id == capability_id)
        )
        usage[label] = count or 0
    return usage


async def delete_capability(db: AsyncSession, identity: Identity, capability_id: int) -> None:
    identity.ensure_admin("delete capabilities")
    capability = await get_capability(db, capability_id)

    usage = await capability_usage(db, capability_id)
    in_use = {label: count for label, count in usage.items() if count}
    if in_use:
        logger.warning("capability_delete_blocked", capability_id=capability_id, **in_use)
        raise ConflictError(
            "Cannot delete capability that is in use by " + ", ".join(sorted(in_use)),
            details={"usage": in_use},
        )

    await db.delete(capability)
    await db.flush()
    logger.info("capability_deleted", capability_id=capability_id, name=capability.name)
