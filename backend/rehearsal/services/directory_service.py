"""
User directory: member lookup, capability profiles and contact channels.
"""

import re
from typing import Iterable, Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from rehearsal.core.config import get_settings
from rehearsal.core.exceptions import NotFoundError
from rehearsal.core.logging import get_logger
from rehearsal.core.security import Identity
from rehearsal.models.capability import user_capabilities
from rehearsal.models.user import User
from rehearsal.services.capability_service import resolve_capabilities

logger = get_logger(__name__)

MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15


async def get_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError(f"User {user_id} not found", details={"user_id": user_id})
    return user


async def get_users(db: AsyncSession, user_ids: Iterable[int]) -> dict[int, User]:
    ids = set(user_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(User).where(User.id.in_(ids)).execution_options(populate_existing=True)
    )
    return {user.id: user for user in result.scalars().all()}


async def get_user_capability_ids(db: AsyncSession, user_id: int) -> set[int]:
    result = await db.execute(
        select(user_capabilities.c.capability_id).where(user_capabilities.c.user_id == user_id)
    )
    return set(result.scalars().all())


async def capability_holders(db: AsyncSession, capability_id: int) -> list[User]:
    """Active members whose profile lists the capability, by name."""
    result = await db.execute(
        select(User)
        .join(user_capabilities, user_capabilities.c.user_id == User.id)
        .where(user_capabilities.c.capability_id == capability_id, User.is_active.is_(True))
        .order_by(User.name.asc(), User.id.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().unique().all())


async def set_user_capabilities(
    db: AsyncSession,
    identity: Identity,
    user_id: int,
    capability_ids: list[int],
) -> User:
    """Replace a member's capability profile. Existing commitments are untouched."""
    identity.ensure_self_or_admin(user_id, "edit capabilities")
    await get_user(db, user_id)
    capabilities = await resolve_capabilities(db, capability_ids)

    await db.execute(delete(user_capabilities).where(user_capabilities.c.user_id == user_id))
    if capabilities:
        await db.execute(
            insert(user_capabilities),
            [{"user_id": user_id, "capability_id": c.id} for c in capabilities],
        )
    await db.flush()

    logger.info(
        "user_capabilities_updated",
        user_id=user_id,
        capability_ids=sorted(c.id for c in capabilities),
    )
    return await get_user(db, user_id)


def normalize_phone(phone: Optional[str], country_code: Optional[str] = None) -> Optional[str]:
    """
    Return an E.164-style destination, or None when the number is unusable.

    Ten digits are treated as a national number and get the default country
    code; eleven digits already starting with it just get a plus sign.
    """
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    if not MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS:
        return None
    country_code = country_code or get_settings().DEFAULT_COUNTRY_CODE
    if len(digits) == 10:
        return f"+{country_code}{digits}"
    return f"+{digits}"


def get_contact_channel(user: User) -> Optional[str]:
    if not user.is_active:
        return None
    return normalize_phone(user.phone)
