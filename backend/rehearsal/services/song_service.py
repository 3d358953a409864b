"""
Song requirement store.

Requirements belong to the catalog song and apply to every session that
plays it. Sessions reference songs by title only, so coverage resolves
requirements through ``requirements_by_title``.

Known limitation: two catalog songs sharing a title are indistinguishable
to a session. The lowest song id wins the lookup.
"""

from typing import Iterable

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from rehearsal.core.exceptions import NotFoundError
from rehearsal.core.logging import get_logger
from rehearsal.core.security import Identity
from rehearsal.models.capability import song_capabilities
from rehearsal.models.song import Song
from rehearsal.services.capability_service import resolve_capabilities

logger = get_logger(__name__)


async def get_song(db: AsyncSession, song_id: int) -> Song:
    result = await db.execute(
        select(Song).where(Song.id == song_id).execution_options(populate_existing=True)
    )
    song = result.scalar_one_or_none()
    if not song:
        raise NotFoundError(f"Song {song_id} not found", details={"song_id": song_id})
    return song


async def set_requirements(
    db: AsyncSession,
    identity: Identity,
    song_id: int,
    capability_ids: list[int],
) -> Song:
    """Replace the song's requirement set. An empty set is valid."""
    identity.ensure_admin("edit song requirements")
    await get_song(db, song_id)
    capabilities = await resolve_capabilities(db, capability_ids)

    await db.execute(delete(song_capabilities).where(song_capabilities.c.song_id == song_id))
    if capabilities:
        await db.execute(
            insert(song_capabilities),
            [{"song_id": song_id, "capability_id": c.id} for c in capabilities],
        )
    await db.flush()

    logger.info(
        "song_requirements_set",
        song_id=song_id,
        capability_ids=sorted(c.id for c in capabilities),
    )
    return await get_song(db, song_id)


async def get_requirements(db: AsyncSession, song_id: int) -> set[int]:
    """Required capability ids; empty when the song declares none."""
    result = await db.execute(
        select(song_capabilities.c.capability_id).where(song_capabilities.c.song_id == song_id)
    )
    return set(result.scalars().all())


async def requirements_by_title(db: AsyncSession, titles: Iterable[str]) -> dict[str, set[int]]:
    """
    Map each known title to its requirement set.

    Titles with no catalog song are absent from the result; callers treat
    them as having no requirements.
    """
    wanted = set(titles)
    if not wanted:
        return {}

    result = await db.execute(
        select(Song.id, Song.title).where(Song.title.in_(wanted)).order_by(Song.id)
    )
    song_for_title: dict[str, int] = {}
    for song_id, title in result.all():
        song_for_title.setdefault(title, song_id)

    requirements: dict[str, set[int]] = {title: set() for title in song_for_title}
    if not song_for_title:
        return requirements

    title_for_song = {song_id: title for title, song_id in song_for_title.items()}
    rows = await db.execute(
        select(song_capabilities.c.song_id, song_capabilities.c.capability_id).where(
            song_capabilities.c.song_id.in_(list(title_for_song))
        )
    )
    for song_id, capability_id in rows.all():
        requirements[title_for_song[song_id]].add(capability_id)
    return requirements


async def songs_by_title(db: AsyncSession, titles: Iterable[str]) -> dict[str, Song]:
    """Catalog songs keyed by title, for artist and requirement display."""
    wanted = set(titles)
    if not wanted:
        return {}
    result = await db.execute(
        select(Song)
        .where(Song.title.in_(wanted))
        .order_by(Song.id)
        .execution_options(populate_existing=True)
    )
    songs: dict[str, Song] = {}
    for song in result.scalars().all():
        songs.setdefault(song.title, song)
    return songs
