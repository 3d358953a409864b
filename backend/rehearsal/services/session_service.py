"""
Rehearsal session management: schedule, setlist snapshot and recordings.

A setlist entry is "recorded" once a recording of the session carries its
title; recorded entries can no longer be removed from the setlist.
"""

from datetime import date, datetime, time
from typing import Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from rehearsal.core.config import get_settings
from rehearsal.core.exceptions import ConflictError, NotFoundError, ValidationError
from rehearsal.core.logging import get_logger
from rehearsal.core.security import Identity
from rehearsal.models.session import RehearsalSession, SessionRecording, SessionSong
from rehearsal.schemas.session import SessionCreate, SessionSongIn, SessionUpdate

logger = get_logger(__name__)


def _parse_clock(value: str) -> time:
    try:
        return datetime.strptime(value, "%H:%M").time()
    except ValueError:
        raise ValidationError(f"Invalid time of day: {value!r}")


def default_start_time() -> time:
    return _parse_clock(get_settings().DEFAULT_SESSION_START)


def default_end_time() -> time:
    return _parse_clock(get_settings().DEFAULT_SESSION_END)


async def get_session(db: AsyncSession, session_id: int) -> RehearsalSession:
    result = await db.execute(
        select(RehearsalSession)
        .where(RehearsalSession.id == session_id)
        .execution_options(populate_existing=True)
    )
    session = result.scalar_one_or_none()
    if not session:
        raise NotFoundError(f"Session {session_id} not found", details={"session_id": session_id})
    return session


async def list_sessions(db: AsyncSession, from_date: Optional[date] = None) -> list[RehearsalSession]:
    query = select(RehearsalSession)
    if from_date:
        query = query.where(RehearsalSession.date >= from_date)
    result = await db.execute(query.order_by(RehearsalSession.date.asc(), RehearsalSession.start_time.asc()))
    return list(result.scalars().all())


def _clean_title(value: str, field: str) -> str:
    title = value.strip()
    if not title:
        raise ValidationError(f"{field} cannot be blank", details={"field": field})
    return title


async def _replace_songs(db: AsyncSession, session_id: int, songs: list[SessionSongIn]) -> None:
    titles = [_clean_title(song.song_name, "song_name") for song in songs]
    await db.execute(delete(SessionSong).where(SessionSong.session_id == session_id))
    if songs:
        await db.execute(
            insert(SessionSong),
            [
                {
                    "session_id": session_id,
                    "song_name": title,
                    "song_url": song.song_url or None,
                    "position": index,
                }
                for index, (song, title) in enumerate(zip(songs, titles))
            ],
        )


async def create_session(db: AsyncSession, identity: Identity, data: SessionCreate) -> RehearsalSession:
    identity.ensure_admin("create sessions")
    session = RehearsalSession(
        date=data.date,
        start_time=data.start_time or default_start_time(),
        end_time=data.end_time or default_end_time(),
        created_by=identity.user_id,
    )
    db.add(session)
    await db.flush()
    await _replace_songs(db, session.id, data.songs)
    await db.flush()

    logger.info("session_created", session_id=session.id, date=str(session.date), songs=len(data.songs))
    return await get_session(db, session.id)


def recorded_titles(session: RehearsalSession) -> set[str]:
    return {recording.title for recording in session.recordings}


async def update_session(
    db: AsyncSession,
    identity: Identity,
    session_id: int,
    data: SessionUpdate,
) -> RehearsalSession:
    """Edit schedule and/or setlist. Recorded songs must stay on the setlist."""
    identity.ensure_admin("edit sessions")
    session = await get_session(db, session_id)

    if data.songs is not None:
        current = {song.song_name for song in session.songs}
        kept = {_clean_title(song.song_name, "song_name") for song in data.songs}
        removed_recorded = sorted((current - kept) & recorded_titles(session))
        if removed_recorded:
            raise ConflictError(
                "Cannot remove recorded songs: " + ", ".join(removed_recorded),
                details={"songs": removed_recorded},
            )

    if data.date is not None:
        session.date = data.date
    if data.start_time is not None:
        session.start_time = data.start_time
    if data.end_time is not None:
        session.end_time = data.end_time
    await db.flush()
    if data.songs is not None:
        await _replace_songs(db, session_id, data.songs)
        await db.flush()

    logger.info("session_updated", session_id=session_id, songs_replaced=data.songs is not None)
    return await get_session(db, session_id)


async def delete_session(db: AsyncSession, identity: Identity, session_id: int) -> None:
    """Delete a session; songs, recordings and commitments go with it."""
    identity.ensure_admin("delete sessions")
    await get_session(db, session_id)
    await db.execute(delete(RehearsalSession).where(RehearsalSession.id == session_id))
    await db.flush()
    logger.info("session_deleted", session_id=session_id)


async def add_recording(
    db: AsyncSession,
    identity: Identity,
    session_id: int,
    title: str,
    url: str,
) -> SessionRecording:
    await get_session(db, session_id)
    recording = SessionRecording(
        session_id=session_id,
        title=_clean_title(title, "title"),
        url=url,
        created_by=identity.user_id,
    )
    db.add(recording)
    await db.flush()
    await db.refresh(recording)

    logger.info("recording_added", session_id=session_id, recording_id=recording.id, title=recording.title)
    return recording
