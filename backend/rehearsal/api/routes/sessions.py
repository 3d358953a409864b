"""
Session endpoints: schedule, setlist, RSVPs, coverage and outreach.

Coverage and candidates are computed per request and never cached.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from rehearsal.db.session import get_db
from rehearsal.models.session import RehearsalSession
from rehearsal.schemas.capability import CapabilityResponse
from rehearsal.schemas.commitment import CommitmentCreate, CommitmentResponse, CommitmentCancelResponse
from rehearsal.schemas.coverage import SessionCoverageResponse, SongCoverageResponse
from rehearsal.schemas.notification import (
    DispatchResponse,
    InviteRequest,
    ReminderPreviewResponse,
    RemindRequest,
    SkippedRecipient as SkippedRecipientResponse,
)
from rehearsal.schemas.session import (
    RecordingCreate,
    RecordingResponse,
    SessionCreate,
    SessionResponse,
    SessionSongResponse,
    SessionSummary,
    SessionUpdate,
)
from rehearsal.schemas.user import CandidateResponse
from rehearsal.services import (
    candidate_service,
    commitment_service,
    coverage_service,
    notification_service,
    session_service,
)
from rehearsal.services.capability_service import list_capabilities
from rehearsal.services.interfaces.transport import MessageTransport
from rehearsal.services.song_service import songs_by_title
from rehearsal.infrastructure.transport_factory import get_transport
from rehearsal.core.security import Identity, get_current_identity

router = APIRouter(prefix="/sessions", tags=["Sessions"])


async def describe_session(db: AsyncSession, session: RehearsalSession) -> SessionResponse:
    """Session view: setlist enriched from the song catalog by title, plus RSVPs."""
    catalog = await songs_by_title(db, {song.song_name for song in session.songs})
    songs = []
    for entry in session.songs:
        song = catalog.get(entry.song_name)
        songs.append(
            SessionSongResponse(
                id=entry.id,
                song_name=entry.song_name,
                song_url=entry.song_url,
                position=entry.position,
                song_artist=song.artist if song else None,
                capabilities=[
                    CapabilityResponse.model_validate(c) for c in song.required_capabilities
                ] if song else [],
            )
        )

    commitments = await commitment_service.list_commitments(db, session.id)
    return SessionResponse(
        id=session.id,
        date=session.date,
        start_time=session.start_time,
        end_time=session.end_time,
        songs=songs,
        recordings=[RecordingResponse.model_validate(r) for r in session.recordings],
        commitments=[CommitmentResponse.model_validate(c) for c in commitments],
        commitments_count=len(commitments),
    )


def _dispatch_response(result: notification_service.DispatchResult) -> DispatchResponse:
    return DispatchResponse(
        sent_count=result.sent_count,
        skipped=[
            SkippedRecipientResponse(user_id=s.user_id, reason=s.reason) for s in result.skipped
        ],
    )


@router.post("/", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session_endpoint(
    data: SessionCreate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Schedule a session. Start/end default to the configured rehearsal slot. Admin only."""
    session = await session_service.create_session(db, identity, data)
    return await describe_session(db, session)


@router.get("/", response_model=list[SessionSummary])
async def list_sessions_endpoint(
    from_date: Optional[date] = Query(None),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await session_service.list_sessions(db, from_date)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session_endpoint(
    session_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    session = await session_service.get_session(db, session_id)
    return await describe_session(db, session)


@router.put("/{session_id}", response_model=SessionResponse)
async def update_session_endpoint(
    session_id: int,
    data: SessionUpdate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """
    Edit the schedule and/or replace the setlist.
    Returns 409 if a song that already has a recording would be dropped.
    """
    session = await session_service.update_session(db, identity, session_id, data)
    return await describe_session(db, session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session_endpoint(
    session_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    await session_service.delete_session(db, identity, session_id)


@router.post(
    "/{session_id}/recordings",
    response_model=RecordingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_recording_endpoint(
    session_id: int,
    data: RecordingCreate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await session_service.add_recording(db, identity, session_id, data.title, data.url)


@router.get("/{session_id}/coverage", response_model=SessionCoverageResponse)
async def get_coverage(
    session_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Per-song required capabilities and the gap left by current RSVPs."""
    report = await coverage_service.compute_coverage(db, session_id)
    catalog = {c.id: CapabilityResponse.model_validate(c) for c in await list_capabilities(db)}

    def resolve(ids) -> list[CapabilityResponse]:
        return sorted((catalog[i] for i in ids if i in catalog), key=lambda c: c.name)

    return SessionCoverageResponse(
        session_id=session_id,
        covered=resolve(report.covered),
        songs=[
            SongCoverageResponse(
                position=entry.song.position,
                song_name=entry.song.title,
                song_url=entry.song.url,
                required=resolve(entry.required),
                gap=resolve(entry.gap),
            )
            for entry in report.songs
        ],
        fully_staffed=report.fully_staffed,
    )


@router.get("/{session_id}/commitments", response_model=list[CommitmentResponse])
async def list_commitments_endpoint(
    session_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """RSVPs in the order they were first made."""
    return await commitment_service.list_commitments(db, session_id)


@router.post(
    "/{session_id}/commitments",
    response_model=CommitmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def commit_endpoint(
    session_id: int,
    data: CommitmentCreate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """
    RSVP to a session with the capabilities you will cover.

    Upsert on (session, member): repeating the call replaces the covered
    capabilities instead of creating a second RSVP. Admins may RSVP on
    behalf of another member via ``user_id``.
    """
    user_id = data.user_id if data.user_id is not None else identity.user_id
    return await commitment_service.commit(db, identity, session_id, user_id, data.capability_ids)


@router.delete("/{session_id}/commitments", response_model=CommitmentCancelResponse)
async def cancel_commitment_endpoint(
    session_id: int,
    user_id: Optional[int] = Query(None),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Withdraw the caller's RSVP, or another member's when ``user_id`` is given (admin)."""
    target = user_id if user_id is not None else identity.user_id
    await commitment_service.cancel(db, identity, session_id, target)
    return CommitmentCancelResponse(
        message="Commitment cancelled successfully",
        session_id=session_id,
        user_id=target,
    )


@router.get("/{session_id}/candidates", response_model=list[CandidateResponse])
async def list_candidates(
    session_id: int,
    capability_id: int = Query(...),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Members holding the capability who have not RSVP'd to the session."""
    return await candidate_service.find_candidates(db, session_id, capability_id)


@router.post("/{session_id}/invite", response_model=DispatchResponse)
async def invite_candidates(
    session_id: int,
    data: InviteRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    transport: MessageTransport = Depends(get_transport),
):
    """Text the selected candidates about a missing capability. Admin only."""
    context = await notification_service.build_invite_context(db, session_id, data.capability_id)
    result = await notification_service.invite(db, identity, session_id, data.user_ids, context, transport)
    return _dispatch_response(result)


@router.post("/{session_id}/remind", response_model=DispatchResponse)
async def remind_committed(
    session_id: int,
    data: RemindRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    transport: MessageTransport = Depends(get_transport),
):
    """Text every committed member. A blank message sends the default reminder. Admin only."""
    result = await notification_service.remind(db, identity, session_id, data.message, transport)
    return _dispatch_response(result)


@router.get("/{session_id}/remind/preview", response_model=ReminderPreviewResponse)
async def preview_reminder(
    session_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    message, recipient_count = await notification_service.preview_reminder(db, identity, session_id)
    return ReminderPreviewResponse(message=message, recipient_count=recipient_count)
