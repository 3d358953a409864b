"""
Notification dispatcher: turn a set of recipients into outbound messages.

FAN-OUT MODEL
=============

Each invite/remind is a one-shot, best-effort fan-out:
  - recipients without a usable contact channel are skipped and reported
  - sends run concurrently, bounded by NOTIFY_MAX_WORKERS
  - every send has its own NOTIFY_SEND_TIMEOUT; a slow recipient only
    costs its own slot
  - a failed or timed-out send becomes a skipped entry; nothing is retried
  - the call returns once every send has settled

No delivery state is persisted.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import date as date_type, time as time_type
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rehearsal.core.config import get_settings
from rehearsal.core.exceptions import TransportError, ValidationError
from rehearsal.core.logging import get_logger, mask_phone
from rehearsal.core.metrics import notification_send_latency, record_send
from rehearsal.core.security import Identity
from rehearsal.models.session import RehearsalSession
from rehearsal.services.capability_service import get_capability
from rehearsal.services.commitment_service import committed_user_ids
from rehearsal.services.directory_service import get_contact_channel, get_users
from rehearsal.services.interfaces.transport import MessageTransport
from rehearsal.services.session_service import get_session

logger = get_logger(__name__)

REASON_NO_CHANNEL = "no contact channel"
REASON_UNKNOWN_USER = "unknown user"
REASON_TIMED_OUT = "timed out"


@dataclass
class SkippedRecipient:
    user_id: int
    reason: str


@dataclass
class DispatchResult:
    sent_count: int = 0
    skipped: list[SkippedRecipient] = field(default_factory=list)


@dataclass(frozen=True)
class InviteContext:
    """Session facts rendered into an invite."""
    session_date: date_type
    start_time: time_type
    song_count: int
    capability_name: str


def format_date(value: date_type) -> str:
    return f"{value.strftime('%B')} {value.day}"


def format_time(value: time_type) -> str:
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def render_invite(context: InviteContext, band_name: Optional[str] = None) -> str:
    band_name = band_name or get_settings().BAND_NAME
    songs = f"{context.song_count} song" + ("" if context.song_count == 1 else "s")
    return (
        f"{band_name} needs {context.capability_name} on {format_date(context.session_date)} "
        f"at {format_time(context.start_time)} ({songs} on the setlist). "
        "Can you make it? RSVP in the app."
    )


def default_reminder_message(session: RehearsalSession, band_name: Optional[str] = None) -> str:
    band_name = band_name or get_settings().BAND_NAME
    return (
        f"Reminder: You have a session at {band_name} on {format_date(session.date)} "
        f"at {format_time(session.start_time)}. See you there!"
    )


async def build_invite_context(db: AsyncSession, session_id: int, capability_id: int) -> InviteContext:
    session = await get_session(db, session_id)
    capability = await get_capability(db, capability_id)
    return InviteContext(
        session_date=session.date,
        start_time=session.start_time,
        song_count=len(session.songs),
        capability_name=capability.name,
    )


async def _send_one(
    transport: MessageTransport,
    semaphore: asyncio.Semaphore,
    kind: str,
    user_id: int,
    destination: str,
    message: str,
    timeout: float,
) -> Optional[SkippedRecipient]:
    async with semaphore:
        started = time.perf_counter()
        try:
            await asyncio.wait_for(transport.send(destination, message), timeout=timeout)
        except asyncio.TimeoutError:
            record_send(kind, "timeout")
            logger.warning("notification_timed_out", kind=kind, user_id=user_id, to=mask_phone(destination))
            return SkippedRecipient(user_id=user_id, reason=REASON_TIMED_OUT)
        except TransportError as e:
            record_send(kind, "failed")
            logger.warning("notification_failed", kind=kind, user_id=user_id, error=e.message)
            return SkippedRecipient(user_id=user_id, reason=f"send failed: {e.message}")
        except Exception as e:
            record_send(kind, "failed")
            logger.error("notification_failed", kind=kind, user_id=user_id, error=str(e))
            return SkippedRecipient(user_id=user_id, reason=f"send failed: {e}")
        finally:
            notification_send_latency.observe(time.perf_counter() - started)

    record_send(kind, "sent")
    logger.info("notification_sent", kind=kind, user_id=user_id, to=mask_phone(destination))
    return None


async def dispatch(
    db: AsyncSession,
    kind: str,
    user_ids: list[int],
    message: str,
    transport: MessageTransport,
) -> DispatchResult:
    """Send ``message`` to each user with a usable contact channel."""
    settings = get_settings()
    users = await get_users(db, user_ids)
    result = DispatchResult()

    targets: list[tuple[int, str]] = []
    seen: set[int] = set()
    for user_id in user_ids:
        if user_id in seen:
            continue
        seen.add(user_id)

        user = users.get(user_id)
        if user is None:
            reason = REASON_UNKNOWN_USER
        else:
            destination = get_contact_channel(user)
            if destination:
                targets.append((user_id, destination))
                continue
            reason = REASON_NO_CHANNEL
        record_send(kind, "skipped")
        logger.info("notification_skipped", kind=kind, user_id=user_id, reason=reason)
        result.skipped.append(SkippedRecipient(user_id=user_id, reason=reason))

    semaphore = asyncio.Semaphore(max(settings.NOTIFY_MAX_WORKERS, 1))
    outcomes = await asyncio.gather(
        *(
            _send_one(transport, semaphore, kind, user_id, destination, message, settings.NOTIFY_SEND_TIMEOUT)
            for user_id, destination in targets
        )
    )
    for outcome in outcomes:
        if outcome is None:
            result.sent_count += 1
        else:
            result.skipped.append(outcome)

    logger.info(
        "dispatch_completed",
        kind=kind,
        transport=transport.name,
        recipients=len(seen),
        sent=result.sent_count,
        skipped=len(result.skipped),
    )
    return result


async def invite(
    db: AsyncSession,
    identity: Identity,
    session_id: int,
    user_ids: list[int],
    context: InviteContext,
    transport: MessageTransport,
) -> DispatchResult:
    identity.ensure_admin("send invites")
    await get_session(db, session_id)
    if not user_ids:
        raise ValidationError("Select at least one member to invite")
    return await dispatch(db, "invite", list(user_ids), render_invite(context), transport)


async def remind(
    db: AsyncSession,
    identity: Identity,
    session_id: int,
    message: str,
    transport: MessageTransport,
) -> DispatchResult:
    """Message every committed member. A blank message sends the default reminder."""
    identity.ensure_admin("send reminders")
    session = await get_session(db, session_id)
    text = (message or "").strip() or default_reminder_message(session)
    recipients = sorted(await committed_user_ids(db, session_id))
    return await dispatch(db, "remind", recipients, text, transport)


async def preview_reminder(db: AsyncSession, identity: Identity, session_id: int) -> tuple[str, int]:
    """Default reminder text and how many committed members can receive it."""
    identity.ensure_admin("preview reminders")
    session = await get_session(db, session_id)
    users = await get_users(db, await committed_user_ids(db, session_id))
    reachable = sum(1 for user in users.values() if get_contact_channel(user))
    return default_reminder_message(session), reachable
