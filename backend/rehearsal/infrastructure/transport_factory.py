"""
Message transport factory.
Configures which outbound transport the notification dispatcher uses.
"""

from typing import Optional

from rehearsal.core.config import get_settings
from rehearsal.services.interfaces.transport import MessageTransport
from rehearsal.infrastructure.console_transport import ConsoleTransport
from rehearsal.infrastructure.twilio_transport import TwilioTransport


def build_transport(backend: Optional[str] = None) -> MessageTransport:
    """
    Build the configured transport.

    Backend selection via SMS_BACKEND:
    - console: log messages (development, tests)
    - twilio: real SMS (production)
    """
    backend = backend or get_settings().SMS_BACKEND

    if backend == 'twilio':
        return TwilioTransport()
    else:
        return ConsoleTransport()


# Singleton instance
_transport: Optional[MessageTransport] = None


def get_transport() -> MessageTransport:
    """Get transport singleton (FastAPI dependency)."""
    global _transport
    if _transport is None:
        _transport = build_transport()
    return _transport


async def close_transport() -> None:
    global _transport
    if _transport is not None:
        await _transport.close()
        _transport = None
