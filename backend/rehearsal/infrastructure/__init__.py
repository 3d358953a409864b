"""
Infrastructure layer - external system integrations.
Keeps business logic clean from implementation details.
"""

from .console_transport import ConsoleTransport
from .twilio_transport import TwilioTransport
from .transport_factory import get_transport, close_transport

__all__ = ['ConsoleTransport', 'TwilioTransport', 'get_transport', 'close_transport']
