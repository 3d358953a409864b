"""
Outbound messaging transport interface.
The notification dispatcher only sees this; the destination format
(an E.164 phone number today) is opaque to it.
"""

from abc import ABC, abstractmethod


class MessageTransport(ABC):
    """
    Interface for outbound message delivery.

    Implementations:
    - ConsoleTransport: log the message instead of sending it (development)
    - TwilioTransport: send an SMS through the Twilio REST API
    """

    name: str = "transport"

    @abstractmethod
    async def send(self, destination: str, message: str) -> None:
        """
        Deliver one message.

        Args:
            destination: Recipient address, e.g. "+15551234567"
            message: Rendered message body

        Raises:
            TransportError: the transport rejected or failed the send
        """
        pass

    async def close(self) -> None:
        """Release connections held by the transport."""
        return None
