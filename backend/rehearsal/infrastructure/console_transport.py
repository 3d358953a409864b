"""
Development transport: messages are logged, nothing leaves the process.
"""

from rehearsal.core.logging import get_logger, mask_phone
from rehearsal.services.interfaces.transport import MessageTransport

logger = get_logger(__name__)


class ConsoleTransport(MessageTransport):
    name = "console"

    async def send(self, destination: str, message: str) -> None:
        logger.info(
            "sms_logged",
            to=mask_phone(destination),
            length=len(message),
            body=message,
        )
