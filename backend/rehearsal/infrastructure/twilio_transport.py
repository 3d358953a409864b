"""
SMS delivery through the Twilio REST API over httpx.

POST {TWILIO_API_BASE}/Accounts/{sid}/Messages.json with basic auth and
form fields To/From/Body. Any non-2xx answer or network failure becomes a
TransportError for the single recipient; the dispatcher decides what that
means for the batch.
"""

from typing import Optional

import httpx

from rehearsal.core.config import Settings, get_settings
from rehearsal.core.exceptions import ConfigurationError, TransportError
from rehearsal.core.logging import get_logger, mask_phone
from rehearsal.services.interfaces.transport import MessageTransport

logger = get_logger(__name__)


class TwilioTransport(MessageTransport):
    name = "twilio"

    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None):
        settings = settings or get_settings()
        missing = [
            key
            for key in ("TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_FROM_NUMBER")
            if not getattr(settings, key)
        ]
        if missing:
            raise ConfigurationError(
                "SMS transport is not configured",
                details={"missing": missing},
            )

        self.account_sid = settings.TWILIO_ACCOUNT_SID
        self.from_number = settings.TWILIO_FROM_NUMBER
        self.url = f"{settings.TWILIO_API_BASE.rstrip('/')}/Accounts/{self.account_sid}/Messages.json"
        self._client = client or httpx.AsyncClient(
            auth=(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN),
            timeout=settings.NOTIFY_SEND_TIMEOUT,
        )

    async def send(self, destination: str, message: str) -> None:
        try:
            response = await self._client.post(
                self.url,
                data={"To": destination, "From": self.from_number, "Body": message},
            )
        except httpx.TimeoutException:
            raise TransportError("SMS provider timed out", details={"to": mask_phone(destination)})
        except httpx.HTTPError as e:
            raise TransportError(f"SMS provider unreachable: {e}", details={"to": mask_phone(destination)})

        if response.status_code >= 300:
            try:
                reason = response.json().get("message", response.text)
            except ValueError:
                reason = response.text
            raise TransportError(
                f"SMS provider rejected message ({response.status_code}): {reason}",
                details={"to": mask_phone(destination), "status": response.status_code},
            )

        logger.debug("sms_accepted", to=mask_phone(destination), status=response.status_code)

    async def close(self) -> None:
        await self._client.aclose()
