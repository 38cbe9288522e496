"""Twilio SMS gateway (optional)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..exceptions import SmsDeliveryError
from ..ports import ISmsGateway

logger = logging.getLogger(__name__)


class TwilioSmsGateway(ISmsGateway):
    """
    Twilio implementation of ISmsGateway.

    Requires twilio library:
    pip install mfa-core[twilio]
    """

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        timeout: float = 10.0,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is None:
            # Lazy import of twilio
            try:
                from twilio.http.http_client import TwilioHttpClient
                from twilio.rest import Client as TwilioClient
            except ImportError as e:
                raise ImportError(
                    "twilio is required for TwilioSmsGateway. "
                    "Install with: pip install mfa-core[twilio]"
                ) from e
            self._client = TwilioClient(
                self.account_sid,
                self.auth_token,
                http_client=TwilioHttpClient(timeout=self.timeout),
            )
        return self._client

    async def send_otp(self, phone_e164: str, message: str) -> None:
        from twilio.base.exceptions import TwilioRestException

        client = self._get_client()
        try:
            # The Twilio client is blocking
            sent = await asyncio.to_thread(
                client.messages.create,
                to=phone_e164,
                from_=self.from_number,
                body=message,
            )
        except TwilioRestException as e:
            logger.error("Twilio API error: %s", e.msg, extra={"status": e.status})
            raise SmsDeliveryError(f"Twilio API error: {e.msg}") from e
        except Exception as e:
            logger.error("Failed to send SMS via Twilio: %s", e)
            raise SmsDeliveryError("Failed to send SMS via Twilio") from e

        logger.info("SMS sent via Twilio", extra={"sid": sent.sid})


__all__: list[str] = ["TwilioSmsGateway"]
