"""Recording SMS gateway for testing and development."""

from __future__ import annotations

from dataclasses import dataclass

from ..ports import ISmsGateway


@dataclass(frozen=True)
class SentSms:
    phone_e164: str
    message: str


class RecordingSmsGateway(ISmsGateway):
    """Keeps every message instead of sending it.

    Args:
        fail_with: Exception raised by every send, to simulate outages.
    """

    def __init__(self, *, fail_with: Exception | None = None) -> None:
        self.sent: list[SentSms] = []
        self.fail_with = fail_with

    async def send_otp(self, phone_e164: str, message: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(SentSms(phone_e164=phone_e164, message=message))

    @property
    def last(self) -> SentSms | None:
        return self.sent[-1] if self.sent else None

    def clear(self) -> None:
        self.sent.clear()


__all__: list[str] = ["RecordingSmsGateway", "SentSms"]
