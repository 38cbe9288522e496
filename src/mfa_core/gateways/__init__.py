"""SMS gateway implementations.

``TwilioSmsGateway`` needs the ``twilio`` extra and is imported from
``mfa_core.gateways.twilio``.
"""

from __future__ import annotations

from .memory import RecordingSmsGateway, SentSms

__all__: list[str] = ["RecordingSmsGateway", "SentSms"]
