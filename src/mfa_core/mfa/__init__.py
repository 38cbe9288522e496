"""Second factors: SMS OTP, TOTP and backup codes.

The QR helpers live in ``mfa_core.mfa.qr`` and need the ``qr`` extra.
"""

from __future__ import annotations

from .backup_codes import BackupCodeVault
from .otp import OtpChallengeManager, OtpPurpose, render_otp_message
from .sms import SmsTwoFactorService
from .totp import TotpManager

__all__: list[str] = [
    "BackupCodeVault",
    "OtpChallengeManager",
    "OtpPurpose",
    "render_otp_message",
    "SmsTwoFactorService",
    "TotpManager",
]
