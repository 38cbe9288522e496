"""QR code rendering for TOTP provisioning URIs.

Requires the optional ``qrcode`` dependency: pip install mfa-core[qr]
"""

from __future__ import annotations

import base64
import io

import qrcode
import qrcode.constants


def render_qr_png(uri: str) -> bytes:
    """Render an otpauth:// URI as PNG bytes."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(uri)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def render_qr_data_uri(uri: str) -> str:
    """Render an otpauth:// URI as a ``data:image/png;base64,...`` URI."""
    b64 = base64.b64encode(render_qr_png(uri)).decode("ascii")
    return f"data:image/png;base64,{b64}"


__all__: list[str] = ["render_qr_png", "render_qr_data_uri"]
