"""
Time-based one-time password helpers (second authentication factor).

Secrets are base32 strings as produced by authenticator apps; codes are the
6 digit values shown to the user every 30 seconds.
"""

from __future__ import annotations

import base64
import binascii
import io

import pyotp
import qrcode
import qrcode.image.svg

from .config import get_settings


def generate_secret() -> str:
    return pyotp.random_base32()


def validate_totp(secret: str | None, code: str | None) -> bool:
    """Return True when `code` is the current (or a nearby) OTP for `secret`."""
    secret_value = (secret or "").strip().replace(" ", "").upper()
    code_value = (code or "").strip().replace(" ", "")
    if not secret_value or not code_value:
        return False
    settings = get_settings()
    try:
        return pyotp.TOTP(secret_value).verify(code_value, valid_window=max(0, settings.totp_valid_window))
    except (binascii.Error, ValueError):
        # malformed base32 secret
        return False


def provisioning_uri(secret: str, account_name: str) -> str:
    settings = get_settings()
    return pyotp.TOTP(secret).provisioning_uri(name=account_name, issuer_name=settings.totp_issuer)


def qr_code_data_url(uri: str) -> str:
    """Render `uri` as an inline SVG QR code suitable for an <img src>."""
    buf = io.BytesIO()
    qrcode.make(uri, image_factory=qrcode.image.svg.SvgImage).save(buf)
    return "data:image/svg+xml;base64," + base64.b64encode(buf.getvalue()).decode("ascii")
