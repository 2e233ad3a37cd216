"""
auth/two_factor.py -- TOTP second factor: secrets, enrollment QR codes, code checks.

Implements RFC 6238 TOTP via pyotp and renders enrollment QR codes with
qrcode + Pillow. Compatible with Google Authenticator, Authy and other
authenticator apps.

Failure policy:
  verify_code() is fail-closed. Malformed secrets, non-digit input and any
      library fault return False; the caller only ever sees a boolean.
  render_enrollment_image() is the one operation that raises. An image that
      cannot be produced is an environment or programming fault, reported as
      EncodingError.
"""

from __future__ import annotations

import asyncio
import base64
import io
import logging
import time
from collections.abc import Callable

import pyotp
import qrcode
from qrcode.constants import ERROR_CORRECT_M

from auth.models import TOTPSecret

logger = logging.getLogger("smsgate.auth.2fa")

OTPAUTH_PREFIX = "otpauth://totp/"


class EncodingError(Exception):
    """Raised when an enrollment URI cannot be rendered as a QR image."""


def _render_png_data_uri(uri: str) -> str:
    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_M,
        box_size=4,
        border=4,
    )
    qr.add_data(uri)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    b64 = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{b64}"


class TwoFactorService:
    """Generates, renders and verifies TOTP secrets.

    Args:
        issuer:       Name shown in the authenticator app.
        valid_window: Number of 30-second steps accepted on each side of now.
        interval:     Step size in seconds.
        digits:       Code length.
        clock:        Returns the current Unix time; injectable for tests.
    """

    def __init__(
        self,
        issuer: str = "SMS Verification System",
        valid_window: int = 2,
        interval: int = 30,
        digits: int = 6,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.issuer = issuer
        self.valid_window = valid_window
        self.interval = interval
        self.digits = digits
        self._clock = clock

    def _totp(self, secret: str) -> pyotp.TOTP:
        return pyotp.TOTP(secret, digits=self.digits, interval=self.interval)

    def generate_secret(self, label: str) -> TOTPSecret:
        """Create a fresh 32-character base32 secret and its otpauth:// URI.

        The URI has the form otpauth://totp/{issuer}:{label}?secret=...&issuer=...
        """
        secret = pyotp.random_base32()
        uri = self._totp(secret).provisioning_uri(name=label, issuer_name=self.issuer)
        return TOTPSecret(base32_secret=secret, otpauth_uri=uri)

    async def render_enrollment_image(self, otpauth_uri: str) -> str:
        """Render otpauth_uri as a data:image/png;base64 QR code.

        Encoding runs in a worker thread. Raises EncodingError if the input is
        not an otpauth URI or the QR encoder fails (e.g. data too long).
        """
        if not isinstance(otpauth_uri, str) or not otpauth_uri.startswith(OTPAUTH_PREFIX):
            raise EncodingError("Enrollment URI must be an otpauth://totp/ URI")
        try:
            return await asyncio.to_thread(_render_png_data_uri, otpauth_uri)
        except Exception as exc:
            logger.error("QR encoding failed: %s", type(exc).__name__)
            raise EncodingError("QR code could not be generated") from exc

    def verify_code(self, secret: str, submitted_code: str) -> bool:
        """Return True iff submitted_code matches a step within +-valid_window of now."""
        if not isinstance(secret, str) or not secret:
            return False
        try:
            code = "".join(str(submitted_code).split())
            if len(code) != self.digits or not (code.isascii() and code.isdigit()):
                return False
            return self._totp(secret).verify(code, for_time=self._clock(), valid_window=self.valid_window)
        except Exception as exc:
            logger.debug("TOTP verification error: %s", type(exc).__name__)
            return False
