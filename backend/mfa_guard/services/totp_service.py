"""TOTP secret generation, code validation and QR rendering."""

import io
import re
from base64 import b64encode
from datetime import datetime
from typing import Optional, Tuple, Union

import pyotp
import qrcode

# 32 base32 characters = 160 bits of entropy
SECRET_LENGTH = 32
CODE_DIGITS = 6
STEP_SECONDS = 30
# Accept one step either side of the current one for clock drift
VALID_WINDOW = 1

_CODE_RE = re.compile(rf"^\d{{{CODE_DIGITS}}}$")


class TOTPService:
    """Generates shared secrets and validates time-step codes."""

    @staticmethod
    def generate_secret(account_label: str, issuer_label: str) -> Tuple[str, str]:
        """
        Generate a new TOTP secret and its provisioning URI.

        Args:
            account_label: Account name shown in the authenticator (user email)
            issuer_label: Issuer name shown in the authenticator

        Returns:
            Tuple of (base32 secret, otpauth:// provisioning URI)
        """
        secret = pyotp.random_base32(length=SECRET_LENGTH)
        uri = pyotp.TOTP(secret, digits=CODE_DIGITS, interval=STEP_SECONDS).provisioning_uri(
            name=account_label,
            issuer_name=issuer_label,
        )
        return secret, uri

    @staticmethod
    def validate_code(
        code: Optional[str],
        secret: str,
        at: Optional[Union[datetime, int, float]] = None,
    ) -> bool:
        """
        Check a submitted code against the secret at ``at`` (default: now).

        Malformed codes return False rather than raising.
        """
        if not isinstance(code, str):
            return False
        code = code.strip().replace(" ", "")
        if not _CODE_RE.match(code):
            return False

        totp = pyotp.TOTP(secret, digits=CODE_DIGITS, interval=STEP_SECONDS)
        return totp.verify(code, for_time=at, valid_window=VALID_WINDOW)


class QRCodeRenderer:
    """Renders provisioning URIs as PNG QR codes in ``data:`` URI form."""

    def __init__(self, box_size: int = 10, border: int = 4):
        self._box_size = box_size
        self._border = border

    def render(self, provisioning_uri: str) -> str:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=self._box_size,
            border=self._border,
        )
        qr.add_data(provisioning_uri)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")

        return f"data:image/png;base64,{b64encode(buffer.getvalue()).decode()}"

