from io import BytesIO
import hmac
import secrets

import qrcode
from qrcode import constants

from evcharge.config import settings

class QRService:
    """Issues the one-time session tokens handed to EV owners and renders them as QR images"""

    @staticmethod
    def issue_token() -> str:
        """A random URL-safe token; compared case-sensitively at session start"""
        return secrets.token_urlsafe(settings.QR_TOKEN_BYTES)

    @staticmethod
    def token_matches(expected: str, presented: str) -> bool:
        """Exact match of the presented token against the stored one"""
        if not expected or presented is None:
            return False
        return hmac.compare_digest(expected.encode("utf-8"), presented.encode("utf-8"))

    @staticmethod
    def render_png(token: str, box_size: int = 10, border: int = 4) -> bytes:
        """Render a token as a PNG QR code"""
        qr = qrcode.QRCode(
            version=None,
            error_correction=constants.ERROR_CORRECT_M,
            box_size=box_size,
            border=border,
        )
        qr.add_data(token)
        qr.make(fit=True)

        qr_image = qr.make_image(fill_color="black", back_color="white")

        buffer = BytesIO()
        qr_image.save(buffer)
        return buffer.getvalue()
