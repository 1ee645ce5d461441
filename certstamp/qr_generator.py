"""
QR code generation for certificate verification.
"""
from io import BytesIO

import qrcode
from qrcode.exceptions import DataOverflowError

from certstamp.errors import EncodingError

QR_BOX_SIZE = 10
QR_BORDER = 2


def _encode(payload):
    """Fit *payload* into the smallest QR version at error-correction level H."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=QR_BOX_SIZE,
        border=QR_BORDER,
    )
    try:
        qr.add_data(payload)
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as e:
        raise EncodingError(f"QR payload of {len(payload)} chars does not fit: {e}") from e
    return qr


def generate_qr_png(verification_url, size_pixels=200):
    """
    Render *verification_url* as a square black-on-white PNG.

    The same URL and size always give the same bytes.
    """
    if not verification_url:
        raise EncodingError("Cannot encode an empty QR payload")

    img = _encode(verification_url).make_image(fill_color="black", back_color="white")
    buf = BytesIO()
    img.resize((size_pixels, size_pixels)).save(buf, format="PNG")
    return buf.getvalue()
