"""
Assemble a finished certificate PDF: ID -> verification URL -> QR -> page -> overlay.

Nothing here touches the filesystem or the database; the caller decides where
the bytes go and what to do when something fails.
"""
import logging
import uuid
from dataclasses import dataclass

from certstamp.errors import CompositionError, ValidationError
from certstamp.overlay import QR_SIZE, draw_overlay
from certstamp.page_compositor import ORIENTATIONS, compose_page, resolve_source
from certstamp.qr_generator import generate_qr_png

logger = logging.getLogger(__name__)

# Rendered at 4x the placed size so the code stays sharp when printed.
QR_PIXELS = QR_SIZE * 4


@dataclass(frozen=True)
class GeneratedCertificate:
    cert_id: str
    verification_url: str
    caption: str
    pdf_bytes: bytes


def generate_certificate_id():
    """Generate a unique certificate ID."""
    return str(uuid.uuid4())


def build_verification_url(base_url, cert_id):
    return f"{base_url.rstrip('/')}/verify/{cert_id}"


def _serialize(doc):
    try:
        return doc.tobytes(garbage=3, deflate=True)
    except Exception as e:
        raise CompositionError(f"Failed to write certificate PDF: {e}") from e


def generate_certificate(data, mime_type, orientation, base_url, cert_id=None):
    """
    Generate one certificate PDF with a QR code pointing at its verification page.

    data:        raw bytes of the uploaded PNG, JPEG or PDF
    mime_type:   declared type of *data*
    orientation: "portrait" or "landscape"
    base_url:    public site root the verification link is built from
    cert_id:     identifier to stamp; a fresh UUID is generated when omitted
    """
    if orientation not in ORIENTATIONS:
        raise ValidationError("Format must be portrait or landscape")

    source = resolve_source(data, mime_type)

    cert_id = cert_id or generate_certificate_id()
    verification_url = build_verification_url(base_url, cert_id)
    qr_png = generate_qr_png(verification_url, size_pixels=QR_PIXELS)

    doc = compose_page(source, orientation)
    try:
        placement = draw_overlay(doc, qr_png, cert_id, orientation)
        pdf_bytes = _serialize(doc)
    finally:
        doc.close()

    logger.info("[GENERATE] Built %s certificate %s (%d bytes)", orientation, cert_id, len(pdf_bytes))
    return GeneratedCertificate(
        cert_id=cert_id,
        verification_url=verification_url,
        caption=placement.caption,
        pdf_bytes=pdf_bytes,
    )
