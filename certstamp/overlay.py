"""
Stamp the verification QR code and the short ID caption onto page one.

Placement is always derived from the page's real size, never from the
nominal A4 constants: an uploaded PDF keeps whatever size it came with.
"""
from dataclasses import dataclass

import fitz

from certstamp.errors import OverlayError
from certstamp.page_compositor import LANDSCAPE, PORTRAIT

QR_SIZE = 80

RIGHT_MARGINS = {
    PORTRAIT: 50,
    LANDSCAPE: 80,
}

BOTTOM_MARGINS = {
    PORTRAIT: 60,
    LANDSCAPE: 50,
}

CAPTION_PREFIX = "ID: "
CAPTION_ID_LENGTH = 8
CAPTION_FONT = "hebo"  # Helvetica-Bold, one of the PDF base-14 fonts
CAPTION_FONT_SIZE = 7
CAPTION_GAP = 10
CAPTION_COLOR = (1, 1, 1)


@dataclass(frozen=True)
class OverlayPlacement:
    qr_rect: fitz.Rect
    caption: str
    caption_origin: fitz.Point


def caption_for(cert_id):
    return f"{CAPTION_PREFIX}{cert_id[:CAPTION_ID_LENGTH]}"


def compute_placement(page_width, page_height, orientation, caption):
    """
    Work out where the QR image and caption go on a page of the given size.

    The QR sits in the bottom-right corner; the caption baseline is
    CAPTION_GAP points under it and the text is centred on the QR's midline.
    """
    try:
        right_margin = RIGHT_MARGINS[orientation]
        bottom_margin = BOTTOM_MARGINS[orientation]
    except KeyError:
        raise OverlayError(f"Unknown orientation '{orientation}'")

    x0 = page_width - QR_SIZE - right_margin
    y1 = page_height - bottom_margin
    qr_rect = fitz.Rect(x0, y1 - QR_SIZE, x0 + QR_SIZE, y1)

    text_width = fitz.get_text_length(caption, fontname=CAPTION_FONT, fontsize=CAPTION_FONT_SIZE)
    caption_x = x0 + (QR_SIZE - text_width) / 2
    caption_origin = fitz.Point(caption_x, y1 + CAPTION_GAP)

    return OverlayPlacement(qr_rect=qr_rect, caption=caption, caption_origin=caption_origin)


def draw_overlay(doc, qr_png, cert_id, orientation):
    """
    Draw QR + caption onto the first page of *doc* in place.

    Every call draws again, so call it once per document. A page carrying a
    /Rotate entry is normalised to rotation 0 first, keeping its appearance,
    so the stamp lands where a viewer sees the bottom-right corner.
    Returns the OverlayPlacement that was used.
    """
    page = doc[0]
    if page.rotation:
        try:
            page.remove_rotation()
        except Exception as e:
            raise OverlayError(f"Failed to normalise page rotation: {e}") from e

    placement = compute_placement(page.rect.width, page.rect.height, orientation, caption_for(cert_id))

    try:
        page.insert_image(placement.qr_rect, stream=qr_png, keep_proportion=True)
    except Exception as e:
        raise OverlayError(f"Failed to embed QR image: {e}") from e

    try:
        page.insert_text(
            placement.caption_origin,
            placement.caption,
            fontsize=CAPTION_FONT_SIZE,
            fontname=CAPTION_FONT,
            color=CAPTION_COLOR,
        )
    except Exception as e:
        raise OverlayError(f"Failed to draw ID caption: {e}") from e

    return placement
