"""
Build the base PDF page a certificate is stamped on.

Uploads arrive either as a raster image (PNG / JPEG) or as an existing PDF.
Images are placed on a fresh A4 page for the requested orientation; PDFs are
taken as they are, page size and page count included.
"""
from dataclasses import dataclass
from io import BytesIO
from typing import Union

import fitz
from PIL import Image, UnidentifiedImageError

from certstamp.errors import CompositionError, UnsupportedFormatError

PORTRAIT = "portrait"
LANDSCAPE = "landscape"
ORIENTATIONS = (PORTRAIT, LANDSCAPE)

# ISO A4 at 72 DPI, in points
PAGE_SIZES = {
    PORTRAIT: (595, 842),
    LANDSCAPE: (842, 595),
}

PAGE_MARGIN = 20

MIME_PNG = "image/png"
MIME_JPEG = "image/jpeg"
MIME_PDF = "application/pdf"

_MIME_ALIASES = {
    "image/png": MIME_PNG,
    "image/jpeg": MIME_JPEG,
    "image/jpg": MIME_JPEG,
    "image/pjpeg": MIME_JPEG,
    "application/pdf": MIME_PDF,
}


@dataclass(frozen=True)
class RasterSource:
    data: bytes
    mime_type: str


@dataclass(frozen=True)
class PdfSource:
    data: bytes


Source = Union[RasterSource, PdfSource]


def normalize_mime_type(mime_type):
    """Return the canonical MIME type, or None if it is not one we accept."""
    if not mime_type:
        return None
    base = mime_type.split(";", 1)[0].strip().lower()
    return _MIME_ALIASES.get(base)


def resolve_source(data, mime_type) -> Source:
    """Classify an upload once, up front, so later stages never branch on MIME strings."""
    canonical = normalize_mime_type(mime_type)
    if canonical is None:
        raise UnsupportedFormatError(f"Unsupported file type '{mime_type}'. Upload a PNG, JPEG or PDF.")
    if canonical == MIME_PDF:
        return PdfSource(data)
    return RasterSource(data, canonical)


def page_size(orientation):
    try:
        return PAGE_SIZES[orientation]
    except KeyError:
        raise CompositionError(f"Unknown orientation '{orientation}'")


def fit_within(width, height, max_width, max_height):
    """
    Scale (width, height) to fit inside (max_width, max_height) keeping the
    aspect ratio. Never enlarges: a source that already fits keeps its size.
    """
    if width <= 0 or height <= 0:
        raise CompositionError(f"Image has invalid dimensions {width}x{height}")
    scale = min(max_width / width, max_height / height, 1.0)
    return width * scale, height * scale


def image_rect(image_width, image_height, orientation):
    """Rect (top-left origin) the image occupies on a nominal page: fit-scaled and centred."""
    page_w, page_h = page_size(orientation)
    w, h = fit_within(image_width, image_height, page_w - 2 * PAGE_MARGIN, page_h - 2 * PAGE_MARGIN)
    x0 = (page_w - w) / 2
    y0 = (page_h - h) / 2
    return fitz.Rect(x0, y0, x0 + w, y0 + h)


def _read_image_size(data):
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            return img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        raise CompositionError(f"Could not decode uploaded image: {e}") from e


def _compose_raster(source: RasterSource, orientation):
    width, height = _read_image_size(source.data)
    rect = image_rect(width, height, orientation)
    page_w, page_h = page_size(orientation)

    doc = fitz.open()
    try:
        page = doc.new_page(width=page_w, height=page_h)
        page.insert_image(rect, stream=source.data, keep_proportion=True)
    except Exception as e:
        doc.close()
        raise CompositionError(f"Failed to place image on page: {e}") from e
    return doc


def _load_pdf(source: PdfSource):
    try:
        doc = fitz.open(stream=source.data, filetype="pdf")
    except Exception as e:
        raise CompositionError(f"Could not open uploaded PDF: {e}") from e
    if doc.page_count == 0:
        doc.close()
        raise CompositionError("Uploaded PDF has no pages")
    return doc


def compose_page(source: Source, orientation):
    """
    Produce the base document for *source*.

    The caller owns the returned fitz.Document and must close it.
    """
    if orientation not in ORIENTATIONS:
        raise CompositionError(f"Unknown orientation '{orientation}'")

    if isinstance(source, PdfSource):
        return _load_pdf(source)
    if isinstance(source, RasterSource):
        return _compose_raster(source, orientation)
    raise UnsupportedFormatError(f"Unsupported source {type(source).__name__}")
