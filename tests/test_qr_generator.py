from io import BytesIO

import pytest
import qrcode
from PIL import Image, ImageOps

from certstamp.errors import EncodingError
from certstamp.qr_generator import generate_qr_png

URL = "https://certs.example.org/verify/4f1c2a0e-8d7b-4a53-9a51-0c3f4b6d9e21"


def _sample_modules(png, size):
    """
    Sample the centre of every module and return (sampled grid, qrcode's own matrix).

    This pins the rendering (no module lost or shifted by the resize), not the
    encoding itself; test_decodes_back_to_url covers that with a real reader.
    """
    reference = qrcode.QRCode(version=None, error_correction=qrcode.constants.ERROR_CORRECT_H, box_size=10, border=2)
    reference.add_data(URL)
    reference.make(fit=True)
    expected = reference.get_matrix()

    img = Image.open(BytesIO(png)).convert("L")
    n = len(expected)
    module = size / n
    sampled = [
        [img.getpixel((int((c + 0.5) * module), int((r + 0.5) * module))) < 128 for c in range(n)]
        for r in range(n)
    ]
    return sampled, expected


def test_png_has_requested_size():
    img = Image.open(BytesIO(generate_qr_png(URL, size_pixels=320)))
    assert img.format == "PNG"
    assert img.size == (320, 320)


def test_rendered_modules_match_qr_matrix():
    sampled, expected = _sample_modules(generate_qr_png(URL, size_pixels=320), 320)
    assert sampled == expected


def test_decodes_back_to_url():
    pyzbar = pytest.importorskip("pyzbar.pyzbar")
    img = Image.open(BytesIO(generate_qr_png(URL, size_pixels=320))).convert("L")
    # readers want a wider quiet zone than the printed code keeps
    padded = ImageOps.expand(img, border=40, fill=255)
    decoded = pyzbar.decode(padded)
    assert [d.data.decode("utf-8") for d in decoded] == [URL]


def test_same_input_gives_identical_bytes():
    assert generate_qr_png(URL, 200) == generate_qr_png(URL, 200)


def test_different_urls_give_different_codes():
    assert generate_qr_png(URL, 200) != generate_qr_png(URL + "x", 200)


def test_empty_payload_rejected():
    with pytest.raises(EncodingError):
        generate_qr_png("", 200)


def test_payload_over_capacity_rejected():
    with pytest.raises(EncodingError):
        generate_qr_png("https://example.org/" + "a" * 4000, 200)
