"""
Where generated certificates live on disk.

Layout: <CERTS_DIR>/<program_name as snake_case>/<completed|participated>/<cert_id>.pdf
"""
import os
import re

from certstamp.errors import ValidationError

CATEGORY_FOLDERS = {
    "completion": "completed",
    "participation": "participated",
}

_STRIP_RE = re.compile(r"[^\w\s-]")
_SEPARATOR_RE = re.compile(r"[\s-]+")


def to_snake_case(value):
    """'Data Engineering: 2024!' -> 'data_engineering_2024'"""
    value = _STRIP_RE.sub("", value.lower().strip())
    return _SEPARATOR_RE.sub("_", value)


def certificate_relative_path(program_name, category, cert_id):
    """Forward-slash path of the PDF relative to the certificates root."""
    program_folder = to_snake_case(program_name)
    if not program_folder.strip("_"):
        raise ValidationError("Program name must contain letters or numbers")
    try:
        category_folder = CATEGORY_FOLDERS[category]
    except KeyError:
        raise ValidationError("Type must be completion or participation")
    return f"{program_folder}/{category_folder}/{cert_id}.pdf"


def file_url_for(relative_path):
    return f"/certs/{relative_path}"


def write_certificate_pdf(certs_dir, relative_path, pdf_bytes):
    """Write the PDF, creating folders as needed. Returns the absolute path."""
    out_path = os.path.abspath(os.path.join(certs_dir, *relative_path.split("/")))
    os.makedirs(os.path.dirname(out_path), exist_ok=True)
    with open(out_path, "wb") as fh:
        fh.write(pdf_bytes)
    return out_path
