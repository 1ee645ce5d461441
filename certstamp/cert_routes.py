"""
Certificate generation, stored-PDF serving and public verification.
"""
import logging
import os
import sqlite3
import tempfile

from flask import Blueprint, current_app, g, jsonify, render_template, request, send_from_directory

from certstamp.auth import get_store, require_auth, wants_json
from certstamp.certificate_generator import generate_certificate, generate_certificate_id
from certstamp.errors import PipelineError, ValidationError
from certstamp.page_compositor import ORIENTATIONS, normalize_mime_type
from certstamp.presenters import public_record, verification_view
from certstamp.storage import (
    CATEGORY_FOLDERS,
    certificate_relative_path,
    file_url_for,
    write_certificate_pdf,
)
from certstamp.verification import lookup_certificate, require_certificate

logger = logging.getLogger(__name__)

certs_bp = Blueprint("certs", __name__)

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".pdf"}

# form field -> older field name still sent by the original upload form
_FIELD_ALIASES = {
    "program_name": "bootcamp",
    "orientation": "format",
    "category": "type",
    "student_name": "studentName",
}


def _form_value(name):
    value = request.form.get(name) or request.form.get(_FIELD_ALIASES[name]) or ""
    return value.strip()


def validate_generate_request():
    """
    Pull and check every generation input. Raises ValidationError.

    Returns (fields, upload, mime_type).
    """
    upload = request.files.get("certificate")
    if upload is None or not upload.filename:
        raise ValidationError("Certificate file is required")

    fields = {name: _form_value(name) for name in _FIELD_ALIASES}
    if not all(fields.values()):
        raise ValidationError("Program name, student name, format, and type are required")
    if fields["orientation"] not in ORIENTATIONS:
        raise ValidationError("Format must be portrait or landscape")
    if fields["category"] not in CATEGORY_FOLDERS:
        raise ValidationError("Type must be completion or participation")

    ext = os.path.splitext(upload.filename)[1].lower()
    mime_type = normalize_mime_type(upload.mimetype)
    if ext not in ALLOWED_EXTENSIONS or mime_type is None:
        raise ValidationError("Only images (PNG, JPG) and PDF files are allowed!")

    return fields, upload, mime_type


def _spool_upload(upload):
    """Save the upload to a temp file under UPLOADS_DIR and return its path."""
    uploads_dir = current_app.config["UPLOADS_DIR"]
    os.makedirs(uploads_dir, exist_ok=True)
    ext = os.path.splitext(upload.filename)[1].lower()
    fd, path = tempfile.mkstemp(prefix="upload-", suffix=ext, dir=uploads_dir)
    try:
        with os.fdopen(fd, "wb") as fh:
            upload.save(fh)
    except Exception:
        os.remove(path)
        raise
    return path


def _read_upload(path):
    with open(path, "rb") as fh:
        data = fh.read()
    if len(data) > current_app.config["MAX_UPLOAD_BYTES"]:
        raise ValidationError(f"File exceeds the {current_app.config['MAX_UPLOAD_MB']}MB limit")
    if not data:
        raise ValidationError("Uploaded file is empty")
    return data


@certs_bp.route("/")
def index():
    return render_template("index.html")


@certs_bp.route("/certs", methods=["POST"])
@require_auth
def generate():
    """Generate one stamped certificate from the uploaded artwork and store it."""
    fields, upload, mime_type = validate_generate_request()

    # The ID exists before any file is touched: the PDF embeds it.
    cert_id = generate_certificate_id()
    relative_path = certificate_relative_path(fields["program_name"], fields["category"], cert_id)
    base_url = current_app.config["BASE_URL"]

    tmp_path = _spool_upload(upload)
    try:
        data = _read_upload(tmp_path)
        cert = generate_certificate(data, mime_type, fields["orientation"], base_url, cert_id=cert_id)
        write_certificate_pdf(current_app.config["CERTS_DIR"], relative_path, cert.pdf_bytes)
    finally:
        try:
            os.remove(tmp_path)
        except FileNotFoundError:
            pass

    record = {
        "cert_id": cert.cert_id,
        "user_id": g.user.id,
        "program_name": fields["program_name"],
        "student_name": fields["student_name"],
        "orientation": fields["orientation"],
        "category": fields["category"],
        "original_filename": upload.filename,
        "file_url": file_url_for(relative_path),
        "verify_url": f"/verify/{cert.cert_id}",
    }
    try:
        record = get_store().save_certificate(record)
    except sqlite3.Error as e:
        # The PDF stays on disk without a record; operators reconcile by hand.
        logger.error("[GENERATE] PDF %s written but record save failed: %s", relative_path, e)
        raise PipelineError(f"Failed to save certificate {cert.cert_id}: {e}") from e

    logger.info("[GENERATE] Certificate %s issued by %s", cert.cert_id, g.user.id)

    absolute_pdf = f"{base_url.rstrip('/')}{record['file_url']}"
    if wants_json():
        return jsonify({
            "ok": True,
            **public_record(record),
            "caption": cert.caption,
            "absolute_pdf": absolute_pdf,
            "absolute_verify": cert.verification_url,
        })
    return render_template(
        "generated.html",
        cert=verification_view(record),
        relative_folder=relative_path.rsplit("/", 1)[0],
        absolute_pdf=absolute_pdf,
        absolute_verify=cert.verification_url,
    )


@certs_bp.route("/certs/<path:filename>")
def stored_pdf(filename):
    return send_from_directory(os.path.abspath(current_app.config["CERTS_DIR"]), filename)


@certs_bp.route("/verify/<cert_id>")
def verify_page(cert_id):
    """Display verification page for a certificate."""
    rec = lookup_certificate(get_store(), cert_id)
    if rec is None:
        return render_template("verify.html", found=False, cert_id=cert_id), 404
    return render_template("verify.html", found=True, cert=verification_view(rec))


@certs_bp.route("/api/verify/<cert_id>")
def verify_api(cert_id):
    """API endpoint for certificate verification."""
    rec = require_certificate(get_store(), cert_id)
    view = verification_view(rec)
    return jsonify({
        "found": True,
        "certificate": {
            "id": rec["cert_id"],
            "recipient": rec["student_name"],
            "program": rec["program_name"],
            "category": rec["category"],
            "orientation": rec["orientation"],
            "issued_at": rec["created_at"],
            "issued_on": view.created_at,
            "file_url": rec["file_url"],
        },
    })
