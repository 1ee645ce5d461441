"""
Operator commands, run through the Flask CLI:

    flask --app app init-db
    flask --app app create-admin admin@example.com s3cret --name "Site Admin"
    flask --app app import-legacy db/certs.json
    flask --app app check-db
"""
import json
import logging
import os
import time

import click
from flask import current_app
from flask.cli import with_appcontext

from certstamp.auth import get_identity, get_store
from certstamp.errors import ValidationError
from certstamp.storage import CATEGORY_FOLDERS

logger = logging.getLogger(__name__)


def legacy_record(cert):
    """Map one entry of the old JSON certificate file onto the current schema."""
    cert_id = cert["uid"]
    category = cert.get("type") or "completion"
    if category not in CATEGORY_FOLDERS:
        category = "completion"
    return {
        "cert_id": cert_id,
        "user_id": None,
        "program_name": cert.get("bootcamp") or cert.get("name") or "Legacy Certificate",
        "student_name": cert.get("studentName") or cert.get("student_name") or "Unknown Student",
        "orientation": cert.get("format") or "landscape",
        "category": category,
        "original_filename": cert.get("originalFilename") or "legacy-certificate",
        "file_url": cert.get("file_url") or "",
        "verify_url": cert.get("verify_url") or f"/verify/{cert_id}",
        "created_at": cert.get("createdAt") or cert.get("date"),
    }


def import_legacy_file(store, json_path):
    """
    Import certificates from a legacy JSON array, then move the file aside.

    Returns (imported, failed, backup_path). Entries that fail are logged and
    skipped so one bad row does not stop the rest.
    """
    with open(json_path, encoding="utf-8") as fh:
        entries = json.load(fh)

    imported = failed = 0
    for cert in entries:
        try:
            store.save_certificate(legacy_record(cert))
            imported += 1
        except Exception as e:
            failed += 1
            logger.error("[IMPORT] Failed to import %s: %s", cert.get("uid", "?"), e)

    backup_path = f"{json_path}.backup-{int(time.time())}"
    os.replace(json_path, backup_path)
    return imported, failed, backup_path


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create the database tables."""
    get_store().init_db()
    get_identity().init_db()
    click.echo(f"Initialized database at {current_app.config['DB_PATH']}")


@click.command("create-admin")
@click.argument("email")
@click.argument("password")
@click.option("--name", default=None, help="Full name shown in the admin pages.")
@with_appcontext
def create_admin_command(email, password, name):
    """Create an approved admin account."""
    store = get_store()
    try:
        user = get_identity().create_user(email, password)
    except ValidationError as e:
        raise click.ClickException(e.message)
    store.create_profile(user.id, user.email, name, role="admin", status="approved")
    click.echo(f"Admin {user.email} created with id {user.id}")


@click.command("import-legacy")
@click.argument("json_path", type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_legacy_command(json_path):
    """Import certificates from a legacy JSON file."""
    imported, failed, backup = import_legacy_file(get_store(), json_path)
    click.echo(f"Imported {imported} certificates ({failed} failed). Original moved to {backup}")


@click.command("check-db")
@with_appcontext
def check_db_command():
    """Check the database can be reached."""
    result = get_store().test_connection()
    if not result["connected"]:
        raise click.ClickException(f"Database connection failed: {result['error']}")
    click.echo(result["message"])


def register_commands(app):
    for command in (init_db_command, create_admin_command, import_legacy_command, check_db_command):
        app.cli.add_command(command)
