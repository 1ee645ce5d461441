"""
Admin pages: the generation form, user approvals and the certificate register.
"""
import logging

from flask import Blueprint, g, jsonify, render_template, request

from certstamp.auth import get_store, require_admin, require_auth
from certstamp.database import PROFILE_STATUSES
from certstamp.errors import ValidationError
from certstamp.presenters import certificate_stats, format_timestamp, group_by_program

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

ADMIN_CERTIFICATE_LIMIT = 1000


@admin_bp.route("", methods=["GET"])
@require_auth
def generate_form():
    return render_template("admin_form.html")


@admin_bp.route("/users", methods=["GET"])
@require_admin
def user_management():
    status = request.args.get("status")
    if status not in PROFILE_STATUSES:
        status = None

    store = get_store()
    all_users = store.get_all_users()
    users = [u for u in all_users if u["status"] == status] if status else all_users
    for user in users:
        user["joined"] = format_timestamp(user.get("created_at"), "%Y-%m-%d")

    tab_counts = {s: sum(1 for u in all_users if u["status"] == s) for s in PROFILE_STATUSES}
    return render_template(
        "admin_users.html",
        users=users,
        status=status,
        statuses=PROFILE_STATUSES,
        total_users=len(all_users),
        tab_counts=tab_counts,
        pending_count=store.get_pending_users_count(),
    )


@admin_bp.route("/users/update", methods=["POST"])
@require_admin
def update_user():
    data = request.get_json(silent=True) if request.is_json else request.form
    data = data or {}
    user_id = data.get("userId") or data.get("user_id")
    status = data.get("status")
    if not user_id:
        raise ValidationError("userId is required")
    if status not in PROFILE_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(PROFILE_STATUSES)}")

    profile = get_store().update_user_status(
        user_id, status, g.user.id, reason=data.get("reason"), notes=data.get("notes")
    )
    logger.info("[ADMIN USERS] %s set %s to %s", g.user.id, user_id, status)
    return jsonify({"success": True, "message": f"User {status} successfully", "profile": profile})


@admin_bp.route("/certificates", methods=["GET"])
@require_admin
def all_certificates():
    certificates = get_store().get_all_certificates(limit=ADMIN_CERTIFICATE_LIMIT)
    return render_template(
        "admin_certificates.html",
        stats=certificate_stats(certificates),
        groups=group_by_program(certificates),
    )
