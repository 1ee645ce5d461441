"""
Account routes: sign-up, sign-in, sign-out, token refresh and the user dashboard.
"""
import logging

from flask import Blueprint, g, jsonify, redirect, render_template, request, session, url_for

from certstamp.auth import (
    clear_session,
    current_profile,
    get_identity,
    get_store,
    require_auth,
    resolve_user,
    wants_json,
)
from certstamp.errors import AuthError, PermissionDenied, ValidationError
from certstamp.presenters import group_by_program

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

_STATUS_MESSAGES = {
    "pending": "Your account is pending approval. Please wait for an administrator to approve your account.",
    "rejected": "Your account has been rejected. Please contact administrator.",
    "suspended": "Your account has been suspended. Please contact administrator.",
}

_PAGE_MESSAGES = {
    "signup_success": "Account created! You can log in once an administrator approves it.",
    "logged_out": "You have been logged out.",
}

_PAGE_ERRORS = {
    "unauthorized": "Please log in to continue.",
    "admin_required": "Admin access required to view that page.",
}


def _payload():
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form


def _session_json(auth_session):
    return {
        "access_token": auth_session.access_token,
        "refresh_token": auth_session.refresh_token,
        "expires_at": auth_session.expires_at,
    }


@auth_bp.route("/signup", methods=["GET"])
def signup_form():
    return render_template("signup.html", error=request.args.get("error"))


@auth_bp.route("/signup", methods=["POST"])
def signup():
    data = _payload()
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""
    full_name = (data.get("fullName") or data.get("full_name") or "").strip()

    identity = get_identity()
    try:
        user = identity.create_user(email, password)
    except ValidationError as e:
        if wants_json():
            raise
        return render_template("signup.html", error=e.message), 400

    try:
        get_store().create_profile(user.id, user.email, full_name or None)
    except Exception:
        logger.exception("[SIGNUP] Profile creation failed for %s", user.id)
        identity.delete_user(user.id)
        raise ValidationError("Failed to create user profile")

    logger.info("[SIGNUP] New pending account %s", user.id)
    if wants_json():
        return jsonify({
            "message": "Account created successfully! Your account is pending approval. "
                       "You will be able to login once an administrator approves your account.",
            "user": {"id": user.id, "email": user.email},
            "status": "pending",
        })
    return redirect(url_for("auth.login", message="signup_success"))


@auth_bp.route("/login", methods=["GET"])
def login():
    return render_template(
        "login.html",
        message=_PAGE_MESSAGES.get(request.args.get("message")),
        error=_PAGE_ERRORS.get(request.args.get("error")),
    )


def _login_failed(error):
    if wants_json():
        raise error
    return render_template("login.html", error=error.message), error.status_code


@auth_bp.route("/login", methods=["POST"])
def login_submit():
    data = _payload()
    email = data.get("email") or ""
    password = data.get("password") or ""
    if not email or not password:
        return _login_failed(ValidationError("Email and password are required"))

    identity = get_identity()
    try:
        auth_session = identity.sign_in(email, password)
    except AuthError as e:
        logger.info("[LOGIN] Failed sign-in for %s", email)
        return _login_failed(e)

    profile = get_store().get_profile(auth_session.user.id)
    status = (profile or {}).get("status") or "pending"
    if profile is None or status != "approved":
        identity.sign_out(auth_session.access_token)
        if profile is None:
            message = "Profile not found. Please contact administrator."
        elif status == "rejected" and profile.get("rejection_reason"):
            message = profile["rejection_reason"]
        else:
            message = _STATUS_MESSAGES.get(status, "Account access denied. Please contact administrator.")
        logger.info("[LOGIN] Blocked %s account %s", status, auth_session.user.id)
        if wants_json():
            return jsonify({"error": message, "status": status}), 403
        return render_template("login.html", error=message), 403

    session["access_token"] = auth_session.access_token
    session["refresh_token"] = auth_session.refresh_token
    session["user_id"] = auth_session.user.id

    if wants_json():
        return jsonify({
            "message": "Login successful",
            "user": {"id": auth_session.user.id, "email": auth_session.user.email},
            "profile": profile,
            "session": _session_json(auth_session),
        })
    return redirect(url_for("auth.dashboard"))


@auth_bp.route("/logout", methods=["GET", "POST"])
def logout():
    resolve_user()
    get_identity().sign_out(g.token)
    clear_session()
    if wants_json():
        return jsonify({"message": "Logged out successfully"})
    return redirect(url_for("auth.login", message="logged_out"))


@auth_bp.route("/refresh", methods=["POST"])
def refresh_token():
    data = _payload()
    token = data.get("refresh_token") or session.get("refresh_token")
    if not token:
        raise ValidationError("Refresh token is required")
    auth_session = get_identity().refresh(token)
    if session.get("refresh_token") == token:
        session["access_token"] = auth_session.access_token
        session["refresh_token"] = auth_session.refresh_token
    return jsonify({"session": _session_json(auth_session)})


@auth_bp.route("/profile")
@require_auth
def profile():
    prof = current_profile()
    if prof is None:
        raise PermissionDenied("Profile not found")
    return jsonify({"user": {"id": g.user.id, "email": g.user.email}, "profile": prof})


@auth_bp.route("/dashboard")
@require_auth
def dashboard():
    certificates = get_store().get_certificates_by_user(g.user.id)
    prof = current_profile() or {}
    return render_template(
        "dashboard.html",
        user_email=g.user.email,
        is_admin=prof.get("role") == "admin",
        certificate_count=len(certificates),
        groups=group_by_program(certificates),
        error=_PAGE_ERRORS.get(request.args.get("error")),
    )
