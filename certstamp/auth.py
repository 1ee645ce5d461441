"""
Request-level helpers: who is calling, and are they allowed to.
"""
import logging
from functools import wraps

from flask import current_app, g, redirect, request, session, url_for

from certstamp.errors import AuthError, PermissionDenied

logger = logging.getLogger(__name__)

EXTENSION_KEY = "certstamp"


def get_store():
    return current_app.extensions[EXTENSION_KEY]["store"]


def get_identity():
    return current_app.extensions[EXTENSION_KEY]["identity"]


def wants_json():
    """True when the client sent JSON or asked for JSON back."""
    if request.is_json:
        return True
    return "application/json" in request.headers.get("Accept", "")


def _request_token():
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):].strip()
    return session.get("access_token")


def clear_session():
    for key in ("access_token", "refresh_token", "user_id"):
        session.pop(key, None)


def resolve_user():
    """
    Populate g.user / g.token from the bearer header or session cookie.

    Returns the AuthUser, or None if there is no valid token. A stale session
    token is dropped so the browser stops sending it.
    """
    if "user" in g:
        return g.user
    token = _request_token()
    user = get_identity().verify_token(token) if token else None
    if token and user is None and session.get("access_token") == token:
        clear_session()
    g.user = user
    g.token = token if user else None
    return user


def current_profile():
    user = resolve_user()
    if user is None:
        return None
    if "profile" not in g:
        g.profile = get_store().get_profile(user.id)
    return g.profile


def _reject(error):
    # browsers navigating to a page get sent to the login/dashboard page
    if request.method == "GET" and not wants_json():
        if isinstance(error, AuthError):
            return redirect(url_for("auth.login", error="unauthorized"))
        return redirect(url_for("auth.dashboard", error="admin_required"))
    raise error


def require_auth(f):
    """
    Decorator to require a signed-in caller.

    Usage:
        @require_auth
        def my_protected_route():
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if resolve_user() is None:
            return _reject(AuthError("Authentication required"))
        return f(*args, **kwargs)
    return decorated_function


def require_admin(f):
    """Decorator to require a signed-in caller whose profile role is admin."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if resolve_user() is None:
            return _reject(AuthError("Authentication required"))
        profile = current_profile()
        if not profile or profile.get("role") != "admin":
            logger.warning("[AUTH] Non-admin %s tried %s", g.user.id, request.path)
            return _reject(PermissionDenied("Admin access required"))
        return f(*args, **kwargs)
    return decorated_function
