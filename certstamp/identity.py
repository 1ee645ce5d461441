"""
Identity service: accounts, password sign-in and bearer tokens.

Profiles (role, approval status) live in the certificate store; this module
only knows who someone is, not what they are allowed to do.
"""
import logging
import secrets
import sqlite3
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash

from certstamp.errors import AuthError, ValidationError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
# how long past access-token expiry a refresh token is still accepted
REFRESH_WINDOW = 7 * 24 * 3600

_SCHEMA = """
CREATE TABLE IF NOT EXISTS auth_users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    created_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS auth_sessions (
    access_token TEXT PRIMARY KEY,
    refresh_token TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL REFERENCES auth_users(id) ON DELETE CASCADE,
    expires_at REAL NOT NULL
);
"""


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    refresh_token: str
    expires_at: float
    user: AuthUser


class IdentityService:
    def __init__(self, db_path, token_ttl=3600, refresh_window=REFRESH_WINDOW):
        self.db_path = db_path
        self.token_ttl = token_ttl
        self.refresh_window = refresh_window

    @contextmanager
    def _connect(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def init_db(self):
        with self._connect() as conn:
            conn.executescript(_SCHEMA)

    def create_user(self, email, password):
        email = (email or "").strip().lower()
        if not email or not password:
            raise ValidationError("Email and password are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")

        user = AuthUser(id=str(uuid.uuid4()), email=email)
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT INTO auth_users (id, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
                    (user.id, user.email, generate_password_hash(password), time.time()),
                )
        except sqlite3.IntegrityError:
            raise ValidationError("A user with this email address has already been registered")
        logger.info("[IDENTITY] Created user %s", user.id)
        return user

    def delete_user(self, user_id):
        with self._connect() as conn:
            conn.execute("DELETE FROM auth_sessions WHERE user_id = ?", (user_id,))
            conn.execute("DELETE FROM auth_users WHERE id = ?", (user_id,))

    def sign_in(self, email, password):
        email = (email or "").strip().lower()
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM auth_users WHERE email = ?", (email,)).fetchone()
        if not row or not check_password_hash(row["password_hash"], password or ""):
            raise AuthError("Invalid login credentials")
        return self._issue_session(AuthUser(id=row["id"], email=row["email"]))

    def sign_out(self, access_token):
        if not access_token:
            return
        with self._connect() as conn:
            conn.execute("DELETE FROM auth_sessions WHERE access_token = ?", (access_token,))

    def verify_token(self, access_token):
        """Return the AuthUser owning a live token, or None."""
        if not access_token:
            return None
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT u.id, u.email, s.expires_at
                FROM auth_sessions s JOIN auth_users u ON u.id = s.user_id
                WHERE s.access_token = ?
                """,
                (access_token,),
            ).fetchone()
        if not row or row["expires_at"] <= time.time():
            return None
        return AuthUser(id=row["id"], email=row["email"])

    def refresh(self, refresh_token):
        """Swap a refresh token for a brand new session; the old one stops working."""
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT u.id, u.email, s.expires_at
                FROM auth_sessions s JOIN auth_users u ON u.id = s.user_id
                WHERE s.refresh_token = ?
                """,
                (refresh_token or "",),
            ).fetchone()
            if not row or row["expires_at"] + self.refresh_window <= time.time():
                raise AuthError("Invalid refresh token")
            conn.execute("DELETE FROM auth_sessions WHERE refresh_token = ?", (refresh_token,))
        return self._issue_session(AuthUser(id=row["id"], email=row["email"]))

    def _prune_sessions(self, conn):
        """Drop sessions that can no longer be used or refreshed."""
        cur = conn.execute(
            "DELETE FROM auth_sessions WHERE expires_at + ? <= ?", (self.refresh_window, time.time())
        )
        if cur.rowcount:
            logger.info("[IDENTITY] Pruned %d dead sessions", cur.rowcount)

    def _issue_session(self, user):
        session = AuthSession(
            access_token=secrets.token_urlsafe(32),
            refresh_token=secrets.token_urlsafe(32),
            expires_at=time.time() + self.token_ttl,
            user=user,
        )
        with self._connect() as conn:
            self._prune_sessions(conn)
            conn.execute(
                "INSERT INTO auth_sessions (access_token, refresh_token, user_id, expires_at) VALUES (?, ?, ?, ?)",
                (session.access_token, session.refresh_token, user.id, session.expires_at),
            )
        return session
