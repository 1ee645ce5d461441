"""
Database for issued certificates and user profiles.
"""
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone

from certstamp.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

PROFILE_STATUSES = ("pending", "approved", "rejected", "suspended")
PROFILE_ROLES = ("user", "admin")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    full_name TEXT,
    role TEXT NOT NULL DEFAULT 'user',
    status TEXT NOT NULL DEFAULT 'pending',
    approved_by TEXT,
    approved_at TEXT,
    rejection_reason TEXT,
    notes TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS certificates (
    cert_id TEXT PRIMARY KEY,
    user_id TEXT REFERENCES profiles(id),
    program_name TEXT NOT NULL,
    student_name TEXT NOT NULL,
    orientation TEXT NOT NULL,
    category TEXT NOT NULL,
    original_filename TEXT,
    file_url TEXT NOT NULL,
    verify_url TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_certificates_user ON certificates(user_id);
"""

_CERTIFICATE_COLUMNS = (
    "cert_id", "user_id", "program_name", "student_name", "orientation",
    "category", "original_filename", "file_url", "verify_url", "created_at",
)

_CERTIFICATE_SELECT = """
    SELECT c.*, p.full_name AS owner_name, p.email AS owner_email
    FROM certificates c
    LEFT JOIN profiles p ON p.id = c.user_id
"""


def utcnow_iso():
    return datetime.now(timezone.utc).isoformat()


class CertificateStore:
    """
    SQLite-backed store for certificate records and user profiles.

    Each call opens its own connection, so one instance is safe to share
    between requests.
    """

    def __init__(self, db_path):
        self.db_path = db_path

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
        """Create tables if they do not exist yet."""
        with self._connect() as conn:
            conn.executescript(_SCHEMA)

    def test_connection(self):
        try:
            with self._connect() as conn:
                conn.execute("SELECT COUNT(*) FROM certificates").fetchone()
        except sqlite3.Error as e:
            logger.error("[DB] Connection test failed: %s", e)
            return {"connected": False, "error": str(e)}
        return {"connected": True, "message": "Database connection successful"}

    # ── certificates ──

    def save_certificate(self, record):
        """Insert a certificate record and return it as stored."""
        row = {col: record.get(col) for col in _CERTIFICATE_COLUMNS}
        row["created_at"] = row["created_at"] or utcnow_iso()
        placeholders = ", ".join("?" for _ in _CERTIFICATE_COLUMNS)
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO certificates ({', '.join(_CERTIFICATE_COLUMNS)}) VALUES ({placeholders})",
                tuple(row[col] for col in _CERTIFICATE_COLUMNS),
            )
        return row

    def get_certificate(self, cert_id):
        """Retrieve a certificate by ID, or None."""
        with self._connect() as conn:
            row = conn.execute(_CERTIFICATE_SELECT + " WHERE c.cert_id = ?", (cert_id,)).fetchone()
        return dict(row) if row else None

    def get_certificates_by_user(self, user_id):
        with self._connect() as conn:
            rows = conn.execute(
                _CERTIFICATE_SELECT + " WHERE c.user_id = ? ORDER BY c.created_at DESC",
                (user_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    def get_all_certificates(self, limit=100, offset=0):
        with self._connect() as conn:
            rows = conn.execute(
                _CERTIFICATE_SELECT + " ORDER BY c.created_at DESC LIMIT ? OFFSET ?",
                (limit, offset),
            ).fetchall()
        return [dict(r) for r in rows]

    # ── profiles ──

    def create_profile(self, user_id, email, full_name=None, role="user", status="pending"):
        if role not in PROFILE_ROLES or status not in PROFILE_STATUSES:
            raise ValidationError(f"Invalid role or status: {role}/{status}")
        profile = {
            "id": user_id,
            "email": email,
            "full_name": full_name or email.split("@")[0],
            "role": role,
            "status": status,
            "created_at": utcnow_iso(),
        }
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO profiles (id, email, full_name, role, status, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                (profile["id"], profile["email"], profile["full_name"], profile["role"],
                 profile["status"], profile["created_at"]),
            )
        return self.get_profile(user_id)

    def get_profile(self, user_id):
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM profiles WHERE id = ?", (user_id,)).fetchone()
        return dict(row) if row else None

    def get_all_users(self, status=None):
        query = "SELECT * FROM profiles"
        params = ()
        if status:
            query += " WHERE status = ?"
            params = (status,)
        query += " ORDER BY created_at DESC"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [dict(r) for r in rows]

    def update_user_status(self, user_id, status, admin_id, reason=None, notes=None):
        """
        Approve, reject or suspend a profile.

        approved_at is only set for approvals and rejection_reason only for
        rejections; both are cleared otherwise.
        """
        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE profiles
                SET status = ?, approved_by = ?, approved_at = ?, rejection_reason = ?, notes = ?
                WHERE id = ?
                """,
                (
                    status,
                    admin_id,
                    utcnow_iso() if status == "approved" else None,
                    reason if status == "rejected" else None,
                    notes,
                    user_id,
                ),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"No user with id {user_id}")
        return self.get_profile(user_id)

    def get_pending_users_count(self):
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) FROM profiles WHERE status = 'pending'").fetchone()
        return row[0]
