import pytest

from certstamp.database import CertificateStore
from certstamp.errors import NotFoundError, ValidationError


@pytest.fixture()
def db(tmp_path):
    store = CertificateStore(str(tmp_path / "store.db"))
    store.init_db()
    return store


def _record(cert_id, user_id=None, category="completion", program="Data Engineering", created_at=None):
    return {
        "cert_id": cert_id,
        "user_id": user_id,
        "program_name": program,
        "student_name": "Jane Doe",
        "orientation": "portrait",
        "category": category,
        "original_filename": "art.png",
        "file_url": f"/certs/data_engineering/completed/{cert_id}.pdf",
        "verify_url": f"/verify/{cert_id}",
        "created_at": created_at,
    }


def test_save_and_get_certificate(db):
    db.create_profile("u1", "jane@example.com", "Jane Issuer", status="approved")
    saved = db.save_certificate(_record("c1", user_id="u1"))
    assert saved["created_at"]

    rec = db.get_certificate("c1")
    assert rec["student_name"] == "Jane Doe"
    assert rec["orientation"] == "portrait"
    assert rec["owner_name"] == "Jane Issuer"
    assert rec["owner_email"] == "jane@example.com"


def test_unknown_certificate_is_none(db):
    assert db.get_certificate("missing") is None


def test_certificates_by_user_newest_first(db):
    db.save_certificate(_record("old", user_id="u1", created_at="2024-01-01T00:00:00+00:00"))
    db.save_certificate(_record("new", user_id="u1", created_at="2024-06-01T00:00:00+00:00"))
    db.save_certificate(_record("other", user_id="u2"))
    assert [r["cert_id"] for r in db.get_certificates_by_user("u1")] == ["new", "old"]


def test_all_certificates_paging(db):
    for i in range(5):
        db.save_certificate(_record(f"c{i}", created_at=f"2024-01-0{i + 1}T00:00:00+00:00"))
    assert [r["cert_id"] for r in db.get_all_certificates(limit=2, offset=1)] == ["c3", "c2"]


def test_new_profile_defaults(db):
    profile = db.create_profile("u1", "sam@example.com")
    assert profile["full_name"] == "sam"
    assert profile["role"] == "user"
    assert profile["status"] == "pending"
    assert db.get_pending_users_count() == 1


def test_update_user_status(db):
    db.create_profile("u1", "sam@example.com")
    approved = db.update_user_status("u1", "approved", "admin-1", notes="ok")
    assert approved["status"] == "approved"
    assert approved["approved_by"] == "admin-1"
    assert approved["approved_at"]
    assert approved["notes"] == "ok"

    rejected = db.update_user_status("u1", "rejected", "admin-1", reason="Unknown organisation")
    assert rejected["approved_at"] is None
    assert rejected["rejection_reason"] == "Unknown organisation"
    assert db.get_pending_users_count() == 0


def test_update_unknown_user(db):
    with pytest.raises(NotFoundError):
        db.update_user_status("nobody", "approved", "admin-1")


def test_get_all_users_filters_by_status(db):
    db.create_profile("u1", "a@example.com")
    db.create_profile("u2", "b@example.com", status="approved")
    assert [u["id"] for u in db.get_all_users("approved")] == ["u2"]
    assert len(db.get_all_users()) == 2


def test_connection_check(db, tmp_path):
    assert db.test_connection()["connected"] is True
    broken = CertificateStore(str(tmp_path / "empty.db"))
    assert broken.test_connection()["connected"] is False


def test_create_profile_rejects_unknown_role(db):
    with pytest.raises(ValidationError):
        db.create_profile("u9", "x@example.com", role="owner")
