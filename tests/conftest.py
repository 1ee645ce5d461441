from io import BytesIO

import fitz
import pytest
from PIL import Image

from app import create_app
from certstamp.auth import get_identity, get_store
from certstamp.config import Config

PASSWORD = "pass123"


@pytest.fixture()
def config(tmp_path):
    return Config.from_env(
        env_file=tmp_path / ".env",
        BASE_URL="https://certs.example.org",
        SECRET_KEY="test-secret",
        DB_PATH=str(tmp_path / "test.db"),
        CERTS_DIR=str(tmp_path / "certs"),
        UPLOADS_DIR=str(tmp_path / "uploads"),
        TESTING=True,
    )


@pytest.fixture()
def app(config):
    return create_app(config)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def store(app):
    with app.app_context():
        return get_store()


@pytest.fixture()
def identity(app):
    with app.app_context():
        return get_identity()


def png_bytes(width, height, color=(20, 30, 60)):
    buf = BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def jpeg_bytes(width, height, color=(20, 30, 60)):
    buf = BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="JPEG")
    return buf.getvalue()


def pdf_bytes(width, height, pages=1, rotation=0):
    doc = fitz.open()
    for _ in range(pages):
        page = doc.new_page(width=width, height=height)
        page.insert_text((72, 72), "Certificate of Achievement")
        if rotation:
            page.set_rotation(rotation)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture()
def make_user(store, identity):
    """Factory: make_user(email, status="approved", role="user") -> profile dict."""
    def _make(email, status="approved", role="user", full_name=None):
        user = identity.create_user(email, PASSWORD)
        store.create_profile(user.id, user.email, full_name, role=role, status=status)
        return store.get_profile(user.id)
    return _make


def login(client, email, password=PASSWORD):
    return client.post("/auth/login", data={"email": email, "password": password})


@pytest.fixture()
def user_client(client, make_user):
    """A test client logged in as an approved regular user."""
    make_user("jane@example.com")
    resp = login(client, "jane@example.com")
    assert resp.status_code == 302
    return client


@pytest.fixture()
def admin_client(client, make_user):
    make_user("admin@example.com", role="admin", full_name="Site Admin")
    resp = login(client, "admin@example.com")
    assert resp.status_code == 302
    return client
