from io import BytesIO

from conftest import PASSWORD, login, png_bytes

JSON = {"Accept": "application/json"}


def test_signup_creates_pending_profile(client, store):
    resp = client.post("/auth/signup", json={"email": "new@example.com", "password": PASSWORD, "fullName": "New Person"})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "pending"

    profile = store.get_profile(body["user"]["id"])
    assert profile["status"] == "pending"
    assert profile["full_name"] == "New Person"


def test_signup_form_redirects_to_login(client):
    resp = client.post("/auth/signup", data={"email": "new@example.com", "password": PASSWORD})
    assert resp.status_code == 302
    assert "message=signup_success" in resp.headers["Location"]


def test_signup_duplicate_email(client, make_user):
    make_user("jane@example.com")
    resp = client.post("/auth/signup", json={"email": "jane@example.com", "password": PASSWORD})
    assert resp.status_code == 400


def test_pending_user_cannot_log_in(client, make_user):
    make_user("wait@example.com", status="pending")
    resp = client.post("/auth/login", json={"email": "wait@example.com", "password": PASSWORD})
    assert resp.status_code == 403
    assert resp.get_json()["status"] == "pending"


def test_rejected_user_sees_reason(client, make_user, store):
    profile = make_user("no@example.com", status="pending")
    store.update_user_status(profile["id"], "rejected", "admin", reason="Not a partner school")
    resp = client.post("/auth/login", json={"email": "no@example.com", "password": PASSWORD})
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Not a partner school"


def test_suspended_user_html_login(client, make_user):
    make_user("sus@example.com", status="suspended")
    resp = login(client, "sus@example.com")
    assert resp.status_code == 403
    assert b"suspended" in resp.data


def test_bad_password(client, make_user):
    make_user("jane@example.com")
    resp = client.post("/auth/login", json={"email": "jane@example.com", "password": "wrong-one"})
    assert resp.status_code == 401


def test_login_and_dashboard(user_client):
    user_client.post("/certs", headers=JSON, content_type="multipart/form-data", data={
        "program_name": "Data Engineering",
        "orientation": "landscape",
        "category": "participation",
        "student_name": "Jane Doe",
        "certificate": (BytesIO(png_bytes(800, 600)), "a.png", "image/png"),
    })
    resp = user_client.get("/auth/dashboard")
    assert resp.status_code == 200
    page = resp.get_data(as_text=True)
    assert "Data Engineering (1 certificate)" in page
    assert "Participation" in page


def test_dashboard_redirects_anonymous_browser(client):
    resp = client.get("/auth/dashboard")
    assert resp.status_code == 302
    assert "/auth/login" in resp.headers["Location"]


def test_bearer_token_and_refresh(client, make_user):
    make_user("api@example.com")
    body = client.post("/auth/login", json={"email": "api@example.com", "password": PASSWORD}).get_json()
    token = body["session"]["access_token"]

    anon = client.application.test_client()
    profile = anon.get("/auth/profile", headers={"Authorization": f"Bearer {token}", **JSON})
    assert profile.status_code == 200
    assert profile.get_json()["user"]["email"] == "api@example.com"

    refreshed = anon.post("/auth/refresh", json={"refresh_token": body["session"]["refresh_token"]})
    assert refreshed.status_code == 200
    new_token = refreshed.get_json()["session"]["access_token"]
    assert anon.get("/auth/profile", headers={"Authorization": f"Bearer {token}", **JSON}).status_code == 401
    assert anon.get("/auth/profile", headers={"Authorization": f"Bearer {new_token}", **JSON}).status_code == 200


def test_logout_ends_session(user_client):
    resp = user_client.get("/auth/logout")
    assert resp.status_code == 302
    assert user_client.get("/auth/profile", headers=JSON).status_code == 401
