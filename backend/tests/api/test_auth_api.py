from pathlib import Path
import sys

BACKEND_PATH = Path(__file__).resolve().parents[2]
if str(BACKEND_PATH) not in sys.path:
    sys.path.insert(0, str(BACKEND_PATH))

from bank_admin.services.auth import ADMIN_REQUIRED_MESSAGE


def test_health_is_public(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_login_view_explains_unauthorized_redirect(client):
    response = client.get("/login", params={"error": "unauthorized"})

    assert response.status_code == 200
    assert response.json() == {"authenticated": False, "error": ADMIN_REQUIRED_MESSAGE}


def test_login_sets_session_cookies(client, fake_api):
    response = client.post("/api/auth/login", json={"username": "grace", "password": "pw"})

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["id"] == "u2"
    assert body["restricted"] is False
    assert response.cookies.get("token") == fake_api.login_reply["token"]
    assert "userData" in response.cookies
    set_cookies = response.headers.get_list("set-cookie")
    assert all("samesite=strict" in cookie.lower() for cookie in set_cookies)


def test_login_then_me_uses_cookie_session(client):
    client.post("/api/auth/login", json={"username": "grace", "password": "pw"})

    response = client.get("/api/auth/me", follow_redirects=False)

    assert response.status_code == 200
    assert response.json()["email"] == "grace@bank.example.com"


def test_non_admin_login_is_rejected_by_default(client, fake_api):
    fake_api.login_reply["data"]["user"]["role"] = False

    response = client.post("/api/auth/login", json={"username": "bob", "password": "pw"})

    assert response.status_code == 401
    assert response.json()["detail"] == ADMIN_REQUIRED_MESSAGE
    assert "token" not in response.cookies


def test_non_admin_login_under_restrict_policy(client, fake_api, monkeypatch):
    monkeypatch.setattr("bank_admin.config.settings.NON_ADMIN_LOGIN_POLICY", "restrict")
    fake_api.login_reply["data"]["user"]["role"] = False

    response = client.post("/api/auth/login", json={"username": "bob", "password": "pw"})

    assert response.status_code == 200
    assert response.json()["restricted"] is True


def test_logout_clears_cookies(admin_client):
    response = admin_client.post("/api/auth/logout")

    assert response.status_code == 200
    set_cookies = response.headers.get_list("set-cookie")
    assert any(cookie.startswith("token=") for cookie in set_cookies)
    assert any(cookie.startswith("userData=") for cookie in set_cookies)


def test_anonymous_request_is_redirected_to_login(client):
    response = client.get("/users/u1", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/login"


def test_expired_session_is_redirected_to_login(expired_client):
    response = expired_client.get("/api/auth/me", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/login"


def test_staff_cannot_open_admin_paths(staff_client):
    response = staff_client.get("/users/manage", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/login?error=unauthorized"


def test_staff_can_view_user_detail(staff_client):
    response = staff_client.get("/users/u1", follow_redirects=False)
    assert response.status_code == 200
