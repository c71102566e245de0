from datetime import datetime, timedelta, timezone
from pathlib import Path
import json
import sys

import pytest
from jose import jwt
from starlette.responses import Response

BACKEND_PATH = Path(__file__).resolve().parents[2]
if str(BACKEND_PATH) not in sys.path:
    sys.path.insert(0, str(BACKEND_PATH))

from bank_admin.models.schemas import SessionUser
from bank_admin.services.session import SessionContext, is_token_expired, token_expiry


def make_token(expires_in=timedelta(hours=1)):
    exp = datetime.now(timezone.utc) + expires_in
    return jwt.encode({"sub": "admin@example.com", "exp": int(exp.timestamp())}, "test-secret", algorithm="HS256")


def user_cookie(**fields):
    data = {"id": "u1", "name": "Ada", "email": "admin@example.com", "role": True}
    data.update(fields)
    return json.dumps(data, separators=(",", ":"))


def test_token_expiry_reads_exp_claim():
    token = make_token()
    assert token_expiry(token) > datetime.now(timezone.utc)
    assert is_token_expired(token) is False


def test_expired_and_garbage_tokens_are_expired():
    assert is_token_expired(make_token(timedelta(minutes=-5))) is True
    assert is_token_expired("not-a-jwt") is True
    no_exp = jwt.encode({"sub": "x"}, "test-secret", algorithm="HS256")
    assert is_token_expired(no_exp) is True


def test_load_admin_session():
    session = SessionContext.load({"token": make_token(), "userData": user_cookie()})

    assert session.is_authenticated
    assert session.user.is_admin
    assert session.role is True
    assert session.user.name == "Ada"


def test_non_admin_role_must_be_literal_true():
    session = SessionContext.load({"token": make_token(), "userData": user_cookie(role="true")})

    assert session.is_authenticated
    assert session.user.is_admin is False
    # The raw value is still truthy for the route gate
    assert session.role == "true"


def test_numeric_user_id_is_accepted():
    session = SessionContext.load({"token": make_token(), "userData": user_cookie(id=7)})
    assert session.user.id == "7"


def test_malformed_user_data_is_not_authenticated():
    session = SessionContext.load({"token": make_token(), "userData": "{broken"})

    assert session.token
    assert session.user is None
    assert session.is_authenticated is False


def test_missing_cookies():
    session = SessionContext.load({})
    assert session.is_authenticated is False
    assert session.role is None


def test_persist_writes_strict_cookies():
    session = SessionContext()
    session.establish(make_token(), SessionUser(id="u1", name="Ada", role=True))
    response = Response()

    session.persist(response)

    cookies = response.headers.getlist("set-cookie")
    assert len(cookies) == 2
    assert any(cookie.startswith("token=") for cookie in cookies)
    assert any(cookie.startswith("userData=") for cookie in cookies)
    for cookie in cookies:
        assert "SameSite=strict" in cookie
        assert "Max-Age=604800" in cookie
        assert "Path=/" in cookie


def test_persist_marks_cookies_secure_in_production(monkeypatch):
    monkeypatch.setattr("bank_admin.config.settings.ENVIRONMENT", "production")
    session = SessionContext(token=make_token(), user=SessionUser(id="u1", role=True))
    response = Response()

    session.persist(response)

    assert all("Secure" in cookie for cookie in response.headers.getlist("set-cookie"))


def test_persist_requires_credentials():
    with pytest.raises(ValueError):
        SessionContext().persist(Response())


def test_clear_forgets_and_expires_cookies():
    session = SessionContext(token=make_token(), user=SessionUser(id="u1", role=True))
    response = Response()

    session.clear(response)

    assert session.token is None
    assert session.user is None
    cookies = response.headers.getlist("set-cookie")
    assert any(cookie.startswith("token=") and "Max-Age=0" in cookie for cookie in cookies)
    assert any(cookie.startswith("userData=") and "Max-Age=0" in cookie for cookie in cookies)
