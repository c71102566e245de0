from pathlib import Path
import sys

import pytest
from pydantic import ValidationError

BACKEND_PATH = Path(__file__).resolve().parents[2]
if str(BACKEND_PATH) not in sys.path:
    sys.path.insert(0, str(BACKEND_PATH))

from bank_admin.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.BANK_API_BASE_URL == "https://chase-bank-api.vercel.app/api"
    assert settings.TRANSACTION_TAXONOMY == "current"
    assert settings.NON_ADMIN_LOGIN_POLICY == "reject"
    assert settings.session_cookie_max_age == 7 * 24 * 60 * 60
    assert settings.cookie_secure is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("BANK_API_BASE_URL", " http://localhost:4000/api/ ")
    monkeypatch.setenv("TRANSACTION_TAXONOMY", "Legacy")
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.example.com, ,http://b.example.com")

    settings = Settings(_env_file=None)

    assert settings.BANK_API_BASE_URL == "http://localhost:4000/api"
    assert settings.TRANSACTION_TAXONOMY == "legacy"
    assert settings.cookie_secure is True
    assert settings.cors_origins_list == ["http://a.example.com", "http://b.example.com"]


@pytest.mark.parametrize("name,value", [
    ("BANK_API_BASE_URL", "ftp://bank.example.com"),
    ("TRANSACTION_TAXONOMY", "v3"),
    ("NON_ADMIN_LOGIN_POLICY", "allow"),
    ("SESSION_COOKIE_DAYS", "0"),
])
def test_invalid_values_are_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
