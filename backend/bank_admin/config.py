from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List


class Settings(BaseSettings):
    # Remote banking API
    BANK_API_BASE_URL: str = "https://chase-bank-api.vercel.app/api"
    BANK_API_TIMEOUT: float = 10.0

    # Deployment environment; "production" enables Secure cookies
    ENVIRONMENT: str = "development"

    # Session cookies
    SESSION_COOKIE_DAYS: int = 7

    # Transaction entry
    TRANSACTION_TAXONOMY: str = "current"  # current or legacy (deprecated)
    NON_ADMIN_LOGIN_POLICY: str = "reject"  # reject at login, or restrict via route gate

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://localhost"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Security: throttle login attempts
    LOGIN_RATE_LIMIT: str = "5/15minutes"

    @field_validator("BANK_API_BASE_URL")
    @classmethod
    def _normalize_base_url(cls, value):
        value = (value or "").strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("BANK_API_BASE_URL must be an http(s) URL")
        return value.rstrip("/")

    @field_validator("TRANSACTION_TAXONOMY")
    @classmethod
    def _validate_taxonomy(cls, value):
        normalized = (value or "").strip().lower()
        if normalized not in ("current", "legacy"):
            raise ValueError("TRANSACTION_TAXONOMY must be 'current' or 'legacy'")
        return normalized

    @field_validator("NON_ADMIN_LOGIN_POLICY")
    @classmethod
    def _validate_login_policy(cls, value):
        normalized = (value or "").strip().lower()
        if normalized not in ("reject", "restrict"):
            raise ValueError("NON_ADMIN_LOGIN_POLICY must be 'reject' or 'restrict'")
        return normalized

    @field_validator("SESSION_COOKIE_DAYS")
    @classmethod
    def _validate_cookie_days(cls, value):
        if value < 1:
            raise ValueError("SESSION_COOKIE_DAYS must be at least 1")
        return value

    @property
    def cookie_secure(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "production"

    @property
    def session_cookie_max_age(self) -> int:
        """Cookie lifetime in seconds."""
        return self.SESSION_COOKIE_DAYS * 24 * 60 * 60

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        extra = "ignore"  # Ignore extra environment variables not defined in the model


settings = Settings()
