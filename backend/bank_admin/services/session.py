"""
Cookie-backed admin session.

The bank API issues a bearer JWT and a user record at login. Both are kept
in cookies (``token`` and ``userData``) and loaded once per request into a
SessionContext, which the route gate and the views share.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Mapping, Optional

from jose import JWTError, jwt
from pydantic import ValidationError
from starlette.responses import Response

from bank_admin.config import settings
from bank_admin.models.schemas import SessionUser

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "token"
USER_COOKIE = "userData"


def token_expiry(token: str) -> Optional[datetime]:
    """Read ``exp`` from a JWT without verifying it; None if absent or unreadable."""
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return None
    return datetime.fromtimestamp(exp, tz=timezone.utc)


def is_token_expired(token: str, now: Optional[datetime] = None) -> bool:
    expires_at = token_expiry(token)
    if expires_at is None:
        return True
    return expires_at <= (now or datetime.now(timezone.utc))


class SessionContext:
    """Token and user data for the current request."""

    def __init__(self, token: Optional[str] = None, user: Optional[SessionUser] = None):
        self.token = token
        self.user = user

    @classmethod
    def load(cls, cookies: Mapping[str, str]) -> "SessionContext":
        token = cookies.get(TOKEN_COOKIE) or None
        raw_user = cookies.get(USER_COOKIE) or None
        user = None
        if raw_user:
            try:
                user = SessionUser.model_validate(json.loads(raw_user))
            except (ValueError, ValidationError):
                logger.debug("Ignoring malformed userData cookie")
        return cls(token=token, user=user)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token) and self.user is not None and not is_token_expired(self.token)

    @property
    def role(self):
        return self.user.role if self.user else None

    def establish(self, token: str, user: SessionUser) -> None:
        self.token = token
        self.user = user

    def persist(self, response: Response) -> None:
        """Write both cookies onto ``response``."""
        if not self.token or self.user is None:
            raise ValueError("Cannot persist a session without token and user")
        options = dict(
            max_age=settings.session_cookie_max_age,
            path="/",
            secure=settings.cookie_secure,
            samesite="strict",
        )
        response.set_cookie(TOKEN_COOKIE, self.token, **options)
        response.set_cookie(USER_COOKIE, self.user.model_dump_json(), **options)

    def clear(self, response: Optional[Response] = None) -> None:
        self.token = None
        self.user = None
        if response is not None:
            response.delete_cookie(TOKEN_COOKIE, path="/")
            response.delete_cookie(USER_COOKIE, path="/")
