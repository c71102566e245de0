import logging
from typing import Optional, Tuple

from pydantic import ValidationError

from bank_admin.config import settings
from bank_admin.models.schemas import SessionUser
from bank_admin.services.bank_api_client import BankApiClient, BankApiError, extract_error_message, unwrap_payload

logger = logging.getLogger(__name__)

LOGIN_FAILED_MESSAGE = "Login failed. Please check your credentials."
ADMIN_REQUIRED_MESSAGE = "Access denied. Admin privileges required."


class AuthenticationError(Exception):
    """Login was refused; ``message`` is safe to show to the user."""

    def __init__(self, message: str = LOGIN_FAILED_MESSAGE):
        super().__init__(message)
        self.message = message


class AdminPrivilegesRequired(AuthenticationError):
    def __init__(self, message: str = ADMIN_REQUIRED_MESSAGE):
        super().__init__(message)


def authenticate(
    client: BankApiClient,
    username: str,
    password: str,
    policy: Optional[str] = None,
) -> Tuple[str, SessionUser]:
    """
    Log in against the bank API.

    Args:
        client: API client (no token needed)
        username: Login name or email
        password: Plain password, forwarded as is
        policy: "reject" refuses non-admin accounts here; "restrict" lets
            them in and leaves admin paths to the route gate. Defaults to
            NON_ADMIN_LOGIN_POLICY.

    Returns:
        (bearer token, user record)

    Raises:
        AuthenticationError: bad credentials or unusable reply
        AdminPrivilegesRequired: non-admin under the "reject" policy
    """
    policy = policy or settings.NON_ADMIN_LOGIN_POLICY

    try:
        payload = client.login(username, password)
    except BankApiError as exc:
        logger.info("Login rejected by bank API (status=%s)", exc.status_code)
        raise AuthenticationError(extract_error_message(exc.payload, LOGIN_FAILED_MESSAGE)) from exc

    token = payload.get("token")
    try:
        user = SessionUser.model_validate(unwrap_payload(payload, "user"))
    except (BankApiError, ValidationError) as exc:
        logger.warning("Login reply did not contain a usable user record")
        raise AuthenticationError() from exc

    if not token:
        logger.warning("Login reply did not contain a token")
        raise AuthenticationError()

    if policy == "reject" and not user.is_admin:
        logger.info("Login refused for non-admin user %s", user.id)
        raise AdminPrivilegesRequired()

    logger.info("Login succeeded for user %s (admin=%s)", user.id, user.is_admin)
    return token, user
