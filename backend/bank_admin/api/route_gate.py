"""
Request gate run before every view.

Unauthenticated requests go to the login view; admin-only paths also need
a truthy role in the userData cookie.
"""
import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse

from bank_admin.services.session import SessionContext

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"
UNAUTHORIZED_REDIRECT = "/login?error=unauthorized"

PUBLIC_PATHS = (
    LOGIN_PATH,
    "/api/auth/login",
    "/forgot-password",
    # Operational endpoints
    "/health",
    "/metrics",
)

ADMIN_PATH_PREFIXES = (
    "/users/add",
    "/users/manage",
    "/transactions/add",
)


def is_public_path(path: str) -> bool:
    return any(path == public or path.startswith(f"{public}/") for public in PUBLIC_PATHS)


def is_admin_path(path: str) -> bool:
    return any(path.startswith(prefix) for prefix in ADMIN_PATH_PREFIXES)


def evaluate_route(path: str, session: SessionContext) -> Optional[str]:
    """Return the redirect target for ``path``, or None to let it through."""
    if is_public_path(path):
        return None

    if not session.is_authenticated:
        return LOGIN_PATH

    if is_admin_path(path) and not session.role:
        return UNAUTHORIZED_REDIRECT

    return None


class RouteGateMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        session = SessionContext.load(request.cookies)
        request.state.session = session

        target = evaluate_route(request.url.path, session)
        if target is not None:
            logger.debug("Route gate redirected %s to %s", request.url.path, target)
            return RedirectResponse(target, status_code=307)

        return await call_next(request)
