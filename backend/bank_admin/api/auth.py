from fastapi import APIRouter, Depends, HTTPException, status, Request, Response
from typing import Optional
from slowapi import Limiter
from slowapi.util import get_remote_address
import logging

from bank_admin.config import settings
from bank_admin.models.schemas import LoginRequest, LoginResponse, SessionUser
from bank_admin.services.auth import ADMIN_REQUIRED_MESSAGE, AuthenticationError, authenticate
from bank_admin.services.bank_api_client import BankApiClient, BankApiError
from bank_admin.services.session import SessionContext
from bank_admin.services.transaction_classifier import TransactionClassifier, get_transaction_classifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])
login_view_router = APIRouter(tags=["authentication"])

# Security: Initialize rate limiter to prevent brute force attacks
limiter = Limiter(key_func=get_remote_address)

# Bank API statuses passed through to the dashboard; anything else is a gateway error
_PASSTHROUGH_STATUSES = {400, 401, 403, 404, 409, 422}


def api_error_to_http(exc: BankApiError) -> HTTPException:
    if exc.status_code in _PASSTHROUGH_STATUSES:
        return HTTPException(status_code=exc.status_code, detail=exc.message)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)


def get_session_context(request: Request) -> SessionContext:
    session = getattr(request.state, "session", None)
    if session is None:
        session = SessionContext.load(request.cookies)
        request.state.session = session
    return session


def get_api_client(session: SessionContext = Depends(get_session_context)) -> BankApiClient:
    return BankApiClient(token=session.token)


def get_classifier() -> TransactionClassifier:
    return get_transaction_classifier()


async def get_current_user(session: SessionContext = Depends(get_session_context)) -> SessionUser:
    if not session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session.user


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    session: SessionContext = Depends(get_session_context),
    client: BankApiClient = Depends(get_api_client),
):
    try:
        token, user = authenticate(client, credentials.username, credentials.password)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message,
        )

    session.establish(token, user)
    session.persist(response)

    return LoginResponse(user=user, restricted=not user.is_admin)


@router.post("/logout")
async def logout(response: Response, session: SessionContext = Depends(get_session_context)):
    session.clear(response)
    return {"message": "Logged out"}


@router.get("/me", response_model=SessionUser)
async def read_users_me(current_user: SessionUser = Depends(get_current_user)):
    return current_user


@login_view_router.get("/login")
async def login_view(error: Optional[str] = None, session: SessionContext = Depends(get_session_context)):
    """State for the login screen."""
    message = None
    if error == "unauthorized":
        message = ADMIN_REQUIRED_MESSAGE
    elif error:
        message = "Please log in to continue."

    return {
        "authenticated": session.is_authenticated,
        "error": message,
    }
