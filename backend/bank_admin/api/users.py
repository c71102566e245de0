from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Dict, List, Any
from decimal import Decimal
import logging

from bank_admin.api.auth import api_error_to_http, get_api_client, get_classifier
from bank_admin.api.transactions import build_transaction_page
from bank_admin.models.schemas import UserCreate, UserDetail, UserSummary, UserUpdate
from bank_admin.services.bank_api_client import BankApiClient, BankApiError
from bank_admin.services.money import quantize, to_decimal
from bank_admin.services.transaction_classifier import TransactionClassifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

ROLE_FILTERS = ("All", "Admin", "Employee", "User")


def _role_label(role: Any) -> str:
    if role is True:
        return "Admin"
    if isinstance(role, str) and role:
        return role
    return "User"


def _format_balance(value: Any) -> str:
    return f"${quantize(to_decimal(value, default=Decimal('0'))):.2f}"


def _money(value: Any) -> float:
    return float(quantize(to_decimal(value, default=Decimal("0"))))


def _summarize(user: Dict) -> UserSummary:
    return UserSummary(
        id=str(user.get("id") or user.get("_id") or ""),
        name=user.get("name") or "",
        email=user.get("email") or "",
        role=_role_label(user.get("role")),
        account_type=user.get("accountType"),
        balance=_format_balance(user.get("balance")),
    )


def filter_users(users: List[Dict], role: str = "All", search: str = "") -> List[UserSummary]:
    """Role filter plus case-insensitive name/email search."""
    needle = (search or "").strip().lower()
    results = []
    for user in users:
        summary = _summarize(user)
        if role != "All" and summary.role != role:
            continue
        if needle and needle not in summary.name.lower() and needle not in summary.email.lower():
            continue
        results.append(summary)
    return results


def _register_payload(user: UserCreate) -> Dict:
    return {
        "name": user.name,
        "email": user.email,
        "password": user.password,
        "phone": user.phone,
        "address": user.address,
        "accountName": user.account_name,
        "accountType": user.account_type,
        "accountNumber": user.account_number,
        "role": user.role == "Admin",
        "balance": _money(user.balance),
        "availableCredit": _money(user.available_credit),
    }


def _update_payload(updates: UserUpdate) -> Dict:
    payload = {
        "name": updates.name,
        "email": updates.email,
        "phone": updates.phone,
        "address": updates.address,
        "accountName": updates.account_name,
        "accountType": updates.account_type,
        "accountNumber": updates.account_number,
        "role": updates.role,
        "balance": _money(updates.balance) if updates.balance is not None else None,
        "availableCredit": _money(updates.available_credit) if updates.available_credit is not None else None,
    }
    # Only send a password when one was typed in
    if updates.password:
        payload["password"] = updates.password
    return {key: value for key, value in payload.items() if value is not None}


@router.get("/manage", response_model=List[UserSummary])
async def manage_users(
    role: str = Query("All"),
    search: str = Query(""),
    client: BankApiClient = Depends(get_api_client),
):
    if role not in ROLE_FILTERS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Role filter must be one of: {', '.join(ROLE_FILTERS)}"
        )

    try:
        users = client.list_users()
    except BankApiError as exc:
        raise api_error_to_http(exc)

    return filter_users(users or [], role=role, search=search)


@router.get("/manage/{user_id}")
async def get_user_for_edit(user_id: str, client: BankApiClient = Depends(get_api_client)):
    try:
        return client.get_user(user_id)
    except BankApiError as exc:
        raise api_error_to_http(exc)


@router.patch("/manage/{user_id}")
async def update_user(user_id: str, updates: UserUpdate, client: BankApiClient = Depends(get_api_client)):
    try:
        updated = client.update_user(user_id, _update_payload(updates))
    except BankApiError as exc:
        raise api_error_to_http(exc)

    logger.info("Updated user %s", user_id)
    return {"message": "User updated successfully", "user": updated}


@router.post("/add", status_code=status.HTTP_201_CREATED)
async def add_user(user: UserCreate, client: BankApiClient = Depends(get_api_client)):
    try:
        result = client.register_user(_register_payload(user))
    except BankApiError as exc:
        raise api_error_to_http(exc)

    logger.info("Registered user %s", user.email)
    return {"message": "User created successfully", "result": result}


@router.get("/{user_id}", response_model=UserDetail)
async def user_detail(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    client: BankApiClient = Depends(get_api_client),
    classifier: TransactionClassifier = Depends(get_classifier),
):
    try:
        user = client.get_user(user_id)
        history = client.list_transactions(user_id, page=page, limit=limit)
    except BankApiError as exc:
        raise api_error_to_http(exc)

    return UserDetail(
        user=user,
        transactions=build_transaction_page(history, page, limit, classifier),
    )
