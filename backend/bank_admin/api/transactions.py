from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Any, Dict, List, Optional
from datetime import date
from decimal import Decimal
import logging

from bank_admin.api.auth import api_error_to_http, get_api_client, get_classifier
from bank_admin.models.schemas import (
    BalancePreview,
    TaxonomyVersion,
    TransactionCreate,
    TransactionPage,
    TransactionPreviewRequest,
    TransactionRecord,
    TransactionUpdate,
)
from bank_admin.services.bank_api_client import BankApiClient, BankApiError
from bank_admin.services.money import format_signed, quantize, to_decimal
from bank_admin.services.transaction_classifier import TransactionClassifier, UnknownTransactionType
from bank_admin.services.transaction_form import IncompleteDraft, TransactionForm

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions", tags=["transactions"])


def _unknown_type(exc: UnknownTransactionType) -> HTTPException:
    return HTTPException(status_code=422, detail=str(exc))


def _label_for(amount: Decimal, transaction_type: Any, classifier: TransactionClassifier) -> str:
    """
    Display label for a stored transaction.

    Records written under another taxonomy generation keep the sign the
    bank API stored for them.
    """
    try:
        return classifier.amount_label(abs(amount), transaction_type)
    except UnknownTransactionType:
        logger.debug("Labelling %r transaction from its stored sign", transaction_type)
        return format_signed(amount)


def to_transaction_record(txn: Dict, classifier: TransactionClassifier) -> TransactionRecord:
    amount = to_decimal(txn.get("amount"), default=Decimal("0"))
    transaction_type = txn.get("type") or ""
    updated_balance = txn.get("updatedBalance")
    return TransactionRecord(
        id=str(txn.get("id") or txn.get("_id") or ""),
        user_id=str(txn["userId"]) if txn.get("userId") is not None else None,
        description=txn.get("description"),
        amount=quantize(amount),
        unsigned_amount=quantize(abs(amount)),
        type=transaction_type,
        date=str(txn["date"]) if txn.get("date") is not None else None,
        is_pending=bool(txn.get("isPending", False)),
        updated_balance=to_decimal(updated_balance) if updated_balance is not None else None,
        label=_label_for(amount, transaction_type, classifier),
    )


def build_transaction_page(data: Dict, page: int, limit: int, classifier: TransactionClassifier) -> TransactionPage:
    raw: List[Dict] = data.get("transactions") or []
    total = data.get("total", data.get("totalTransactions"))
    return TransactionPage(
        transactions=[to_transaction_record(txn, classifier) for txn in raw],
        page=page,
        limit=limit,
        total=int(total) if total is not None else None,
    )


def _open_form(classifier: TransactionClassifier, **fields) -> TransactionForm:
    form = TransactionForm(classifier=classifier)
    form.update(**fields)
    return form


@router.get("/add/{email}")
async def add_transaction_form(
    email: str,
    client: BankApiClient = Depends(get_api_client),
    classifier: TransactionClassifier = Depends(get_classifier),
):
    """Initial state for the add-transaction form of one account."""
    form = TransactionForm(classifier=classifier)
    balance = form.load_balance(client, email)
    return {
        "email": email,
        "current_balance": balance,
        "error": form.error,
        "date": date.today().isoformat(),
        "taxonomy": classifier.version.value,
        "transaction_types": list(classifier.transaction_types),
        "uses_receiving_flag": classifier.version == TaxonomyVersion.LEGACY,
    }


@router.post("/add/preview", response_model=BalancePreview)
async def preview_transaction(
    request: TransactionPreviewRequest,
    client: BankApiClient = Depends(get_api_client),
    classifier: TransactionClassifier = Depends(get_classifier),
):
    form = _open_form(
        classifier,
        email=request.email,
        amount=request.amount,
        type=request.type,
        is_pending=request.is_pending,
        is_receiving=request.is_receiving,
    )

    if request.current_balance is not None:
        form.resolve_balance_lookup(form.begin_balance_lookup(), form.draft.email, request.current_balance)
    elif form.load_balance(client) is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=form.error or "Could not load the account balance"
        )

    try:
        return form.preview()
    except UnknownTransactionType as exc:
        raise _unknown_type(exc)


@router.post("/add", status_code=status.HTTP_201_CREATED)
async def create_transaction(
    transaction: TransactionCreate,
    client: BankApiClient = Depends(get_api_client),
    classifier: TransactionClassifier = Depends(get_classifier),
):
    form = _open_form(classifier, **transaction.model_dump())

    try:
        created = form.submit(client)
    except UnknownTransactionType as exc:
        raise _unknown_type(exc)
    except IncompleteDraft as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except BankApiError as exc:
        raise api_error_to_http(exc)

    user_id = created.get("userId") if isinstance(created, dict) else None
    return {
        "message": "Transaction created successfully",
        "transaction": created,
        "user_id": str(user_id) if user_id is not None else None,
    }


@router.get("/user/{user_id}", response_model=TransactionPage)
async def list_user_transactions(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    client: BankApiClient = Depends(get_api_client),
    classifier: TransactionClassifier = Depends(get_classifier),
):
    try:
        data = client.list_transactions(user_id, page=page, limit=limit)
    except BankApiError as exc:
        raise api_error_to_http(exc)
    return build_transaction_page(data, page, limit, classifier)


@router.get("/{transaction_id}/edit", response_model=TransactionRecord)
async def get_transaction_for_edit(
    transaction_id: str,
    client: BankApiClient = Depends(get_api_client),
    classifier: TransactionClassifier = Depends(get_classifier),
):
    try:
        txn = client.get_transaction(transaction_id)
    except BankApiError as exc:
        raise api_error_to_http(exc)

    if not txn:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Transaction not found"
        )
    return to_transaction_record(txn, classifier)


@router.patch("/{transaction_id}/edit")
async def update_transaction(
    transaction_id: str,
    updates: TransactionUpdate,
    client: BankApiClient = Depends(get_api_client),
    classifier: TransactionClassifier = Depends(get_classifier),
):
    try:
        amount = classifier.submission_amount(
            updates.type,
            updates.amount,
            is_pending=updates.is_pending,
            is_receiving=updates.is_receiving,
        )
    except UnknownTransactionType as exc:
        raise _unknown_type(exc)

    payload: Dict[str, Optional[Any]] = {
        "description": updates.description,
        "amount": amount,
        "type": updates.type,
        "date": updates.date.isoformat(),
    }
    if classifier.version == TaxonomyVersion.LEGACY:
        payload["isReceiving"] = updates.is_receiving
    else:
        payload["isPending"] = updates.is_pending

    try:
        updated = client.update_transaction(transaction_id, payload)
    except BankApiError as exc:
        raise api_error_to_http(exc)

    logger.info("Updated transaction %s", transaction_id)
    return {"message": "The transaction was successfully updated.", "transaction": updated}


@router.delete("/{transaction_id}")
async def delete_transaction(transaction_id: str, client: BankApiClient = Depends(get_api_client)):
    try:
        client.delete_transaction(transaction_id)
    except BankApiError as exc:
        raise api_error_to_http(exc)

    logger.info("Deleted transaction %s", transaction_id)
    return {"message": "Transaction deleted successfully"}
