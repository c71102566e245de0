import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from bank_admin.config import settings
from bank_admin.services.money import to_decimal

logger = logging.getLogger(__name__)


class BankApiError(Exception):
    """A call to the bank API failed (transport error or non-success reply)."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


def extract_error_message(payload: Any, default: str) -> str:
    if isinstance(payload, dict):
        for key in ("message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return default


def _segment(value: Any) -> str:
    return quote(str(value), safe="@")


def unwrap_payload(payload: Dict, key: str) -> Any:
    """Find ``key`` in either ``{"data": {key: ...}}`` or ``{key: ...}`` replies."""
    data = payload.get("data")
    if isinstance(data, dict) and key in data:
        return data[key]
    if key in payload:
        return payload[key]
    raise BankApiError(f"Unexpected response from bank API: missing '{key}'", payload=payload)


class BankApiClient:
    """JSON client for the remote banking API."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or settings.BANK_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.BANK_API_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        self.token = token

    def _headers(self) -> Dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def _request(self, method: str, path: str, **kwargs) -> Dict:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            logger.warning("Bank API %s %s failed: %s", method, path, exc)
            raise BankApiError("Unable to reach the bank API") from exc

        try:
            payload = response.json() if response.content else {}
        except ValueError:
            payload = {}

        if not response.ok:
            message = extract_error_message(payload, f"Bank API request failed ({response.status_code})")
            logger.warning("Bank API %s %s returned %s: %s", method, path, response.status_code, message)
            raise BankApiError(message, status_code=response.status_code, payload=payload)

        if not isinstance(payload, dict):
            payload = {"data": payload}

        status = payload.get("status")
        if status is not None and status != "success":
            message = extract_error_message(payload, "Bank API reported a failure")
            logger.warning("Bank API %s %s answered status=%s", method, path, status)
            raise BankApiError(message, status_code=response.status_code, payload=payload)

        return payload

    # Auth

    def login(self, username: str, password: str) -> Dict:
        return self._request("POST", "/auth/login", json={"username": username, "password": password})

    def register_user(self, user_data: Dict) -> Dict:
        return self._request("POST", "/auth/register", json=user_data)

    # Users

    def list_users(self) -> List[Dict]:
        return unwrap_payload(self._request("GET", "/users"), "users")

    def get_user(self, user_id: str) -> Dict:
        return unwrap_payload(self._request("GET", f"/users/{_segment(user_id)}"), "user")

    def get_user_by_email(self, email: str) -> Dict:
        return unwrap_payload(self._request("GET", f"/users/email/{_segment(email)}"), "user")

    def get_balance_by_email(self, email: str) -> Decimal:
        user = self.get_user_by_email(email)
        raw = user.get("balance") if isinstance(user, dict) else None
        balance = None
        if raw is not None and not isinstance(raw, bool):
            try:
                balance = to_decimal(raw)
            except ValueError:
                balance = None
        if balance is None or not balance.is_finite():
            logger.warning("Bank API returned no usable balance for %s", email)
            raise BankApiError("Account balance is unavailable", payload=user)
        return balance

    def update_user(self, user_id: str, updates: Dict) -> Dict:
        payload = self._request("PATCH", f"/users/{_segment(user_id)}", json=updates)
        data = payload.get("data")
        if isinstance(data, dict) and "user" in data:
            return data["user"]
        return payload

    # Transactions

    def create_transaction(self, transaction: Dict) -> Dict:
        return unwrap_payload(self._request("POST", "/transactions", json=transaction), "transaction")

    def list_transactions(self, user_id: str, page: int = 1, limit: int = 10) -> Dict:
        payload = self._request(
            "GET",
            f"/transactions/{_segment(user_id)}",
            params={"page": page, "limit": limit},
        )
        data = payload.get("data")
        return data if isinstance(data, dict) else payload

    def get_transaction(self, transaction_id: str) -> Dict:
        return unwrap_payload(
            self._request("GET", f"/transactions/getTransactionById/{_segment(transaction_id)}"),
            "transaction",
        )

    def update_transaction(self, transaction_id: str, updates: Dict) -> Dict:
        payload = self._request("PATCH", f"/transactions/{_segment(transaction_id)}", json=updates)
        data = payload.get("data")
        if isinstance(data, dict) and "transaction" in data:
            return data["transaction"]
        return payload

    def delete_transaction(self, transaction_id: str) -> None:
        self._request("DELETE", f"/transactions/{_segment(transaction_id)}")
