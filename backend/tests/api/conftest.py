from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
import json
import sys

import pytest
from fastapi.testclient import TestClient
from jose import jwt

BACKEND_PATH = Path(__file__).resolve().parents[2]
if str(BACKEND_PATH) not in sys.path:
    sys.path.insert(0, str(BACKEND_PATH))

from bank_admin.api import auth
from bank_admin.main import app
from bank_admin.services.bank_api_client import BankApiError


class FakeBankApi:
    """In-memory stand-in for the remote bank API."""

    def __init__(self):
        self.users = [
            {"id": "u1", "name": "Abdullah Products LLC", "email": "owner@example.com", "role": False,
             "accountType": "BUS COMPLETE CHK", "balance": 20249.75},
            {"id": "u2", "name": "Grace Admin", "email": "grace@bank.example.com", "role": True,
             "accountType": "Checking", "balance": "15"},
            {"id": "u3", "name": "Eve Employee", "email": "eve@bank.example.com", "role": "Employee",
             "accountType": "Savings", "balance": 0},
        ]
        self.transactions = [
            {"id": "t1", "userId": "u1", "description": "Payment to Vendor", "amount": -1250,
             "type": "ach_debit", "date": "2025-04-20", "updatedBalance": 20249.75},
            {"id": "t2", "userId": "u1", "description": "Customer Payment", "amount": 3500,
             "type": "deposit", "date": "2025-04-18", "isPending": True},
            {"id": "t3", "userId": "u1", "description": "Old entry", "amount": -345.25,
             "type": "fee", "date": "2025-04-15"},
        ]
        self.login_reply = {
            "status": "success",
            "token": make_token(),
            "data": {"user": {"id": "u2", "name": "Grace Admin", "email": "grace@bank.example.com", "role": True}},
        }
        self.calls = []
        self.fail_with = None

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail_with is not None:
            raise self.fail_with

    def login(self, username, password):
        self._record("login", username)
        return self.login_reply

    def register_user(self, user_data):
        self._record("register_user", user_data)
        return {"status": "success"}

    def list_users(self):
        self._record("list_users")
        return self.users

    def get_user(self, user_id):
        self._record("get_user", user_id)
        for user in self.users:
            if user["id"] == user_id:
                return user
        raise BankApiError("User not found", status_code=404)

    def get_user_by_email(self, email):
        self._record("get_user_by_email", email)
        for user in self.users:
            if user["email"] == email:
                return user
        raise BankApiError("User not found", status_code=404)

    def get_balance_by_email(self, email):
        return Decimal(str(self.get_user_by_email(email)["balance"]))

    def update_user(self, user_id, updates):
        self._record("update_user", user_id, updates)
        return {"id": user_id, **updates}

    def create_transaction(self, transaction):
        self._record("create_transaction", transaction)
        return {"id": "t9", "userId": "u1", **transaction}

    def list_transactions(self, user_id, page=1, limit=10):
        self._record("list_transactions", user_id, page, limit)
        rows = [txn for txn in self.transactions if txn["userId"] == user_id]
        return {"transactions": rows, "total": len(rows)}

    def get_transaction(self, transaction_id):
        self._record("get_transaction", transaction_id)
        for txn in self.transactions:
            if txn["id"] == transaction_id:
                return txn
        raise BankApiError("Transaction not found", status_code=404)

    def update_transaction(self, transaction_id, updates):
        self._record("update_transaction", transaction_id, updates)
        return {"id": transaction_id, **updates}

    def delete_transaction(self, transaction_id):
        self._record("delete_transaction", transaction_id)


def make_token(minutes=60):
    exp = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    return jwt.encode({"sub": "grace@bank.example.com", "exp": int(exp.timestamp())}, "test-secret", algorithm="HS256")


def session_cookies(role=True, minutes=60):
    user = {"id": "u2", "name": "Grace Admin", "email": "grace@bank.example.com", "role": role}
    return {"token": make_token(minutes), "userData": json.dumps(user, separators=(",", ":"))}


@pytest.fixture
def fake_api():
    api = FakeBankApi()
    app.dependency_overrides[auth.get_api_client] = lambda: api
    auth.limiter.reset()
    yield api
    app.dependency_overrides.clear()


@pytest.fixture
def client(fake_api):
    return TestClient(app)


@pytest.fixture
def admin_client(fake_api):
    test_client = TestClient(app)
    for name, value in session_cookies(role=True).items():
        test_client.cookies.set(name, value)
    return test_client


@pytest.fixture
def staff_client(fake_api):
    test_client = TestClient(app)
    for name, value in session_cookies(role=False).items():
        test_client.cookies.set(name, value)
    return test_client


@pytest.fixture
def expired_client(fake_api):
    test_client = TestClient(app)
    for name, value in session_cookies(role=True, minutes=-5).items():
        test_client.cookies.set(name, value)
    return test_client
