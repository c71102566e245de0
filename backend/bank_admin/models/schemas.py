from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Any, List, Optional
from datetime import date as date_type, datetime
from decimal import Decimal
from enum import Enum


class TaxonomyVersion(str, Enum):
    CURRENT = "current"
    LEGACY = "legacy"  # Deprecated: sign taken from the is_receiving flag


class TransactionClass(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    NEUTRAL = "neutral"


class TransactionType(str, Enum):
    # Credit class
    ACH_CREDIT = "ach_credit"
    ACH_EMPLOYEE_PAYMENT = "ach_employee_payment"
    ACH_VENDOR_PAYMENT = "ach_vendor_payment"
    DEPOSIT = "deposit"
    INCOMING_WIRE_TRANSFER = "incoming_wire_transfer"
    MISC_CREDIT = "misc_credit"
    REFUND = "refund"
    ZELLE_CREDIT = "zelle_credit"

    # Debit class
    ACH_DEBIT = "ach_debit"
    ATM_TRANSACTION = "atm_transaction"
    BILL_PAYMENT = "bill_payment"
    CARD = "card"
    LOAN_PAYMENT = "loan_payment"
    MISC_DEBIT = "misc_debit"
    OUTGOING_WIRE_TRANSFER = "outgoing_wire_transfer"
    OVERNIGHT_CHECK = "overnight_check"
    TAX_PAYMENT = "tax_payment"
    EGIFT_DEBIT = "egift_debit"
    ZELLE_DEBIT = "zelle_debit"

    # Neutral class
    ACCOUNT_TRANSFER = "account_transfer"
    ADJUSTMENT_OR_REVERSAL = "adjustment_or_reversal"
    RETURNED_DEPOSIT_ITEM = "returned_deposit_item"
    CHECKS_UNDER_2_YEARS = "checks_under_2_years"
    CHECKS_OVER_2_YEARS = "checks_over_2_years"


class LegacyTransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    ACH = "ach"
    WIRE = "wire"
    FEE = "fee"
    OTHER = "other"


class SessionUser(BaseModel):
    """The ``userData`` cookie payload as issued by the bank API at login."""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: Any = False

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        if value is None:
            raise ValueError("user id is required")
        return str(value)

    @property
    def is_admin(self) -> bool:
        return self.role is True

    class Config:
        extra = "allow"


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    user: SessionUser
    # True when a non-admin was let in and admin paths stay closed
    restricted: bool = False


class TransactionDraft(BaseModel):
    email: Optional[EmailStr] = None
    amount: Optional[Decimal] = Field(default=None, gt=0)
    type: Optional[str] = None
    is_pending: bool = False
    is_receiving: bool = True  # legacy forms only
    description: str = ""
    date: date_type = Field(default_factory=date_type.today)

    def missing_fields(self) -> List[str]:
        missing = []
        if not self.email:
            missing.append("email")
        if self.amount is None:
            missing.append("amount")
        if not self.type:
            missing.append("type")
        if len(self.description.strip()) < 5:
            missing.append("description")
        return missing

    class Config:
        validate_assignment = True


class TransactionPreviewRequest(BaseModel):
    email: EmailStr
    amount: Decimal = Field(gt=0)
    type: str
    is_pending: bool = False
    is_receiving: bool = True
    # Balance already fetched by the form; looked up by email when absent
    current_balance: Optional[Decimal] = None


class TransactionCreate(BaseModel):
    email: EmailStr
    amount: Decimal = Field(ge=Decimal("0.01"))
    type: str
    is_pending: bool = False
    is_receiving: bool = True
    description: str = Field(min_length=5)
    date: date_type = Field(default_factory=date_type.today)


class BalancePreview(BaseModel):
    current_balance: Decimal
    projected_balance: Decimal
    delta: Decimal


class TransactionUpdate(BaseModel):
    description: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    type: str
    date: datetime
    is_pending: bool = False
    is_receiving: bool = True


class TransactionRecord(BaseModel):
    id: str
    user_id: Optional[str] = None
    description: Optional[str] = None
    amount: Decimal
    # Positive amount for the edit form, sign comes from the type
    unsigned_amount: Decimal
    type: str
    date: Optional[str] = None
    is_pending: bool = False
    updated_balance: Optional[Decimal] = None
    # Read-only display label, e.g. "-$1,250.00"
    label: str


class TransactionPage(BaseModel):
    transactions: List[TransactionRecord]
    page: int
    limit: int
    total: Optional[int] = None


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=8)
    phone: str = Field(min_length=1)
    address: str = ""
    account_name: str = Field(min_length=1)
    account_number: str = Field(min_length=1)
    account_type: str = Field(min_length=1)
    role: str = "User"  # Admin, Employee or User
    balance: str = "0"
    available_credit: str = "0"


class UserUpdate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    address: Optional[str] = None
    account_name: str = Field(min_length=1)
    account_type: str = Field(min_length=1)
    account_number: Optional[str] = None
    role: Optional[bool] = None
    balance: Optional[Decimal] = None
    available_credit: Optional[Decimal] = None
    # Left out of the update when blank
    password: Optional[str] = None


class UserSummary(BaseModel):
    id: str
    name: str
    email: str
    role: str
    account_type: Optional[str] = None
    balance: str


class UserDetail(BaseModel):
    user: dict
    transactions: TransactionPage
