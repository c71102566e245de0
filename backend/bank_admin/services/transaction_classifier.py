"""
Transaction Classification Service

Decides how a transaction type moves an account balance. Two taxonomy
generations exist:

Current (canonical):
- Credit class: increases the balance
- Debit class: decreases the balance
- Neutral class: no effect on the previewed balance

Legacy (deprecated):
- credit | debit | ach | wire | fee | other; the sign comes from the
  form's "receiving" flag instead of the type.

The balance preview and the submitted amount are both derived from the
tables below, so what the form shows is what gets persisted.
"""
import logging
from decimal import Decimal
from functools import lru_cache
from typing import Optional, Tuple, Union

from bank_admin.models.schemas import (
    BalancePreview,
    LegacyTransactionType,
    TaxonomyVersion,
    TransactionClass,
    TransactionType,
)
from bank_admin.services.money import format_currency, format_decimal, parse_signed, quantize, to_decimal

logger = logging.getLogger(__name__)

CREDIT_TYPES = frozenset({
    TransactionType.ACH_CREDIT.value,
    TransactionType.ACH_EMPLOYEE_PAYMENT.value,
    TransactionType.ACH_VENDOR_PAYMENT.value,
    TransactionType.DEPOSIT.value,
    TransactionType.INCOMING_WIRE_TRANSFER.value,
    TransactionType.MISC_CREDIT.value,
    TransactionType.REFUND.value,
    TransactionType.ZELLE_CREDIT.value,
})

DEBIT_TYPES = frozenset({
    TransactionType.ACH_DEBIT.value,
    TransactionType.ATM_TRANSACTION.value,
    TransactionType.BILL_PAYMENT.value,
    TransactionType.CARD.value,
    TransactionType.LOAN_PAYMENT.value,
    TransactionType.MISC_DEBIT.value,
    TransactionType.OUTGOING_WIRE_TRANSFER.value,
    TransactionType.OVERNIGHT_CHECK.value,
    TransactionType.TAX_PAYMENT.value,
    TransactionType.EGIFT_DEBIT.value,
    TransactionType.ZELLE_DEBIT.value,
})

NEUTRAL_TYPES = frozenset({
    TransactionType.ACCOUNT_TRANSFER.value,
    TransactionType.ADJUSTMENT_OR_REVERSAL.value,
    TransactionType.RETURNED_DEPOSIT_ITEM.value,
    TransactionType.CHECKS_UNDER_2_YEARS.value,
    TransactionType.CHECKS_OVER_2_YEARS.value,
})

CURRENT_TYPES = CREDIT_TYPES | DEBIT_TYPES | NEUTRAL_TYPES

# Legacy direction is carried by the receiving flag; only credit/debit/fee
# say anything about it on their own.
LEGACY_CLASSES = {
    LegacyTransactionType.CREDIT.value: TransactionClass.CREDIT,
    LegacyTransactionType.DEBIT.value: TransactionClass.DEBIT,
    LegacyTransactionType.FEE.value: TransactionClass.DEBIT,
    LegacyTransactionType.ACH.value: TransactionClass.NEUTRAL,
    LegacyTransactionType.WIRE.value: TransactionClass.NEUTRAL,
    LegacyTransactionType.OTHER.value: TransactionClass.NEUTRAL,
}

ZERO = Decimal("0")

AmountLike = Union[Decimal, int, float, str]


class UnknownTransactionType(ValueError):
    """Raised for a tag that is not part of the active taxonomy."""

    def __init__(self, transaction_type, version: TaxonomyVersion = TaxonomyVersion.CURRENT):
        self.transaction_type = transaction_type
        self.version = TaxonomyVersion(version)
        super().__init__(
            f"Unknown transaction type {transaction_type!r} for the {self.version.value} taxonomy"
        )


def _tag(transaction_type) -> Optional[str]:
    if isinstance(transaction_type, (TransactionType, LegacyTransactionType)):
        return transaction_type.value
    return transaction_type if isinstance(transaction_type, str) else None


def _positive_amount(amount: AmountLike) -> Decimal:
    value = to_decimal(amount)
    if not value.is_finite() or value <= 0:
        raise ValueError(f"Amount must be greater than 0, got {amount!r}")
    return value


def classify(transaction_type) -> TransactionClass:
    """
    Classify a current-taxonomy transaction type.

    Args:
        transaction_type: Tag such as "deposit" or "card"

    Returns:
        TransactionClass.CREDIT, DEBIT or NEUTRAL

    Raises:
        UnknownTransactionType: for any tag outside the current taxonomy
    """
    tag = _tag(transaction_type)
    if tag in CREDIT_TYPES:
        return TransactionClass.CREDIT
    if tag in DEBIT_TYPES:
        return TransactionClass.DEBIT
    if tag in NEUTRAL_TYPES:
        return TransactionClass.NEUTRAL
    raise UnknownTransactionType(transaction_type)


def classify_legacy(transaction_type) -> TransactionClass:
    tag = _tag(transaction_type)
    try:
        return LEGACY_CLASSES[tag]
    except KeyError:
        raise UnknownTransactionType(transaction_type, TaxonomyVersion.LEGACY) from None


def preview_delta(transaction_type, amount: AmountLike, is_pending: bool) -> Decimal:
    """
    Signed change to the displayed balance for a current-taxonomy draft.

    Pending transactions never move the projected balance.
    """
    value = _positive_amount(amount)
    txn_class = classify(transaction_type)
    if is_pending:
        return ZERO
    if txn_class == TransactionClass.CREDIT:
        return value
    if txn_class == TransactionClass.DEBIT:
        return -value
    return ZERO


def preview_delta_legacy(transaction_type, amount: AmountLike, is_receiving: bool) -> Decimal:
    """Deprecated legacy rule: the receiving flag alone decides the sign."""
    value = _positive_amount(amount)
    classify_legacy(transaction_type)
    return value if is_receiving else -value


def build_submission_amount(
    transaction_type,
    amount: AmountLike,
    flag: bool,
    version: TaxonomyVersion = TaxonomyVersion.CURRENT,
) -> str:
    """
    Signed amount sent to the bank API, as a two-decimal string.

    For the current taxonomy ``flag`` is ``is_pending`` and does not affect
    the sign: the backend stores the eventual effect of pending items.
    Neutral types pass the amount through as positive.

    For the legacy taxonomy ``flag`` is ``is_receiving`` and the sign follows
    ``preview_delta_legacy``.
    """
    if TaxonomyVersion(version) == TaxonomyVersion.LEGACY:
        return format_decimal(preview_delta_legacy(transaction_type, amount, flag))

    value = _positive_amount(amount)
    if classify(transaction_type) == TransactionClass.DEBIT:
        return format_decimal(-value)
    return format_decimal(value)


def format_amount_label(
    amount: AmountLike,
    transaction_type,
    version: TaxonomyVersion = TaxonomyVersion.CURRENT,
) -> str:
    """Display label for a historical transaction, e.g. "+$3,500.00"."""
    if TaxonomyVersion(version) == TaxonomyVersion.LEGACY:
        txn_class = classify_legacy(transaction_type)
    else:
        txn_class = classify(transaction_type)
    sign = "+" if txn_class == TransactionClass.CREDIT else "-"
    return f"{sign}{format_currency(to_decimal(amount))}"


def parse_amount_label(label: str) -> Tuple[Decimal, int]:
    """Inverse of ``format_amount_label``: (unsigned amount, +1 or -1)."""
    return parse_signed(label)


class TransactionClassifier:
    """Binds the sign rules to one taxonomy generation."""

    def __init__(self, version: TaxonomyVersion = TaxonomyVersion.CURRENT):
        self.version = TaxonomyVersion(version)
        if self.version == TaxonomyVersion.LEGACY:
            logger.warning(
                "Legacy transaction taxonomy is deprecated; the sign follows the receiving flag"
            )

    @property
    def transaction_types(self) -> Tuple[str, ...]:
        if self.version == TaxonomyVersion.LEGACY:
            return tuple(member.value for member in LegacyTransactionType)
        return tuple(member.value for member in TransactionType)

    def classify(self, transaction_type) -> TransactionClass:
        if self.version == TaxonomyVersion.LEGACY:
            return classify_legacy(transaction_type)
        return classify(transaction_type)

    def preview_delta(self, transaction_type, amount: AmountLike, is_pending: bool = False,
                      is_receiving: bool = True) -> Decimal:
        if self.version == TaxonomyVersion.LEGACY:
            return preview_delta_legacy(transaction_type, amount, is_receiving)
        return preview_delta(transaction_type, amount, is_pending)

    def submission_amount(self, transaction_type, amount: AmountLike, is_pending: bool = False,
                          is_receiving: bool = True) -> str:
        flag = is_receiving if self.version == TaxonomyVersion.LEGACY else is_pending
        return build_submission_amount(transaction_type, amount, flag, self.version)

    def amount_label(self, amount: AmountLike, transaction_type) -> str:
        return format_amount_label(amount, transaction_type, self.version)

    def project_balance(
        self,
        current_balance: AmountLike,
        transaction_type,
        amount: AmountLike,
        is_pending: bool = False,
        is_receiving: bool = True,
    ) -> BalancePreview:
        current = to_decimal(current_balance)
        delta = self.preview_delta(transaction_type, amount, is_pending, is_receiving)
        return BalancePreview(
            current_balance=quantize(current),
            projected_balance=quantize(current + delta),
            delta=quantize(delta),
        )


@lru_cache(maxsize=None)
def _classifier_for(version: TaxonomyVersion) -> TransactionClassifier:
    return TransactionClassifier(version)


def get_transaction_classifier(version: Optional[TaxonomyVersion] = None) -> TransactionClassifier:
    """Classifier for the configured taxonomy unless a version is given."""
    if version is None:
        from bank_admin.config import settings
        version = settings.TRANSACTION_TAXONOMY
    return _classifier_for(TaxonomyVersion(version))
