"""
Add-transaction form state.

A TransactionForm owns one draft for its lifetime: the draft is filled in
field by field, the target account's balance is looked up once and cached,
and the draft is consumed by exactly one successful submission.
"""
import logging
from decimal import Decimal
from typing import Dict, Optional

from bank_admin.models.schemas import BalancePreview, TaxonomyVersion, TransactionDraft
from bank_admin.services.bank_api_client import BankApiClient, BankApiError
from bank_admin.services.transaction_classifier import TransactionClassifier, get_transaction_classifier

logger = logging.getLogger(__name__)


class DraftAlreadySubmitted(RuntimeError):
    """The draft was already consumed by a successful submission."""


class IncompleteDraft(ValueError):
    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(f"Draft is missing: {', '.join(self.missing)}")


class TransactionForm:
    def __init__(
        self,
        classifier: Optional[TransactionClassifier] = None,
        draft: Optional[TransactionDraft] = None,
    ):
        self.classifier = classifier or get_transaction_classifier()
        self.draft = draft or TransactionDraft()
        self.current_balance: Optional[Decimal] = None
        self.error: Optional[str] = None
        self.live = True
        self.submitted = False
        self._balance_email: Optional[str] = None
        self._lookup_generation = 0

    def update(self, **fields) -> None:
        """Apply user input; changing the email drops the cached balance."""
        for name, value in fields.items():
            setattr(self.draft, name, value)
        if "email" in fields and self.draft.email != self._balance_email:
            self.current_balance = None
            self._balance_email = None

    # Balance lookup

    def begin_balance_lookup(self) -> int:
        self._lookup_generation += 1
        return self._lookup_generation

    def _is_current(self, ticket: int) -> bool:
        return self.live and ticket == self._lookup_generation

    def resolve_balance_lookup(self, ticket: int, email: str, balance: Decimal) -> bool:
        """Store a lookup result unless the form closed or a newer lookup started."""
        if not self._is_current(ticket):
            logger.debug("Discarding stale balance lookup for %s", email)
            return False
        self.current_balance = balance
        self._balance_email = email
        self.error = None
        return True

    def fail_balance_lookup(self, ticket: int, message: str) -> bool:
        if not self._is_current(ticket):
            return False
        self.current_balance = None
        self._balance_email = None
        self.error = message
        return True

    def load_balance(self, client: BankApiClient, email: Optional[str] = None) -> Optional[Decimal]:
        email = email or self.draft.email
        if not email:
            return None
        if self.current_balance is not None and email == self._balance_email:
            return self.current_balance

        ticket = self.begin_balance_lookup()
        try:
            balance = client.get_balance_by_email(email)
        except BankApiError as exc:
            logger.warning("Balance lookup failed for %s: %s", email, exc.message)
            self.fail_balance_lookup(ticket, exc.message)
            return None

        self.resolve_balance_lookup(ticket, email, balance)
        return self.current_balance

    # Preview and submission

    def preview(self) -> Optional[BalancePreview]:
        draft = self.draft
        if self.current_balance is None or draft.amount is None or not draft.type:
            return None
        return self.classifier.project_balance(
            self.current_balance,
            draft.type,
            draft.amount,
            is_pending=draft.is_pending,
            is_receiving=draft.is_receiving,
        )

    def build_payload(self) -> Dict:
        draft = self.draft
        missing = draft.missing_fields()
        if missing:
            raise IncompleteDraft(missing)

        payload = {
            "email": draft.email,
            "description": draft.description.strip(),
            "amount": self.classifier.submission_amount(
                draft.type,
                draft.amount,
                is_pending=draft.is_pending,
                is_receiving=draft.is_receiving,
            ),
            "type": draft.type,
            "date": draft.date.isoformat(),
        }
        if self.classifier.version == TaxonomyVersion.LEGACY:
            payload["isReceiving"] = draft.is_receiving
        else:
            payload["isPending"] = draft.is_pending
        return payload

    def submit(self, client: BankApiClient) -> Dict:
        """
        Send the draft to the bank API.

        On failure the draft is kept as is so the user can retry.
        """
        if self.submitted:
            raise DraftAlreadySubmitted("This transaction was already submitted")

        payload = self.build_payload()
        try:
            created = client.create_transaction(payload)
        except BankApiError as exc:
            self.error = exc.message
            raise

        self.submitted = True
        self.error = None
        logger.info("Created %s transaction of %s for %s", payload["type"], payload["amount"], payload["email"])
        return created

    def close(self) -> None:
        """Stop accepting lookup results (the form went away)."""
        self.live = False
