"""
Import Data Models

Transaction vocabularies and the records that flow through the import
pipeline: draft rows, final transactions, duplicate records and the
import result.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any


class TransactionType(Enum):
    """Transaction direction."""
    INCOME = "income"
    EXPENSE = "expense"


class TransactionMode(Enum):
    """Payment method / channel."""
    CASH = "Cash"
    CARD = "Card"
    UPI = "UPI"
    NET_BANKING = "Net Banking"
    CHEQUE = "Cheque"
    BANK_TRANSFER = "Bank Transfer"
    WALLET = "Wallet"
    NEFT = "NEFT"
    IMPS = "IMPS"
    RTGS = "RTGS"
    OTHER = "Other"


OTHER_CATEGORY = "Other"

INCOME_CATEGORIES = (
    "Salary",
    "Freelance",
    "Investment",
    "Business",
    "Rental Income",
    "Bonus",
    OTHER_CATEGORY,
)

EXPENSE_CATEGORIES = (
    "Bonds",
    "Dining Out",
    "Education",
    "ELSS",
    "Entertainment",
    "ETF",
    "Gifts & Donations",
    "Groceries",
    "Healthcare",
    "Housing",
    "Insurance",
    "Investments",
    "Loan Payments",
    "Miscellaneous Expenses",
    "Mutual Funds",
    "NPS",
    OTHER_CATEGORY,
    "Personal Care",
    "PPF",
    "REIT",
    "Shopping",
    "SIP",
    "Subscriptions",
    "Transportation",
    "Travel",
    "Utilities",
)

CENTS = Decimal("0.01")


def round_amount(amount: Decimal | float | int | str) -> Decimal:
    """Round an amount to 2 decimal places (half-up)."""
    if not isinstance(amount, Decimal):
        amount = Decimal(str(amount))
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


class SkipReason(str, Enum):
    """Per-row rejection causes, keyed as reported to the user."""
    MISSING_FIELDS = "missingFields"
    INVALID_DATE = "invalidDate"
    ZERO_AMOUNT = "zeroAmount"
    DUPLICATE = "duplicate"
    DISPATCH_ERROR = "dispatchError"


class DuplicateReason(str, Enum):
    """Why a candidate was rejected as a duplicate."""
    EXISTS_IN_DATABASE = "exists_in_database"
    DUPLICATE_IN_BATCH = "duplicate_in_batch"


@dataclass
class DraftTransaction:
    """Unvalidated, string-typed row taken from a statement."""

    date: str = ""
    description: str = ""
    amount: str = ""
    type: str = ""  # 'credit', 'debit', an explicit type cell, or ''
    mode: str = ""
    balance: str = ""
    raw: list[str] = field(default_factory=list)

    @property
    def has_required_fields(self) -> bool:
        return bool(self.date and self.description and self.amount)


@dataclass(frozen=True)
class Transaction:
    """A normalized, categorized transaction ready for the app's store."""

    id: str
    type: TransactionType
    date: date
    mode: TransactionMode
    description: str
    category: str
    amount: Decimal
    created_at: datetime
    imported: bool = True

    @property
    def is_income(self) -> bool:
        return self.type is TransactionType.INCOME

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "date": self.date.isoformat(),
            "mode": self.mode.value,
            "description": self.description,
            "category": self.category,
            "amount": float(self.amount),
            "createdAt": self.created_at.isoformat(),
            "imported": self.imported,
        }


@dataclass
class DuplicateRecord:
    """A candidate rejected by the duplicate detector."""

    transaction: Any  # Transaction or a record mapping
    index: int
    reason: DuplicateReason

    def to_dict(self) -> dict:
        txn = self.transaction
        return {
            "transaction": txn.to_dict() if hasattr(txn, "to_dict") else dict(txn),
            "index": self.index,
            "reason": self.reason.value,
        }


def empty_skip_reasons() -> dict[str, int]:
    return {reason.value: 0 for reason in SkipReason}


@dataclass
class ImportResult:
    """Outcome of one import run."""

    imported: list[Transaction] = field(default_factory=list)
    skipped: int = 0
    duplicates: list[DuplicateRecord] = field(default_factory=list)
    skip_reasons: dict[str, int] = field(default_factory=empty_skip_reasons)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors and len(self.imported) > 0

    @property
    def imported_count(self) -> int:
        return len(self.imported)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates)

    @property
    def summary(self) -> dict:
        return {
            "imported": self.imported_count,
            "skipped": self.skipped,
            "duplicates": self.duplicate_count,
            "skip_reasons": dict(self.skip_reasons),
            "errors": list(self.errors),
        }

    def message(self) -> str:
        """Build the user-facing outcome message."""
        if self.errors:
            return "; ".join(self.errors)

        if self.imported:
            if self.duplicates:
                return (
                    f"Successfully imported {self.imported_count} transaction(s). "
                    f"{self.duplicate_count} duplicate(s) were skipped."
                )
            return f"Successfully imported {self.imported_count} transaction(s)!"

        reasons = ", ".join(
            f"{reason}: {count}"
            for reason, count in self.skip_reasons.items()
            if count > 0
        )
        return (
            f"No transactions were imported. {self.skipped} transaction(s) were skipped. "
            f"Reasons: {reasons}. Please check the file format and ensure dates, "
            "amounts, and required fields are present."
        )
