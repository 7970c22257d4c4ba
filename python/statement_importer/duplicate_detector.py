"""
Duplicate Transaction Detector Module

Detects duplicate transactions within an import batch and against the
transactions already stored by the application.
"""

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from .models import DuplicateReason, DuplicateRecord, round_amount

logger = logging.getLogger(__name__)

DuplicateKey = tuple[str, str, str, Decimal | None]

_WHITESPACE = re.compile(r"\s+")


@dataclass
class DuplicateGroup:
    """A transaction and the later items in the same list that repeat it."""

    transaction: Any
    duplicates: list[Any] = field(default_factory=list)
    indices: list[int] = field(default_factory=list)


@dataclass
class DeduplicationResult:
    """Result of filtering a batch for duplicates."""

    unique: list[Any] = field(default_factory=list)
    duplicates: list[DuplicateRecord] = field(default_factory=list)
    stats: dict = field(default_factory=dict)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates)


def normalize_description(description: str | None) -> str:
    """Lower-case, trim and collapse internal whitespace."""
    if not description:
        return ""
    return _WHITESPACE.sub(" ", description.strip().lower())


def _field(transaction: Any, name: str) -> Any:
    if isinstance(transaction, Mapping):
        return transaction.get(name)
    return getattr(transaction, name, None)


def _text(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return "" if value is None else str(value)


def _amount_key(value: Any) -> Decimal | None:
    """Amount rounded to cents; None for a value that is not a number."""
    try:
        return round_amount(value if value is not None else 0)
    except (InvalidOperation, ValueError, TypeError):
        logger.debug(f"Non-numeric amount in duplicate key: {value!r}")
        return None


class DuplicateDetector:
    """Exact-match duplicate detection on a composite key.

    Two transactions are duplicates when date, type, normalized description
    and amount (rounded to cents) are all equal. Works on Transaction objects
    and on record mappings in the app's stored shape.
    """

    def duplicate_key(self, transaction: Any) -> DuplicateKey:
        """Build the composite key for a transaction.

        Args:
            transaction: Transaction or record mapping

        Returns:
            (date, type, normalized description, amount) tuple
        """
        return (
            _text(_field(transaction, "date")),
            _text(_field(transaction, "type")),
            normalize_description(_field(transaction, "description")),
            _amount_key(_field(transaction, "amount")),
        )

    def is_duplicate(self, txn1: Any, txn2: Any) -> bool:
        if txn1 is None or txn2 is None:
            return False
        return self.duplicate_key(txn1) == self.duplicate_key(txn2)

    def has_duplicate(self, transaction: Any, existing_transactions: Iterable[Any]) -> bool:
        """Check a single transaction against existing ones."""
        if transaction is None:
            return False
        key = self.duplicate_key(transaction)
        return any(self.duplicate_key(t) == key for t in existing_transactions)

    def find_duplicates(self, transactions: Sequence[Any]) -> list[DuplicateGroup]:
        """Group equal-key transactions within one list.

        Returns:
            One group per key that occurs more than once, ordered by first
            occurrence
        """
        groups: dict[DuplicateKey, DuplicateGroup] = {}

        for index, txn in enumerate(transactions):
            key = self.duplicate_key(txn)
            group = groups.get(key)
            if group is None:
                groups[key] = DuplicateGroup(transaction=txn, indices=[index])
            else:
                group.duplicates.append(txn)
                group.indices.append(index)

        return [g for g in groups.values() if g.duplicates]

    def filter_duplicates(
        self,
        transactions: Sequence[Any],
        existing_transactions: Iterable[Any] | None = None,
        indices: Sequence[int] | None = None
    ) -> DeduplicationResult:
        """Split a batch into unique transactions and rejected duplicates.

        Args:
            transactions: New transactions, in batch order
            existing_transactions: Already-stored transactions
            indices: Index to report for each transaction; defaults to its
                position in ``transactions``

        Returns:
            DeduplicationResult; the first occurrence within the batch is kept
        """
        result = DeduplicationResult()
        if indices is None:
            indices = range(len(transactions))

        existing_keys = {self.duplicate_key(t) for t in existing_transactions or []}
        seen_in_batch: set[DuplicateKey] = set()

        for index, txn in zip(indices, transactions):
            key = self.duplicate_key(txn)

            if key in existing_keys:
                reason = DuplicateReason.EXISTS_IN_DATABASE
            elif key in seen_in_batch:
                reason = DuplicateReason.DUPLICATE_IN_BATCH
            else:
                seen_in_batch.add(key)
                result.unique.append(txn)
                continue

            logger.debug(f"Row {index} rejected as duplicate ({reason.value})")
            result.duplicates.append(
                DuplicateRecord(transaction=txn, index=index, reason=reason)
            )

        total = len(transactions)
        result.stats = {
            "total_checked": total,
            "unique": len(result.unique),
            "exists_in_database": sum(
                1 for d in result.duplicates if d.reason is DuplicateReason.EXISTS_IN_DATABASE
            ),
            "duplicate_in_batch": sum(
                1 for d in result.duplicates if d.reason is DuplicateReason.DUPLICATE_IN_BATCH
            ),
            "duplicate_rate": result.duplicate_count / total if total > 0 else 0,
        }

        return result
