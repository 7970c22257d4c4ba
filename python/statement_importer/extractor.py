"""
Row Extractor Module

Combines a column mapping with one data row to build a draft transaction.
"""

from collections.abc import Sequence

from .normalizer import ModeDetector, parse_amount, signed_amount
from .models import DraftTransaction
from .parsers.column_mapper import ColumnMapping


class RowExtractor:
    """Builds DraftTransactions from statement rows."""

    def __init__(self, mapping: ColumnMapping, mode_detector: ModeDetector | None = None):
        """Initialize the extractor.

        Args:
            mapping: Column mapping detected from the header row
            mode_detector: Mode normalizer for the mode column
        """
        self.mapping = mapping
        self.mode_detector = mode_detector or ModeDetector()

    def extract(self, row: Sequence[str]) -> DraftTransaction:
        """Extract a draft from one data row.

        Amount and direction come from the deposit column, then the
        withdrawal column, then the generic amount column, whichever first
        holds a positive amount. The draft amount stays empty otherwise.

        Args:
            row: Data row cells

        Returns:
            DraftTransaction
        """
        get = self.mapping.get

        deposit_value = get(row, "deposits")
        withdraw_value = get(row, "withdraw")
        amount_value = get(row, "amount")
        type_value = get(row, "type")

        amount = ""
        txn_type = ""

        if parse_amount(deposit_value) > 0:
            amount = deposit_value
            txn_type = "credit"
        elif parse_amount(withdraw_value) > 0:
            amount = withdraw_value
            txn_type = "debit"
        elif self.mapping.has("amount") and parse_amount(amount_value) > 0:
            amount = amount_value
            if type_value:
                txn_type = type_value.lower()
            else:
                txn_type = "debit" if signed_amount(amount_value) < 0 else "credit"

        mode = self.mode_detector.normalize_mode(get(row, "mode"))

        return DraftTransaction(
            date=get(row, "date"),
            description=get(row, "description"),
            amount=amount,
            type=txn_type,
            mode=mode.value if mode else "",
            balance=get(row, "balance"),
            raw=list(row),
        )

    def extract_all(self, rows: Sequence[Sequence[str]]) -> list[DraftTransaction]:
        """Extract drafts for every row, preserving order."""
        return [self.extract(row) for row in rows]
