"""
Field Normalizer Module

Parses raw statement cells into dates, amounts, transaction direction and
payment mode.
"""

import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from dateutil import parser as date_parser

from .config import ImporterConfig, get_default_config
from .matching import all_matches, first_match, searches
from .models import TransactionMode, TransactionType

logger = logging.getLogger(__name__)

# Day-first formats come before month-first ones: "03-04-2024" reads as
# 3 April 2024.
DATE_FORMATS = [
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%d.%m.%Y",
    "%Y-%m-%d",
    "%m-%d-%Y",
    "%m/%d/%Y",
    "%m.%d.%Y",
    "%d-%b-%Y",   # 01-Jan-2024
    "%d %b %Y",   # 01 Jan 2024
    "%d-%b-%y",   # 01-Jan-24
    "%d/%b/%Y",
    "%Y/%m/%d",
    "%Y-%m-%d %H:%M:%S",
    "%d-%m-%Y %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
]

_FALLBACK_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_NUMBER_PREFIX = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)")

_INCOME_HINT = re.compile(r"credit|income|\bcr\b", re.IGNORECASE)
_EXPENSE_HINT = re.compile(r"debit|expense|\bdr\b", re.IGNORECASE)


def parse_date(value: Any) -> date | None:
    """Parse a statement date cell.

    Tries each of DATE_FORMATS strictly, then a permissive day-first parse
    that must find a day, month and year in the text.

    Args:
        value: Date cell (string, date or datetime)

    Returns:
        Calendar date, or None if the value cannot be parsed
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        return None

    date_str = str(value).strip()
    if not date_str:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    try:
        first, second = (
            date_parser.parse(date_str, dayfirst=True, default=default)
            for default in _FALLBACK_DEFAULTS
        )
    except (ValueError, OverflowError):
        logger.debug(f"Cannot parse date: {date_str!r}")
        return None

    # Differing results mean a day, month or year came from the default
    if first.date() != second.date():
        logger.debug(f"Incomplete date: {date_str!r}")
        return None
    return first.date()


def signed_amount(value: Any) -> Decimal:
    """Parse an amount cell keeping its sign.

    Everything except digits, '.' and '-' is stripped and the leading numeric
    part is used. Unparseable input gives 0.
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    cleaned = _NON_NUMERIC.sub("", str(value).strip())
    match = _NUMBER_PREFIX.match(cleaned)
    if not match:
        return Decimal("0")

    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return Decimal("0")


def parse_amount(value: Any) -> Decimal:
    """Parse an amount cell into a non-negative magnitude.

    >>> parse_amount("₹1,234.56")
    Decimal('1234.56')
    """
    return abs(signed_amount(value))


def detect_transaction_type(amount: Any, type_hint: str | None = None) -> TransactionType:
    """Infer income/expense for a row.

    An explicit type hint wins ("credit"/"cr"/"income" vs "debit"/"dr"/
    "expense"); otherwise a negative amount means expense.

    Args:
        amount: Raw or parsed amount, sign preserved
        type_hint: Explicit type cell or extraction hint

    Returns:
        TransactionType
    """
    if type_hint:
        hint = type_hint.strip()
        if _INCOME_HINT.search(hint):
            return TransactionType.INCOME
        if _EXPENSE_HINT.search(hint):
            return TransactionType.EXPENSE

    if signed_amount(amount) < 0:
        return TransactionType.EXPENSE
    return TransactionType.INCOME


class ModeDetector:
    """Resolves the payment mode of a row from its mode cell or description."""

    def __init__(self, config: ImporterConfig | None = None):
        """Initialize the detector.

        Args:
            config: Importer configuration; defaults to the bundled tables
        """
        self.config = config or get_default_config()
        self._labels = {
            m.value.upper(): m for m in TransactionMode if m is not TransactionMode.OTHER
        }

    def normalize_mode(self, value: str | None) -> TransactionMode | None:
        """Normalize an explicit mode cell; None if it names no known mode."""
        if not value or not value.strip():
            return None

        mode_upper = value.strip().upper()
        if mode_upper in self._labels:
            return self._labels[mode_upper]

        label = first_match(mode_upper, self.config.mode_keywords)
        return TransactionMode(label) if label else None

    def detect_from_description(self, description: str | None) -> TransactionMode:
        """Derive the mode from transaction-code patterns in a description."""
        if not description:
            return TransactionMode.OTHER

        label = first_match(
            description.upper(), self.config.mode_description_patterns, searches
        )
        return TransactionMode(label) if label else TransactionMode.OTHER

    def resolve(self, mode_value: str | None, description: str | None) -> TransactionMode:
        """Mode from the mode cell, else from the description, else Other."""
        return self.normalize_mode(mode_value) or self.detect_from_description(description)

    def transaction_codes(self, description: str | None) -> list[tuple[str, str]]:
        """List the bank transaction codes recognized in a description.

        Returns:
            (code, legend) pairs in table order
        """
        codes = all_matches(
            (description or "").upper(), self.config.transaction_code_patterns, searches
        )
        return [(code, self.config.transaction_codes.get(code, code)) for code in codes]
