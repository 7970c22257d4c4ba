"""
Column Mapper

Infers which header column holds each semantic field of a bank statement.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass
from typing import Any

from ..matching import contains, contains_word, starts_word

logger = logging.getLogger(__name__)

NOT_FOUND = -1

# Shorter variants must start a word in the header
MIN_FRAGMENT_LENGTH = 2


@dataclass(frozen=True)
class ColumnMapping:
    """Zero-based column index per field, or NOT_FOUND."""

    serial: int = NOT_FOUND
    date: int = NOT_FOUND
    mode: int = NOT_FOUND
    description: int = NOT_FOUND
    deposits: int = NOT_FOUND
    withdraw: int = NOT_FOUND
    amount: int = NOT_FOUND
    balance: int = NOT_FOUND
    type: int = NOT_FOUND

    def has(self, field_name: str) -> bool:
        return getattr(self, field_name) != NOT_FOUND

    def get(self, row: Sequence[str], field_name: str) -> str:
        """Read a field's cell from a row; '' when unmapped or missing."""
        index = getattr(self, field_name)
        if 0 <= index < len(row):
            value = row[index]
            return str(value).strip() if value is not None else ""
        return ""

    @property
    def missing_essentials(self) -> list[str]:
        """Essential fields the header did not provide."""
        missing = [f for f in ("date", "description") if not self.has(f)]
        if not (self.has("amount") or self.has("deposits") or self.has("withdraw")):
            missing.append("amount")
        return missing

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def _matches_fragment(header: str, variant: str) -> bool:
    if len(variant) > MIN_FRAGMENT_LENGTH:
        return contains(header, variant)
    return starts_word(header, variant)


def find_column(headers: Sequence[str], variants: Sequence[str]) -> int:
    """Find the column whose header matches one of the variants.

    Whole-cell matches are preferred over substring matches. Substrings that
    form whole words ("deposit" in "deposit amt") rank ahead of bare
    substrings ("withdraw" in "withdrawamt"). Two-letter variants such as
    "cr" must start a word ("cramt"), so "description" never maps to deposits.
    Within each tier the first header in order wins.

    Args:
        headers: Normalized (lower-cased, trimmed) header cells
        variants: Known header-name variants for one field

    Returns:
        Column index, or NOT_FOUND
    """
    for index, header in enumerate(headers):
        if header and header in variants:
            return index

    for index, header in enumerate(headers):
        if header and any(contains_word(header, v) for v in variants):
            return index

    for index, header in enumerate(headers):
        if header and any(_matches_fragment(header, v) for v in variants):
            return index

    return NOT_FOUND


def detect_column_mapping(
    headers: Sequence[Any],
    column_patterns: Mapping[str, Sequence[str]] | None = None,
) -> ColumnMapping:
    """Build a ColumnMapping from a header row.

    Args:
        headers: Header row cells
        column_patterns: Field -> header variants table; defaults to the
            bundled configuration

    Returns:
        ColumnMapping
    """
    if column_patterns is None:
        from ..config import get_default_config
        column_patterns = get_default_config().column_patterns

    normalized = [str(h if h is not None else "").strip().lower() for h in headers]

    mapping = ColumnMapping(**{
        field_name: find_column(normalized, variants)
        for field_name, variants in column_patterns.items()
    })

    logger.info(f"Detected column mapping: {mapping.to_dict()}")
    if mapping.missing_essentials:
        logger.warning(
            f"Could not detect columns: {', '.join(mapping.missing_essentials)}"
        )

    return mapping
