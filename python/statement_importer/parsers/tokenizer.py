"""
Line/Cell Tokenizer

Turns CSV lines and spreadsheet rows into lists of trimmed string cells.
"""

import csv
from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from typing import Any


def tokenize_line(line: str, delimiter: str = ",") -> list[str]:
    """Split one CSV line into cells.

    Quoted spans may contain the delimiter; doubled quotes collapse to one.
    A trailing unmatched quote is tolerated and yields best-effort cells.

    Args:
        line: A single line of CSV text
        delimiter: Field separator

    Returns:
        List of trimmed cells ([] for an empty line)
    """
    if not line or not isinstance(line, str):
        return []

    # Non-strict mode keeps going on malformed quoting instead of raising
    reader = csv.reader(
        [line.rstrip("\r\n")],
        delimiter=delimiter,
        skipinitialspace=True,
        strict=False,
    )
    try:
        cells = next(reader)
    except (csv.Error, StopIteration):
        cells = line.split(delimiter)

    return [c.strip() for c in cells]


def coerce_cell(value: Any) -> str:
    """Render a spreadsheet cell value as a trimmed string."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return format(Decimal(str(value)), "f")
    return str(value).strip()


def coerce_row(cells: Iterable[Any] | None) -> list[str]:
    """Convert a spreadsheet row (already split into cells) to strings."""
    if cells is None:
        return []
    return [coerce_cell(c) for c in cells]


def is_blank(row: list[str]) -> bool:
    """True when a row has no cells or only empty cells."""
    return all(not cell or not cell.strip() for cell in row)


def split_lines(content: str) -> list[str]:
    """Split CSV text into non-blank lines.

    Strips a UTF-8 BOM and normalizes line endings first.
    """
    if content.startswith("\ufeff"):
        content = content[1:]

    content = content.replace("\r\n", "\n").replace("\r", "\n")
    return [line for line in content.split("\n") if line.strip()]
