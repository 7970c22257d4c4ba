"""
Statement file readers, tokenizer and column mapping.
"""

from pathlib import Path

from .base import BaseStatementReader, StatementSheet
from .column_mapper import NOT_FOUND, ColumnMapping, detect_column_mapping
from .csv_reader import CSVStatementReader
from .excel_reader import ExcelStatementReader
from .tokenizer import coerce_row, is_blank, split_lines, tokenize_line

LEGACY_EXCEL_EXTENSIONS = frozenset({".xls"})


def get_reader(
    file_name: str | Path,
    max_file_size: int = 20 * 1024 * 1024
) -> BaseStatementReader | None:
    """Pick a reader for a file by its extension.

    Unknown extensions are read as CSV. Returns None for legacy .xls files,
    which openpyxl cannot open.
    """
    ext = Path(file_name).suffix.lower()

    if ext in LEGACY_EXCEL_EXTENSIONS:
        return None
    if ext in ExcelStatementReader.EXTENSIONS:
        return ExcelStatementReader(max_file_size=max_file_size)
    return CSVStatementReader(max_file_size=max_file_size)


def read_statement(
    file_path: str | Path,
    max_file_size: int = 20 * 1024 * 1024
) -> StatementSheet:
    """Convenience function to read a statement file with the right reader.

    Args:
        file_path: Path to a CSV or spreadsheet file

    Returns:
        StatementSheet from the appropriate reader
    """
    reader = get_reader(file_path, max_file_size=max_file_size)
    if reader is None:
        return StatementSheet(
            source="excel",
            file_name=Path(file_path).name,
            errors=["Legacy .xls files are not supported. Please save the file as .xlsx."],
        )
    return reader.parse_file(file_path)


__all__ = [
    "BaseStatementReader",
    "StatementSheet",
    "CSVStatementReader",
    "ExcelStatementReader",
    "ColumnMapping",
    "NOT_FOUND",
    "detect_column_mapping",
    "tokenize_line",
    "coerce_row",
    "is_blank",
    "split_lines",
    "get_reader",
    "read_statement",
]
