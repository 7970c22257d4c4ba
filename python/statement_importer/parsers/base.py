"""
Base Statement Reader Module

Abstract base class for statement file readers. Readers turn a file into a
header row plus data rows of string cells; they do not interpret the cells.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from .tokenizer import is_blank

logger = logging.getLogger(__name__)


@dataclass
class StatementSheet:
    """Cell grid read from a statement file."""

    source: str
    file_name: str | None = None
    headers: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def row_count(self) -> int:
        return len(self.rows)


class BaseStatementReader(ABC):
    """Abstract base class for statement readers."""

    FORMAT: str = "unknown"
    FORMAT_LABEL: str = "statement"
    EXTENSIONS: frozenset[str] = frozenset()

    def __init__(self, max_file_size: int = 20 * 1024 * 1024):
        """Initialize the reader.

        Args:
            max_file_size: Largest accepted file, in bytes
        """
        self.max_file_size = max_file_size

    def parse_file(self, file_path: Path | str) -> StatementSheet:
        """Read a statement file.

        Args:
            file_path: Path to the file

        Returns:
            StatementSheet
        """
        file_path = Path(file_path)
        sheet = StatementSheet(source=self.FORMAT, file_name=file_path.name)

        try:
            size = file_path.stat().st_size
            if size > self.max_file_size:
                sheet.errors.append(
                    f"File too large. Maximum size: {self.max_file_size // 1024 // 1024}MB"
                )
                return sheet
            content = file_path.read_bytes()
        except OSError as e:
            logger.warning(f"Failed to read {file_path}: {e}")
            sheet.errors.append(f"Failed to read file: {e}")
            return sheet

        return self.parse_content(content, file_name=file_path.name)

    def parse_content(
        self,
        content: bytes | str,
        file_name: str | None = None
    ) -> StatementSheet:
        """Read statement content.

        Args:
            content: Raw file content
            file_name: Original file name, for diagnostics

        Returns:
            StatementSheet with headers and non-blank data rows
        """
        sheet = StatementSheet(source=self.FORMAT, file_name=file_name)

        try:
            rows = [row for row in self._read_rows(content) if not is_blank(row)]
        except Exception as e:
            logger.warning(f"Error parsing {self.FORMAT_LABEL} file {file_name}: {e}")
            sheet.errors.append(
                f"Error parsing {self.FORMAT_LABEL} file. "
                f"Please ensure it's a valid {self.FORMAT_LABEL} file."
            )
            return sheet

        if len(rows) < 2:
            sheet.errors.append(
                f"{self.FORMAT_LABEL} file appears to be empty or invalid"
            )
            return sheet

        sheet.headers = rows[0]
        sheet.rows = rows[1:]

        logger.info(
            f"Read {sheet.row_count} data rows from {file_name or self.FORMAT_LABEL}"
        )
        return sheet

    @abstractmethod
    def _read_rows(self, content: bytes | str) -> list[list[str]]:
        """Split raw content into rows of string cells.

        Args:
            content: Raw file content

        Returns:
            All rows, header first
        """
        pass
