"""
CSV Statement Reader

Reads comma-separated statement exports line by line.
"""

import logging

from .base import BaseStatementReader
from .tokenizer import split_lines, tokenize_line

logger = logging.getLogger(__name__)


class CSVStatementReader(BaseStatementReader):
    """Reader for CSV (and plain-text CSV) exports."""

    FORMAT = "csv"
    FORMAT_LABEL = "CSV"
    EXTENSIONS = frozenset({".csv", ".txt"})

    ENCODINGS = ("utf-8-sig", "latin-1")

    def __init__(self, max_file_size: int = 20 * 1024 * 1024, delimiter: str = ","):
        super().__init__(max_file_size=max_file_size)
        self.delimiter = delimiter

    def decode(self, content: bytes) -> str:
        """Decode file bytes, falling back to latin-1."""
        for encoding in self.ENCODINGS[:-1]:
            try:
                return content.decode(encoding)
            except UnicodeDecodeError:
                logger.debug(f"Content is not {encoding}, trying next encoding")
        return content.decode(self.ENCODINGS[-1])

    def _read_rows(self, content: bytes | str) -> list[list[str]]:
        if isinstance(content, bytes):
            content = self.decode(content)

        return [tokenize_line(line, self.delimiter) for line in split_lines(content)]
