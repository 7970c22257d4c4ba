"""
Excel Statement Reader

Reads the first worksheet of an .xlsx/.xlsm statement export with openpyxl.
"""

import logging
from io import BytesIO

from openpyxl import load_workbook

from .base import BaseStatementReader
from .tokenizer import coerce_row

logger = logging.getLogger(__name__)


class ExcelStatementReader(BaseStatementReader):
    """Reader for spreadsheet exports (first sheet, header in first row)."""

    FORMAT = "excel"
    FORMAT_LABEL = "Excel"
    EXTENSIONS = frozenset({".xlsx", ".xlsm"})

    def _read_rows(self, content: bytes | str) -> list[list[str]]:
        if isinstance(content, str):
            raise ValueError("Excel content must be bytes")

        workbook = load_workbook(BytesIO(content), read_only=True, data_only=True)
        try:
            worksheet = workbook.worksheets[0]
            logger.debug(f"Reading worksheet '{worksheet.title}'")
            return [coerce_row(row) for row in worksheet.iter_rows(values_only=True)]
        finally:
            workbook.close()
