"""
Statement Import Orchestrator

Runs the import pipeline: read file, map columns, extract draft rows,
preview with category overrides, then normalize, categorize and
deduplicate on commit.
"""

import logging
import os
import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from .categorizer import TransactionCategorizer
from .config import ImporterConfig, get_default_config
from .duplicate_detector import DuplicateDetector
from .extractor import RowExtractor
from .models import (
    DraftTransaction,
    ImportResult,
    SkipReason,
    Transaction,
    round_amount,
)
from .normalizer import ModeDetector, detect_transaction_type, parse_amount, parse_date
from .parsers import (
    ColumnMapping,
    LEGACY_EXCEL_EXTENSIONS,
    CSVStatementReader,
    StatementSheet,
    coerce_row,
    detect_column_mapping,
    is_blank,
    read_statement,
)

logger = logging.getLogger(__name__)


class ImportState(Enum):
    """Import session state."""
    IDLE = "idle"
    FILE_SELECTED = "file_selected"
    ROWS_EXTRACTED = "rows_extracted"
    PREVIEWED = "previewed"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


@dataclass
class PreviewRow:
    """One extracted row as shown before commit."""

    index: int
    draft: DraftTransaction
    transaction: Transaction | None
    category: str
    skip_reason: SkipReason | None = None
    is_duplicate: bool = False
    category_overridden: bool = False

    @property
    def will_import(self) -> bool:
        return self.transaction is not None and not self.is_duplicate


class StatementImporter:
    """Stateful import session for one bank statement at a time."""

    def __init__(
        self,
        config: ImporterConfig | None = None,
        clock: Callable[[], datetime] | None = None
    ):
        """Initialize the importer.

        Args:
            config: Importer configuration; defaults to the bundled tables
            clock: Source of ``created_at`` timestamps
        """
        self.config = config or get_default_config()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.mode_detector = ModeDetector(self.config)
        self.categorizer = TransactionCategorizer(self.config)
        self.detector = DuplicateDetector()
        self.reset()

    def reset(self) -> None:
        """Discard any loaded statement and return to IDLE."""
        self.state = ImportState.IDLE
        self.sheet: StatementSheet | None = None
        self.mapping: ColumnMapping | None = None
        self.drafts: list[DraftTransaction] = []
        self.overrides: dict[int, str] = {}

    # ---- loading -------------------------------------------------------

    def load_file(self, file_path: Path | str) -> StatementSheet:
        """Read and extract a statement file (CSV or .xlsx)."""
        file_path = Path(file_path)
        ext = file_path.suffix.lower()

        if ext and ext not in self.config.supported_extensions | LEGACY_EXCEL_EXTENSIONS:
            sheet = StatementSheet(source="unknown", file_name=file_path.name)
            sheet.errors.append(
                "Please upload a CSV or Excel file (.csv, .xlsx). "
                f"Unsupported file type: {ext}"
            )
            return self._load(sheet)

        sheet = read_statement(file_path, max_file_size=self.config.max_file_size)
        return self._load(sheet)

    def load_text(self, content: str, file_name: str | None = None) -> StatementSheet:
        """Read and extract CSV text already in memory."""
        reader = CSVStatementReader(max_file_size=self.config.max_file_size)
        return self._load(reader.parse_content(content, file_name=file_name))

    def load_rows(
        self,
        rows: Iterable[Sequence[Any]],
        file_name: str | None = None
    ) -> StatementSheet:
        """Extract a spreadsheet cell grid whose first row is the header."""
        sheet = StatementSheet(source="rows", file_name=file_name)
        grid = [r for r in (coerce_row(row) for row in rows) if not is_blank(r)]
        if len(grid) < 2:
            sheet.errors.append("Statement appears to be empty or invalid")
        else:
            sheet.headers = grid[0]
            sheet.rows = grid[1:]
        return self._load(sheet)

    def _load(self, sheet: StatementSheet) -> StatementSheet:
        self.reset()

        if not sheet.success:
            logger.warning(f"Import aborted for {sheet.file_name}: {'; '.join(sheet.errors)}")
            return sheet

        self.state = ImportState.FILE_SELECTED
        self.sheet = sheet

        self.mapping = detect_column_mapping(sheet.headers, self.config.column_patterns)
        missing = self.mapping.missing_essentials
        if missing:
            sheet.warnings.append(f"Could not detect columns: {', '.join(missing)}")

        extractor = RowExtractor(self.mapping, self.mode_detector)
        self.drafts = extractor.extract_all(sheet.rows)

        if not self.drafts:
            sheet.errors.append("No valid transactions found in the file")
            logger.warning(f"No data rows in {sheet.file_name}")
            self.reset()
            return sheet

        self.state = ImportState.ROWS_EXTRACTED
        logger.info(f"Extracted {len(self.drafts)} draft transactions from {sheet.file_name}")
        return sheet

    # ---- preview -------------------------------------------------------

    def _require(self, *states: ImportState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise RuntimeError(f"Importer is {self.state.value}; expected one of: {allowed}")

    def preview(self, existing_transactions: Iterable[Any] = ()) -> list[PreviewRow]:
        """Normalize every draft and flag the rows that commit would drop.

        Args:
            existing_transactions: Transactions already stored by the app

        Returns:
            One PreviewRow per extracted draft
        """
        self._require(ImportState.ROWS_EXTRACTED, ImportState.PREVIEWED)

        rows = []
        for index, draft in enumerate(self.drafts):
            override = self.overrides.get(index)
            try:
                txn, reason = self._prepare(draft, override, txn_id=f"preview-{index}")
            except Exception:
                logger.exception(f"Failed to preview row {index}")
                txn, reason = None, SkipReason.DISPATCH_ERROR

            if txn is not None:
                category = txn.category
            else:
                category = override or ""
            rows.append(PreviewRow(
                index=index,
                draft=draft,
                transaction=txn,
                category=category,
                skip_reason=reason,
                category_overridden=override is not None,
            ))

        candidates = [r for r in rows if r.transaction is not None]
        dedup = self.detector.filter_duplicates(
            [r.transaction for r in candidates],
            existing_transactions,
            indices=[r.index for r in candidates],
        )
        duplicate_indices = {d.index for d in dedup.duplicates}
        for row in candidates:
            row.is_duplicate = row.index in duplicate_indices

        self.state = ImportState.PREVIEWED
        if duplicate_indices:
            logger.info(f"{len(duplicate_indices)} duplicate(s) will be skipped")
        return rows

    def visible_rows(self, rows: Sequence[PreviewRow]) -> list[PreviewRow]:
        """The leading rows shown in the preview table."""
        return list(rows[:self.config.preview_rows])

    def set_category(self, index: int, category: str) -> None:
        """Record a user's category choice for a previewed row.

        The choice is validated against the row's type at commit time.
        """
        self._require(ImportState.PREVIEWED)
        if not 0 <= index < len(self.drafts):
            raise IndexError(f"No draft row at index {index}")
        self.overrides[index] = category

    def categories_for_row(self, row: PreviewRow) -> list[str]:
        """Categories a user may pick for a previewed row."""
        if row.transaction is None:
            return []
        return self.categorizer.categories_for(row.transaction.type)

    def cancel(self) -> None:
        """Drop the loaded statement without importing anything."""
        self.reset()
        self.state = ImportState.CANCELLED

    # ---- commit --------------------------------------------------------

    def _prepare(
        self,
        draft: DraftTransaction,
        override: str | None,
        txn_id: str
    ) -> tuple[Transaction | None, SkipReason | None]:
        """Turn a draft into a Transaction, or report why it is rejected."""
        if not draft.has_required_fields:
            return None, SkipReason.MISSING_FIELDS

        txn_date = parse_date(draft.date)
        if txn_date is None:
            return None, SkipReason.INVALID_DATE

        amount = round_amount(parse_amount(draft.amount))
        if amount == 0:
            return None, SkipReason.ZERO_AMOUNT

        txn_type = detect_transaction_type(draft.amount, draft.type)
        mode = self.mode_detector.resolve(draft.mode, draft.description)
        category = self.categorizer.resolve(draft.description, txn_type, override)

        return Transaction(
            id=txn_id,
            type=txn_type,
            date=txn_date,
            mode=mode,
            description=draft.description.strip(),
            category=category,
            amount=amount,
            created_at=self.clock(),
            imported=True,
        ), None

    def commit(
        self,
        existing_transactions: Iterable[Any] = (),
        id_factory: Callable[[], str] | None = None,
        overrides: Mapping[int, str] | None = None,
        store: Callable[[Transaction], Any] | None = None
    ) -> ImportResult:
        """Build the final transactions and drop duplicates.

        Args:
            existing_transactions: Transactions already stored by the app
            id_factory: Generates transaction ids (uuid4 by default)
            overrides: Extra category overrides by draft index
            store: Called with each accepted transaction; a failure drops
                that transaction and counts it as a dispatch error

        Returns:
            ImportResult
        """
        self._require(ImportState.ROWS_EXTRACTED, ImportState.PREVIEWED)
        id_factory = id_factory or (lambda: str(uuid.uuid4()))
        if overrides:
            self.overrides.update(overrides)

        result = ImportResult()
        prepared: list[Transaction] = []
        indices: list[int] = []

        for index, draft in enumerate(self.drafts):
            try:
                txn, reason = self._prepare(draft, self.overrides.get(index), id_factory())
            except Exception:
                logger.exception(f"Failed to process row {index}")
                txn, reason = None, SkipReason.DISPATCH_ERROR

            if reason is not None:
                logger.debug(f"Row {index} skipped: {reason.value}")
                result.skip_reasons[reason.value] += 1
                result.skipped += 1
                continue

            prepared.append(txn)
            indices.append(index)

        dedup = self.detector.filter_duplicates(prepared, existing_transactions, indices)
        result.duplicates = dedup.duplicates
        result.skip_reasons[SkipReason.DUPLICATE.value] = dedup.duplicate_count
        result.skipped += dedup.duplicate_count

        for txn in dedup.unique:
            if store is not None:
                try:
                    store(txn)
                except Exception:
                    logger.exception(f"Failed to store transaction {txn.id}")
                    result.skip_reasons[SkipReason.DISPATCH_ERROR.value] += 1
                    result.skipped += 1
                    continue
            result.imported.append(txn)

        self.state = ImportState.COMMITTED
        file_name = self.sheet.file_name if self.sheet else None
        logger.info(
            f"Imported {result.imported_count} transaction(s) from {file_name}, "
            f"skipped {result.skipped} ({result.duplicate_count} duplicate(s))"
        )
        if not result.imported:
            logger.warning(result.message())
        return result


def import_statement(
    source: str | os.PathLike | Iterable[Sequence[Any]],
    existing_transactions: Iterable[Any] = (),
    overrides: Mapping[int, str] | None = None,
    config: ImporterConfig | None = None,
    id_factory: Callable[[], str] | None = None,
    file_name: str | None = None
) -> ImportResult:
    """Run the whole import pipeline in one call.

    Args:
        source: A path to a CSV/.xlsx file, CSV text, or a cell grid whose
            first row is the header. A single-line string ending in a
            supported extension is read as a path.
        existing_transactions: Transactions already stored by the app
        overrides: Category overrides by draft index
        config: Importer configuration
        id_factory: Generates transaction ids
        file_name: Name reported in diagnostics

    Returns:
        ImportResult; ``errors`` is set and nothing else when the file
        itself could not be used
    """
    importer = StatementImporter(config)
    existing = list(existing_transactions)

    if isinstance(source, os.PathLike) or _looks_like_path(source, importer.config):
        sheet = importer.load_file(Path(source))
    elif isinstance(source, str):
        sheet = importer.load_text(source, file_name=file_name)
    else:
        sheet = importer.load_rows(source, file_name=file_name)

    if not sheet.success:
        return ImportResult(errors=list(sheet.errors))

    return importer.commit(existing, id_factory=id_factory, overrides=overrides)


def _looks_like_path(source: Any, config: ImporterConfig) -> bool:
    if not isinstance(source, str) or "\n" in source:
        return False
    ext = Path(source).suffix.lower()
    return ext in config.supported_extensions | LEGACY_EXCEL_EXTENSIONS


def remove_imported(transactions: Iterable[Any]) -> tuple[list[Any], int]:
    """Drop every transaction flagged as imported.

    Returns:
        (remaining transactions, number removed)
    """
    kept = []
    removed = 0
    for txn in transactions:
        flag = txn.get("imported") if isinstance(txn, Mapping) else getattr(txn, "imported", False)
        if flag is True:
            removed += 1
        else:
            kept.append(txn)
    return kept, removed
