"""
Bank Statement Importer

Reads CSV/Excel bank statements, maps their columns, normalizes dates,
amounts and payment modes, categorizes transactions and drops duplicates
before they reach the application's store.
"""

from .categorizer import TransactionCategorizer
from .config import ImporterConfig, get_default_config, load_config
from .duplicate_detector import DeduplicationResult, DuplicateDetector, DuplicateGroup
from .extractor import RowExtractor
from .importer import (
    ImportState,
    PreviewRow,
    StatementImporter,
    import_statement,
    remove_imported,
)
from .models import (
    DraftTransaction,
    DuplicateReason,
    DuplicateRecord,
    ImportResult,
    SkipReason,
    Transaction,
    TransactionMode,
    TransactionType,
)
from .normalizer import ModeDetector, detect_transaction_type, parse_amount, parse_date
from .parsers import (
    ColumnMapping,
    CSVStatementReader,
    ExcelStatementReader,
    StatementSheet,
    detect_column_mapping,
    read_statement,
    tokenize_line,
)

__all__ = [
    # Import pipeline
    "StatementImporter",
    "ImportState",
    "PreviewRow",
    "import_statement",
    "remove_imported",
    # Models
    "DraftTransaction",
    "Transaction",
    "TransactionType",
    "TransactionMode",
    "ImportResult",
    "SkipReason",
    "DuplicateReason",
    "DuplicateRecord",
    # Configuration
    "ImporterConfig",
    "load_config",
    "get_default_config",
    # File reading
    "CSVStatementReader",
    "ExcelStatementReader",
    "StatementSheet",
    "ColumnMapping",
    "detect_column_mapping",
    "read_statement",
    "tokenize_line",
    # Normalization
    "RowExtractor",
    "ModeDetector",
    "parse_date",
    "parse_amount",
    "detect_transaction_type",
    # Categorization
    "TransactionCategorizer",
    # Duplicate Detection
    "DuplicateDetector",
    "DuplicateGroup",
    "DeduplicationResult",
]
