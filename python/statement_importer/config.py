"""
Importer Configuration Module

Loads the pattern tables (column headers, category keywords, payment modes)
from YAML and exposes them as immutable, ordered tables.
"""

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from .matching import PatternTable
from .models import EXPENSE_CATEGORIES, INCOME_CATEGORIES, TransactionMode, TransactionType

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).parent / "config"

COLUMN_FIELDS = (
    "serial",
    "date",
    "mode",
    "description",
    "deposits",
    "withdraw",
    "amount",
    "balance",
    "type",
)


@dataclass(frozen=True)
class ImporterConfig:
    """Immutable pattern tables and import settings."""

    column_patterns: Mapping[str, tuple[str, ...]]
    category_patterns: Mapping[TransactionType, PatternTable]
    mode_keywords: PatternTable
    mode_description_patterns: PatternTable
    transaction_code_patterns: PatternTable
    transaction_codes: Mapping[str, str]
    preview_rows: int = 50
    max_file_size: int = 20 * 1024 * 1024  # 20MB
    supported_extensions: frozenset[str] = field(
        default_factory=lambda: frozenset({".csv", ".txt", ".xlsx", ".xlsm"})
    )


def _read_yaml(config_dir: Path, name: str) -> dict:
    config_file = config_dir / name
    if not config_file.exists():
        raise ValueError(f"Config file not found: {config_file}")

    with open(config_file, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_file} must contain a mapping")
    return data


def _keyword_table(section: Any, name: str) -> PatternTable:
    """Convert a ``label -> [keywords]`` mapping into an ordered table."""
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")

    table = []
    for label, keywords in section.items():
        if isinstance(keywords, str):
            keywords = [keywords]
        table.append((str(label), tuple(str(k) for k in keywords or [])))
    return tuple(table)


def _regex_table(section: Any, name: str) -> PatternTable:
    table = _keyword_table(section, name)
    try:
        return tuple(
            (label, tuple(re.compile(p, re.IGNORECASE) for p in patterns))
            for label, patterns in table
        )
    except re.error as e:
        raise ValueError(f"Invalid pattern in '{name}': {e}") from e


def _check_labels(table: PatternTable, allowed: tuple[str, ...], name: str) -> None:
    unknown = [label for label, _ in table if label not in allowed]
    if unknown:
        raise ValueError(f"Unknown labels in '{name}': {', '.join(unknown)}")


def load_config(config_dir: Path | str | None = None) -> ImporterConfig:
    """Load importer configuration.

    Args:
        config_dir: Directory holding the YAML tables. Defaults to
            ``STATEMENT_IMPORTER_CONFIG_DIR`` or the bundled config folder.

    Returns:
        ImporterConfig

    Raises:
        ValueError: If a table is missing or malformed
    """
    env_dir = os.getenv("STATEMENT_IMPORTER_CONFIG_DIR")
    config_dir = Path(config_dir or env_dir or DEFAULT_CONFIG_DIR)

    columns = _read_yaml(config_dir, "column_patterns.yaml").get("columns") or {}
    missing = [f for f in COLUMN_FIELDS if f not in columns]
    if missing:
        raise ValueError(f"Column patterns missing fields: {', '.join(missing)}")
    column_patterns = {
        f: tuple(str(v).strip().lower() for v in columns[f] or [])
        for f in COLUMN_FIELDS
    }

    categories = _read_yaml(config_dir, "category_patterns.yaml")
    income = _keyword_table(categories.get("income") or {}, "income")
    expense = _keyword_table(categories.get("expense") or {}, "expense")
    _check_labels(income, INCOME_CATEGORIES, "income")
    _check_labels(expense, EXPENSE_CATEGORIES, "expense")

    modes = _read_yaml(config_dir, "mode_patterns.yaml")
    mode_labels = tuple(m.value for m in TransactionMode)
    mode_keywords = _keyword_table(modes.get("mode_keywords") or {}, "mode_keywords")
    mode_description = _regex_table(
        modes.get("description_patterns") or {}, "description_patterns"
    )
    _check_labels(mode_keywords, mode_labels, "mode_keywords")
    _check_labels(mode_description, mode_labels, "description_patterns")

    preview_rows = int(os.getenv("STATEMENT_IMPORTER_PREVIEW_ROWS", "50"))

    config = ImporterConfig(
        column_patterns=MappingProxyType(column_patterns),
        category_patterns=MappingProxyType({
            TransactionType.INCOME: income,
            TransactionType.EXPENSE: expense,
        }),
        mode_keywords=tuple(
            (label, tuple(k.upper() for k in keywords))
            for label, keywords in mode_keywords
        ),
        mode_description_patterns=mode_description,
        transaction_code_patterns=_regex_table(
            modes.get("transaction_code_patterns") or {}, "transaction_code_patterns"
        ),
        transaction_codes=MappingProxyType({
            str(k): str(v) for k, v in (modes.get("transaction_codes") or {}).items()
        }),
        preview_rows=preview_rows,
    )

    logger.info(
        f"Loaded importer config from {config_dir}: "
        f"{len(income)} income / {len(expense)} expense categories, "
        f"{len(mode_keywords)} mode keyword groups"
    )
    return config


@lru_cache(maxsize=1)
def get_default_config() -> ImporterConfig:
    """Return the bundled configuration, loaded once."""
    return load_config()
