"""
Transaction Categorizer Module

Assigns spending/income categories by keyword-matching descriptions against
the configured category tables.
"""

import logging

from .config import ImporterConfig, get_default_config
from .matching import first_match
from .models import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    OTHER_CATEGORY,
    TransactionType,
)

logger = logging.getLogger(__name__)


class TransactionCategorizer:
    """Categorizes transactions using keyword tables."""

    ALLOWED_CATEGORIES = {
        TransactionType.INCOME: INCOME_CATEGORIES,
        TransactionType.EXPENSE: EXPENSE_CATEGORIES,
    }

    def __init__(self, config: ImporterConfig | None = None):
        """Initialize the categorizer.

        Args:
            config: Importer configuration; defaults to the bundled tables
        """
        self.config = config or get_default_config()

    def categorize(self, description: str | None, transaction_type: TransactionType) -> str:
        """Pick a category for a description.

        Args:
            description: Transaction description
            transaction_type: Resolved direction of the transaction

        Returns:
            First category whose keywords appear in the description, or
            "Other"
        """
        patterns = self.config.category_patterns[transaction_type]
        category = first_match((description or "").lower(), patterns)
        return category or OTHER_CATEGORY

    def is_valid_category(self, category: str | None, transaction_type: TransactionType) -> bool:
        return category in self.ALLOWED_CATEGORIES[transaction_type]

    def validate_category(self, category: str | None, transaction_type: TransactionType) -> str:
        """Return the category if allowed for the type, else "Other"."""
        if self.is_valid_category(category, transaction_type):
            return category

        logger.debug(
            f"Category {category!r} is not a {transaction_type.value} category, "
            f"using {OTHER_CATEGORY!r}"
        )
        return OTHER_CATEGORY

    def resolve(
        self,
        description: str | None,
        transaction_type: TransactionType,
        override: str | None = None
    ) -> str:
        """Final category for a row: the user's override if any, else the
        auto-detected one, validated against the type."""
        category = override or self.categorize(description, transaction_type)
        return self.validate_category(category, transaction_type)

    def categories_for(self, transaction_type: TransactionType) -> list[str]:
        """Allowed categories for a type, as offered in a picker."""
        categories = list(self.ALLOWED_CATEGORIES[transaction_type])
        if transaction_type is TransactionType.EXPENSE:
            return sorted(categories)
        return categories
