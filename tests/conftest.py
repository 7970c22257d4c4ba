"""
Pytest configuration and fixtures for statement importer tests.
"""

import shutil
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

sys.path.insert(0, str(PROJECT_ROOT / "python"))


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def config_dir() -> Path:
    """Return the bundled config directory path."""
    return PROJECT_ROOT / "python" / "statement_importer" / "config"


@pytest.fixture
def config_copy(config_dir: Path, tmp_path: Path) -> Path:
    """Return a writable copy of the config directory."""
    target = tmp_path / "config"
    shutil.copytree(config_dir, target)
    return target


@pytest.fixture
def fixed_clock():
    """Return a clock that always reports the same instant."""
    instant = datetime(2025, 2, 1, 9, 30, tzinfo=timezone.utc)
    return lambda: instant


@pytest.fixture
def sequential_ids():
    """Return an id factory producing txn-1, txn-2, ..."""
    counter = iter(range(1, 10_000))
    return lambda: f"txn-{next(counter)}"


@pytest.fixture
def sample_csv_content() -> str:
    """Return a deposit/withdrawal style statement export."""
    return """Txn Date,Narration,Withdrawal Amt,Deposit Amt,Closing Balance
15-01-2025,Salary credited from XYZ Corp,0,"50,000.00","1,50,000.00"
16-01-2025,UPI/Big Bazaar grocery,"2,345.50",0,"1,47,654.50"
17-01-2025,NEFT rent payment to landlord,"18,000.00",,"1,29,654.50"
18-01-2025,ATM cash withdrawal,500,,"1,29,154.50"
"""


@pytest.fixture
def sample_amount_csv_content() -> str:
    """Return an amount + type column style statement export."""
    return """Date,Description,Mode,Amount,Type
2025-01-15,Cafe Coffee Day,Card,120.00,Debit
2025-01-16,Freelance consulting invoice,NEFT,8000,Credit
2025-01-17,Refund adjustment,,-75.25,
"""


@pytest.fixture
def existing_transactions() -> list[dict]:
    """Return stored transaction records in the app's shape."""
    return [
        {
            "id": "existing-1",
            "type": "income",
            "date": "2025-01-15",
            "mode": "Other",
            "description": "salary credited from xyz corp",
            "category": "Salary",
            "amount": 50000.0,
            "createdAt": "2025-01-20T10:00:00+00:00",
            "imported": True,
        },
        {
            "id": "manual-1",
            "type": "expense",
            "date": "2025-01-10",
            "mode": "Cash",
            "description": "Vegetables",
            "category": "Groceries",
            "amount": 300.0,
            "createdAt": "2025-01-10T08:00:00+00:00",
        },
    ]

