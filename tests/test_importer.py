"""
Statement Import Orchestrator Tests

End-to-end tests for loading, previewing and committing bank statements.
"""

import pytest
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "python"))

from openpyxl import Workbook

from statement_importer import (
    DuplicateReason,
    ImportResult,
    ImportState,
    StatementImporter,
    TransactionMode,
    TransactionType,
    get_default_config,
    import_statement,
    remove_imported,
)
from statement_importer import importer as importer_module


def summarize(transactions):
    return [
        (t.date, t.type, t.description, t.amount, t.category, t.mode)
        for t in transactions
    ]


class TestStatementImporter:
    """Tests for the stateful import session."""

    @pytest.fixture
    def importer(self, fixed_clock):
        return StatementImporter(clock=fixed_clock)

    def test_load_text(self, importer, sample_csv_content):
        """Test loading extracts one draft per data row."""
        sheet = importer.load_text(sample_csv_content, file_name="statement.csv")

        assert sheet.success
        assert importer.state is ImportState.ROWS_EXTRACTED
        assert len(importer.drafts) == 4
        assert importer.mapping.deposits == 3

    def test_commit_deposit_withdrawal_statement(
        self, importer, sample_csv_content, fixed_clock, sequential_ids
    ):
        """Test a full import of a deposit/withdrawal statement."""
        importer.load_text(sample_csv_content)
        result = importer.commit([], id_factory=sequential_ids)

        assert result.success
        assert result.imported_count == 4
        assert result.skipped == 0
        assert summarize(result.imported) == [
            (date(2025, 1, 15), TransactionType.INCOME, "Salary credited from XYZ Corp",
             Decimal("50000.00"), "Salary", TransactionMode.OTHER),
            (date(2025, 1, 16), TransactionType.EXPENSE, "UPI/Big Bazaar grocery",
             Decimal("2345.50"), "Groceries", TransactionMode.UPI),
            (date(2025, 1, 17), TransactionType.EXPENSE, "NEFT rent payment to landlord",
             Decimal("18000.00"), "Housing", TransactionMode.NEFT),
            (date(2025, 1, 18), TransactionType.EXPENSE, "ATM cash withdrawal",
             Decimal("500.00"), "Other", TransactionMode.CASH),
        ]
        assert [t.id for t in result.imported] == ["txn-1", "txn-2", "txn-3", "txn-4"]
        assert all(t.imported for t in result.imported)
        assert all(t.created_at == fixed_clock() for t in result.imported)
        assert importer.state is ImportState.COMMITTED

    def test_commit_amount_type_statement(self, importer, sample_amount_csv_content):
        """Test a full import of an amount + type statement."""
        importer.load_text(sample_amount_csv_content)
        result = importer.commit()

        assert summarize(result.imported) == [
            (date(2025, 1, 15), TransactionType.EXPENSE, "Cafe Coffee Day",
             Decimal("120.00"), "Dining Out", TransactionMode.CARD),
            (date(2025, 1, 16), TransactionType.INCOME, "Freelance consulting invoice",
             Decimal("8000.00"), "Freelance", TransactionMode.NEFT),
            (date(2025, 1, 17), TransactionType.EXPENSE, "Refund adjustment",
             Decimal("75.25"), "Other", TransactionMode.OTHER),
        ]

    def test_reimport_imports_nothing(self, sample_csv_content):
        """Test importing the same statement twice yields no new transactions."""
        first = import_statement(sample_csv_content)
        second = import_statement(sample_csv_content, first.imported)

        assert first.imported_count == 4
        assert second.imported == []
        assert second.duplicate_count == 4
        assert all(
            d.reason is DuplicateReason.EXISTS_IN_DATABASE for d in second.duplicates
        )
        assert second.skip_reasons["duplicate"] == 4
        assert second.skipped == 4
        assert not second.success

    def test_reimport_against_stored_records(self, sample_csv_content):
        """Test duplicates are found against records in the stored shape."""
        first = import_statement(sample_csv_content)
        stored = [t.to_dict() for t in first.imported]

        second = import_statement(sample_csv_content, stored)

        assert second.imported == []
        assert second.duplicate_count == 4

    def test_partial_duplicates(self, sample_csv_content, existing_transactions):
        """Test only rows matching stored records are dropped."""
        result = import_statement(sample_csv_content, existing_transactions)

        assert result.imported_count == 3
        assert result.duplicate_count == 1
        assert result.duplicates[0].index == 0
        assert result.message() == (
            "Successfully imported 3 transaction(s). 1 duplicate(s) were skipped."
        )

    def test_malformed_stored_record(self, sample_csv_content):
        """Test a stored record with a bad amount does not abort the import."""
        stored = [{
            "type": "income",
            "date": "2025-01-15",
            "description": "Salary credited from XYZ Corp",
            "amount": "n/a",
        }]

        result = import_statement(sample_csv_content, stored)

        assert result.imported_count == 4
        assert result.duplicate_count == 0

    def test_prefixed_dr_cr_columns(self):
        """Test a DrAmt/CrAmt statement imports both directions."""
        content = (
            "Date,Narration,DrAmt,CrAmt\n"
            "15-01-2025,Coffee,120,\n"
            "16-01-2025,Salary,,5000\n"
        )

        result = import_statement(content)

        assert result.skipped == 0
        assert [(t.description, t.type, t.amount) for t in result.imported] == [
            ("Coffee", TransactionType.EXPENSE, Decimal("120.00")),
            ("Salary", TransactionType.INCOME, Decimal("5000.00")),
        ]

    def test_duplicate_in_batch(self):
        """Test rows 1 and 3 equal: row 1 kept, row 3 flagged."""
        content = (
            "Date,Description,Amount,Type\n"
            "15-01-2025,Coffee Shop,120,Debit\n"
            "15-01-2025,Book Store,300,Debit\n"
            "15-01-2025,coffee  shop,120,Debit\n"
        )

        result = import_statement(content)

        assert [t.description for t in result.imported] == ["Coffee Shop", "Book Store"]
        assert result.duplicate_count == 1
        assert result.duplicates[0].index == 2
        assert result.duplicates[0].reason is DuplicateReason.DUPLICATE_IN_BATCH

    def test_missing_date_skips_before_parsing(self, importer, monkeypatch):
        """Test a row without a date is missingFields and never date-parsed."""
        parsed = []
        original = importer_module.parse_date

        def spy(value):
            parsed.append(value)
            return original(value)

        monkeypatch.setattr(importer_module, "parse_date", spy)

        importer.load_text("Date,Description,Amount\n,Coffee,10\n15-01-2025,Tea,5\n")
        result = importer.commit()

        assert result.imported_count == 1
        assert result.skip_reasons["missingFields"] == 1
        assert result.skipped == 1
        assert parsed == ["15-01-2025"]

    def test_skip_reasons(self, importer):
        """Test each rejection reason is counted."""
        content = (
            "Date,Description,Amount\n"
            "32-13-2025,Bad date,10\n"
            "10:30:00,Time only,10\n"
            "15-01-2025,Rounds to nothing,0.004\n"
            "15-01-2025,,10\n"
            "15-01-2025,No amount,0\n"
            "15-01-2025,Good row,10\n"
        )
        importer.load_text(content)
        result = importer.commit()

        assert result.imported_count == 1
        assert result.skip_reasons == {
            "missingFields": 2,
            "invalidDate": 2,
            "zeroAmount": 1,
            "duplicate": 0,
            "dispatchError": 0,
        }
        assert result.skipped == 5

    def test_nothing_imported_message(self, importer):
        """Test the aggregate message lists every non-zero skip reason."""
        importer.load_text("Date,Description,Amount\n32-13-2025,Bad,10\n,Missing,5\n")
        result = importer.commit()

        assert not result.success
        assert result.message() == (
            "No transactions were imported. 2 transaction(s) were skipped. "
            "Reasons: missingFields: 1, invalidDate: 1. Please check the file format "
            "and ensure dates, amounts, and required fields are present."
        )

    def test_row_exception_is_isolated(self, importer, sample_csv_content, monkeypatch):
        """Test a failure while processing one row does not abort the import."""
        original = importer.categorizer.resolve

        def flaky(description, transaction_type, override=None):
            if "grocery" in description:
                raise RuntimeError("boom")
            return original(description, transaction_type, override)

        monkeypatch.setattr(importer.categorizer, "resolve", flaky)

        importer.load_text(sample_csv_content)
        result = importer.commit()

        assert result.imported_count == 3
        assert result.skip_reasons["dispatchError"] == 1
        assert result.skipped == 1

    def test_store_failure_counts_as_dispatch_error(self, importer, sample_csv_content):
        """Test a failing store callback drops only that transaction."""
        stored = []

        def store(txn):
            if txn.amount == Decimal("500.00"):
                raise IOError("store unavailable")
            stored.append(txn)

        importer.load_text(sample_csv_content)
        result = importer.commit(store=store)

        assert result.imported_count == 3
        assert stored == result.imported
        assert result.skip_reasons["dispatchError"] == 1

    def test_preview(self, importer, sample_csv_content, existing_transactions):
        """Test preview shows candidates and flags duplicates by draft index."""
        importer.load_text(sample_csv_content)
        rows = importer.preview(existing_transactions)

        assert importer.state is ImportState.PREVIEWED
        assert [r.index for r in rows] == [0, 1, 2, 3]
        assert [r.is_duplicate for r in rows] == [True, False, False, False]
        assert [r.category for r in rows] == ["Salary", "Groceries", "Housing", "Other"]
        assert not rows[0].will_import
        assert rows[1].will_import

    def test_preview_shows_skip_reason(self, importer):
        importer.load_text("Date,Description,Amount\n32-13-2025,Bad,10\n15-01-2025,Tea,5\n")
        rows = importer.preview()

        assert rows[0].transaction is None
        assert rows[0].skip_reason.value == "invalidDate"
        assert rows[1].skip_reason is None

    def test_category_overrides(self, importer, sample_csv_content):
        """Test a valid override is honored and an invalid one becomes Other."""
        importer.load_text(sample_csv_content)
        importer.preview()
        importer.set_category(1, "Shopping")
        importer.set_category(2, "Bonus")

        rows = importer.preview()
        assert rows[1].category == "Shopping"
        assert rows[1].category_overridden
        assert rows[2].category == "Other"

        result = importer.commit()
        assert [t.category for t in result.imported] == [
            "Salary", "Shopping", "Other", "Other"
        ]

    def test_categories_for_row(self, importer, sample_csv_content):
        importer.load_text(sample_csv_content)
        rows = importer.preview()

        assert "Bonus" in importer.categories_for_row(rows[0])
        assert "Groceries" in importer.categories_for_row(rows[1])

    def test_visible_rows(self, fixed_clock, sample_csv_content):
        """Test the preview table is limited to the configured row count."""
        config = replace(get_default_config(), preview_rows=2)
        importer = StatementImporter(config, clock=fixed_clock)
        importer.load_text(sample_csv_content)

        rows = importer.preview()

        assert len(rows) == 4
        assert [r.index for r in importer.visible_rows(rows)] == [0, 1]

    def test_set_category_requires_preview(self, importer, sample_csv_content):
        importer.load_text(sample_csv_content)

        with pytest.raises(RuntimeError):
            importer.set_category(0, "Bonus")

    def test_set_category_bad_index(self, importer, sample_csv_content):
        importer.load_text(sample_csv_content)
        importer.preview()

        with pytest.raises(IndexError):
            importer.set_category(99, "Bonus")

    def test_commit_requires_rows(self, importer):
        """Test commit is rejected before a statement is loaded."""
        with pytest.raises(RuntimeError):
            importer.commit()

    def test_cancel(self, importer, sample_csv_content):
        """Test cancel discards drafts, overrides and mapping."""
        importer.load_text(sample_csv_content)
        importer.preview()
        importer.set_category(0, "Bonus")

        importer.cancel()

        assert importer.state is ImportState.CANCELLED
        assert importer.drafts == []
        assert importer.overrides == {}
        assert importer.mapping is None
        with pytest.raises(RuntimeError):
            importer.preview()

        importer.load_text(sample_csv_content)
        assert importer.state is ImportState.ROWS_EXTRACTED

    def test_new_load_discards_previous(self, importer, sample_csv_content,
                                        sample_amount_csv_content):
        importer.load_text(sample_csv_content)
        importer.preview()
        importer.set_category(0, "Bonus")

        importer.load_text(sample_amount_csv_content)

        assert len(importer.drafts) == 3
        assert importer.overrides == {}

    def test_structural_errors_stay_idle(self, importer):
        """Test unusable input leaves the importer idle."""
        sheet = importer.load_text("")

        assert not sheet.success
        assert importer.state is ImportState.IDLE

        sheet = importer.load_text("Date,Description,Amount\n")
        assert sheet.errors == ["CSV file appears to be empty or invalid"]
        assert importer.state is ImportState.IDLE

    def test_missing_columns_warning(self, importer):
        """Test unmapped essential columns surface as sheet warnings."""
        sheet = importer.load_text("Foo,Bar\n1,2\n")

        assert sheet.warnings == ["Could not detect columns: date, description, amount"]

        result = importer.commit()
        assert result.skip_reasons["missingFields"] == 1


class TestImportFiles:
    """Tests for file-based imports."""

    @pytest.fixture
    def xlsx_path(self, tmp_path):
        wb = Workbook()
        ws = wb.active
        ws.append(["Txn Date", "Narration", "Withdrawal Amt", "Deposit Amt", "Closing Balance"])
        ws.append([datetime(2025, 1, 15), "Salary credited from XYZ Corp", 0, 50000, 150000])
        ws.append([datetime(2025, 1, 16), "UPI/Big Bazaar grocery", 2345.5, 0, 147654.5])
        ws.append([datetime(2025, 1, 17), "NEFT rent payment to landlord", 18000, None, 129654.5])
        ws.append([datetime(2025, 1, 18), "ATM cash withdrawal", 500, None, 129154.5])
        path = tmp_path / "statement.xlsx"
        wb.save(path)
        return path

    def test_xlsx_matches_csv(self, xlsx_path, sample_csv_content):
        """Test a spreadsheet with date cells imports like the CSV export."""
        from_csv = import_statement(sample_csv_content)
        from_xlsx = import_statement(xlsx_path)

        assert from_xlsx.success
        assert summarize(from_xlsx.imported) == summarize(from_csv.imported)

    def test_csv_file(self, tmp_path, sample_csv_content):
        path = tmp_path / "statement.csv"
        path.write_text(sample_csv_content, encoding="utf-8")

        result = import_statement(path)

        assert result.imported_count == 4

    def test_path_string(self, tmp_path, sample_csv_content):
        """Test a file path given as a string is read from disk."""
        path = tmp_path / "statement.csv"
        path.write_text(sample_csv_content, encoding="utf-8")

        result = import_statement(str(path))

        assert result.imported_count == 4

    def test_missing_path_string(self, tmp_path):
        """Test a path string for a missing file reports a read error."""
        result = import_statement(str(tmp_path / "missing.csv"))

        assert not result.success
        assert result.errors[0].startswith("Failed to read file")

    def test_unsupported_extension(self, tmp_path):
        """Test files with unsupported extensions are rejected."""
        path = tmp_path / "statement.pdf"
        path.write_bytes(b"%PDF-1.4")

        result = import_statement(path)

        assert not result.success
        assert "Unsupported file type: .pdf" in result.errors[0]
        assert result.message() == result.errors[0]

    def test_legacy_xls(self, tmp_path):
        path = tmp_path / "statement.xls"
        path.write_bytes(b"\xd0\xcf\x11\xe0")

        result = import_statement(path)

        assert result.errors == [
            "Legacy .xls files are not supported. Please save the file as .xlsx."
        ]

    def test_row_grid(self):
        """Test importing an in-memory cell grid."""
        rows = [
            ["Date", "Description", "Amount", "Type"],
            [date(2025, 1, 15), "Quarterly bonus", 2500.0, "Credit"],
            [None, None, None, None],
        ]

        result = import_statement(rows)

        assert summarize(result.imported) == [
            (date(2025, 1, 15), TransactionType.INCOME, "Quarterly bonus",
             Decimal("2500.00"), "Bonus", TransactionMode.OTHER),
        ]

    def test_overrides(self, sample_csv_content):
        result = import_statement(sample_csv_content, overrides={3: "Miscellaneous Expenses"})

        assert result.imported[3].category == "Miscellaneous Expenses"


class TestImportResult:
    """Tests for the import result and transaction records."""

    def test_success_message(self):
        result = ImportResult(imported=[object(), object()])

        assert result.message() == "Successfully imported 2 transaction(s)!"

    def test_summary(self):
        result = ImportResult(skipped=1)
        result.skip_reasons["zeroAmount"] = 1

        assert result.summary == {
            "imported": 0,
            "skipped": 1,
            "duplicates": 0,
            "skip_reasons": {
                "missingFields": 0,
                "invalidDate": 0,
                "zeroAmount": 1,
                "duplicate": 0,
                "dispatchError": 0,
            },
            "errors": [],
        }

    def test_transaction_to_dict(self, sample_csv_content, fixed_clock):
        importer = StatementImporter(clock=fixed_clock)
        importer.load_text(sample_csv_content)
        txn = importer.commit(id_factory=lambda: "abc").imported[1]

        assert txn.to_dict() == {
            "id": "abc",
            "type": "expense",
            "date": "2025-01-16",
            "mode": "UPI",
            "description": "UPI/Big Bazaar grocery",
            "category": "Groceries",
            "amount": 2345.5,
            "createdAt": "2025-02-01T09:30:00+00:00",
            "imported": True,
        }


class TestRemoveImported:
    """Tests for clearing imported transactions."""

    def test_remove_records(self, existing_transactions):
        kept, removed = remove_imported(existing_transactions)

        assert removed == 1
        assert [t["id"] for t in kept] == ["manual-1"]

    def test_remove_transactions(self, sample_csv_content):
        result = import_statement(sample_csv_content)
        manual = {"id": "m", "imported": False}

        kept, removed = remove_imported(result.imported + [manual])

        assert removed == 4
        assert kept == [manual]
