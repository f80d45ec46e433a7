"""
Tests for the prior-year P&L import: validation, the closing entry per
project and retry safety.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.journal import EntrySource
from ledger_kernel.exceptions import PriorYearImportValidationError, ValidationError
from ledger_kernel.services.ledger_store import JournalQuery
from ledger_modules.closing import PriorYearImportService, ProjectYearTotals
from tests.conftest import TEST_ACTOR_ID, TEST_COMPANY_ID

D = Decimal


@pytest.fixture
def importer(session, chart, deterministic_clock, journal_service) -> PriorYearImportService:
    return PriorYearImportService(session, chart, deterministic_clock, journal=journal_service)


def _project(project_id="proj-yacht", income="500000", expenses="300000", fees="10000", name="Sea Breeze"):
    return ProjectYearTotals(
        project_id=project_id,
        project_name=name,
        total_income=D(income),
        total_expenses=D(expenses),
        management_fees=D(fees),
    )


def _imported(journal_service):
    return journal_service.list_entries(JournalQuery(source_type=EntrySource.PRIOR_YEAR_IMPORT))


class TestImport:
    def test_profit_books_current_to_retained(self, importer, journal_service):
        result = importer.import_prior_year(2024, TEST_COMPANY_ID, [_project()], TEST_ACTOR_ID)

        assert result.entry_count == 1
        assert result.effective_date == date(2024, 12, 31)
        entry = journal_service.get_entry(result.entries[0].entry_id)
        assert entry.is_posted
        assert entry.entry_date == date(2024, 12, 31)
        debit, credit = entry.lines
        assert (debit.account_code, debit.side, debit.amount) == ("3210", "debit", D("190000"))
        assert (credit.account_code, credit.side, credit.amount) == ("3200", "credit", D("190000"))
        assert entry.description == (
            "Prior Year P&L Import - FY2024 - Sea Breeze | Income: 500,000.00 THB | "
            "Expenses: 300,000.00 THB | Mgmt Fees: 10,000.00 THB | Net Profit: 190,000.00 THB"
        )

    def test_loss_swaps_sides(self, importer, journal_service):
        result = importer.import_prior_year(
            2024, TEST_COMPANY_ID, [_project(income="100000", expenses="150000", fees="0")], TEST_ACTOR_ID,
        )
        debit, credit = journal_service.get_entry(result.entries[0].entry_id).lines
        assert (debit.account_code, debit.amount) == ("3200", D("50000"))
        assert (credit.account_code, credit.amount) == ("3210", D("50000"))
        assert "Net Loss: 50,000.00 THB" in journal_service.get_entry(result.entries[0].entry_id).description

    def test_breakeven_project_skipped(self, importer):
        result = importer.import_prior_year(
            2024,
            TEST_COMPANY_ID,
            [_project(), _project("proj-even", income="1000", expenses="1000", fees="0", name="Even")],
            TEST_ACTOR_ID,
        )
        assert result.entry_count == 1
        assert result.skipped_project_ids == ("proj-even",)
        assert result.totals.total_net_profit == D("190000")
        assert result.totals.total_income == D("501000")

    def test_custom_effective_date_and_notes(self, importer, journal_service):
        result = importer.import_prior_year(
            2024, TEST_COMPANY_ID, [_project()], TEST_ACTOR_ID,
            effective_date=date(2024, 10, 31), notes="from auditor pack",
        )
        entry = journal_service.get_entry(result.entries[0].entry_id)
        assert entry.entry_date == date(2024, 10, 31)
        assert entry.description.endswith("| Notes: from auditor pack")

    def test_retry_returns_existing_entries(self, importer, journal_service):
        first = importer.import_prior_year(2024, TEST_COMPANY_ID, [_project()], TEST_ACTOR_ID)
        second = importer.import_prior_year(2024, TEST_COMPANY_ID, [_project()], TEST_ACTOR_ID)

        assert second.entries[0].entry_id == first.entries[0].entry_id
        assert len(_imported(journal_service)) == 1

    def test_import_is_logged(self, importer, captured_logs):
        importer.import_prior_year(2024, TEST_COMPANY_ID, [_project()], TEST_ACTOR_ID)

        [record] = [r for r in captured_logs() if r["message"] == "prior_year_import_completed"]
        assert record["entry_count"] == 1
        assert record["company_id"] == TEST_COMPANY_ID


class TestValidation:
    @pytest.mark.parametrize("fiscal_year", [1999, 2026])
    def test_year_out_of_range(self, importer, fiscal_year):
        with pytest.raises(PriorYearImportValidationError) as exc_info:
            importer.import_prior_year(fiscal_year, TEST_COMPANY_ID, [_project()], TEST_ACTOR_ID)
        assert any("fiscal year" in e for e in exc_info.value.errors)

    def test_current_year_allowed(self, importer):
        result = importer.import_prior_year(2025, TEST_COMPANY_ID, [_project()], TEST_ACTOR_ID)
        assert result.entry_count == 1

    def test_effective_date_outside_year(self, importer):
        with pytest.raises(PriorYearImportValidationError):
            importer.import_prior_year(
                2024, TEST_COMPANY_ID, [_project()], TEST_ACTOR_ID, effective_date=date(2025, 1, 1),
            )

    def test_all_errors_reported_together(self, importer, journal_service):
        with pytest.raises(ValidationError) as exc_info:
            importer.import_prior_year(
                2024, "", [_project(income="-1", expenses="0", fees="0")], TEST_ACTOR_ID,
            )
        errors = exc_info.value.errors
        assert "company is required" in errors
        assert "Sea Breeze: income must be zero or greater" in errors
        assert _imported(journal_service) == []

    def test_projects_without_data_rejected(self, importer):
        with pytest.raises(PriorYearImportValidationError) as exc_info:
            importer.import_prior_year(
                2024, TEST_COMPANY_ID, [_project(income="0", expenses="0", fees="0")], TEST_ACTOR_ID,
            )
        assert exc_info.value.code == "PRIOR_YEAR_IMPORT_INVALID"

    def test_no_projects_rejected(self, importer):
        with pytest.raises(PriorYearImportValidationError):
            importer.import_prior_year(2024, TEST_COMPANY_ID, [], TEST_ACTOR_ID)
