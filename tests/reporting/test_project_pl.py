"""
Tests for the project P&L over the Nov-Oct fiscal year, the management
fee convention and the monthly drill-down.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.documents import DocumentKind
from ledger_kernel.exceptions import ProjectNotFoundError, ValidationError

D = Decimal


@pytest.fixture
def yacht_year(documents):
    """Sea Breeze (30% management fee) over FY 2024-2025."""
    documents.add(
        DocumentKind.RECEIPT, date(2024, 11, 10), 10000,
        project_id="proj-yacht", account_code="4010", service_end_date=date(2024, 11, 12),
    )
    documents.add(
        DocumentKind.RECEIPT, date(2025, 3, 15), 20000,
        project_id="proj-yacht", account_code="4020", service_end_date=date(2025, 3, 16),
    )
    documents.add(
        DocumentKind.EXPENSE, date(2025, 3, 20), 5000,
        project_id="proj-yacht", account_code="5000", description="Diesel",
    )
    # Dated in October of the previous fiscal year
    documents.add(
        DocumentKind.EXPENSE, date(2024, 10, 31), 999,
        project_id="proj-yacht", account_code="5000",
    )
    return documents


class TestProjectProfitAndLoss:
    def test_months_run_november_to_october(self, reporting, yacht_year):
        report = reporting.project_profit_and_loss("proj-yacht", "2024-2025")

        assert [m.month for m in report.months][:3] == ["2024-11", "2024-12", "2025-01"]
        assert report.months[-1].month == "2025-10"
        assert report.months[0].month_label == "Nov 2024"
        assert report.fiscal_year_label == "FY 2024-2025 (Nov 2024 - Oct 2025)"

    def test_monthly_fee_and_profit(self, reporting, yacht_year):
        report = reporting.project_profit_and_loss("proj-yacht", "2024-2025")
        by_month = {m.month: m for m in report.months}

        november = by_month["2024-11"]
        assert november.income == D("10000")
        assert november.management_fee == D("3000")
        assert november.profit == D("7000")

        march = by_month["2025-03"]
        assert march.income == D("20000")
        assert march.expense == D("5000")
        assert march.management_fee == D("6000")
        assert march.profit == D("9000")

        assert by_month["2025-01"].profit == D("0")

    def test_totals_row(self, reporting, yacht_year):
        totals = reporting.project_profit_and_loss("proj-yacht", "2024-2025").totals

        assert totals.month == "TOTAL"
        assert totals.month_label == "Total"
        assert totals.income == D("30000")
        assert totals.expense == D("5000")
        assert totals.management_fee == D("9000")
        assert totals.profit == D("16000")

    def test_management_project_earns_fees(self, reporting, yacht_year):
        report = reporting.project_profit_and_loss("proj-fa", "2024-2025")
        by_month = {m.month: m for m in report.months}

        assert by_month["2024-11"].income == D("3000")
        assert by_month["2025-03"].income == D("6000")
        assert report.totals.income == D("9000")
        assert report.totals.management_fee == D("0")

    def test_unknown_project(self, reporting):
        with pytest.raises(ProjectNotFoundError):
            reporting.project_profit_and_loss("nope", "2024-2025")

    def test_malformed_fiscal_year(self, reporting):
        with pytest.raises(ValidationError):
            reporting.project_profit_and_loss("proj-yacht", "2024")

    def test_data_gap_flagged(self, reporting, documents):
        documents.failure = "connection refused"

        report = reporting.project_profit_and_loss("proj-yacht", "2024-2025")

        assert report.data_gap
        assert report.totals.income == D("0")

    def test_failing_rate_service_does_not_break_report(self, reporting, yacht_year, rates):
        rates.error = TimeoutError("rate service timed out")
        yacht_year.add(
            DocumentKind.EXPENSE, date(2025, 4, 2), 100, currency="EUR",
            project_id="proj-yacht", account_code="5000",
        )

        report = reporting.project_profit_and_loss("proj-yacht", "2024-2025")

        assert report.totals.expense == D("8800")
        assert report.data_gap is False


class TestProjectTransactions:
    def test_expense_drill_down(self, reporting, yacht_year):
        [row] = reporting.project_transactions("proj-yacht", "2025-03", "expense")

        assert row.description == "Diesel"
        assert row.category_name == "Vessel Operating Costs"
        assert row.reporting_amount == D("5000")

    def test_management_fee_rows(self, reporting, yacht_year):
        [row] = reporting.project_transactions("proj-fa", "2025-03", "income")

        assert row.account_code == "4300"
        assert row.document_number == "MGT-SY1"
        assert row.document_kind == "management_fee"
        assert row.transaction_date == date(2025, 3, 15)
        assert row.reporting_amount == D("6000")

    def test_invalid_side(self, reporting):
        with pytest.raises(ValidationError):
            reporting.project_transactions("proj-yacht", "2025-03", "revenue")


class TestFiscalHelpers:
    def test_current_fiscal_year(self, reporting):
        assert reporting.current_fiscal_year() == "2024-2025"

    def test_recent_fiscal_years(self, reporting):
        assert reporting.recent_fiscal_years(2) == ["2024-2025", "2023-2024"]
