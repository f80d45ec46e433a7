"""
Tests for the company P&L: inclusion rules, revenue gating, currency
conversion, skipped documents and data gaps.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.documents import DocumentKind
from ledger_kernel.exceptions import ValidationError
from ledger_modules.reporting.fx import RateSource

D = Decimal

# The deterministic clock reads 2025-06-15
PAST = date(2025, 3, 5)
FUTURE = date(2025, 7, 1)
PERIOD = (date(2025, 1, 1), date(2025, 6, 30))


class TestInclusionRules:
    def test_receipt_included_invoice_excluded(self, reporting, documents):
        documents.add(DocumentKind.INVOICE, date(2025, 3, 1), 1000, account_code="4010", service_end_date=PAST)
        documents.add(DocumentKind.RECEIPT, date(2025, 3, 2), 1000, account_code="4010", service_end_date=PAST)

        report = reporting.profit_and_loss(*PERIOD)

        assert report.income.total_reporting == D("1000")
        [category] = report.income.categories
        assert category.name == "Operating Revenue"
        assert [item.kind for item in category.items] == ["receipt"]

    def test_future_charter_not_recognized(self, reporting, documents):
        documents.add(DocumentKind.RECEIPT, date(2025, 3, 2), 1000, account_code="4010", service_end_date=FUTURE)
        documents.add(DocumentKind.RECEIPT, date(2025, 3, 3), 500, account_code="4010")

        report = reporting.profit_and_loss(*PERIOD)
        assert report.income.categories == ()
        assert report.net_profit_reporting == D("0")

    def test_credit_note_reduces_income(self, reporting, documents):
        documents.add(DocumentKind.RECEIPT, date(2025, 3, 2), 1000, account_code="4010", service_end_date=PAST)
        documents.add(DocumentKind.CREDIT_NOTE, date(2025, 3, 9), 200, account_code="4010", service_end_date=PAST)

        report = reporting.profit_and_loss(*PERIOD)

        assert report.income.total_reporting == D("800")
        amounts = sorted(item.reporting_amount for item in report.income.categories[0].items)
        assert amounts == [D("-200"), D("1000")]

    def test_account_netting_to_zero_is_dropped(self, reporting, documents):
        documents.add(DocumentKind.RECEIPT, date(2025, 3, 2), 300, account_code="4010", service_end_date=PAST)
        documents.add(DocumentKind.CREDIT_NOTE, date(2025, 3, 3), 300, account_code="4010", service_end_date=PAST)

        assert reporting.profit_and_loss(*PERIOD).income.categories == ()

    def test_expenses_grouped_by_subtype(self, reporting, documents):
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 1), 300, account_code="5000")
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 2), 50)
        documents.add(DocumentKind.RECEIVED_CREDIT_NOTE, date(2025, 2, 3), 20, account_code="5000")

        report = reporting.profit_and_loss(*PERIOD)

        direct = report.expenses.category("Direct Cost of Sales")
        assert direct.reporting_total == D("280")
        operating = report.expenses.category("Operating Expense")
        assert operating.account_codes == ("6790",)
        assert report.expenses.total_reporting == D("330")
        assert report.net_profit_reporting == D("-330")

    def test_wrong_account_type_is_skipped(self, reporting, documents):
        doc = documents.add(DocumentKind.RECEIPT, date(2025, 3, 2), 100, account_code="5000", service_end_date=PAST)

        report = reporting.profit_and_loss(*PERIOD)

        [skipped] = report.skipped_documents
        assert skipped.document_id == doc.id
        assert "5000" in skipped.reason

    def test_unknown_account_lands_in_other(self, reporting, documents):
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 1), 75, account_code="8888")

        report = reporting.profit_and_loss(*PERIOD)
        assert report.expenses.category("Other").reporting_total == D("75")

    def test_company_and_project_filters(self, reporting, documents):
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 1), 100, project_id="proj-yacht")
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 1), 200, project_id="proj-fa")
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 1), 400, company_id="company-2")

        assert reporting.profit_and_loss(*PERIOD, company_id="company-1").expenses.total_reporting == D("300")
        assert reporting.profit_and_loss(*PERIOD, project_id="proj-yacht").expenses.total_reporting == D("100")

    def test_reversed_period_rejected(self, reporting):
        with pytest.raises(ValidationError):
            reporting.profit_and_loss(date(2025, 6, 30), date(2025, 1, 1))


class TestCurrencies:
    def test_stored_rate_preferred(self, reporting, documents, rates):
        rates.rates["EUR"] = D("40")
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 1), 100, currency="EUR", fx_rate=D("39"))

        [item] = reporting.profit_and_loss(*PERIOD).expenses.categories[0].items
        assert item.rate_source == RateSource.STORED
        assert item.reporting_amount == D("3900")
        assert item.original_amount == D("100")

    def test_rate_service_used_without_stored_rate(self, reporting, documents, rates):
        rates.rates["USD"] = D("36")
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 1), 10, currency="USD")

        report = reporting.profit_and_loss(*PERIOD)
        [item] = report.expenses.categories[0].items
        assert item.rate_source == RateSource.RATE_SERVICE
        assert item.reporting_amount == D("360")
        assert report.legacy_rate_count == 0

    def test_legacy_table_counted(self, reporting, documents, captured_logs):
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 1), 10, currency="EUR")

        report = reporting.profit_and_loss(*PERIOD)

        assert report.legacy_rate_count == 1
        assert report.expenses.total_reporting == D("380")
        assert any(r["message"] == "legacy_fx_fallback_used" for r in captured_logs())

    def test_unconvertible_document_skipped(self, reporting, documents):
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 1), 1000, currency="JPY")
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 2), 50)

        report = reporting.profit_and_loss(*PERIOD)

        assert len(report.skipped_documents) == 1
        assert report.expenses.total_reporting == D("50")

    def test_failing_rate_service_falls_back(self, reporting, documents, rates, captured_logs):
        rates.error = TimeoutError("rate service timed out")
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 1), 10, currency="EUR")
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 2), 50)

        report = reporting.profit_and_loss(*PERIOD)

        assert report.legacy_rate_count == 1
        assert report.expenses.total_reporting == D("430")
        assert report.data_gap is False
        [record] = [r for r in captured_logs() if r["message"] == "rate_source_unavailable"]
        assert record["currency"] == "EUR"
        assert record["error_type"] == "TimeoutError"

    def test_failing_rate_service_without_fallback_skips_document(self, reporting, documents, rates):
        rates.error = ConnectionError("refused")
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 1), 1000, currency="JPY")
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 2), 50)

        report = reporting.profit_and_loss(*PERIOD)

        assert len(report.skipped_documents) == 1
        assert report.expenses.total_reporting == D("50")

    def test_mixed_currencies_flagged(self, reporting, documents):
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 1), 10, currency="EUR", fx_rate=D("38"))
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 2), 50)

        report = reporting.profit_and_loss(*PERIOD)
        assert report.has_multiple_currencies
        assert report.currencies == ("EUR", "THB")


class TestDataGap:
    def test_unavailable_source_reports_gap(self, reporting, documents):
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 1), 50)
        documents.failure = "timeout"

        report = reporting.profit_and_loss(*PERIOD)

        assert report.data_gap
        assert "timeout" in report.data_gap_reason
        assert report.expenses.categories == ()

    def test_unexpected_source_error_reports_gap(self, reporting, documents, captured_logs):
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 1), 50)
        documents.error = ConnectionResetError("peer reset")

        report = reporting.profit_and_loss(*PERIOD)

        assert report.data_gap
        assert "peer reset" in report.data_gap_reason
        assert report.expenses.categories == ()
        assert any(r["message"] == "document_source_unavailable" for r in captured_logs())

    def test_generation_is_logged(self, reporting, documents, captured_logs):
        documents.add(DocumentKind.EXPENSE, date(2025, 2, 1), 50)
        reporting.profit_and_loss(*PERIOD)

        [record] = [r for r in captured_logs() if r["message"] == "profit_and_loss_generated"]
        assert D(record["net_profit"]) == D("-50")
        assert record["data_gap"] is False
