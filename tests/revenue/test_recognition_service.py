"""
Tests for RevenueRecognitionService: record creation, explicit recognition,
the automatic sweep and the deferred revenue summary.
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.journal import EntrySource
from ledger_kernel.exceptions import (
    AlreadyRecognizedError,
    InvalidAccountError,
    InvalidRecognitionTransitionError,
    RecognitionNotDueError,
    RecognitionNotFoundError,
    ValidationError,
)
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.ledger_store import JournalQuery
from ledger_modules.revenue import (
    CharterType,
    RecognitionRequest,
    RecognitionStatus,
    RecognitionTrigger,
    RevenueRecognitionService,
)
from ledger_modules.revenue.orm import RevenueRecognitionModel
from tests.conftest import TEST_ACTOR_ID, TEST_COMPANY_ID

D = Decimal

# The deterministic clock reads 2025-06-15
TODAY = date(2025, 6, 15)


@pytest.fixture
def revenue(session, chart, deterministic_clock, journal_service) -> RevenueRecognitionService:
    return RevenueRecognitionService(session, chart, deterministic_clock, journal=journal_service)


def _request(charter_date_to=date(2025, 7, 20), **overrides):
    values = dict(
        company_id=TEST_COMPANY_ID,
        project_id="proj-yacht",
        amount=D("10000"),
        charter_date_from=charter_date_to - timedelta(days=2) if charter_date_to else None,
        charter_date_to=charter_date_to,
        charter_type=CharterType.DAY_CHARTER,
        receipt_number="RE-0042",
    )
    values.update(overrides)
    return RecognitionRequest(**values)


def _recognition_entries(journal_service):
    return journal_service.list_entries(JournalQuery(source_type=EntrySource.REVENUE_RECOGNITION))


class TestCreateRecord:
    def test_future_charter_is_pending(self, revenue, journal_service):
        record = revenue.create_record(_request(), TEST_ACTOR_ID)

        assert record.status == RecognitionStatus.PENDING
        assert record.revenue_account == "4010"
        assert record.deferred_revenue_account == "2300"
        assert record.thb_amount == D("10000")
        assert record.recognition_journal_entry_id is None
        assert _recognition_entries(journal_service) == []

    def test_undated_charter_needs_review(self, revenue):
        record = revenue.create_record(_request(charter_date_to=None), TEST_ACTOR_ID)
        assert record.status == RecognitionStatus.NEEDS_REVIEW

    def test_completed_charter_recognized_at_once(self, revenue, journal_service):
        record = revenue.create_record(_request(charter_date_to=date(2025, 6, 1)), TEST_ACTOR_ID)

        assert record.status == RecognitionStatus.RECOGNIZED
        assert record.trigger == RecognitionTrigger.AUTOMATIC
        assert record.recognition_date == TODAY
        [entry] = _recognition_entries(journal_service)
        assert entry.id == record.recognition_journal_entry_id
        assert entry.is_posted

    def test_foreign_currency_converted(self, revenue):
        record = revenue.create_record(
            _request(amount=D("500"), currency="EUR", fx_rate=D("38.5")), TEST_ACTOR_ID,
        )
        assert record.thb_amount == D("19250.00")
        assert record.currency == "EUR"

    def test_explicit_revenue_account_wins(self, revenue):
        record = revenue.create_record(_request(revenue_account="4090"), TEST_ACTOR_ID)
        assert record.revenue_account == "4090"

    def test_untyped_charter_uses_default_account(self, revenue):
        record = revenue.create_record(_request(charter_type=None), TEST_ACTOR_ID)
        assert record.revenue_account == "4490"

    def test_reversed_charter_dates_rejected(self, revenue):
        with pytest.raises(ValidationError):
            revenue.create_record(
                _request(charter_date_from=date(2025, 7, 25), charter_date_to=date(2025, 7, 20)),
                TEST_ACTOR_ID,
            )

    def test_non_positive_amount_rejected(self, revenue):
        with pytest.raises(ValidationError):
            revenue.create_record(_request(amount=D("0")), TEST_ACTOR_ID)

    def test_unknown_account_rejected(self, revenue):
        with pytest.raises(InvalidAccountError):
            revenue.create_record(_request(revenue_account="9999"), TEST_ACTOR_ID)


class TestRecognizeRevenue:
    def test_manual_recognition_posts_entry(self, revenue, journal_service, post, session):
        deposit = post(date(2025, 6, 1), [("1010", "debit", 10000), ("2300", "credit", 10000)])
        record = revenue.create_record(
            _request(deferred_journal_entry_id=deposit.id), TEST_ACTOR_ID,
        )

        result = revenue.recognize_revenue(record.id, "captain", RecognitionTrigger.MANUAL)

        assert result.status == RecognitionStatus.RECOGNIZED
        assert result.recognized_by == "captain"
        assert result.recognition_date == TODAY
        entry = journal_service.get_entry(result.recognition_journal_entry_id)
        assert entry.related_entry_id == deposit.id
        assert entry.description == "Revenue recognition RE-0042"
        debit, credit = entry.lines
        assert (debit.account_code, debit.amount) == ("2300", D("10000"))
        assert (credit.account_code, credit.amount) == ("4010", D("10000"))

        totals = {t.account_code: t for t in LedgerSelector(session).account_totals(TODAY)}
        assert totals["2300"].net_debit == D("0")
        assert totals["4010"].credit_total == D("10000")

    def test_second_recognition_rejected_with_single_entry(self, revenue, journal_service):
        record = revenue.create_record(_request(), TEST_ACTOR_ID)
        revenue.recognize_revenue(record.id, TEST_ACTOR_ID, "manual")

        with pytest.raises(AlreadyRecognizedError):
            revenue.recognize_revenue(record.id, TEST_ACTOR_ID, "manual")
        assert len(_recognition_entries(journal_service)) == 1

    def test_automatic_before_charter_end_not_due(self, revenue):
        record = revenue.create_record(_request(), TEST_ACTOR_ID)

        with pytest.raises(RecognitionNotDueError):
            revenue.recognize_revenue(record.id, TEST_ACTOR_ID, RecognitionTrigger.AUTOMATIC)
        assert revenue.get_record(record.id).status == RecognitionStatus.PENDING

    def test_needs_review_approved(self, revenue):
        record = revenue.create_record(_request(charter_date_to=None), TEST_ACTOR_ID)

        result = revenue.recognize_revenue(
            record.id, "reviewer", RecognitionTrigger.IMMEDIATE, recognition_date=date(2025, 6, 10),
        )

        assert result.status == RecognitionStatus.MANUAL_RECOGNIZED
        assert result.recognition_date == date(2025, 6, 10)

    def test_needs_review_not_swept_automatically(self, revenue):
        record = revenue.create_record(_request(charter_date_to=None), TEST_ACTOR_ID)
        with pytest.raises(InvalidRecognitionTransitionError):
            revenue.recognize_revenue(record.id, TEST_ACTOR_ID, RecognitionTrigger.AUTOMATIC)

    def test_unknown_trigger(self, revenue):
        record = revenue.create_record(_request(), TEST_ACTOR_ID)
        with pytest.raises(ValidationError):
            revenue.recognize_revenue(record.id, TEST_ACTOR_ID, "whenever")

    @pytest.mark.parametrize("recognition_id", ["not-a-uuid", str(uuid4())])
    def test_unknown_record(self, revenue, recognition_id):
        with pytest.raises(RecognitionNotFoundError):
            revenue.recognize_revenue(recognition_id, TEST_ACTOR_ID, "manual")

    def test_recognition_is_logged(self, revenue, captured_logs):
        record = revenue.create_record(_request(), TEST_ACTOR_ID)
        revenue.recognize_revenue(record.id, "captain", "manual")

        [log] = [r for r in captured_logs() if r["message"] == "revenue_recognized"]
        assert log["recognition_id"] == str(record.id)
        assert log["trigger"] == "manual"
        assert log["actor_id"] == "captain"


class TestSweep:
    def test_recognizes_due_records_on_charter_end_date(self, revenue, deterministic_clock):
        due = revenue.create_record(_request(charter_date_to=date(2025, 7, 20)), TEST_ACTOR_ID)
        later = revenue.create_record(_request(charter_date_to=date(2025, 9, 1)), TEST_ACTOR_ID)
        revenue.create_record(_request(charter_date_to=None), TEST_ACTOR_ID)

        deterministic_clock.set_date(date(2025, 8, 1))
        result = revenue.process_due_recognitions()

        assert result.as_of == date(2025, 8, 1)
        assert [r.id for r in result.recognized] == [due.id]
        assert result.recognized[0].recognition_date == date(2025, 7, 20)
        assert result.recognized[0].recognized_by == "system"
        assert result.failures == ()
        assert revenue.get_record(later.id).status == RecognitionStatus.PENDING

    def test_sweep_is_idempotent(self, revenue, deterministic_clock, journal_service):
        revenue.create_record(_request(), TEST_ACTOR_ID)
        deterministic_clock.set_date(date(2025, 8, 1))

        assert revenue.process_due_recognitions().recognized_count == 1
        assert revenue.process_due_recognitions().recognized_count == 0
        assert len(_recognition_entries(journal_service)) == 1

    def test_failing_record_does_not_stop_others(self, revenue, deterministic_clock, session):
        broken = revenue.create_record(_request(charter_date_to=date(2025, 7, 1)), TEST_ACTOR_ID)
        healthy = revenue.create_record(_request(charter_date_to=date(2025, 7, 2)), TEST_ACTOR_ID)
        session.get(RevenueRecognitionModel, broken.id).thb_amount = D("0")
        session.flush()

        deterministic_clock.set_date(date(2025, 8, 1))
        result = revenue.process_due_recognitions()

        assert [r.id for r in result.recognized] == [healthy.id]
        [failure] = result.failures
        assert failure.recognition_id == broken.id
        assert failure.error_code == "INVALID_AMOUNT"
        assert revenue.get_record(broken.id).status == RecognitionStatus.PENDING


class TestQueries:
    def test_deferred_revenue_summary(self, revenue):
        revenue.create_record(_request(amount=D("1000")), TEST_ACTOR_ID)
        revenue.create_record(_request(amount=D("2500.50")), TEST_ACTOR_ID)
        revenue.create_record(_request(amount=D("700"), charter_date_to=None), TEST_ACTOR_ID)
        revenue.create_record(_request(amount=D("900"), charter_date_to=date(2025, 6, 1)), TEST_ACTOR_ID)

        summary = revenue.deferred_revenue_summary(TEST_COMPANY_ID)

        assert summary.pending_count == 2
        assert summary.pending_thb == D("3500.50")
        assert summary.needs_review_count == 1
        assert summary.needs_review_thb == D("700")
        assert summary.total_thb == D("4200.50")
        assert summary.counts_by_status["recognized"] == 1

    def test_list_records_filters(self, revenue):
        revenue.create_record(_request(), TEST_ACTOR_ID)
        revenue.create_record(_request(project_id="proj-other"), TEST_ACTOR_ID)
        revenue.create_record(_request(charter_date_to=None), TEST_ACTOR_ID)

        assert len(revenue.list_records(status="pending")) == 2
        assert len(revenue.list_records(project_id="proj-other")) == 1
        assert len(revenue.list_records(company_id="company-2")) == 0
