"""
Revenue Recognition Service (``ledger_modules.revenue.service``).

Responsibility
--------------
Decides when charter income may enter the P&L.  Payments received before a
charter has been sailed sit in Charter Deposits Received (2300); this
service tracks each such item and, once the charter is completed (or a
reviewer approves it), releases it with a posted journal entry
Dr deferred revenue / Cr revenue.

Architecture position
---------------------
**Modules layer** -- thin ERP glue.  State decisions live in
``helpers.py``; journal entries go through ``JournalEntryService``.

Invariants enforced
-------------------
* Transitions: pending -> recognized, needs_review -> manual_recognized.
  pending vs needs_review is decided at creation only.
* Exactly one recognition entry per record: the record is re-read under
  the company lock, an already-recognized record raises
  ``AlreadyRecognizedError``, and the entry carries the unique source key
  ``revenue_recognition:<id>``.
* The record update and its entry are flushed in the caller's transaction.

Failure modes
-------------
* ``ValidationError`` subclasses for missing or invalid amounts, accounts
  and dates; ``RecognitionNotDueError`` for automatic recognition before
  the charter ended.
* ``AlreadyRecognizedError`` / ``InvalidRecognitionTransitionError``
  (``StateError``) for disallowed transitions.
* ``RecognitionNotFoundError`` for unknown ids.
* The sweep never raises for a single record; failures are collected.

Audit relevance
---------------
``revenue_recognized`` is logged with the record, trigger, actor and entry
reference for every release of deferred revenue.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import ZERO, round_money, to_decimal, validate_currency
from ledger_kernel.domain.accounts import ChartOfAccounts
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.journal import EntryDraft, EntrySource, LineSpec
from ledger_kernel.exceptions import (
    InvalidAmountError,
    LedgerError,
    MissingFieldError,
    RecognitionNotFoundError,
    ValidationError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.journal_service import JournalEntryService

from ledger_modules.revenue.config import RevenueRecognitionConfig
from ledger_modules.revenue.helpers import initial_status, next_status
from ledger_modules.revenue.models import (
    DeferredRevenueSummary,
    RecognitionRequest,
    RecognitionStatus,
    RecognitionTrigger,
    RevenueRecognition,
    SweepFailure,
    SweepResult,
)
from ledger_modules.revenue.orm import RevenueRecognitionModel

logger = get_logger("modules.revenue.service")

SOURCE_KEY_PREFIX = "revenue_recognition"


def recognition_source_key(recognition_id: UUID) -> str:
    return f"{SOURCE_KEY_PREFIX}:{recognition_id}"


class RevenueRecognitionService:
    """
    Orchestrates charter revenue recognition.

    Contract
    --------
    * ``create_record`` -> RevenueRecognition in its initial state; a record
      whose charter already ended is recognized on the spot.
    * ``recognize_revenue`` -> recognized record plus one posted entry.
    * ``process_due_recognitions`` -> SweepResult.

    Non-goals
    ---------
    * Does NOT record the original deposit entry (Dr Bank / Cr 2300); its
      id is only referenced.
    * Does NOT commit; the caller owns the transaction.
    """

    def __init__(
        self,
        session: Session,
        chart: ChartOfAccounts,
        clock: Clock | None = None,
        config: RevenueRecognitionConfig | None = None,
        journal: JournalEntryService | None = None,
    ):
        self._session = session
        self._chart = chart
        self._clock = clock or SystemClock()
        self._config = config or RevenueRecognitionConfig.with_defaults()
        self._journal = journal or JournalEntryService(
            session, chart, self._clock, reference_prefix=self._config.journal_prefix,
        )

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _load(self, recognition_id: UUID | str) -> RevenueRecognitionModel:
        try:
            key = recognition_id if isinstance(recognition_id, UUID) else UUID(str(recognition_id))
        except ValueError:
            raise RecognitionNotFoundError(str(recognition_id)) from None
        model = self._session.get(RevenueRecognitionModel, key)
        if model is None:
            raise RecognitionNotFoundError(str(recognition_id))
        return model

    def _load_locked(self, recognition_id: UUID | str) -> RevenueRecognitionModel:
        """Load the record under its company's writer lock, freshly read."""
        model = self._load(recognition_id)
        self._journal.store.lock_company(model.company_id)
        return self._session.execute(
            select(RevenueRecognitionModel)
            .where(RevenueRecognitionModel.id == model.id)
            .execution_options(populate_existing=True)
        ).scalar_one()

    def _require_recognizable(self, model: RevenueRecognitionModel) -> None:
        if model.amount is None or model.thb_amount is None:
            raise MissingFieldError("amount", f"recognition {model.id}")
        if model.thb_amount <= 0:
            raise InvalidAmountError("thb_amount", str(model.thb_amount), "must be positive")
        if not model.deferred_revenue_account:
            raise MissingFieldError("deferred_revenue_account", f"recognition {model.id}")
        if not model.revenue_account:
            raise MissingFieldError("revenue_account", f"recognition {model.id}")

    def _emit_recognition_entry(self, model: RevenueRecognitionModel, actor_id: str) -> None:
        """Post Dr deferred revenue / Cr revenue for the record's THB amount."""
        currency = self._chart.reporting_currency
        label = model.receipt_number or str(model.id)
        draft = EntryDraft(
            entry_date=model.recognition_date,
            company_id=model.company_id,
            description=f"Revenue recognition {label}",
            lines=(
                LineSpec.debit(model.deferred_revenue_account, model.thb_amount, currency=currency),
                LineSpec.credit(model.revenue_account, model.thb_amount, currency=currency),
            ),
            related_entry_id=model.deferred_journal_entry_id,
        )
        entry = self._journal.create_posted_entry(
            draft,
            actor_id,
            EntrySource.REVENUE_RECOGNITION,
            source_key=recognition_source_key(model.id),
        )
        model.recognition_journal_entry_id = entry.id

    def _apply_recognition(
        self,
        model: RevenueRecognitionModel,
        status: RecognitionStatus,
        trigger: RecognitionTrigger,
        recognition_date: date,
        actor_id: str,
    ) -> None:
        model.status = status.value
        model.recognition_trigger = trigger.value
        model.recognition_date = recognition_date
        model.recognized_by = actor_id
        model.updated_by = actor_id
        self._emit_recognition_entry(model, actor_id)
        self._session.flush()
        logger.info(
            "revenue_recognized",
            extra={
                "recognition_id": str(model.id),
                "status": model.status,
                "trigger": model.recognition_trigger,
                "recognition_date": recognition_date,
                "thb_amount": model.thb_amount,
                "revenue_account": model.revenue_account,
                "entry_id": str(model.recognition_journal_entry_id),
            },
        )

    # =========================================================================
    # Create
    # =========================================================================

    def create_record(self, request: RecognitionRequest, actor_id: str) -> RevenueRecognition:
        """
        Create a recognition record for an income item.

        Initial status: needs_review without a charter end date, recognized
        when the charter already ended (the recognition entry is emitted at
        once), pending otherwise.
        """
        if not request.company_id:
            raise MissingFieldError("company_id")
        if not request.project_id:
            raise MissingFieldError("project_id")
        if request.amount is None:
            raise MissingFieldError("amount")
        amount = to_decimal(request.amount)
        if amount <= 0:
            raise InvalidAmountError("amount", str(amount), "must be positive")
        fx_rate = to_decimal(request.fx_rate)
        if fx_rate <= 0:
            raise InvalidAmountError("fx_rate", str(fx_rate), "must be positive")
        currency = validate_currency(request.currency)
        if (
            request.charter_date_from is not None
            and request.charter_date_to is not None
            and request.charter_date_from > request.charter_date_to
        ):
            raise ValidationError(
                f"charter_date_from {request.charter_date_from} is after "
                f"charter_date_to {request.charter_date_to}"
            )

        deferred_account = request.deferred_revenue_account or self._config.deferred_revenue_account
        revenue_account = request.revenue_account or self._config.revenue_account_for(
            request.charter_type
        )
        self._chart.require(deferred_account)
        self._chart.require(revenue_account)

        today = self._clock.today()
        status = initial_status(request.charter_date_to, today)

        with LogContext.bind(actor_id=actor_id, company_id=request.company_id):
            model = RevenueRecognitionModel(
                company_id=request.company_id,
                project_id=request.project_id,
                receipt_id=request.receipt_id,
                receipt_number=request.receipt_number,
                invoice_id=request.invoice_id,
                charter_type=request.charter_type.value if request.charter_type else None,
                charter_date_from=request.charter_date_from,
                charter_date_to=request.charter_date_to,
                status=(
                    RecognitionStatus.PENDING.value
                    if status == RecognitionStatus.RECOGNIZED
                    else status.value
                ),
                amount=amount,
                currency=currency,
                fx_rate=fx_rate,
                thb_amount=round_money(amount * fx_rate),
                deferred_revenue_account=deferred_account,
                revenue_account=revenue_account,
                deferred_journal_entry_id=request.deferred_journal_entry_id,
                description=request.description,
                client_name=request.client_name,
                created_by=actor_id,
            )
            self._session.add(model)
            self._session.flush()

            logger.info(
                "revenue_recognition_created",
                extra={
                    "recognition_id": str(model.id),
                    "project_id": model.project_id,
                    "initial_status": status.value,
                    "charter_date_to": request.charter_date_to,
                    "thb_amount": model.thb_amount,
                },
            )

            if status == RecognitionStatus.RECOGNIZED:
                self._apply_recognition(
                    model, status, RecognitionTrigger.AUTOMATIC, today, actor_id,
                )

            return model.to_dto()

    # =========================================================================
    # Recognize
    # =========================================================================

    def recognize_revenue(
        self,
        recognition_id: UUID | str,
        actor_id: str,
        trigger: RecognitionTrigger | str,
        recognition_date: date | None = None,
    ) -> RevenueRecognition:
        """
        Move a record to its recognized state and post the recognition entry.

        Args:
            recognition_id: Record to recognize.
            actor_id: Recorded as ``recognized_by``.
            trigger: automatic, manual or immediate.
            recognition_date: Entry date; defaults to today.

        Raises:
            AlreadyRecognizedError: second call for the same record.
            RecognitionNotDueError: automatic trigger before the charter ended.
            InvalidRecognitionTransitionError: disallowed status/trigger pair.
        """
        if not actor_id:
            raise MissingFieldError("recognized_by")
        try:
            trigger = RecognitionTrigger(trigger)
        except ValueError:
            raise ValidationError(f"Unknown recognition trigger: {trigger!r}") from None

        model = self._load_locked(recognition_id)
        with LogContext.bind(actor_id=actor_id, company_id=model.company_id):
            self._require_recognizable(model)
            today = self._clock.today()
            target = next_status(
                str(model.id),
                RecognitionStatus(model.status),
                trigger,
                model.charter_date_to,
                today,
            )
            self._apply_recognition(
                model, target, trigger, recognition_date or today, actor_id,
            )
            return model.to_dto()

    def process_due_recognitions(self, actor_id: str = "system") -> SweepResult:
        """
        Recognize every pending record whose charter has ended.

        Each record is recognized on its charter end date inside its own
        savepoint; a failing record is rolled back and reported while the
        others proceed.
        """
        today = self._clock.today()
        due_ids = self._session.execute(
            select(RevenueRecognitionModel.id)
            .where(RevenueRecognitionModel.status == RecognitionStatus.PENDING.value)
            .where(RevenueRecognitionModel.charter_date_to.is_not(None))
            .where(RevenueRecognitionModel.charter_date_to <= today)
            .order_by(RevenueRecognitionModel.charter_date_to, RevenueRecognitionModel.id)
        ).scalars().all()

        recognized: list[RevenueRecognition] = []
        failures: list[SweepFailure] = []
        for recognition_id in due_ids:
            savepoint = self._session.begin_nested()
            try:
                model = self._load(recognition_id)
                dto = self.recognize_revenue(
                    recognition_id,
                    actor_id,
                    RecognitionTrigger.AUTOMATIC,
                    recognition_date=model.charter_date_to,
                )
                savepoint.commit()
                recognized.append(dto)
            except LedgerError as exc:
                savepoint.rollback()
                failures.append(SweepFailure(recognition_id, exc.code, str(exc)))
                logger.warning(
                    "revenue_recognition_sweep_failure",
                    extra={
                        "recognition_id": str(recognition_id),
                        "error_code": exc.code,
                        "reason": str(exc),
                    },
                )

        logger.info(
            "revenue_recognition_sweep_completed",
            extra={
                "as_of": today,
                "due_count": len(due_ids),
                "recognized_count": len(recognized),
                "failure_count": len(failures),
            },
        )
        return SweepResult(as_of=today, recognized=tuple(recognized), failures=tuple(failures))

    # =========================================================================
    # Queries
    # =========================================================================

    def get_record(self, recognition_id: UUID | str) -> RevenueRecognition:
        return self._load(recognition_id).to_dto()

    def list_records(
        self,
        company_id: str | None = None,
        status: RecognitionStatus | str | None = None,
        project_id: str | None = None,
    ) -> list[RevenueRecognition]:
        stmt = select(RevenueRecognitionModel)
        if company_id is not None:
            stmt = stmt.where(RevenueRecognitionModel.company_id == company_id)
        if status is not None:
            stmt = stmt.where(RevenueRecognitionModel.status == RecognitionStatus(status).value)
        if project_id is not None:
            stmt = stmt.where(RevenueRecognitionModel.project_id == project_id)
        stmt = stmt.order_by(
            RevenueRecognitionModel.charter_date_to,
            RevenueRecognitionModel.created_at,
            RevenueRecognitionModel.id,
        )
        return [m.to_dto() for m in self._session.execute(stmt).scalars().all()]

    def deferred_revenue_summary(self, company_id: str | None = None) -> DeferredRevenueSummary:
        """Counts and THB totals of records per status; pending and needs_review are deferred."""
        stmt = select(RevenueRecognitionModel.status, RevenueRecognitionModel.thb_amount)
        if company_id is not None:
            stmt = stmt.where(RevenueRecognitionModel.company_id == company_id)

        counts: dict[str, int] = {s.value: 0 for s in RecognitionStatus}
        totals: dict[str, Decimal] = {s.value: ZERO for s in RecognitionStatus}
        for status, thb_amount in self._session.execute(stmt).all():
            counts[status] += 1
            totals[status] += thb_amount

        return DeferredRevenueSummary(
            company_id=company_id,
            pending_count=counts[RecognitionStatus.PENDING.value],
            needs_review_count=counts[RecognitionStatus.NEEDS_REVIEW.value],
            pending_thb=totals[RecognitionStatus.PENDING.value],
            needs_review_thb=totals[RecognitionStatus.NEEDS_REVIEW.value],
            counts_by_status=counts,
        )
