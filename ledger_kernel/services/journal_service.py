"""
JournalEntryService -- journal entry lifecycle (create, update, post, delete).

Responsibility:
    The exposed write API of the ledger.  Validates drafts against the chart
    of accounts, assigns reference numbers, keeps header totals in step with
    the lines, and moves entries from DRAFT to POSTED through an explicit,
    balance-checked action.

Architecture position:
    Kernel > Services -- imperative shell.  Uses LedgerStore for storage and
    locking and SequenceService for reference numbers.  Flushes only; the
    caller commits.

Invariants enforced:
    - A posted entry balances: |debits - credits| < 0.01 (or the configured
      balance tolerance) in the reporting currency.  Unbalanced entries
      are rejected, never auto-balanced.
    - Posting is terminal: posted entries reject update, delete and a second
      post (StateError).
    - id and reference_number never change after creation.
    - Totals are recomputed in the same flush as any line change.
    - Generated entries (create_posted_entry) pass the same validation and
      balance check and are idempotent on their source_key; the key is
      checked under the company writer lock.

Failure modes:
    - MissingFieldError / InvalidAmountError / InvalidCurrencyError /
      InvalidAccountError on bad drafts.
    - UnbalancedEntryError when posting an unbalanced entry.
    - AlreadyPostedError / PostedEntryImmutableError on posted entries.
    - JournalEntryNotFoundError on unknown ids.

Audit relevance:
    created_by, posted_by and posted_at record who did what and when; every
    transition is logged with the entry id, reference number and company.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.types import BALANCE_TOLERANCE, ZERO, validate_currency
from ledger_kernel.domain.accounts import ChartOfAccounts
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.journal import (
    EntryChanges,
    EntryDraft,
    EntrySource,
    JournalEntryStatus,
    LineSpec,
    is_balanced,
    line_totals,
)
from ledger_kernel.exceptions import (
    AlreadyPostedError,
    InvalidAmountError,
    MissingFieldError,
    PostedEntryImmutableError,
    UnbalancedEntryError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.services.ledger_store import JournalQuery, LedgerStore
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.journal")

DEFAULT_REFERENCE_PREFIX = "JE"


class JournalEntryService:
    """
    Journal entry lifecycle service.

    Contract:
        ``create_entry`` -> DRAFT; ``post_entry`` -> POSTED (terminal).
        ``create_posted_entry`` is the one documented bypass of the draft
        step, for entries that represent already-settled facts (historical
        closing balances, revenue recognition, year-end close).

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT model reversals.
    """

    def __init__(
        self,
        session: Session,
        chart: ChartOfAccounts,
        clock: Clock | None = None,
        reference_prefix: str = DEFAULT_REFERENCE_PREFIX,
        balance_tolerance: Decimal = BALANCE_TOLERANCE,
    ):
        if balance_tolerance <= ZERO:
            raise ValueError("balance_tolerance must be positive")
        self._session = session
        self._chart = chart
        self._clock = clock or SystemClock()
        self._prefix = reference_prefix
        self._tolerance = balance_tolerance
        self._store = LedgerStore(session)
        self._sequences = SequenceService(session)

    @property
    def store(self) -> LedgerStore:
        return self._store

    # =========================================================================
    # Validation
    # =========================================================================

    def is_balanced(self, lines) -> bool:
        """|sum(debits) - sum(credits)| below the configured tolerance."""
        return is_balanced(lines, self._tolerance)

    def _validate_header(self, draft: EntryDraft) -> None:
        if draft.entry_date is None:
            raise MissingFieldError("entry_date")
        if not draft.company_id:
            raise MissingFieldError("company_id")
        if not draft.description or not draft.description.strip():
            raise MissingFieldError("description")

    def _validate_lines(self, lines: tuple[LineSpec, ...]) -> None:
        if not lines or len(lines) < 2:
            raise MissingFieldError("lines", "an entry needs at least two lines")

        for spec in lines:
            if not spec.account_code:
                raise MissingFieldError("account_code")
            self._chart.require(spec.account_code)
            validate_currency(spec.currency)
            if spec.amount is None:
                raise MissingFieldError("amount", f"account {spec.account_code}")
            if spec.amount < ZERO:
                raise InvalidAmountError("amount", str(spec.amount), "must not be negative")
            if spec.fx_rate is None or spec.fx_rate <= ZERO:
                raise InvalidAmountError("fx_rate", str(spec.fx_rate), "must be positive")

        if all(spec.amount == ZERO for spec in lines):
            raise InvalidAmountError("amount", "0", "an entry needs at least one non-zero line")

    @staticmethod
    def _build_lines(lines: tuple[LineSpec, ...]) -> list[JournalLine]:
        return [
            JournalLine(
                line_seq=seq,
                account_code=spec.account_code,
                side=spec.side,
                amount=spec.amount,
                currency=validate_currency(spec.currency),
                fx_rate=spec.fx_rate,
                reporting_amount=spec.reporting_amount,
                memo=spec.memo,
            )
            for seq, spec in enumerate(lines)
        ]

    def _require_balanced(self, lines, entry_ref: str) -> None:
        if not is_balanced(lines, self._tolerance):
            debits, credits = line_totals(lines)
            logger.warning(
                "journal_entry_unbalanced",
                extra={"reference_number": entry_ref, "debits": debits, "credits": credits},
            )
            raise UnbalancedEntryError(
                str(debits), str(credits), self._chart.reporting_currency,
            )

    # =========================================================================
    # Create
    # =========================================================================

    def _new_entry(
        self,
        draft: EntryDraft,
        actor_id: str,
        source_type: EntrySource,
        source_key: str | None,
    ) -> JournalEntry:
        self._validate_header(draft)
        self._validate_lines(draft.lines)
        if not actor_id:
            raise MissingFieldError("actor_id")

        entry = JournalEntry(
            reference_number=self._sequences.next_reference(
                self._prefix, draft.entry_date.year,
            ),
            company_id=draft.company_id,
            entry_date=draft.entry_date,
            description=draft.description.strip(),
            status=JournalEntryStatus.DRAFT,
            source_type=source_type,
            source_key=source_key,
            related_entry_id=draft.related_entry_id,
            created_by=actor_id,
        )
        entry.lines = self._build_lines(draft.lines)
        entry.recompute_totals()
        return entry

    def create_entry(self, draft: EntryDraft, actor_id: str) -> JournalEntry:
        """
        Create a DRAFT entry.

        Computes totals, assigns an id and the next ``JE-YYYY-NNN`` reference
        number for the entry date's year, and persists the entry.  Drafts may
        be unbalanced; balance is enforced by ``post_entry``.
        """
        with LogContext.bind(actor_id=actor_id, company_id=draft.company_id):
            entry = self._new_entry(draft, actor_id, EntrySource.MANUAL, None)
            self._store.append(entry)
            logger.info(
                "journal_entry_created",
                extra={
                    "entry_id": str(entry.id),
                    "reference_number": entry.reference_number,
                    "total_debit": entry.total_debit,
                    "total_credit": entry.total_credit,
                    "line_count": len(entry.lines),
                },
            )
            return entry

    def create_posted_entry(
        self,
        draft: EntryDraft,
        actor_id: str,
        source_type: EntrySource,
        source_key: str | None = None,
    ) -> JournalEntry:
        """
        Create an entry directly in POSTED state.

        Used for system-generated entries that bypass draft review.  The
        balance check still applies.  When ``source_key`` is given and an
        entry with that key already exists, the existing entry is returned
        unchanged, so a retried generator never emits a duplicate.
        """
        with LogContext.bind(actor_id=actor_id, company_id=draft.company_id):
            if source_key is not None:
                if not draft.company_id:
                    raise MissingFieldError("company_id")
                # Under the company lock a concurrent generator has either
                # committed its entry or not started yet
                self._store.lock_company(draft.company_id)
                existing = self._store.find_by_source_key(source_key)
                if existing is not None:
                    logger.info(
                        "generated_entry_already_exists",
                        extra={
                            "entry_id": str(existing.id),
                            "reference_number": existing.reference_number,
                            "source_key": source_key,
                        },
                    )
                    return existing

            self._validate_header(draft)
            self._validate_lines(draft.lines)
            self._require_balanced(draft.lines, "<new>")

            entry = self._new_entry(draft, actor_id, source_type, source_key)
            entry.status = JournalEntryStatus.POSTED
            entry.posted_by = actor_id
            entry.posted_at = self._clock.now()
            self._store.append(entry)
            logger.info(
                "journal_entry_posted",
                extra={
                    "entry_id": str(entry.id),
                    "reference_number": entry.reference_number,
                    "source_type": source_type,
                    "source_key": source_key,
                    "total_debit": entry.total_debit,
                },
            )
            return entry

    # =========================================================================
    # Read
    # =========================================================================

    def get_entry(self, entry_id: UUID) -> JournalEntry:
        """Return the entry or raise JournalEntryNotFoundError."""
        return self._store.require(entry_id)

    def list_entries(self, predicate: JournalQuery | None = None) -> list[JournalEntry]:
        return self._store.query(predicate or JournalQuery())

    # =========================================================================
    # Update / post / delete
    # =========================================================================

    def update_entry(
        self,
        entry_id: UUID,
        changes: EntryChanges,
        actor_id: str,
    ) -> JournalEntry:
        """
        Update a DRAFT entry.

        Replacing the lines recomputes the totals in the same flush.  The
        reference number is kept even if the date moves to another year.
        """

        def _apply(entry: JournalEntry) -> None:
            if entry.is_posted:
                raise PostedEntryImmutableError(
                    str(entry.id), entry.reference_number, "update",
                )
            # Validated after the guard: a posted entry reports StateError
            if changes.lines is not None:
                self._validate_lines(changes.lines)
            if changes.description is not None and not changes.description.strip():
                raise MissingFieldError("description")
            if changes.entry_date is not None:
                entry.entry_date = changes.entry_date
            if changes.description is not None:
                entry.description = changes.description.strip()
            if changes.lines is not None:
                entry.lines = self._build_lines(changes.lines)
                entry.recompute_totals()
            entry.updated_by = actor_id

        with LogContext.bind(actor_id=actor_id, entry_id=entry_id):
            entry = self._store.update(entry_id, _apply)
            logger.info(
                "journal_entry_updated",
                extra={
                    "reference_number": entry.reference_number,
                    "lines_replaced": changes.lines is not None,
                    "total_debit": entry.total_debit,
                    "total_credit": entry.total_credit,
                },
            )
            return entry

    def post_entry(self, entry_id: UUID, actor_id: str) -> JournalEntry:
        """
        Post a DRAFT entry: the explicit, balance-checked transition.

        Raises:
            JournalEntryNotFoundError: unknown id.
            AlreadyPostedError: the entry is already posted.
            UnbalancedEntryError: |debits - credits| >= 0.01.
        """
        if not actor_id:
            raise MissingFieldError("actor_id")

        def _apply(entry: JournalEntry) -> None:
            if entry.is_posted:
                raise AlreadyPostedError(str(entry.id), entry.reference_number)
            self._require_balanced(entry.lines, entry.reference_number)
            entry.status = JournalEntryStatus.POSTED
            entry.posted_by = actor_id
            entry.posted_at = self._clock.now()
            entry.updated_by = actor_id

        with LogContext.bind(actor_id=actor_id, entry_id=entry_id):
            entry = self._store.update(entry_id, _apply)
            logger.info(
                "journal_entry_posted",
                extra={
                    "reference_number": entry.reference_number,
                    "source_type": entry.source_type,
                    "total_debit": entry.total_debit,
                },
            )
            return entry

    def delete_entry(self, entry_id: UUID, actor_id: str) -> None:
        """Delete a DRAFT entry.  Posted entries raise PostedEntryImmutableError."""

        def _guard(entry: JournalEntry) -> None:
            if entry.is_posted:
                raise PostedEntryImmutableError(
                    str(entry.id), entry.reference_number, "delete",
                )

        with LogContext.bind(actor_id=actor_id, entry_id=entry_id):
            self._store.remove(entry_id, _guard)
            logger.info("journal_entry_deleted")
