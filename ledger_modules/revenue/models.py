"""
Module: ledger_modules.revenue.models
Responsibility:
    Frozen domain DTOs for charter revenue recognition: the recognition
    record, the request that creates one, and the sweep and summary
    results.

Architecture:
    ledger_modules layer -- pure data definitions with ZERO I/O.
    All models are frozen dataclasses; monetary fields are Decimal.

Invariants:
    - ``thb_amount`` is the reporting-currency value of ``amount``, fixed
      when the record is created.
    - Status and trigger enums are string-backed so they serialise into
      logs and String columns unchanged.

Audit relevance:
    - ``recognized_by``, ``recognition_date`` and ``trigger`` identify who
      released deferred revenue, when, and on what basis.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID


class RecognitionStatus(str, Enum):
    """
    Revenue recognition lifecycle states.

    pending -> recognized; needs_review -> manual_recognized.  The choice
    between pending and needs_review is made once, at creation.
    """

    PENDING = "pending"
    RECOGNIZED = "recognized"
    NEEDS_REVIEW = "needs_review"
    MANUAL_RECOGNIZED = "manual_recognized"

    @property
    def is_recognized(self) -> bool:
        return self in (RecognitionStatus.RECOGNIZED, RecognitionStatus.MANUAL_RECOGNIZED)


class RecognitionTrigger(str, Enum):
    AUTOMATIC = "automatic"   # charter end date has passed
    MANUAL = "manual"         # booking marked completed
    IMMEDIATE = "immediate"   # no charter dates, recognition approved anyway


class CharterType(str, Enum):
    DAY_CHARTER = "day_charter"
    OVERNIGHT_CHARTER = "overnight_charter"
    CABIN_CHARTER = "cabin_charter"
    OTHER_CHARTER = "other_charter"
    BAREBOAT_CHARTER = "bareboat_charter"
    CREWED_CHARTER = "crewed_charter"
    OUTSOURCE_COMMISSION = "outsource_commission"


@dataclass(frozen=True)
class RevenueRecognition:
    """One deferred income item and its recognition state."""

    id: UUID
    company_id: str
    project_id: str
    status: RecognitionStatus
    amount: Decimal
    currency: str
    fx_rate: Decimal
    thb_amount: Decimal
    deferred_revenue_account: str
    revenue_account: str
    receipt_id: str | None = None
    receipt_number: str | None = None
    invoice_id: str | None = None
    charter_type: CharterType | None = None
    charter_date_from: date | None = None
    charter_date_to: date | None = None
    recognition_date: date | None = None
    trigger: RecognitionTrigger | None = None
    recognized_by: str | None = None
    deferred_journal_entry_id: UUID | None = None
    recognition_journal_entry_id: UUID | None = None
    description: str | None = None
    client_name: str | None = None

    @property
    def is_recognized(self) -> bool:
        return self.status.is_recognized


@dataclass(frozen=True)
class RecognitionRequest:
    """
    Input for creating a recognition record alongside an income document.

    ``revenue_account`` wins over ``charter_type``; with neither, the
    configured default revenue account is used.
    """

    company_id: str
    project_id: str
    amount: Decimal
    currency: str = "THB"
    fx_rate: Decimal = Decimal("1")
    charter_date_from: date | None = None
    charter_date_to: date | None = None
    charter_type: CharterType | None = None
    revenue_account: str | None = None
    deferred_revenue_account: str | None = None
    receipt_id: str | None = None
    receipt_number: str | None = None
    invoice_id: str | None = None
    deferred_journal_entry_id: UUID | None = None
    description: str | None = None
    client_name: str | None = None


@dataclass(frozen=True)
class SweepFailure:
    recognition_id: UUID
    error_code: str
    message: str


@dataclass(frozen=True)
class SweepResult:
    """Outcome of one automatic recognition sweep."""

    as_of: date
    recognized: tuple[RevenueRecognition, ...] = ()
    failures: tuple[SweepFailure, ...] = ()

    @property
    def recognized_count(self) -> int:
        return len(self.recognized)


@dataclass(frozen=True)
class DeferredRevenueSummary:
    """Counts and reporting-currency totals of unrecognized revenue."""

    company_id: str | None
    pending_count: int
    needs_review_count: int
    pending_thb: Decimal
    needs_review_thb: Decimal
    counts_by_status: dict[str, int] = field(default_factory=dict)

    @property
    def total_thb(self) -> Decimal:
        return self.pending_thb + self.needs_review_thb
