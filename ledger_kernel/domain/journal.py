"""
Journal value objects -- draft lines, drafts, partial updates and the
balance rule.

Responsibility:
    The pure, persistence-free vocabulary of a journal entry: which side a
    line sits on, the lifecycle states, what kind of process produced an
    entry, and the single definition of "balanced".

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Imported by models/journal.py (for
    the enums) and by every service that builds entries.

Invariants enforced:
    - A line amount is never negative; the side carries the direction.
    - Balanced means |sum(debits) - sum(credits)| < 0.01, compared in the
      reporting currency so that a EUR line can balance a THB line.
    - Reporting amounts are fixed when the line is recorded
      (amount * fx_rate, rounded by round_money).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable
from uuid import UUID

from ledger_kernel.db.types import BALANCE_TOLERANCE, ZERO, round_money, to_decimal


class JournalEntryStatus(str, Enum):
    """Lifecycle status of a journal entry.

    DRAFT -> POSTED, one way.  Posting is terminal.
    """

    DRAFT = "draft"
    POSTED = "posted"


class LineSide(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class EntrySource(str, Enum):
    """Process that produced an entry."""

    MANUAL = "manual"
    REVENUE_RECOGNITION = "revenue_recognition"
    PRIOR_YEAR_IMPORT = "prior_year_import"
    YEAR_END_CLOSE = "year_end_close"


@dataclass(frozen=True)
class LineSpec:
    """One requested journal line."""

    account_code: str
    side: LineSide
    amount: Decimal
    currency: str = "THB"
    fx_rate: Decimal = Decimal("1")
    memo: str | None = None

    @classmethod
    def debit(cls, account_code: str, amount: Decimal | int | str, **kwargs) -> LineSpec:
        return cls(account_code, LineSide.DEBIT, to_decimal(amount), **kwargs)

    @classmethod
    def credit(cls, account_code: str, amount: Decimal | int | str, **kwargs) -> LineSpec:
        return cls(account_code, LineSide.CREDIT, to_decimal(amount), **kwargs)

    @property
    def reporting_amount(self) -> Decimal:
        return round_money(self.amount * self.fx_rate)


@dataclass(frozen=True)
class EntryDraft:
    """Everything needed to create a journal entry."""

    entry_date: date
    company_id: str
    description: str
    lines: tuple[LineSpec, ...]
    related_entry_id: UUID | None = None


@dataclass(frozen=True)
class EntryChanges:
    """Partial update of a draft entry.  None means "leave unchanged"."""

    entry_date: date | None = None
    description: str | None = None
    lines: tuple[LineSpec, ...] | None = None


def line_totals(lines: Iterable) -> tuple[Decimal, Decimal]:
    """(total debits, total credits) in the reporting currency.

    Accepts LineSpec objects or persisted JournalLine rows; both expose
    ``side`` and ``reporting_amount``.
    """
    debits = ZERO
    credits = ZERO
    for line in lines:
        if line.side == LineSide.DEBIT:
            debits += line.reporting_amount
        else:
            credits += line.reporting_amount
    return debits, credits


def is_balanced(lines: Iterable, tolerance: Decimal = BALANCE_TOLERANCE) -> bool:
    """|sum(debits) - sum(credits)| < tolerance (0.01 unless configured)."""
    debits, credits = line_totals(lines)
    return abs(debits - credits) < tolerance
