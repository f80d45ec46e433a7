"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read-only ledger aggregation: per-account debit and credit
    totals over posted journal lines, as of a date and optionally for one
    company.  The ledger is a derived view -- there are no stored balances.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Only POSTED entries contribute; drafts are invisible to every report.
    - Totals are computed at query time from JournalLine rows.
    - Reporting-currency totals aggregate ``reporting_amount``; original
      totals aggregate ``amount`` and are only meaningful when the account
      saw a single currency (``currencies`` tells the caller).

Failure modes:
    - Returns an empty list when no posted entries match.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy import case, func, select

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.journal import JournalEntryStatus, LineSide
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.base import BaseSelector


@dataclass
class AccountTotals:
    """Debit and credit totals of one account."""

    account_code: str
    debit_total: Decimal = ZERO
    credit_total: Decimal = ZERO
    debit_original: Decimal = ZERO
    credit_original: Decimal = ZERO
    currencies: tuple[str, ...] = field(default_factory=tuple)
    line_count: int = 0

    @property
    def net_debit(self) -> Decimal:
        """Debits minus credits in the reporting currency."""
        return self.debit_total - self.credit_total

    @property
    def single_currency(self) -> str | None:
        return self.currencies[0] if len(self.currencies) == 1 else None


class LedgerSelector(BaseSelector):
    """
    Selector for ledger aggregation -- the authoritative balance computation.

    Contract:
        Every method filters by status=POSTED and entry_date <= as_of_date.

    Non-goals:
        - No currency conversion; reporting amounts were fixed at recording.
    """

    def account_totals(
        self,
        as_of_date: date,
        company_id: str | None = None,
        date_from: date | None = None,
    ) -> list[AccountTotals]:
        """
        Per-account totals of posted lines, ordered by account code.

        Args:
            as_of_date: Inclusive cutoff date.
            company_id: Restrict to one company's ledger.
            date_from: Optional inclusive lower bound (year-end close uses it
                to total a single year).
        """
        def _sum(column, side: LineSide):
            return func.sum(case((JournalLine.side == side, column), else_=ZERO))

        query = (
            select(
                JournalLine.account_code,
                JournalLine.currency,
                _sum(JournalLine.reporting_amount, LineSide.DEBIT).label("debit_total"),
                _sum(JournalLine.reporting_amount, LineSide.CREDIT).label("credit_total"),
                _sum(JournalLine.amount, LineSide.DEBIT).label("debit_original"),
                _sum(JournalLine.amount, LineSide.CREDIT).label("credit_original"),
                func.count(JournalLine.id).label("line_count"),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(JournalEntry.status == JournalEntryStatus.POSTED)
            .where(JournalEntry.entry_date <= as_of_date)
            .group_by(JournalLine.account_code, JournalLine.currency)
            .order_by(JournalLine.account_code, JournalLine.currency)
        )
        if company_id is not None:
            query = query.where(JournalEntry.company_id == company_id)
        if date_from is not None:
            query = query.where(JournalEntry.entry_date >= date_from)

        totals: dict[str, AccountTotals] = {}
        for row in self.session.execute(query).all():
            acc = totals.setdefault(row.account_code, AccountTotals(row.account_code))
            acc.debit_total += Decimal(row.debit_total or ZERO)
            acc.credit_total += Decimal(row.credit_total or ZERO)
            acc.debit_original += Decimal(row.debit_original or ZERO)
            acc.credit_original += Decimal(row.credit_original or ZERO)
            acc.currencies = acc.currencies + (row.currency,)
            acc.line_count += row.line_count

        return list(totals.values())

    def count_entries(
        self,
        company_id: str,
        date_from: date,
        date_to: date,
        status: JournalEntryStatus | None = None,
    ) -> int:
        """Number of entries of a company dated within [date_from, date_to]."""
        query = (
            select(func.count(JournalEntry.id))
            .where(JournalEntry.company_id == company_id)
            .where(JournalEntry.entry_date >= date_from)
            .where(JournalEntry.entry_date <= date_to)
        )
        if status is not None:
            query = query.where(JournalEntry.status == status)
        return self.session.execute(query).scalar_one()
