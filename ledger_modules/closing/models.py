"""
Module: ledger_modules.closing.models
Responsibility:
    Frozen DTOs for closing entries: per-project prior-year P&L totals, the
    prior-year import request and result, and the year-end close result.

Architecture:
    ledger_modules layer -- pure data definitions with ZERO I/O.
    All monetary fields are Decimal.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from ledger_kernel.db.types import ZERO


@dataclass(frozen=True)
class ProjectYearTotals:
    """One project's summarised P&L for a historical year, in THB."""

    project_id: str
    project_name: str
    total_income: Decimal = ZERO
    total_expenses: Decimal = ZERO
    management_fees: Decimal = ZERO

    @property
    def net_profit(self) -> Decimal:
        return self.total_income - self.total_expenses - self.management_fees

    @property
    def has_data(self) -> bool:
        return any(v > 0 for v in (self.total_income, self.total_expenses, self.management_fees))


@dataclass(frozen=True)
class PriorYearTotals:
    total_income: Decimal
    total_expenses: Decimal
    total_management_fees: Decimal
    total_net_profit: Decimal


@dataclass(frozen=True)
class PriorYearImportRequest:
    fiscal_year: int
    company_id: str
    projects: tuple[ProjectYearTotals, ...]
    effective_date: date | None = None
    notes: str | None = None


@dataclass(frozen=True)
class ImportedProjectEntry:
    project_id: str
    entry_id: UUID
    reference_number: str
    net_profit: Decimal


@dataclass(frozen=True)
class PriorYearImportResult:
    """Entries created (or found, on a retry) by one prior-year import."""

    fiscal_year: int
    company_id: str
    effective_date: date
    entries: tuple[ImportedProjectEntry, ...]
    skipped_project_ids: tuple[str, ...]
    totals: PriorYearTotals

    @property
    def entry_count(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class ClosedAccount:
    account_code: str
    amount: Decimal   # amount moved out of the account, on its normal side


@dataclass(frozen=True)
class YearEndCloseResult:
    company_id: str
    fiscal_year: int
    closing_date: date
    net_income: Decimal
    closed_accounts: tuple[ClosedAccount, ...]
    entry_id: UUID | None = None
    reference_number: str | None = None
