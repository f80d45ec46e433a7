"""
Financial Reporting Domain Models (``ledger_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects representing report outputs: trial
balance, balance sheet, company profit and loss, project profit and loss
with its monthly buckets, and the per-month transaction drill-down.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by the
pure functions in ``statements.py`` and ``profit_loss.py`` and returned by
``ReportingService``.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* Imbalance is data: ``is_balanced`` and ``difference`` are always set,
  reports are never withheld because they do not balance.

Audit relevance
---------------
* ``ReportMetadata`` carries the generation timestamp (from the injected
  clock) and parameters, so a report can be reproduced.
* ``legacy_rate_count`` and ``skipped_documents`` make every non-standard
  currency conversion visible on the report itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from ledger_modules.reporting.fx import RateSource


# =========================================================================
# Enums
# =========================================================================


class ReportType(str, Enum):
    """Types of financial reports."""

    TRIAL_BALANCE = "trial_balance"
    BALANCE_SHEET = "balance_sheet"
    PROFIT_AND_LOSS = "profit_and_loss"
    PROJECT_PROFIT_AND_LOSS = "project_profit_and_loss"


# =========================================================================
# Report Metadata (common to all reports)
# =========================================================================


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every financial report."""

    report_type: ReportType
    entity_name: str
    currency: str
    as_of_date: date
    generated_at: str  # ISO format timestamp from injected clock
    period_start: date | None = None
    period_end: date | None = None
    company_id: str | None = None
    project_id: str | None = None


# =========================================================================
# Trial Balance
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceRow:
    """
    One account of the trial balance.

    Exactly one of ``debit_balance`` / ``credit_balance`` is non-zero.  A
    debit-normal account with a negative net shows up in the credit column
    (and vice versa).
    """

    account_code: str
    account_name: str
    account_type: str
    normal_balance: str
    debit_balance: Decimal
    credit_balance: Decimal
    in_chart: bool = True


@dataclass(frozen=True)
class TrialBalanceReport:
    metadata: ReportMetadata
    rows: tuple[TrialBalanceRow, ...]
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool
    difference: Decimal  # total_debits - total_credits
    unknown_accounts: tuple[str, ...] = ()

    def row(self, account_code: str) -> TrialBalanceRow | None:
        return next((r for r in self.rows if r.account_code == account_code), None)


# =========================================================================
# Balance Sheet
# =========================================================================


@dataclass(frozen=True)
class BalanceSheetLine:
    """
    One account on the balance sheet.

    ``balance`` is the reporting-currency net on the account's normal side.
    ``original_amount`` is the same net in the account's own currency; it is
    None when the account saw more than one currency.
    """

    account_code: str
    account_name: str
    category: str
    balance: Decimal
    original_amount: Decimal | None
    original_currency: str | None
    # Portion of ``balance`` that is unclosed revenue - expense
    current_year_earnings: Decimal = Decimal("0")


@dataclass(frozen=True)
class BalanceSheetSubtype:
    name: str
    lines: tuple[BalanceSheetLine, ...]
    total: Decimal


@dataclass(frozen=True)
class BalanceSheetSection:
    """Assets, Liabilities or Equity."""

    label: str
    account_type: str
    subtypes: tuple[BalanceSheetSubtype, ...]
    total: Decimal

    def subtype(self, name: str) -> BalanceSheetSubtype | None:
        return next((s for s in self.subtypes if s.name == name), None)

    def line(self, account_code: str) -> BalanceSheetLine | None:
        for subtype in self.subtypes:
            for line in subtype.lines:
                if line.account_code == account_code:
                    return line
        return None


@dataclass(frozen=True)
class BalanceSheetReport:
    """
    Balance sheet grouped by section and subtype.

    is_balanced = |total_assets - total_liabilities_and_equity| < 0.01.
    """

    metadata: ReportMetadata
    assets: BalanceSheetSection
    liabilities: BalanceSheetSection
    equity: BalanceSheetSection
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    total_liabilities_and_equity: Decimal
    is_balanced: bool
    difference: Decimal
    current_year_earnings: Decimal
    has_multiple_currencies: bool
    currencies: tuple[str, ...]


# =========================================================================
# Profit and Loss
# =========================================================================


@dataclass(frozen=True)
class SkippedDocument:
    """A document left out of a P&L, and why."""

    document_id: str
    document_number: str
    reason: str


@dataclass(frozen=True)
class PLLineItem:
    """
    One document line included in a P&L.

    Amounts are signed: a credit note reduces income, so it carries a
    negative ``original_amount`` and ``reporting_amount``.
    """

    document_id: str
    document_date: date
    document_number: str
    kind: str
    account_code: str
    description: str
    counterparty: str
    project_id: str | None
    currency: str
    original_amount: Decimal
    fx_rate: Decimal
    rate_source: RateSource
    reporting_amount: Decimal


@dataclass(frozen=True)
class PLCategory:
    """Items grouped under one account subtype."""

    name: str
    account_codes: tuple[str, ...]
    items: tuple[PLLineItem, ...]
    original_total: Decimal  # only meaningful for a single currency
    reporting_total: Decimal


@dataclass(frozen=True)
class PLSection:
    categories: tuple[PLCategory, ...]
    total_original: Decimal
    total_reporting: Decimal

    def category(self, name: str) -> PLCategory | None:
        return next((c for c in self.categories if c.name == name), None)


@dataclass(frozen=True)
class PLReport:
    """Company-level profit and loss for a date range."""

    metadata: ReportMetadata
    income: PLSection
    expenses: PLSection
    net_profit_original: Decimal
    net_profit_reporting: Decimal
    has_multiple_currencies: bool
    currencies: tuple[str, ...]
    legacy_rate_count: int = 0
    skipped_documents: tuple[SkippedDocument, ...] = ()
    data_gap: bool = False
    data_gap_reason: str | None = None


# =========================================================================
# Project Profit and Loss
# =========================================================================


@dataclass(frozen=True)
class ProjectMonth:
    """
    One fiscal month of a project.

    management_fee = income * pct / 100; profit = income - fee - expense.
    The totals row uses ``month="TOTAL"`` and ``month_label="Total"``.
    """

    month: str
    month_label: str
    income: Decimal
    expense: Decimal
    management_fee: Decimal
    profit: Decimal


@dataclass(frozen=True)
class ProjectPLReport:
    metadata: ReportMetadata
    project_id: str
    project_code: str
    project_name: str
    fiscal_year: str
    fiscal_year_label: str
    management_fee_percent: Decimal
    months: tuple[ProjectMonth, ...]
    totals: ProjectMonth
    legacy_rate_count: int = 0
    skipped_documents: tuple[SkippedDocument, ...] = ()
    data_gap: bool = False
    data_gap_reason: str | None = None


@dataclass(frozen=True)
class ProjectTransaction:
    """One income or expense item of a project month (drill-down row)."""

    id: str
    transaction_date: date
    description: str
    account_code: str
    category_name: str
    original_amount: Decimal
    currency: str
    reporting_amount: Decimal
    rate_source: RateSource
    document_number: str
    document_kind: str
    counterparty: str = ""
