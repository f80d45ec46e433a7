"""
Pure statement builders (``ledger_modules.reporting.statements``).

Responsibility
--------------
Transforms per-account ledger totals (``AccountTotals`` from the kernel
``LedgerSelector``) into a trial balance and a balance sheet.

Architecture position
---------------------
**Modules layer** -- pure functions, ZERO I/O.  ``ReportingService`` loads
the totals and the chart, then delegates here.

Invariants enforced
-------------------
* Trial balance: each account's net follows its normal balance; a
  negative net is shown in the opposite column, never dropped.  Rows are
  sorted by account code.
* Balance sheet: line balances are expressed on the section's side (debit
  for assets, credit for liabilities and equity), so a contra account
  shows as a negative line.  With that orientation
  ``assets = liabilities + equity + (revenue - expense)`` holds for any
  set of balanced entries.
* Unclosed revenue - expense is folded into Current Year Earnings (3210)
  on top of whatever the account already holds.
* Neither builder raises on imbalance: ``is_balanced`` and ``difference``
  carry it.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from ledger_kernel.db.types import ZERO, is_negligible
from ledger_kernel.domain.accounts import (
    CURRENT_YEAR_EARNINGS,
    Account,
    AccountType,
    ChartOfAccounts,
    NormalBalance,
    natural_balance,
)
from ledger_kernel.selectors.ledger_selector import AccountTotals

from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheetLine,
    BalanceSheetReport,
    BalanceSheetSection,
    BalanceSheetSubtype,
    ReportMetadata,
    TrialBalanceReport,
    TrialBalanceRow,
)

UNKNOWN_ACCOUNT_TYPE = "Unknown"

_SECTION_SIDE: dict[AccountType, NormalBalance] = {
    AccountType.ASSET: NormalBalance.DEBIT,
    AccountType.LIABILITY: NormalBalance.CREDIT,
    AccountType.EQUITY: NormalBalance.CREDIT,
}

_SECTION_LABEL: dict[AccountType, str] = {
    AccountType.ASSET: "Assets",
    AccountType.LIABILITY: "Liabilities",
    AccountType.EQUITY: "Equity",
}


# =========================================================================
# 1. TRIAL BALANCE
# =========================================================================


def trial_balance_columns(
    net: Decimal,
    normal_balance: NormalBalance,
) -> tuple[Decimal, Decimal]:
    """
    Place a normal-side net into (debit_balance, credit_balance).

    A debit-normal account with a negative net lands in the credit column
    and a credit-normal account with a negative net in the debit column.
    """
    if normal_balance == NormalBalance.DEBIT:
        return (net, ZERO) if net >= 0 else (ZERO, -net)
    return (ZERO, net) if net >= 0 else (-net, ZERO)


def build_trial_balance(
    totals: list[AccountTotals],
    chart: ChartOfAccounts,
    metadata: ReportMetadata,
) -> TrialBalanceReport:
    """
    Build the trial balance from per-account totals.

    Accounts missing from the chart are kept under their code with a
    debit-normal convention and listed in ``unknown_accounts``.
    """
    rows: list[TrialBalanceRow] = []
    unknown: list[str] = []

    for acc in sorted(totals, key=lambda t: t.account_code):
        account = chart.lookup(acc.account_code)
        if account is None:
            normal = NormalBalance.DEBIT
            name, account_type = acc.account_code, UNKNOWN_ACCOUNT_TYPE
        else:
            normal = account.normal_balance
            name, account_type = account.name, account.account_type.value

        net = natural_balance(acc.debit_total, acc.credit_total, normal)
        if is_negligible(net):
            continue
        if account is None:
            unknown.append(acc.account_code)

        debit_balance, credit_balance = trial_balance_columns(net, normal)
        rows.append(TrialBalanceRow(
            account_code=acc.account_code,
            account_name=name,
            account_type=account_type,
            normal_balance=normal.value,
            debit_balance=debit_balance,
            credit_balance=credit_balance,
            in_chart=account is not None,
        ))

    total_debits = sum((r.debit_balance for r in rows), ZERO)
    total_credits = sum((r.credit_balance for r in rows), ZERO)
    difference = total_debits - total_credits

    return TrialBalanceReport(
        metadata=metadata,
        rows=tuple(rows),
        total_debits=total_debits,
        total_credits=total_credits,
        is_balanced=is_negligible(difference),
        difference=difference,
        unknown_accounts=tuple(unknown),
    )


# =========================================================================
# 2. BALANCE SHEET
# =========================================================================


def compute_current_year_earnings(
    totals: list[AccountTotals],
    chart: ChartOfAccounts,
) -> Decimal:
    """Revenue (credits - debits) minus expense (debits - credits)."""
    revenue = ZERO
    expense = ZERO
    for acc in totals:
        account = chart.lookup(acc.account_code)
        if account is None:
            continue
        if account.account_type == AccountType.REVENUE:
            revenue += acc.credit_total - acc.debit_total
        elif account.account_type == AccountType.EXPENSE:
            expense += acc.debit_total - acc.credit_total
    return revenue - expense


def _balance_sheet_line(
    account: Account,
    acc: AccountTotals | None,
    side: NormalBalance,
    reporting_currency: str,
    earnings: Decimal,
) -> BalanceSheetLine:
    if acc is None:
        balance = ZERO
        original_amount: Decimal | None = ZERO
        original_currency: str | None = reporting_currency
    else:
        balance = natural_balance(acc.debit_total, acc.credit_total, side)
        original_currency = acc.single_currency
        original_amount = (
            natural_balance(acc.debit_original, acc.credit_original, side)
            if original_currency is not None
            else None
        )

    if earnings:
        balance += earnings
        if original_currency == reporting_currency and original_amount is not None:
            original_amount += earnings
        elif acc is not None:
            original_amount, original_currency = None, None

    return BalanceSheetLine(
        account_code=account.code,
        account_name=account.name,
        category=account.category,
        balance=balance,
        original_amount=original_amount,
        original_currency=original_currency,
        current_year_earnings=earnings,
    )


def _build_section(
    account_type: AccountType,
    lines_by_subtype: dict[str, list[BalanceSheetLine]],
    config: ReportingConfig,
) -> BalanceSheetSection:
    subtypes = []
    for name in sorted(lines_by_subtype, key=config.subtype_rank):
        lines = sorted(lines_by_subtype[name], key=lambda line: line.account_code)
        subtypes.append(BalanceSheetSubtype(
            name=name,
            lines=tuple(lines),
            total=sum((line.balance for line in lines), ZERO),
        ))
    return BalanceSheetSection(
        label=_SECTION_LABEL[account_type],
        account_type=account_type.value,
        subtypes=tuple(subtypes),
        total=sum((s.total for s in subtypes), ZERO),
    )


def build_balance_sheet(
    totals: list[AccountTotals],
    chart: ChartOfAccounts,
    config: ReportingConfig,
    metadata: ReportMetadata,
) -> BalanceSheetReport:
    """
    Build the balance sheet.

    Steps:
    1. Net each Asset / Liability / Equity account on its section's side.
    2. Add unclosed revenue - expense to Current Year Earnings.
    3. Drop lines with |balance| < 0.01.
    4. Group by subtype in canonical order; lines by account code.
    5. Compare assets with liabilities + equity.
    """
    by_code = {acc.account_code: acc for acc in totals}
    earnings = (
        compute_current_year_earnings(totals, chart)
        if config.include_current_year_earnings
        else ZERO
    )
    if is_negligible(earnings):
        earnings = ZERO

    sections: dict[AccountType, dict[str, list[BalanceSheetLine]]] = {
        t: defaultdict(list) for t in _SECTION_SIDE
    }
    currencies: set[str] = set()

    for account_type, side in _SECTION_SIDE.items():
        for account in chart.accounts_of_type(account_type):
            acc = by_code.get(account.code)
            extra = earnings if account.code == CURRENT_YEAR_EARNINGS else ZERO
            if acc is None and not extra:
                continue
            line = _balance_sheet_line(
                account, acc, side, config.reporting_currency, extra,
            )
            if is_negligible(line.balance):
                continue
            sections[account_type][account.subtype].append(line)
            if acc is not None:
                currencies.update(acc.currencies)

    if earnings and CURRENT_YEAR_EARNINGS not in chart:
        # Chart without 3210: show the earnings on a synthetic line
        sections[AccountType.EQUITY]["Retained Earnings"].append(BalanceSheetLine(
            account_code=CURRENT_YEAR_EARNINGS,
            account_name="Current Year Earnings",
            category="Retained Earnings",
            balance=earnings,
            original_amount=earnings,
            original_currency=config.reporting_currency,
            current_year_earnings=earnings,
        ))

    assets = _build_section(AccountType.ASSET, sections[AccountType.ASSET], config)
    liabilities = _build_section(AccountType.LIABILITY, sections[AccountType.LIABILITY], config)
    equity = _build_section(AccountType.EQUITY, sections[AccountType.EQUITY], config)

    total_l_and_e = liabilities.total + equity.total
    difference = assets.total - total_l_and_e

    return BalanceSheetReport(
        metadata=metadata,
        assets=assets,
        liabilities=liabilities,
        equity=equity,
        total_assets=assets.total,
        total_liabilities=liabilities.total,
        total_equity=equity.total,
        total_liabilities_and_equity=total_l_and_e,
        is_balanced=is_negligible(difference),
        difference=difference,
        current_year_earnings=earnings,
        has_multiple_currencies=len(currencies) > 1,
        currencies=tuple(sorted(currencies)),
    )
