"""
Pure helpers for closing entries.

Validation, totals and line construction for the prior-year import and the
year-end close.  No I/O, no clock: the current year is passed in.
"""

from datetime import date
from decimal import Decimal

from ledger_kernel.db.types import ZERO, is_negligible
from ledger_kernel.domain.accounts import (
    CURRENT_YEAR_EARNINGS,
    RETAINED_EARNINGS_PRIOR_YEARS,
    AccountType,
    ChartOfAccounts,
)
from ledger_kernel.domain.journal import LineSpec
from ledger_kernel.selectors.ledger_selector import AccountTotals

from ledger_modules.closing.models import (
    ClosedAccount,
    PriorYearImportRequest,
    PriorYearTotals,
    ProjectYearTotals,
)

MIN_FISCAL_YEAR = 2000


def default_effective_date(fiscal_year: int) -> date:
    return date(fiscal_year, 12, 31)


def validate_import(request: PriorYearImportRequest, current_year: int) -> list[str]:
    """All problems with ``request``; empty when it may be imported."""
    errors: list[str] = []

    fiscal_year = request.fiscal_year
    if not fiscal_year or fiscal_year < MIN_FISCAL_YEAR or fiscal_year > current_year:
        errors.append(f"fiscal year must be between {MIN_FISCAL_YEAR} and {current_year}")

    if not request.company_id:
        errors.append("company is required")

    if request.effective_date is not None and fiscal_year:
        if request.effective_date.year != fiscal_year:
            errors.append("effective date must be within the selected fiscal year")

    if not request.projects:
        errors.append("no projects given for the company")
        return errors

    if not any(p.has_data for p in request.projects):
        errors.append("at least one project needs income, expenses or fees")

    for project in request.projects:
        if project.total_income < 0:
            errors.append(f"{project.project_name}: income must be zero or greater")
        if project.total_expenses < 0:
            errors.append(f"{project.project_name}: expenses must be zero or greater")
        if project.management_fees < 0:
            errors.append(f"{project.project_name}: management fees must be zero or greater")

    return errors


def calculate_totals(projects: tuple[ProjectYearTotals, ...]) -> PriorYearTotals:
    return PriorYearTotals(
        total_income=sum((p.total_income for p in projects), ZERO),
        total_expenses=sum((p.total_expenses for p in projects), ZERO),
        total_management_fees=sum((p.management_fees for p in projects), ZERO),
        total_net_profit=sum((p.net_profit for p in projects), ZERO),
    )


def import_description(fiscal_year: int, project: ProjectYearTotals, currency: str) -> str:
    net = project.net_profit
    parts = [
        f"Prior Year P&L Import - FY{fiscal_year} - {project.project_name}",
        f"Income: {project.total_income:,.2f} {currency}",
        f"Expenses: {project.total_expenses:,.2f} {currency}",
    ]
    if project.management_fees > 0:
        parts.append(f"Mgmt Fees: {project.management_fees:,.2f} {currency}")
    parts.append(f"Net {'Profit' if net >= 0 else 'Loss'}: {abs(net):,.2f} {currency}")
    return " | ".join(parts)


def prior_year_lines(
    fiscal_year: int,
    project: ProjectYearTotals,
    currency: str,
) -> tuple[LineSpec, LineSpec]:
    """
    Dr 3210 / Cr 3200 for a profit; Dr 3200 / Cr 3210 for a loss.
    """
    net = project.net_profit
    amount = abs(net)
    label = f"FY{fiscal_year} {project.project_name}"
    if net >= 0:
        return (
            LineSpec.debit(CURRENT_YEAR_EARNINGS, amount, currency=currency, memo=f"{label} - closing"),
            LineSpec.credit(RETAINED_EARNINGS_PRIOR_YEARS, amount, currency=currency, memo=f"{label} - net profit"),
        )
    return (
        LineSpec.debit(RETAINED_EARNINGS_PRIOR_YEARS, amount, currency=currency, memo=f"{label} - net loss"),
        LineSpec.credit(CURRENT_YEAR_EARNINGS, amount, currency=currency, memo=f"{label} - closing"),
    )


def closing_lines(
    totals: list[AccountTotals],
    chart: ChartOfAccounts,
    currency: str,
) -> tuple[list[LineSpec], list[ClosedAccount], Decimal]:
    """
    Lines that bring every revenue and expense balance to zero, with the
    difference booked to Retained Earnings - Prior Years.

    Returns:
        (lines, closed accounts, net income).  ``lines`` is empty when
        there is nothing to close.
    """
    lines: list[LineSpec] = []
    closed: list[ClosedAccount] = []
    net_income = ZERO

    for acc in sorted(totals, key=lambda t: t.account_code):
        account = chart.lookup(acc.account_code)
        if account is None:
            continue
        if account.account_type == AccountType.REVENUE:
            balance = acc.credit_total - acc.debit_total
            if is_negligible(balance):
                continue
            net_income += balance
            spec = LineSpec.debit if balance > 0 else LineSpec.credit
        elif account.account_type == AccountType.EXPENSE:
            balance = acc.debit_total - acc.credit_total
            if is_negligible(balance):
                continue
            net_income -= balance
            spec = LineSpec.credit if balance > 0 else LineSpec.debit
        else:
            continue
        lines.append(spec(acc.account_code, abs(balance), currency=currency, memo="year-end close"))
        closed.append(ClosedAccount(acc.account_code, balance))

    if lines and not is_negligible(net_income):
        spec = LineSpec.credit if net_income > 0 else LineSpec.debit
        lines.append(spec(
            RETAINED_EARNINGS_PRIOR_YEARS, abs(net_income), currency=currency, memo="net income for the year",
        ))
    return lines, closed, net_income
