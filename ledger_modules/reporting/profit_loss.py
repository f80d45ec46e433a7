"""
Profit-and-loss builders (``ledger_modules.reporting.profit_loss``).

Responsibility
--------------
Turns source documents (receipts, expenses, credit and debit notes) into
the company-level P&L, the project-level P&L over a Nov-Oct fiscal year,
and the per-month transaction drill-down of a project.

Architecture position
---------------------
**Modules layer** -- pure functions over already-fetched documents.  The
only collaborator they touch is the optional ``ExchangeRateSource`` passed
through to ``fx.convert_to_reporting``.  ``ReportingService`` fetches the
documents and handles source failures.

Invariants enforced
-------------------
* A document kind's P&L effect comes from the exhaustive table in
  ``ledger_kernel.domain.documents``; invoices are excluded because the
  receipts that settle them carry the income.
* Revenue-bearing items count only when ``is_service_completed`` holds
  for their service end date; undated revenue is excluded.
* Every conversion records its RateSource; legacy-table conversions are
  counted on the report.
* A document that cannot be converted or whose account has the wrong type
  is skipped and listed, never silently dropped.

Failure modes
-------------
* None raised for data problems -- they become ``SkippedDocument`` rows.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from ledger_kernel.db.types import ZERO, is_negligible, round_money
from ledger_kernel.domain.accounts import Account, AccountType, ChartOfAccounts
from ledger_kernel.domain.documents import (
    DocumentKind,
    ExchangeRateSource,
    PLEffect,
    PLSide,
    ProjectInfo,
    SourceDocument,
    pl_effect,
)
from ledger_kernel.domain.fiscal import (
    fiscal_months,
    fiscal_year_label,
    is_service_completed,
    month_key,
    month_label,
)
from ledger_kernel.exceptions import ExchangeRateNotFoundError
from ledger_kernel.logging_config import get_logger

from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.fx import ConvertedAmount, RateSource, convert_to_reporting
from ledger_modules.reporting.models import (
    PLCategory,
    PLLineItem,
    PLReport,
    PLSection,
    ProjectMonth,
    ProjectPLReport,
    ProjectTransaction,
    ReportMetadata,
    SkippedDocument,
)

logger = get_logger("modules.reporting.profit_loss")

HUNDRED = Decimal("100")
MANAGEMENT_FEE_KIND = "management_fee"

_EXPECTED_TYPE: dict[PLSide, AccountType] = {
    PLSide.INCOME: AccountType.REVENUE,
    PLSide.EXPENSE: AccountType.EXPENSE,
}


# =========================================================================
# Item resolution
# =========================================================================


@dataclass(frozen=True)
class ResolvedItem:
    """A document that passed every inclusion rule, converted and signed."""

    document: SourceDocument
    effect: PLEffect
    account_code: str
    account: Account | None
    converted: ConvertedAmount

    @property
    def original_amount(self) -> Decimal:
        return self.document.amount * self.effect.sign

    @property
    def reporting_amount(self) -> Decimal:
        return self.converted.reporting * self.effect.sign


@dataclass
class ItemResolver:
    """
    Applies the inclusion rules to documents and collects what was skipped.

    One resolver is used per report so ``skipped`` and ``legacy_rate_count``
    describe that report.
    """

    chart: ChartOfAccounts
    config: ReportingConfig
    today: date
    rates: ExchangeRateSource | None = None
    skipped: list[SkippedDocument] = field(default_factory=list)
    legacy_rate_count: int = 0

    def _skip(self, doc: SourceDocument, reason: str) -> None:
        self.skipped.append(SkippedDocument(doc.id, doc.document_number, reason))
        logger.warning(
            "pl_document_skipped",
            extra={"document_id": doc.id, "document_number": doc.document_number, "reason": reason},
        )

    def default_account(self, side: PLSide) -> str:
        if side == PLSide.INCOME:
            return self.config.default_income_account
        return self.config.default_expense_account

    def resolve(self, doc: SourceDocument) -> ResolvedItem | None:
        """Return the resolved item, or None if the document is not in P&L."""
        effect = pl_effect(DocumentKind(doc.kind))
        if effect is None:
            return None
        if effect.is_revenue_bearing and not is_service_completed(doc.service_end_date, self.today):
            return None

        account_code = doc.account_code or self.default_account(effect.side)
        account = self.chart.lookup(account_code)
        if account is not None and account.account_type != _EXPECTED_TYPE[effect.side]:
            self._skip(
                doc,
                f"account {account_code} is {account.account_type.value}, "
                f"not {_EXPECTED_TYPE[effect.side].value}",
            )
            return None

        try:
            converted = self.convert(doc.amount, doc.currency, doc.document_date, doc.fx_rate, doc.document_number)
        except ExchangeRateNotFoundError as exc:
            self._skip(doc, str(exc))
            return None

        return ResolvedItem(doc, effect, account_code, account, converted)

    def convert(
        self,
        amount: Decimal,
        currency: str,
        on_date: date,
        stored_rate: Decimal | None,
        document_ref: str,
    ) -> ConvertedAmount:
        converted = convert_to_reporting(
            amount,
            currency,
            on_date,
            self.config.reporting_currency,
            stored_rate=stored_rate,
            rates=self.rates,
            document_ref=document_ref,
        )
        if converted.is_legacy:
            self.legacy_rate_count += 1
        return converted


# =========================================================================
# 1. COMPANY P&L
# =========================================================================


def _line_item(item: ResolvedItem) -> PLLineItem:
    doc = item.document
    return PLLineItem(
        document_id=doc.id,
        document_date=doc.document_date,
        document_number=doc.document_number,
        kind=DocumentKind(doc.kind).value,
        account_code=item.account_code,
        description=doc.description,
        counterparty=doc.counterparty,
        project_id=doc.project_id,
        currency=item.converted.currency,
        original_amount=item.original_amount,
        fx_rate=item.converted.rate,
        rate_source=item.converted.source,
        reporting_amount=item.reporting_amount,
    )


def _build_section(items: list[ResolvedItem]) -> PLSection:
    """Group by account, drop accounts netting to zero, then group by subtype."""
    by_account: dict[str, list[ResolvedItem]] = defaultdict(list)
    for item in items:
        by_account[item.account_code].append(item)

    by_subtype: dict[str, list[ResolvedItem]] = defaultdict(list)
    codes_by_subtype: dict[str, set[str]] = defaultdict(set)
    for code, account_items in by_account.items():
        if is_negligible(sum((i.reporting_amount for i in account_items), ZERO)):
            continue
        account = account_items[0].account
        subtype = account.subtype if account is not None else "Other"
        by_subtype[subtype].extend(account_items)
        codes_by_subtype[subtype].add(code)

    categories = []
    for name in sorted(by_subtype):
        lines = sorted(
            (_line_item(i) for i in by_subtype[name]),
            key=lambda line: (line.account_code, line.document_date, line.document_number),
        )
        categories.append(PLCategory(
            name=name,
            account_codes=tuple(sorted(codes_by_subtype[name])),
            items=tuple(lines),
            original_total=sum((line.original_amount for line in lines), ZERO),
            reporting_total=sum((line.reporting_amount for line in lines), ZERO),
        ))

    return PLSection(
        categories=tuple(categories),
        total_original=sum((c.original_total for c in categories), ZERO),
        total_reporting=sum((c.reporting_total for c in categories), ZERO),
    )


def build_profit_and_loss(
    documents: list[SourceDocument],
    resolver: ItemResolver,
    metadata: ReportMetadata,
    company_id: str | None = None,
    project_id: str | None = None,
    data_gap_reason: str | None = None,
) -> PLReport:
    """
    Build the company-level P&L from documents in the report period.

    ``company_id`` / ``project_id`` restrict the documents; None means all.
    """
    income: list[ResolvedItem] = []
    expenses: list[ResolvedItem] = []
    for doc in documents:
        if company_id is not None and doc.company_id != company_id:
            continue
        if project_id is not None and doc.project_id != project_id:
            continue
        item = resolver.resolve(doc)
        if item is None:
            continue
        (income if item.effect.side == PLSide.INCOME else expenses).append(item)

    income_section = _build_section(income)
    expense_section = _build_section(expenses)
    currencies = sorted({
        line.currency
        for section in (income_section, expense_section)
        for category in section.categories
        for line in category.items
    })

    return PLReport(
        metadata=metadata,
        income=income_section,
        expenses=expense_section,
        net_profit_original=income_section.total_original - expense_section.total_original,
        net_profit_reporting=income_section.total_reporting - expense_section.total_reporting,
        has_multiple_currencies=len(currencies) > 1,
        currencies=tuple(currencies),
        legacy_rate_count=resolver.legacy_rate_count,
        skipped_documents=tuple(resolver.skipped),
        data_gap=data_gap_reason is not None,
        data_gap_reason=data_gap_reason,
    )


# =========================================================================
# 2. PROJECT TRANSACTIONS
# =========================================================================


def _category_name(chart: ChartOfAccounts, account_code: str) -> str:
    account = chart.lookup(account_code)
    if account is None:
        return account_code
    return account.category or account.name


def project_transactions(
    documents: list[SourceDocument],
    project_id: str,
    side: PLSide,
    resolver: ItemResolver,
) -> list[ProjectTransaction]:
    """Included items of one project on one P&L side, oldest first."""
    rows = []
    for doc in documents:
        if doc.project_id != project_id:
            continue
        effect = pl_effect(DocumentKind(doc.kind))
        if effect is None or effect.side != side:
            continue
        item = resolver.resolve(doc)
        if item is None:
            continue
        rows.append(ProjectTransaction(
            id=doc.id,
            transaction_date=doc.document_date,
            description=doc.description,
            account_code=item.account_code,
            category_name=_category_name(resolver.chart, item.account_code),
            original_amount=item.original_amount,
            currency=item.converted.currency,
            reporting_amount=item.reporting_amount,
            rate_source=item.converted.source,
            document_number=doc.document_number,
            document_kind=DocumentKind(doc.kind).value,
            counterparty=doc.counterparty,
        ))
    rows.sort(key=lambda t: (t.transaction_date, t.document_number))
    return rows


def management_fee_transactions(
    documents: list[SourceDocument],
    management_project: ProjectInfo,
    projects: list[ProjectInfo],
    resolver: ItemResolver,
) -> list[ProjectTransaction]:
    """
    Management-fee income earned by the management company project.

    For every other project with a positive fee percentage, recognised
    income is summed per month and the fee on it becomes one income row
    of the management project, dated on the last income date of the month.
    """
    account_code = resolver.config.management_fee_account
    rows = []
    for project in sorted(projects, key=lambda p: p.code):
        if project.id == management_project.id or project.management_fee_percent <= 0:
            continue

        monthly: dict[str, Decimal] = defaultdict(lambda: ZERO)
        last_date: dict[str, date] = {}
        for tx in project_transactions(documents, project.id, PLSide.INCOME, resolver):
            key = month_key(tx.transaction_date)
            monthly[key] += tx.reporting_amount
            last_date[key] = max(last_date.get(key, tx.transaction_date), tx.transaction_date)

        for key in sorted(monthly):
            fee = round_money(monthly[key] * project.management_fee_percent / HUNDRED)
            if is_negligible(fee):
                continue
            rows.append(ProjectTransaction(
                id=f"mgmt-fee-{project.id}-{key}",
                transaction_date=last_date[key],
                description=f"Management Fee - {project.name} ({project.management_fee_percent}%)",
                account_code=account_code,
                category_name=_category_name(resolver.chart, account_code),
                original_amount=fee,
                currency=resolver.config.reporting_currency,
                reporting_amount=fee,
                rate_source=RateSource.IDENTITY,
                document_number=f"MGT-{project.code}",
                document_kind=MANAGEMENT_FEE_KIND,
            ))
    return rows


# =========================================================================
# 3. PROJECT P&L
# =========================================================================


def _project_month(key: str, label: str, income: Decimal, expense: Decimal, pct: Decimal) -> ProjectMonth:
    fee = round_money(income * pct / HUNDRED)
    return ProjectMonth(
        month=key,
        month_label=label,
        income=income,
        expense=expense,
        management_fee=fee,
        profit=income - fee - expense,
    )


def build_project_pl(
    project: ProjectInfo,
    fiscal_year: str,
    income: list[ProjectTransaction],
    expenses: list[ProjectTransaction],
    resolver: ItemResolver,
    metadata: ReportMetadata,
    data_gap_reason: str | None = None,
) -> ProjectPLReport:
    """
    Bucket a project's income and expense rows into the twelve fiscal
    months (Nov -> Oct) and total them.
    """
    income_by_month: dict[str, Decimal] = defaultdict(lambda: ZERO)
    expense_by_month: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for tx in income:
        income_by_month[month_key(tx.transaction_date)] += tx.reporting_amount
    for tx in expenses:
        expense_by_month[month_key(tx.transaction_date)] += tx.reporting_amount

    pct = project.management_fee_percent
    months = tuple(
        _project_month(key, month_label(key), income_by_month[key], expense_by_month[key], pct)
        for key in fiscal_months(fiscal_year)
    )
    totals = ProjectMonth(
        month="TOTAL",
        month_label="Total",
        income=sum((m.income for m in months), ZERO),
        expense=sum((m.expense for m in months), ZERO),
        management_fee=sum((m.management_fee for m in months), ZERO),
        profit=sum((m.profit for m in months), ZERO),
    )

    return ProjectPLReport(
        metadata=metadata,
        project_id=project.id,
        project_code=project.code,
        project_name=project.name,
        fiscal_year=fiscal_year,
        fiscal_year_label=fiscal_year_label(fiscal_year),
        management_fee_percent=pct,
        months=months,
        totals=totals,
        legacy_rate_count=resolver.legacy_rate_count,
        skipped_documents=tuple(resolver.skipped),
        data_gap=data_gap_reason is not None,
        data_gap_reason=data_gap_reason,
    )
