"""
Closing Entries Service (``ledger_modules.closing.service``).

Responsibility
--------------
Generates the ledger's closing entries:

* ``PriorYearImportService`` turns summarised per-project P&L figures of a
  historical year into posted entries moving the net result from Current
  Year Earnings (3210) to Retained Earnings - Prior Years (3200).
* ``YearEndCloseService`` closes every revenue and expense balance of a
  calendar year into Retained Earnings - Prior Years.

Architecture position
---------------------
**Modules layer** -- thin glue over ``JournalEntryService`` and the kernel
``LedgerSelector``; line construction lives in ``helpers.py``.

Invariants enforced
-------------------
* Every generated entry is posted through the same balance check as a
  manual entry.
* Idempotent: each entry carries a source key (per company, year and
  project for the import; per company and year for the close), so a
  retried call finds the existing entry instead of posting a second one.
* A year with draft entries or an unbalanced trial balance is not closed.

Failure modes
-------------
* ``PriorYearImportValidationError`` listing every problem of a request.
* ``PreCloseCheckError`` / ``YearAlreadyClosedError`` (``StateError``).

Audit relevance
---------------
``prior_year_import_completed`` and ``year_end_close_completed`` carry the
entry references and totals.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable

from sqlalchemy.orm import Session

from ledger_kernel.db.types import ZERO, is_negligible, to_decimal
from ledger_kernel.domain.accounts import ChartOfAccounts
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.journal import EntryDraft, EntrySource, JournalEntryStatus
from ledger_kernel.exceptions import (
    PreCloseCheckError,
    PriorYearImportValidationError,
    YearAlreadyClosedError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.journal_service import JournalEntryService

from ledger_modules.closing.helpers import (
    calculate_totals,
    closing_lines,
    default_effective_date,
    import_description,
    prior_year_lines,
    validate_import,
)
from ledger_modules.closing.models import (
    ImportedProjectEntry,
    PriorYearImportRequest,
    PriorYearImportResult,
    ProjectYearTotals,
    YearEndCloseResult,
)

logger = get_logger("modules.closing.service")


def prior_year_source_key(company_id: str, fiscal_year: int, project_id: str) -> str:
    return f"prior_year:{company_id}:{fiscal_year}:{project_id}"


def year_end_close_source_key(company_id: str, fiscal_year: int) -> str:
    return f"year_end_close:{company_id}:{fiscal_year}"


def _normalise(project: ProjectYearTotals) -> ProjectYearTotals:
    return ProjectYearTotals(
        project_id=project.project_id,
        project_name=project.project_name or project.project_id,
        total_income=to_decimal(project.total_income),
        total_expenses=to_decimal(project.total_expenses),
        management_fees=to_decimal(project.management_fees),
    )


class PriorYearImportService:
    """
    Imports historical per-project P&L summaries as closing entries.

    Contract
    --------
    One posted entry per project whose net result is not negligible, dated
    on the effective date (default 31 December of the fiscal year).
    """

    def __init__(
        self,
        session: Session,
        chart: ChartOfAccounts,
        clock: Clock | None = None,
        journal: JournalEntryService | None = None,
    ):
        self._chart = chart
        self._clock = clock or SystemClock()
        self._journal = journal or JournalEntryService(session, chart, self._clock)

    def import_prior_year(
        self,
        fiscal_year: int,
        company_id: str,
        projects: Iterable[ProjectYearTotals],
        actor_id: str,
        effective_date: date | None = None,
        notes: str | None = None,
    ) -> PriorYearImportResult:
        """
        Create one posted closing entry per project.

        Net = income - expenses - management fees.  A profit is booked
        Dr 3210 / Cr 3200, a loss Dr 3200 / Cr 3210.  Projects with a net
        below 0.01 are skipped.

        Raises:
            PriorYearImportValidationError: with every validation problem.
        """
        request = PriorYearImportRequest(
            fiscal_year=fiscal_year,
            company_id=company_id,
            projects=tuple(_normalise(p) for p in projects),
            effective_date=effective_date,
            notes=notes,
        )
        errors = validate_import(request, self._clock.today().year)
        if errors:
            logger.warning(
                "prior_year_import_rejected",
                extra={"fiscal_year": fiscal_year, "company_id": company_id, "errors": errors},
            )
            raise PriorYearImportValidationError(errors)

        posting_date = effective_date or default_effective_date(fiscal_year)
        currency = self._chart.reporting_currency
        entries: list[ImportedProjectEntry] = []
        skipped: list[str] = []

        with LogContext.bind(actor_id=actor_id, company_id=company_id):
            for project in request.projects:
                if is_negligible(project.net_profit):
                    skipped.append(project.project_id)
                    continue
                description = import_description(fiscal_year, project, currency)
                if notes:
                    description = f"{description} | Notes: {notes}"
                draft = EntryDraft(
                    entry_date=posting_date,
                    company_id=company_id,
                    description=description,
                    lines=prior_year_lines(fiscal_year, project, currency),
                )
                entry = self._journal.create_posted_entry(
                    draft,
                    actor_id,
                    EntrySource.PRIOR_YEAR_IMPORT,
                    source_key=prior_year_source_key(company_id, fiscal_year, project.project_id),
                )
                entries.append(ImportedProjectEntry(
                    project_id=project.project_id,
                    entry_id=entry.id,
                    reference_number=entry.reference_number,
                    net_profit=project.net_profit,
                ))

            totals = calculate_totals(request.projects)
            logger.info(
                "prior_year_import_completed",
                extra={
                    "fiscal_year": fiscal_year,
                    "effective_date": posting_date,
                    "entry_count": len(entries),
                    "skipped_count": len(skipped),
                    "total_net_profit": totals.total_net_profit,
                    "reference_numbers": [e.reference_number for e in entries],
                },
            )

        return PriorYearImportResult(
            fiscal_year=fiscal_year,
            company_id=company_id,
            effective_date=posting_date,
            entries=tuple(entries),
            skipped_project_ids=tuple(skipped),
            totals=totals,
        )


class YearEndCloseService:
    """
    Closes a calendar year's revenue and expense balances.

    Contract
    --------
    ``close_year`` posts one entry dated 31 December that zeroes every
    revenue and expense account for the year and books the net income to
    Retained Earnings - Prior Years.
    """

    def __init__(
        self,
        session: Session,
        chart: ChartOfAccounts,
        clock: Clock | None = None,
        journal: JournalEntryService | None = None,
    ):
        self._chart = chart
        self._clock = clock or SystemClock()
        self._journal = journal or JournalEntryService(session, chart, self._clock)
        self._ledger = LedgerSelector(session)

    def pre_close_failures(self, company_id: str, fiscal_year: int) -> list[str]:
        """Reasons the year cannot be closed; empty when it can."""
        start, end = date(fiscal_year, 1, 1), date(fiscal_year, 12, 31)
        failures: list[str] = []

        drafts = self._ledger.count_entries(
            company_id, start, end, status=JournalEntryStatus.DRAFT,
        )
        if drafts:
            failures.append(f"{drafts} draft entries dated in {fiscal_year}")

        totals = self._ledger.account_totals(end, company_id=company_id)
        debits = sum((t.debit_total for t in totals), ZERO)
        credits = sum((t.credit_total for t in totals), ZERO)
        if not is_negligible(debits - credits):
            failures.append(f"trial balance out of balance by {debits - credits}")
        return failures

    def close_year(self, company_id: str, fiscal_year: int, actor_id: str) -> YearEndCloseResult:
        """
        Close ``fiscal_year`` for ``company_id``.

        Raises:
            YearAlreadyClosedError: a closing entry already exists.
            PreCloseCheckError: drafts in the year or an unbalanced ledger.
        """
        source_key = year_end_close_source_key(company_id, fiscal_year)
        closing_date = date(fiscal_year, 12, 31)

        with LogContext.bind(actor_id=actor_id, company_id=company_id):
            existing = self._journal.store.find_by_source_key(source_key)
            if existing is not None:
                raise YearAlreadyClosedError(company_id, fiscal_year, str(existing.id))

            failures = self.pre_close_failures(company_id, fiscal_year)
            if failures:
                logger.warning(
                    "year_end_close_blocked",
                    extra={"fiscal_year": fiscal_year, "failures": failures},
                )
                raise PreCloseCheckError(company_id, fiscal_year, failures)

            totals = self._ledger.account_totals(
                closing_date, company_id=company_id, date_from=date(fiscal_year, 1, 1),
            )
            lines, closed, net_income = closing_lines(
                totals, self._chart, self._chart.reporting_currency,
            )
            if not lines:
                logger.info(
                    "year_end_close_nothing_to_close",
                    extra={"fiscal_year": fiscal_year},
                )
                return YearEndCloseResult(
                    company_id=company_id,
                    fiscal_year=fiscal_year,
                    closing_date=closing_date,
                    net_income=ZERO,
                    closed_accounts=(),
                )

            entry = self._journal.create_posted_entry(
                EntryDraft(
                    entry_date=closing_date,
                    company_id=company_id,
                    description=f"Year-end close FY{fiscal_year}",
                    lines=tuple(lines),
                ),
                actor_id,
                EntrySource.YEAR_END_CLOSE,
                source_key=source_key,
            )
            logger.info(
                "year_end_close_completed",
                extra={
                    "fiscal_year": fiscal_year,
                    "entry_id": str(entry.id),
                    "reference_number": entry.reference_number,
                    "net_income": net_income,
                    "closed_account_count": len(closed),
                },
            )
            return YearEndCloseResult(
                company_id=company_id,
                fiscal_year=fiscal_year,
                closing_date=closing_date,
                net_income=net_income,
                closed_accounts=tuple(closed),
                entry_id=entry.id,
                reference_number=entry.reference_number,
            )
