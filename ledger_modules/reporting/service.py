"""
Reporting Module Service (``ledger_modules.reporting.service``).

Responsibility
--------------
Orchestrates report generation -- trial balance, balance sheet, company
P&L, project P&L and the project transaction drill-down -- by bridging the
kernel ``LedgerSelector`` and the injected document, rate and project
collaborators to the pure builders in ``statements.py`` and
``profit_loss.py``.  This is a **read-only** service.

Architecture position
---------------------
**Modules layer** -- thin glue.  Constructor: ``session`` + ``chart`` +
``clock`` + ``config`` + optional collaborators.

Invariants enforced
-------------------
* Read-only -- no mutations to the journal.
* Each report reads through one session, so it sees one snapshot.
* "Today" for revenue recognition gating comes from the injected clock.

Failure modes
-------------
* Document source failure (``DataGapError``) -> empty data set, report
  flagged with ``data_gap`` and the reason; never an exception.
* Unknown project -> ``ProjectNotFoundError``.
* Invalid parameters (date_from > date_to, malformed fiscal year or
  month) -> ``ValidationError`` before any query runs.
* Missing collaborator for a document-based report -> ``RuntimeError``.

Audit relevance
---------------
Structured log events are emitted for every report, carrying its type,
period and outcome (balance state, legacy-rate count, skipped documents).
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from ledger_kernel.domain.accounts import ChartOfAccounts
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.documents import (
    DocumentSource,
    ExchangeRateSource,
    PLSide,
    ProjectDirectory,
    ProjectInfo,
    SourceDocument,
)
from ledger_kernel.domain.fiscal import (
    fiscal_year_date_range,
    fiscal_year_of,
    month_date_range,
    recent_fiscal_years,
)
from ledger_kernel.exceptions import DataGapError, ProjectNotFoundError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.ledger_selector import LedgerSelector

from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    PLReport,
    ProjectPLReport,
    ProjectTransaction,
    ReportMetadata,
    ReportType,
    TrialBalanceReport,
)
from ledger_modules.reporting.profit_loss import (
    ItemResolver,
    build_profit_and_loss,
    build_project_pl,
    management_fee_transactions,
    project_transactions,
)
from ledger_modules.reporting.statements import build_balance_sheet, build_trial_balance

logger = get_logger("modules.reporting.service")


class ReportingService:
    """
    Financial report generation service.

    Contract
    --------
    * Every public method returns a typed, frozen report DTO.
    * All methods are read-only.

    Guarantees
    ----------
    * Financial logic lives in the pure builders; this class only loads
      data and assembles metadata.
    * Clock is injectable for deterministic testing.

    Non-goals
    ---------
    * Does NOT fetch exchange rates itself; an ``ExchangeRateSource`` may
      be injected.
    * Does NOT render or export reports.
    """

    def __init__(
        self,
        session: Session,
        chart: ChartOfAccounts,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
        documents: DocumentSource | None = None,
        rates: ExchangeRateSource | None = None,
        projects: ProjectDirectory | None = None,
    ):
        self._session = session
        self._chart = chart
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()
        self._documents = documents
        self._rates = rates
        self._projects = projects
        self._ledger = LedgerSelector(session)

        logger.info(
            "reporting_service_initialized",
            extra={
                "entity_name": self._config.entity_name,
                "reporting_currency": self._config.reporting_currency,
                "has_document_source": documents is not None,
                "has_rate_source": rates is not None,
            },
        )

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _build_metadata(
        self,
        report_type: ReportType,
        as_of_date: date,
        period_start: date | None = None,
        period_end: date | None = None,
        company_id: str | None = None,
        project_id: str | None = None,
    ) -> ReportMetadata:
        """Build report metadata with injected clock timestamp."""
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._config.entity_name,
            currency=self._config.reporting_currency,
            as_of_date=as_of_date,
            generated_at=self._clock.now().isoformat(),
            period_start=period_start,
            period_end=period_end,
            company_id=company_id,
            project_id=project_id,
        )

    def _resolver(self) -> ItemResolver:
        return ItemResolver(
            chart=self._chart,
            config=self._config,
            today=self._clock.today(),
            rates=self._rates,
        )

    def _fetch_documents(self, start: date, end: date) -> tuple[list[SourceDocument], str | None]:
        """
        Documents dated within [start, end], plus a data-gap reason.

        A failing source yields no documents and the failure message.
        """
        if self._documents is None:
            raise RuntimeError("ReportingService has no DocumentSource configured")
        try:
            documents = list(self._documents.fetch_by_date_range(start, end))
        except DataGapError as exc:
            logger.warning(
                "document_source_unavailable",
                extra={"start": start, "end": end, "error_code": exc.code, "reason": str(exc)},
            )
            return [], str(exc)
        except Exception as exc:
            logger.warning(
                "document_source_unavailable",
                extra={
                    "start": start,
                    "end": end,
                    "error_type": type(exc).__name__,
                    "reason": str(exc),
                },
                exc_info=True,
            )
            return [], f"document source failed: {exc}"
        logger.debug(
            "documents_fetched",
            extra={"start": start, "end": end, "document_count": len(documents)},
        )
        return documents, None

    def _require_project(self, project_id: str) -> ProjectInfo:
        if self._projects is None:
            raise RuntimeError("ReportingService has no ProjectDirectory configured")
        project = self._projects.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def _project_income(
        self,
        project: ProjectInfo,
        documents: list[SourceDocument],
        resolver: ItemResolver,
    ) -> list[ProjectTransaction]:
        income = project_transactions(documents, project.id, PLSide.INCOME, resolver)
        if project.code == self._config.management_project_code:
            income.extend(management_fee_transactions(
                documents, project, self._projects.list_projects(), resolver,
            ))
            income.sort(key=lambda t: (t.transaction_date, t.document_number))
        return income

    # =========================================================================
    # Ledger-based reports
    # =========================================================================

    def trial_balance(
        self,
        as_of_date: date,
        company_id: str | None = None,
    ) -> TrialBalanceReport:
        """
        Generate a trial balance as of ``as_of_date`` (inclusive).

        Returns:
            TrialBalanceReport; an imbalance is reported, not raised.
        """
        totals = self._ledger.account_totals(as_of_date, company_id=company_id)
        metadata = self._build_metadata(
            ReportType.TRIAL_BALANCE, as_of_date, company_id=company_id,
        )
        report = build_trial_balance(totals, self._chart, metadata)

        if report.unknown_accounts:
            logger.warning(
                "trial_balance_unknown_accounts",
                extra={"account_codes": list(report.unknown_accounts)},
            )
        if not report.is_balanced:
            logger.warning(
                "trial_balance_out_of_balance",
                extra={"difference": report.difference, "as_of_date": as_of_date},
            )
        logger.info(
            "trial_balance_generated",
            extra={
                "as_of_date": as_of_date.isoformat(),
                "company_id": company_id,
                "row_count": len(report.rows),
                "total_debits": report.total_debits,
                "total_credits": report.total_credits,
                "is_balanced": report.is_balanced,
            },
        )
        return report

    def balance_sheet(
        self,
        as_of_date: date,
        company_id: str | None = None,
    ) -> BalanceSheetReport:
        """
        Generate the balance sheet as of ``as_of_date`` (inclusive).

        Unclosed revenue - expense appears under Current Year Earnings.
        """
        totals = self._ledger.account_totals(as_of_date, company_id=company_id)
        metadata = self._build_metadata(
            ReportType.BALANCE_SHEET, as_of_date, company_id=company_id,
        )
        report = build_balance_sheet(totals, self._chart, self._config, metadata)

        if not report.is_balanced:
            logger.warning(
                "balance_sheet_out_of_balance",
                extra={"difference": report.difference, "as_of_date": as_of_date},
            )
        logger.info(
            "balance_sheet_generated",
            extra={
                "as_of_date": as_of_date.isoformat(),
                "company_id": company_id,
                "total_assets": report.total_assets,
                "total_liabilities_and_equity": report.total_liabilities_and_equity,
                "current_year_earnings": report.current_year_earnings,
                "is_balanced": report.is_balanced,
            },
        )
        return report

    # =========================================================================
    # Document-based reports
    # =========================================================================

    def profit_and_loss(
        self,
        date_from: date,
        date_to: date,
        company_id: str | None = None,
        project_id: str | None = None,
    ) -> PLReport:
        """
        Generate the company-level P&L for documents dated in
        [date_from, date_to].
        """
        if date_from > date_to:
            raise ValidationError(f"date_from {date_from} is after date_to {date_to}")

        documents, gap = self._fetch_documents(date_from, date_to)
        resolver = self._resolver()
        metadata = self._build_metadata(
            ReportType.PROFIT_AND_LOSS,
            date_to,
            period_start=date_from,
            period_end=date_to,
            company_id=company_id,
            project_id=project_id,
        )
        report = build_profit_and_loss(
            documents, resolver, metadata,
            company_id=company_id, project_id=project_id, data_gap_reason=gap,
        )

        logger.info(
            "profit_and_loss_generated",
            extra={
                "date_from": date_from.isoformat(),
                "date_to": date_to.isoformat(),
                "company_id": company_id,
                "project_id": project_id,
                "net_profit": report.net_profit_reporting,
                "legacy_rate_count": report.legacy_rate_count,
                "skipped_count": len(report.skipped_documents),
                "data_gap": report.data_gap,
            },
        )
        return report

    def project_profit_and_loss(
        self,
        project_id: str,
        fiscal_year: str,
    ) -> ProjectPLReport:
        """
        Generate a project's P&L for a Nov-Oct fiscal year ("2024-2025").

        Raises:
            ProjectNotFoundError: ``project_id`` unknown to the directory.
            ValidationError: malformed fiscal year.
        """
        start, end = fiscal_year_date_range(fiscal_year)
        project = self._require_project(project_id)

        documents, gap = self._fetch_documents(start, end)
        resolver = self._resolver()
        income = self._project_income(project, documents, resolver)
        expenses = project_transactions(documents, project.id, PLSide.EXPENSE, resolver)

        metadata = self._build_metadata(
            ReportType.PROJECT_PROFIT_AND_LOSS,
            end,
            period_start=start,
            period_end=end,
            company_id=project.company_id,
            project_id=project.id,
        )
        report = build_project_pl(
            project, fiscal_year, income, expenses, resolver, metadata, data_gap_reason=gap,
        )

        logger.info(
            "project_profit_and_loss_generated",
            extra={
                "project_id": project.id,
                "project_code": project.code,
                "fiscal_year": fiscal_year,
                "income": report.totals.income,
                "expense": report.totals.expense,
                "profit": report.totals.profit,
                "legacy_rate_count": report.legacy_rate_count,
                "data_gap": report.data_gap,
            },
        )
        return report

    def project_transactions(
        self,
        project_id: str,
        month: str,
        side: PLSide | str,
    ) -> list[ProjectTransaction]:
        """
        Drill-down: the income or expense rows of one project month.

        Args:
            project_id: Project to inspect.
            month: ``"YYYY-MM"`` month key.
            side: ``"income"`` or ``"expense"``.
        """
        try:
            side = PLSide(side)
        except ValueError:
            raise ValidationError(f"side must be 'income' or 'expense', got {side!r}") from None
        start, end = month_date_range(month)
        project = self._require_project(project_id)

        documents, _ = self._fetch_documents(start, end)
        resolver = self._resolver()
        if side == PLSide.INCOME:
            rows = self._project_income(project, documents, resolver)
        else:
            rows = project_transactions(documents, project.id, PLSide.EXPENSE, resolver)

        logger.info(
            "project_transactions_listed",
            extra={"project_id": project.id, "month": month, "side": side, "row_count": len(rows)},
        )
        return rows

    # =========================================================================
    # Fiscal helpers
    # =========================================================================

    def current_fiscal_year(self) -> str:
        return fiscal_year_of(self._clock.today())

    def recent_fiscal_years(self, count: int = 5) -> list[str]:
        return recent_fiscal_years(self._clock.today(), count)
