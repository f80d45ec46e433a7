"""
Fixtures for reporting tests: in-memory document source, rate source and
project directory.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.documents import DocumentKind, ProjectInfo, SourceDocument
from ledger_kernel.exceptions import DocumentSourceUnavailableError
from ledger_modules.reporting import ReportingService


class FakeDocumentSource:
    def __init__(self):
        self.documents: list[SourceDocument] = []
        self.failure: str | None = None
        self.error: Exception | None = None
        self._seq = 0

    def add(
        self,
        kind: DocumentKind,
        document_date: date,
        amount,
        currency: str = "THB",
        **kwargs,
    ) -> SourceDocument:
        self._seq += 1
        kwargs.setdefault("company_id", "company-1")
        doc = SourceDocument(
            id=f"doc-{self._seq}",
            kind=kind,
            document_date=document_date,
            amount=Decimal(str(amount)),
            currency=currency,
            document_number=kwargs.pop("document_number", f"DOC-{self._seq:04d}"),
            **kwargs,
        )
        self.documents.append(doc)
        return doc

    def fetch_by_date_range(self, start: date, end: date) -> list[SourceDocument]:
        if self.error is not None:
            raise self.error
        if self.failure is not None:
            raise DocumentSourceUnavailableError(start.isoformat(), end.isoformat(), self.failure)
        return [d for d in self.documents if start <= d.document_date <= end]


class FakeRateSource:
    def __init__(self, rates: dict[str, Decimal] | None = None):
        self.rates = rates or {}
        self.calls: list[tuple[str, date]] = []
        self.error: Exception | None = None

    def get_rate(self, currency: str, on_date: date) -> Decimal | None:
        self.calls.append((currency, on_date))
        if self.error is not None:
            raise self.error
        return self.rates.get(currency)


class FakeProjectDirectory:
    def __init__(self, projects: list[ProjectInfo]):
        self._projects = {p.id: p for p in projects}

    def get_project(self, project_id: str) -> ProjectInfo | None:
        return self._projects.get(project_id)

    def list_projects(self) -> list[ProjectInfo]:
        return list(self._projects.values())


YACHT = ProjectInfo(
    id="proj-yacht",
    code="SY1",
    name="Sea Breeze",
    company_id="company-1",
    management_fee_percent=Decimal("30"),
)
MANAGEMENT = ProjectInfo(
    id="proj-fa",
    code="FA",
    name="Fleet Administration",
    company_id="company-1",
)


@pytest.fixture
def documents() -> FakeDocumentSource:
    return FakeDocumentSource()


@pytest.fixture
def rates() -> FakeRateSource:
    return FakeRateSource()


@pytest.fixture
def projects() -> FakeProjectDirectory:
    return FakeProjectDirectory([YACHT, MANAGEMENT])


@pytest.fixture
def reporting(session, chart, deterministic_clock, documents, rates, projects) -> ReportingService:
    return ReportingService(
        session,
        chart,
        clock=deterministic_clock,
        documents=documents,
        rates=rates,
        projects=projects,
    )
