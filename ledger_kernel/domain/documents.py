"""
Source documents and the external collaborators that supply them.

Responsibility:
    Defines the typed view of income and expense documents (receipts,
    expenses, credit/debit notes ...) that the P&L builders consume, the
    closed ``DocumentKind`` variant with its exhaustive P&L effect table,
    and the ports for the document source, exchange-rate service and
    project directory.

Architecture position:
    Kernel > Domain -- pure types and Protocols, zero I/O.  Concrete
    adapters (database readers, HTTP clients) live outside this package and
    are injected into ReportingService.

Invariants enforced:
    - Every DocumentKind has exactly one entry in the P&L effect table:
      either (side, sign) or "excluded".  Adding a kind without deciding
      its effect fails the coverage check at import time.
    - Document amounts are non-negative; the sign comes from the kind.

Failure modes:
    - Adapters signal an unavailable source by raising
      DocumentSourceUnavailableError (a DataGapError).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Protocol, runtime_checkable


class DocumentKind(str, Enum):
    """Closed set of document kinds the ledger understands."""

    INVOICE = "invoice"
    RECEIPT = "receipt"
    CREDIT_NOTE = "credit_note"
    DEBIT_NOTE = "debit_note"
    EXPENSE = "expense"
    RECEIVED_CREDIT_NOTE = "received_credit_note"
    RECEIVED_DEBIT_NOTE = "received_debit_note"


class PLSide(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


@dataclass(frozen=True)
class PLEffect:
    """How a document kind moves the P&L: which side, and in which direction."""

    side: PLSide
    sign: int

    @property
    def is_revenue_bearing(self) -> bool:
        return self.side == PLSide.INCOME


# None = not part of P&L.  Invoices are excluded because the receipts that
# settle them carry the same income.
_PL_EFFECTS: dict[DocumentKind, PLEffect | None] = {
    DocumentKind.INVOICE: None,
    DocumentKind.RECEIPT: PLEffect(PLSide.INCOME, 1),
    DocumentKind.CREDIT_NOTE: PLEffect(PLSide.INCOME, -1),
    DocumentKind.DEBIT_NOTE: PLEffect(PLSide.INCOME, 1),
    DocumentKind.EXPENSE: PLEffect(PLSide.EXPENSE, 1),
    DocumentKind.RECEIVED_CREDIT_NOTE: PLEffect(PLSide.EXPENSE, -1),
    DocumentKind.RECEIVED_DEBIT_NOTE: PLEffect(PLSide.EXPENSE, 1),
}

_missing = set(DocumentKind) - set(_PL_EFFECTS)
if _missing:
    raise RuntimeError(f"P&L effect undefined for document kinds: {sorted(k.value for k in _missing)}")


def pl_effect(kind: DocumentKind) -> PLEffect | None:
    """P&L effect of a document kind, or None when it is not part of P&L."""
    return _PL_EFFECTS[kind]


@dataclass(frozen=True)
class SourceDocument:
    """
    One line of an income or expense document, as fetched from the source.

    ``fx_rate`` is the rate to the reporting currency stored on the document
    when it was created; older documents may not have one.
    ``service_end_date`` is the charter end date for revenue-bearing items.
    """

    id: str
    kind: DocumentKind
    document_date: date
    amount: Decimal
    currency: str
    document_number: str
    project_id: str | None = None
    company_id: str | None = None
    fx_rate: Decimal | None = None
    service_end_date: date | None = None
    account_code: str | None = None
    description: str = ""
    counterparty: str = ""


@dataclass(frozen=True)
class ProjectInfo:
    """A charter project (usually one yacht) as known to the directory."""

    id: str
    code: str
    name: str
    company_id: str
    management_fee_percent: Decimal = Decimal("0")


@runtime_checkable
class DocumentSource(Protocol):
    """Supplies income and expense documents dated within [start, end]."""

    def fetch_by_date_range(self, start: date, end: date) -> list[SourceDocument]:
        ...


@runtime_checkable
class ExchangeRateSource(Protocol):
    """Rate to convert one unit of ``currency`` into the reporting currency."""

    def get_rate(self, currency: str, on_date: date) -> Decimal | None:
        ...


@runtime_checkable
class ProjectDirectory(Protocol):
    """Project metadata lookup."""

    def get_project(self, project_id: str) -> ProjectInfo | None:
        ...

    def list_projects(self) -> list[ProjectInfo]:
        ...
