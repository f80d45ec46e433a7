"""
Financial Reporting Module (``ledger_modules.reporting``).

Responsibility
--------------
Read-only module that derives reports from the ledger and from source
documents: trial balance, balance sheet, company P&L, project P&L over the
Nov-Oct fiscal year, and the project transaction drill-down.

Architecture position
---------------------
**Modules layer** -- pure builders plus one orchestrating service.  This
module never creates journal entries.

Invariants enforced
-------------------
* Ledger reports derive from posted journal lines only; there are no
  stored balances.
* Reports surface imbalance as data and never raise on it.
"""

from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.fx import LEGACY_FX_RATES, ConvertedAmount, RateSource
from ledger_modules.reporting.models import (
    BalanceSheetLine,
    BalanceSheetReport,
    BalanceSheetSection,
    BalanceSheetSubtype,
    PLCategory,
    PLLineItem,
    PLReport,
    PLSection,
    ProjectMonth,
    ProjectPLReport,
    ProjectTransaction,
    ReportMetadata,
    ReportType,
    SkippedDocument,
    TrialBalanceReport,
    TrialBalanceRow,
)
from ledger_modules.reporting.service import ReportingService

__all__ = [
    # Service
    "ReportingService",
    # Config
    "ReportingConfig",
    # Currency
    "ConvertedAmount",
    "LEGACY_FX_RATES",
    "RateSource",
    # Models
    "BalanceSheetLine",
    "BalanceSheetReport",
    "BalanceSheetSection",
    "BalanceSheetSubtype",
    "PLCategory",
    "PLLineItem",
    "PLReport",
    "PLSection",
    "ProjectMonth",
    "ProjectPLReport",
    "ProjectTransaction",
    "ReportMetadata",
    "ReportType",
    "SkippedDocument",
    "TrialBalanceReport",
    "TrialBalanceRow",
]
