"""
Module: ledger_modules.closing
Responsibility:
    Closing entries: the prior-year P&L import used to migrate historical
    results, and the year-end close of revenue and expense accounts.
"""

from ledger_modules.closing.models import (
    ClosedAccount,
    ImportedProjectEntry,
    PriorYearImportRequest,
    PriorYearImportResult,
    PriorYearTotals,
    ProjectYearTotals,
    YearEndCloseResult,
)
from ledger_modules.closing.service import PriorYearImportService, YearEndCloseService

__all__ = [
    "ClosedAccount",
    "ImportedProjectEntry",
    "PriorYearImportRequest",
    "PriorYearImportResult",
    "PriorYearImportService",
    "PriorYearTotals",
    "ProjectYearTotals",
    "YearEndCloseResult",
    "YearEndCloseService",
]
