"""
Module: ledger_modules.revenue
Responsibility:
    Charter revenue recognition.  Income received before a charter is
    sailed stays deferred in Charter Deposits Received; this module decides
    when it is released to revenue and posts the releasing entry.

Architecture:
    ledger_modules layer -- frozen DTOs (models.py), pure state helpers
    (helpers.py), ORM persistence (orm.py), configuration (config.py) and
    the orchestrating RevenueRecognitionService (service.py).

Invariants:
    - A record is recognized at most once and produces at most one
      recognition entry, however often recognition is retried.
    - The P&L counts income only once the charter end date has passed.
"""

from ledger_modules.revenue.config import RevenueRecognitionConfig
from ledger_modules.revenue.models import (
    CharterType,
    DeferredRevenueSummary,
    RecognitionRequest,
    RecognitionStatus,
    RecognitionTrigger,
    RevenueRecognition,
    SweepFailure,
    SweepResult,
)
from ledger_modules.revenue.service import RevenueRecognitionService

__all__ = [
    "CharterType",
    "DeferredRevenueSummary",
    "RecognitionRequest",
    "RecognitionStatus",
    "RecognitionTrigger",
    "RevenueRecognition",
    "RevenueRecognitionConfig",
    "RevenueRecognitionService",
    "SweepFailure",
    "SweepResult",
]
