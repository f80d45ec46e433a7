"""ORM models for the ledger kernel."""

from ledger_kernel.domain.journal import EntrySource, JournalEntryStatus, LineSide
from ledger_kernel.models.journal import JournalEntry, JournalLine

__all__ = [
    "EntrySource",
    "JournalEntry",
    "JournalEntryStatus",
    "JournalLine",
    "LineSide",
]
