"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.journal_service import JournalEntryService
from ledger_kernel.services.ledger_store import JournalQuery, LedgerPartition, LedgerStore
from ledger_kernel.services.sequence_service import ReferenceCounter, SequenceService

__all__ = [
    "JournalEntryService",
    "JournalQuery",
    "LedgerPartition",
    "LedgerStore",
    "ReferenceCounter",
    "SequenceService",
]
