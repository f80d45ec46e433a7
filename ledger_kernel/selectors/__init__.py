"""Read-only query selectors over posted journal lines."""

from ledger_kernel.selectors.ledger_selector import AccountTotals, LedgerSelector

__all__ = ["AccountTotals", "LedgerSelector"]
