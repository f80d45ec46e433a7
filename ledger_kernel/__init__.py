"""
Charter Ledger Kernel

A double-entry accounting ledger for charter operating companies with:
- Draft -> posted journal lifecycle guarded by a balance invariant
- Collision-free reference numbers from locked per-year counters
- Single-writer-per-company storage
- Derived trial balance and balance sheet queries
"""

__version__ = "0.1.0"
