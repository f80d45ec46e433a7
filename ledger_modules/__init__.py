"""
Ledger Modules.

Orchestration layers over the ledger kernel.  Each module contains its
domain models (the nouns), a configuration schema where it has settings,
and a service that reads or writes the journal through kernel services.

Modules:
- Reporting: trial balance, balance sheet, company and project P&L
- Revenue: recognition state machine and deferred-revenue release entries
- Closing: prior-year import and year-end close
"""
