"""
Reporting Configuration Schema.

Defines the reporting currency, balance-sheet subtype ordering, default
P&L accounts for documents without an account code, and the management
company project that receives management-fee income.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self

from ledger_kernel.config import LedgerSettings
from ledger_kernel.db.types import validate_currency
from ledger_kernel.domain.accounts import OTHER_OPERATING_EXPENSES, OTHER_OPERATING_REVENUE
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.reporting.config")

CANONICAL_SUBTYPE_ORDER: tuple[str, ...] = (
    "Current Asset",
    "Non-Current Asset",
    "Current Liability",
    "Non-Current Liability",
    "Share Capital",
    "Reserves",
    "Retained Earnings",
    "Other Equity",
)


@dataclass
class ReportingConfig:
    """
    Configuration schema for the reporting module.

    Controls presentation order, fallback accounts and the management-fee
    convention used by project P&L.
    """

    # Currency every report total is expressed in
    reporting_currency: str = "THB"

    # Entity name shown on reports
    entity_name: str = "Company"

    # Balance-sheet subtype order; unknown subtypes follow alphabetically
    subtype_order: tuple[str, ...] = CANONICAL_SUBTYPE_ORDER

    # Accounts used for P&L items that carry no account code
    default_income_account: str = OTHER_OPERATING_REVENUE
    default_expense_account: str = OTHER_OPERATING_EXPENSES

    # Project code of the management company and the account its fee
    # income is reported under
    management_project_code: str = "FA"
    management_fee_account: str = "4300"

    # Fold unclosed revenue - expense into Current Year Earnings
    include_current_year_earnings: bool = True

    def __post_init__(self):
        validate_currency(self.reporting_currency)
        if isinstance(self.subtype_order, list):
            self.subtype_order = tuple(self.subtype_order)

    def subtype_rank(self, subtype: str) -> tuple[int, str]:
        """Sort key: canonical position first, then name."""
        try:
            return (self.subtype_order.index(subtype), "")
        except ValueError:
            return (len(self.subtype_order), subtype)

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    @classmethod
    def from_settings(cls, settings: LedgerSettings, **overrides) -> Self:
        """Create config carrying the deployment's currency and management project."""
        values = {
            "reporting_currency": settings.reporting_currency,
            "management_project_code": settings.management_project_code,
        }
        values.update(overrides)
        return cls(**values)
