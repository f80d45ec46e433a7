"""
Module: ledger_modules.revenue.config
Responsibility:
    Configuration schema for charter revenue recognition: the deferred
    revenue (deposit) account, the default revenue account, the revenue
    account per charter type and the reference prefix of recognition
    entries.

Architecture:
    ledger_modules layer -- pure dataclass configuration schema.
    Consumed by RevenueRecognitionService at construction time.

Invariants:
    - Account codes are non-empty strings.
    - Every CharterType has a revenue account.

Failure modes:
    - ValueError on invalid values in __post_init__.
"""

from dataclasses import dataclass, field
from typing import Self

from ledger_kernel.config import LedgerSettings
from ledger_kernel.domain.accounts import CHARTER_DEPOSITS_RECEIVED, OTHER_OPERATING_REVENUE
from ledger_kernel.logging_config import get_logger

from ledger_modules.revenue.models import CharterType

logger = get_logger("modules.revenue.config")


def _default_charter_accounts() -> dict[CharterType, str]:
    return {
        CharterType.DAY_CHARTER: "4010",
        CharterType.OVERNIGHT_CHARTER: "4020",
        CharterType.CABIN_CHARTER: "4030",
        CharterType.OTHER_CHARTER: "4040",
        CharterType.BAREBOAT_CHARTER: "4050",
        CharterType.CREWED_CHARTER: "4060",
        CharterType.OUTSOURCE_COMMISSION: "4070",
    }


@dataclass
class RevenueRecognitionConfig:
    """
    Configuration schema for the revenue recognition module.

    Contract:
        Mutable dataclass (not frozen) so it can be loaded from YAML.
        Validated in ``__post_init__``.
    """

    # Charter Deposits Received
    deferred_revenue_account: str = CHARTER_DEPOSITS_RECEIVED

    default_revenue_account: str = OTHER_OPERATING_REVENUE

    charter_type_accounts: dict[CharterType, str] = field(
        default_factory=_default_charter_accounts,
    )

    journal_prefix: str = "JE"

    def __post_init__(self):
        if not self.deferred_revenue_account:
            raise ValueError("deferred_revenue_account is required")
        if not self.default_revenue_account:
            raise ValueError("default_revenue_account is required")
        self.charter_type_accounts = {
            CharterType(k): str(v) for k, v in self.charter_type_accounts.items()
        }
        missing = set(CharterType) - set(self.charter_type_accounts)
        if missing:
            raise ValueError(
                f"charter_type_accounts missing {sorted(m.value for m in missing)}"
            )

        logger.info(
            "revenue_recognition_config_initialized",
            extra={
                "deferred_revenue_account": self.deferred_revenue_account,
                "default_revenue_account": self.default_revenue_account,
            },
        )

    def revenue_account_for(self, charter_type: CharterType | None) -> str:
        if charter_type is None:
            return self.default_revenue_account
        return self.charter_type_accounts[CharterType(charter_type)]

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        return cls(**data)

    @classmethod
    def from_settings(cls, settings: LedgerSettings) -> Self:
        """Create config from the deployment's account codes and journal prefix."""
        return cls(
            deferred_revenue_account=settings.deferred_revenue_account,
            default_revenue_account=settings.revenue_account,
            journal_prefix=settings.journal_prefix,
        )
