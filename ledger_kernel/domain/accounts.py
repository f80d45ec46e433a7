"""
Module: ledger_kernel.domain.accounts
Responsibility: The chart of accounts registry -- a static lookup from account
    code to type, category, subtype and normal balance -- and the signed
    balance convention every report uses.
Architecture position: Kernel > Domain.  Pure except for ``load()``, which
    reads the packaged YAML file once.  May import from db/types.py and
    exceptions.py only.

Invariants enforced:
    - Account codes are unique within a registry (duplicates in the data
      file are a configuration error).
    - Signed balances follow the normal side: debit-normal
      net = debits - credits; credit-normal net = credits - debits.

Failure modes:
    - InvalidAccountError from require() for an unknown code.
    - ValueError on duplicate codes or unknown type / normal-balance names.
    - FileNotFoundError / yaml.YAMLError from load().

Audit relevance:
    Journal lines store only the account code; the registry supplies every
    classification used by the trial balance, balance sheet and P&L, so the
    same file must back posting validation and reporting.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Iterator

import yaml

from ledger_kernel.exceptions import InvalidAccountError
from ledger_kernel.logging_config import get_logger

logger = get_logger("domain.accounts")

DEFAULT_CHART_PATH = Path(__file__).resolve().parent.parent / "data" / "chart_of_accounts.yaml"


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "Asset"
    LIABILITY = "Liability"
    EQUITY = "Equity"
    REVENUE = "Revenue"
    EXPENSE = "Expense"


class NormalBalance(str, Enum):
    """Side on which an account's balance conventionally increases."""

    DEBIT = "Debit"
    CREDIT = "Credit"


# Well-known accounts used by generated entries
CHARTER_DEPOSITS_RECEIVED = "2300"
RETAINED_EARNINGS_PRIOR_YEARS = "3200"
CURRENT_YEAR_EARNINGS = "3210"
OTHER_OPERATING_REVENUE = "4490"
OTHER_OPERATING_EXPENSES = "6790"


@dataclass(frozen=True)
class Account:
    """One chart-of-accounts entry."""

    code: str
    name: str
    account_type: AccountType
    subtype: str
    category: str
    normal_balance: NormalBalance
    currency: str | None = None

    @property
    def is_balance_sheet(self) -> bool:
        return self.account_type in (
            AccountType.ASSET,
            AccountType.LIABILITY,
            AccountType.EQUITY,
        )

    def signed_balance(self, debits: Decimal, credits: Decimal) -> Decimal:
        """Net balance, positive when on the account's normal side."""
        return natural_balance(debits, credits, self.normal_balance)


def natural_balance(
    debits: Decimal,
    credits: Decimal,
    normal_balance: NormalBalance,
) -> Decimal:
    """
    Compute a balance adjusted for the normal balance side.

    DEBIT-normal (assets, expenses): debits - credits
    CREDIT-normal (liabilities, equity, revenue): credits - debits
    """
    if normal_balance == NormalBalance.DEBIT:
        return debits - credits
    return credits - debits


class ChartOfAccounts:
    """
    In-memory chart of accounts registry.

    Contract:
        ``lookup`` is the read interface shared by posting validation and
        every report builder.  The registry is immutable after construction.
    """

    def __init__(self, accounts: list[Account], reporting_currency: str = "THB"):
        by_code: dict[str, Account] = {}
        for account in accounts:
            if account.code in by_code:
                raise ValueError(f"Duplicate account code in chart: {account.code}")
            by_code[account.code] = account
        self._accounts = dict(sorted(by_code.items()))
        self.reporting_currency = reporting_currency

    @classmethod
    def load(
        cls,
        path: Path | str | None = None,
        reporting_currency: str | None = None,
    ) -> ChartOfAccounts:
        """Load a chart from YAML (defaults to the packaged chart).

        ``reporting_currency`` overrides the currency named in the file.
        """
        chart_path = Path(path) if path is not None else DEFAULT_CHART_PATH
        with chart_path.open(encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}

        accounts = [cls._parse_account(raw) for raw in data.get("accounts", [])]
        currency = reporting_currency or data.get("reporting_currency", "THB")
        chart = cls(accounts, reporting_currency=currency)
        logger.info(
            "chart_of_accounts_loaded",
            extra={"path": str(chart_path), "account_count": len(chart)},
        )
        return chart

    @staticmethod
    def _parse_account(raw: dict) -> Account:
        return Account(
            code=str(raw["code"]),
            name=raw["name"],
            account_type=AccountType(raw["type"]),
            subtype=raw.get("subtype") or "Other",
            category=raw.get("category") or "",
            normal_balance=NormalBalance(raw["normal_balance"]),
            currency=raw.get("currency"),
        )

    def lookup(self, code: str) -> Account | None:
        """Return the account for ``code`` or None."""
        return self._accounts.get(code)

    def require(self, code: str) -> Account:
        """Return the account for ``code`` or raise InvalidAccountError."""
        account = self._accounts.get(code)
        if account is None:
            raise InvalidAccountError(code, "not in chart of accounts")
        return account

    def accounts_of_type(self, account_type: AccountType) -> list[Account]:
        return [a for a in self._accounts.values() if a.account_type == account_type]

    def __contains__(self, code: object) -> bool:
        return code in self._accounts

    def __iter__(self) -> Iterator[Account]:
        return iter(self._accounts.values())

    def __len__(self) -> int:
        return len(self._accounts)
