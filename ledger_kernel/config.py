"""
Ledger settings (``ledger_kernel.config``).

Responsibility
--------------
Loads the runtime settings of the ledger -- database URL, reporting
currency, journal reference prefix, well-known account codes and the
chart-of-accounts path -- from an optional YAML file, then applies
environment overrides.

Architecture position
---------------------
**Kernel** -- infrastructure.  Consumed by entry points and scripts that
build engines and services; services themselves take explicit arguments
and never read settings.  ``load_chart`` and ``journal_service`` hand the
kernel settings over, and module configs read the rest through their own
``from_settings``.

Invariants enforced
-------------------
* Settings are frozen once loaded.
* Precedence: environment > YAML file > dataclass defaults.
* ``balance_tolerance`` is a Decimal (YAML floats are refused).

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys in the YAML mapping  -> ``ValueError``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping

import yaml
from sqlalchemy.orm import Session

from ledger_kernel.db.types import BALANCE_TOLERANCE, to_decimal, validate_currency
from ledger_kernel.domain.accounts import (
    CHARTER_DEPOSITS_RECEIVED,
    DEFAULT_CHART_PATH,
    OTHER_OPERATING_REVENUE,
    ChartOfAccounts,
)
from ledger_kernel.domain.clock import Clock
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.journal_service import JournalEntryService

logger = get_logger("config")

ENV_DATABASE_URL = "LEDGER_DATABASE_URL"
ENV_LOG_LEVEL = "LEDGER_LOG_LEVEL"


@dataclass(frozen=True)
class LedgerSettings:
    """Runtime settings of one ledger deployment."""

    database_url: str = "sqlite://"
    log_level: str = "INFO"
    reporting_currency: str = "THB"
    journal_prefix: str = "JE"
    balance_tolerance: Decimal = BALANCE_TOLERANCE
    deferred_revenue_account: str = CHARTER_DEPOSITS_RECEIVED
    revenue_account: str = OTHER_OPERATING_REVENUE
    management_project_code: str = "FA"
    chart_path: str = str(DEFAULT_CHART_PATH)

    def __post_init__(self):
        validate_currency(self.reporting_currency)
        if not self.journal_prefix:
            raise ValueError("journal_prefix must not be empty")
        if self.balance_tolerance <= 0:
            raise ValueError("balance_tolerance must be positive")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LedgerSettings:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown ledger settings: {unknown}")
        values = dict(data)
        if "balance_tolerance" in values:
            values["balance_tolerance"] = to_decimal(values["balance_tolerance"])
        return cls(**values)

    @classmethod
    def load(
        cls,
        path: Path | str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> LedgerSettings:
        """
        Build settings from ``path`` (optional) and the environment.

        Args:
            path: YAML file with a flat mapping of setting names.
            environ: Environment to read overrides from (defaults to
                ``os.environ``).
        """
        data: dict[str, Any] = {}
        if path is not None:
            with Path(path).open(encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        settings = cls.from_dict(data)

        env = os.environ if environ is None else environ
        overrides: dict[str, str] = {}
        if env.get(ENV_DATABASE_URL):
            overrides["database_url"] = env[ENV_DATABASE_URL]
        if env.get(ENV_LOG_LEVEL):
            overrides["log_level"] = env[ENV_LOG_LEVEL].upper()
        if overrides:
            settings = replace(settings, **overrides)

        logger.info(
            "ledger_settings_loaded",
            extra={
                "path": str(path) if path is not None else None,
                "env_overrides": sorted(overrides),
                "reporting_currency": settings.reporting_currency,
            },
        )
        return settings

    def load_chart(self) -> ChartOfAccounts:
        """The chart at ``chart_path``, reporting in ``reporting_currency``."""
        return ChartOfAccounts.load(self.chart_path, reporting_currency=self.reporting_currency)

    def journal_service(
        self,
        session: Session,
        chart: ChartOfAccounts,
        clock: Clock | None = None,
    ) -> JournalEntryService:
        """A JournalEntryService using the configured prefix and tolerance."""
        return JournalEntryService(
            session,
            chart,
            clock,
            reference_prefix=self.journal_prefix,
            balance_tolerance=self.balance_tolerance,
        )
