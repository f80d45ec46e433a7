"""
Currency conversion for P&L items (``ledger_modules.reporting.fx``).

Responsibility
--------------
Converts a document amount into the reporting currency and records where
the rate came from.  Resolution order:

1. same currency as the reporting currency -> rate 1;
2. the rate stored on the document when it was created;
3. the injected ``ExchangeRateSource`` for the document date;
4. the legacy fixed-rate table (THB only), a migration shim for
   historical documents created before rates were stored.

Architecture position
---------------------
**Modules layer** -- pure apart from the injected rate source and logging.

Invariants enforced
-------------------
* Every ``ConvertedAmount`` carries its ``RateSource``; legacy conversions
  are distinguishable in output and logged as ``legacy_fx_fallback_used``.
* The legacy table lives in this module only and is consulted nowhere
  else.  It can be deleted once historical documents are backfilled.

Failure modes
-------------
* ``ExchangeRateNotFoundError`` when no rule yields a rate.  P&L builders
  catch it, skip the document and report it.
* A rate source that raises is logged as ``rate_source_unavailable`` and
  treated as having no rate for that date.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from ledger_kernel.db.types import round_money
from ledger_kernel.domain.documents import ExchangeRateSource
from ledger_kernel.exceptions import ExchangeRateNotFoundError
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.reporting.fx")

ONE = Decimal("1")


class RateSource(str, Enum):
    """Where the conversion rate of an amount came from."""

    IDENTITY = "identity"
    STORED = "stored"
    RATE_SERVICE = "rate_service"
    LEGACY_TABLE = "legacy_table"


# LEGACY FALLBACK: only for documents without a stored fx_rate.
# Units of THB per one unit of the currency.
LEGACY_FX_CURRENCY = "THB"
LEGACY_FX_RATES: dict[str, Decimal] = {
    "THB": Decimal("1"),
    "USD": Decimal("35"),
    "EUR": Decimal("38"),
    "GBP": Decimal("44"),
    "SGD": Decimal("26"),
    "AED": Decimal("10"),
}


@dataclass(frozen=True)
class ConvertedAmount:
    original: Decimal
    currency: str
    rate: Decimal
    reporting: Decimal
    source: RateSource

    @property
    def is_legacy(self) -> bool:
        return self.source == RateSource.LEGACY_TABLE


def _converted(amount: Decimal, currency: str, rate: Decimal, source: RateSource) -> ConvertedAmount:
    return ConvertedAmount(
        original=amount,
        currency=currency,
        rate=rate,
        reporting=round_money(amount * rate),
        source=source,
    )


def convert_to_reporting(
    amount: Decimal,
    currency: str,
    on_date: date,
    reporting_currency: str,
    stored_rate: Decimal | None = None,
    rates: ExchangeRateSource | None = None,
    document_ref: str | None = None,
) -> ConvertedAmount:
    """
    Convert ``amount`` of ``currency`` into ``reporting_currency``.

    Args:
        amount: Amount in the document currency.
        currency: ISO 4217 code of the document.
        on_date: Document date, passed to the rate source.
        reporting_currency: Target currency.
        stored_rate: Rate recorded on the document, if any.
        rates: Optional exchange-rate collaborator.
        document_ref: Document number, used in logs only.

    Raises:
        ExchangeRateNotFoundError: no stored, provided or legacy rate.
    """
    currency = (currency or reporting_currency).upper()

    if currency == reporting_currency:
        return _converted(amount, currency, ONE, RateSource.IDENTITY)

    if stored_rate is not None and stored_rate > 0:
        return _converted(amount, currency, stored_rate, RateSource.STORED)

    if rates is not None:
        try:
            rate = rates.get_rate(currency, on_date)
        except Exception as exc:
            # An unreachable rate source degrades to the remaining rules
            logger.warning(
                "rate_source_unavailable",
                extra={
                    "currency": currency,
                    "on_date": on_date,
                    "document_number": document_ref,
                    "error_type": type(exc).__name__,
                    "reason": str(exc),
                },
            )
            rate = None
        if rate is not None and rate > 0:
            return _converted(amount, currency, rate, RateSource.RATE_SERVICE)

    if reporting_currency == LEGACY_FX_CURRENCY and currency in LEGACY_FX_RATES:
        rate = LEGACY_FX_RATES[currency]
        logger.warning(
            "legacy_fx_fallback_used",
            extra={
                "currency": currency,
                "rate": rate,
                "on_date": on_date,
                "document_number": document_ref,
            },
        )
        return _converted(amount, currency, rate, RateSource.LEGACY_TABLE)

    raise ExchangeRateNotFoundError(currency, reporting_currency, on_date.isoformat())
