"""
Tests for conversion into the reporting currency.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.exceptions import ExchangeRateNotFoundError
from ledger_modules.reporting.fx import LEGACY_FX_RATES, RateSource, convert_to_reporting

D = Decimal
ON = date(2025, 2, 1)


def test_reporting_currency_is_identity():
    converted = convert_to_reporting(D("123.45"), "thb", ON, "THB", stored_rate=D("2"))
    assert converted.source == RateSource.IDENTITY
    assert converted.reporting == D("123.45")


def test_stored_rate_beats_rate_service(rates):
    rates.rates["EUR"] = D("40")
    converted = convert_to_reporting(D("10"), "EUR", ON, "THB", stored_rate=D("38.25"), rates=rates)
    assert converted.source == RateSource.STORED
    assert converted.reporting == D("382.50")
    assert rates.calls == []


def test_zero_stored_rate_is_ignored(rates):
    rates.rates["EUR"] = D("40")
    converted = convert_to_reporting(D("10"), "EUR", ON, "THB", stored_rate=D("0"), rates=rates)
    assert converted.source == RateSource.RATE_SERVICE
    assert rates.calls == [("EUR", ON)]


def test_legacy_table_is_last_resort(rates):
    converted = convert_to_reporting(D("10"), "GBP", ON, "THB", rates=rates)
    assert converted.is_legacy
    assert converted.rate == LEGACY_FX_RATES["GBP"]


def test_legacy_table_only_for_thb_reports():
    with pytest.raises(ExchangeRateNotFoundError) as exc_info:
        convert_to_reporting(D("10"), "GBP", ON, "USD")
    assert exc_info.value.currency == "GBP"


def test_amounts_rounded_half_up_to_cents():
    converted = convert_to_reporting(D("1.005"), "EUR", ON, "THB", stored_rate=D("1"))
    assert converted.reporting == D("1.01")


def test_raising_rate_service_treated_as_no_rate(rates):
    rates.error = TimeoutError("rate service timed out")
    converted = convert_to_reporting(D("10"), "USD", ON, "THB", rates=rates)
    assert converted.source == RateSource.LEGACY_TABLE
    assert converted.reporting == D("350")


def test_raising_rate_service_without_legacy_rate(rates):
    rates.error = ConnectionError("refused")
    with pytest.raises(ExchangeRateNotFoundError):
        convert_to_reporting(D("10"), "JPY", ON, "THB", rates=rates)
