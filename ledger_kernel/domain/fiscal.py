"""
Fiscal calendar and service-completion helpers.

Responsibility:
    Pure date arithmetic shared by the P&L builders and revenue recognition:
    the November-to-October project fiscal year, its twelve ``YYYY-MM``
    month buckets and their display labels, and the rule that decides
    whether a charter's service period has concluded.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.  "Today" is always passed
    in by the caller (from an injected Clock).

Invariants enforced:
    - A date in November or December belongs to the fiscal year starting
      that calendar year; a date in January..October belongs to the fiscal
      year that started the previous November.
    - Fiscal months are always returned Nov -> Oct, twelve of them.
    - Undated service is never complete.
"""

from __future__ import annotations

import calendar
import re
from datetime import date

from ledger_kernel.exceptions import ValidationError

FISCAL_YEAR_START_MONTH = 11

_FISCAL_YEAR_RE = re.compile(r"^(\d{4})-(\d{4})$")
_MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")


def is_service_completed(service_end_date: date | None, today: date) -> bool:
    """
    True iff the service period has concluded.

    Undated revenue is conservatively treated as not completed.  The
    comparison is date-only: a charter ending today counts as completed.
    """
    if service_end_date is None:
        return False
    return service_end_date <= today


def fiscal_year_of(day: date) -> str:
    """Fiscal year label ``"YYYY-YYYY"`` containing ``day``."""
    start = day.year if day.month >= FISCAL_YEAR_START_MONTH else day.year - 1
    return f"{start}-{start + 1}"


def parse_fiscal_year(fiscal_year: str) -> int:
    """Return the starting calendar year of a ``"YYYY-YYYY"`` label."""
    match = _FISCAL_YEAR_RE.match(fiscal_year or "")
    if match is None:
        raise ValidationError(f"Fiscal year must look like 2024-2025, got {fiscal_year!r}")
    start, end = int(match.group(1)), int(match.group(2))
    if end != start + 1:
        raise ValidationError(f"Fiscal year must span consecutive years, got {fiscal_year!r}")
    return start


def fiscal_months(fiscal_year: str) -> list[str]:
    """The twelve ``YYYY-MM`` month keys of a fiscal year, Nov first."""
    start = parse_fiscal_year(fiscal_year)
    months = [f"{start}-11", f"{start}-12"]
    months.extend(f"{start + 1}-{m:02d}" for m in range(1, 11))
    return months


def fiscal_year_date_range(fiscal_year: str) -> tuple[date, date]:
    """First and last day of a fiscal year (Nov 1 .. Oct 31)."""
    start = parse_fiscal_year(fiscal_year)
    return date(start, 11, 1), date(start + 1, 10, 31)


def month_key(day: date) -> str:
    return f"{day.year}-{day.month:02d}"


def month_date_range(key: str) -> tuple[date, date]:
    """First and last day of a ``YYYY-MM`` month."""
    match = _MONTH_KEY_RE.match(key or "")
    if match is None or not 1 <= int(match.group(2)) <= 12:
        raise ValidationError(f"Month must look like 2024-11, got {key!r}")
    year, month = int(match.group(1)), int(match.group(2))
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def month_label(key: str) -> str:
    """``"2024-11"`` -> ``"Nov 2024"``."""
    first, _ = month_date_range(key)
    return f"{calendar.month_abbr[first.month]} {first.year}"


def fiscal_year_label(fiscal_year: str) -> str:
    """``"2024-2025"`` -> ``"FY 2024-2025 (Nov 2024 - Oct 2025)"``."""
    start = parse_fiscal_year(fiscal_year)
    return f"FY {fiscal_year} (Nov {start} - Oct {start + 1})"


def recent_fiscal_years(today: date, count: int = 5) -> list[str]:
    """The current fiscal year and the ``count - 1`` before it, newest first."""
    start = parse_fiscal_year(fiscal_year_of(today))
    return [f"{year}-{year + 1}" for year in range(start, start - count, -1)]
