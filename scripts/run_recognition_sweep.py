#!/usr/bin/env python3
"""
Run the automatic charter revenue recognition sweep.

Recognizes every pending record whose charter has ended on or before
today (or ``--as-of``), then prints the sweep outcome and the remaining
deferred revenue.  Intended to be scheduled once a day.

Usage:
    python3 scripts/run_recognition_sweep.py
    python3 scripts/run_recognition_sweep.py --settings ledger.yaml
    python3 scripts/run_recognition_sweep.py --as-of 2025-08-01 --company company-1
    python3 scripts/run_recognition_sweep.py --create-tables   # fresh SQLite databases
"""

import argparse
import sys
from datetime import date, datetime, time, timezone
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

W = 60


def _fmt(amount) -> str:
    return f"{amount:,.2f}"


def _hdr(title: str) -> str:
    return f"\n{'=' * W}\n  {title}\n{'=' * W}"


def main() -> int:
    parser = argparse.ArgumentParser(description="Recognize deferred charter revenue that has come due")
    parser.add_argument("--settings", type=Path, help="YAML settings file (environment overrides apply)")
    parser.add_argument("--as-of", type=date.fromisoformat, help="Treat this date as today (YYYY-MM-DD)")
    parser.add_argument("--company", help="Limit the deferred revenue summary to one company")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    args = parser.parse_args()

    from ledger_kernel.config import LedgerSettings
    from ledger_kernel.db.engine import create_tables, init_engine_from_url, session_scope
    from ledger_kernel.domain.clock import DeterministicClock, SystemClock
    from ledger_kernel.logging_config import configure_logging
    from ledger_modules.revenue import RevenueRecognitionConfig, RevenueRecognitionService

    settings = LedgerSettings.load(args.settings)
    configure_logging(level=settings.log_level)

    try:
        init_engine_from_url(settings.database_url)
    except Exception as exc:
        print(f"  ERROR: Could not connect: {exc}", file=sys.stderr)
        return 1
    if args.create_tables:
        create_tables()

    chart = settings.load_chart()
    config = RevenueRecognitionConfig.from_settings(settings)
    if args.as_of:
        clock = DeterministicClock(datetime.combine(args.as_of, time(hour=6), tzinfo=timezone.utc))
    else:
        clock = SystemClock()

    with session_scope() as session:
        service = RevenueRecognitionService(
            session, chart, clock,
            config=config,
            journal=settings.journal_service(session, chart, clock),
        )
        result = service.process_due_recognitions()
        summary = service.deferred_revenue_summary(args.company)

    print(_hdr(f"RECOGNITION SWEEP  -  as of {result.as_of}"))
    for record in result.recognized:
        label = record.receipt_number or str(record.id)
        print(f"  [OK]   {label:<28}{record.recognition_date!s:>12}{_fmt(record.thb_amount):>16}")
    for failure in result.failures:
        print(f"  [FAIL] {str(failure.recognition_id):<40} {failure.error_code}: {failure.message}")
    if not result.recognized and not result.failures:
        print("  Nothing due.")

    print(_hdr("DEFERRED REVENUE"))
    print(f"  {'Pending':<20}{summary.pending_count:>8}{_fmt(summary.pending_thb):>20}")
    print(f"  {'Needs review':<20}{summary.needs_review_count:>8}{_fmt(summary.needs_review_thb):>20}")
    print(f"  {'Total':<28}{_fmt(summary.total_thb):>20}")
    print()

    return 1 if result.failures else 0


if __name__ == "__main__":
    sys.exit(main())
