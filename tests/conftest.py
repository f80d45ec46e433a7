"""
Pytest fixtures for the charter ledger test suite.

Provides:
- A fresh in-memory SQLite database per test (``session``)
- The packaged chart of accounts and a deterministic clock
- Service fixtures and a ``post`` helper for building posted entries
- ``captured_logs`` for asserting on structured log events
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from ledger_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from ledger_kernel.domain.accounts import ChartOfAccounts
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.journal import EntryDraft, LineSpec
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.services.journal_service import JournalEntryService

# Test actor ID for all test operations
TEST_ACTOR_ID = "test-actor"
TEST_COMPANY_ID = "company-1"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, journal_service):
            journal_service.create_entry(...)
            logs = captured_logs()
            assert any(r["message"] == "journal_entry_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """In-memory SQLite engine with every ledger table created."""
    eng = init_engine_from_url("sqlite://")
    create_tables()
    yield eng
    reset_engine()


@pytest.fixture
def session(engine):
    """Session on the per-test database; rolled back and closed afterwards."""
    sess = get_session()
    yield sess
    sess.rollback()
    sess.close()


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture(scope="session")
def chart() -> ChartOfAccounts:
    return ChartOfAccounts.load()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    """Clock fixed at 2025-06-15 09:00 UTC."""
    return DeterministicClock()


@pytest.fixture
def journal_service(session, chart, deterministic_clock) -> JournalEntryService:
    return JournalEntryService(session, chart, deterministic_clock)


@pytest.fixture
def post(journal_service):
    """
    Create and post a balanced entry.

    Usage::

        post(date(2025, 1, 10), [("1010", "debit", 1000), ("4010", "credit", 1000)])
    """

    def _post(
        entry_date: date,
        lines: list[tuple],
        company_id: str = TEST_COMPANY_ID,
        description: str = "Test entry",
    ):
        specs = []
        for line in lines:
            code, side, amount = line[:3]
            kwargs = line[3] if len(line) > 3 else {}
            factory = LineSpec.debit if side == "debit" else LineSpec.credit
            specs.append(factory(code, Decimal(str(amount)), **kwargs))
        draft = EntryDraft(
            entry_date=entry_date,
            company_id=company_id,
            description=description,
            lines=tuple(specs),
        )
        entry = journal_service.create_entry(draft, TEST_ACTOR_ID)
        return journal_service.post_entry(entry.id, TEST_ACTOR_ID)

    return _post
