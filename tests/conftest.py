"""
Pytest fixtures for the ledger test suite.

Provides:
- A database session per test, rolled back at teardown
- A deterministic clock, tenant and actor ids
- The default chart of accounts seeded for the test tenant
- A helper that drafts and posts an entry in one call
- Structured log capture

Environment Variables:
- DATABASE_URL: SQLAlchemy URL of the test database.  Defaults to an
  in-memory SQLite database; set a PostgreSQL URL to run against Postgres.
"""

import json
import logging
import os
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from ledger_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from ledger_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.dtos import LineInput
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.services.account_registry import AccountRegistry
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.reversal_service import ReversalService
from ledger_services import TenantLedger

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

DEFAULT_DATABASE_URL = "sqlite://"


def get_database_url() -> str:
    """Database URL from the environment, or in-memory SQLite."""
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
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

        def test_something(captured_logs, ledger):
            ledger.post(entry_id, actor_id)
            logs = captured_logs()
            assert any(r["message"] == "journal_entry_posted" for r in logs)
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
# Session-scoped DB infrastructure (create engine + tables ONCE per suite)
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(get_database_url(), echo=False)
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end.

    Immutability listeners are registered once and remain active.
    """
    drop_tables(db_engine)
    create_tables(db_engine)
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()
    drop_tables(db_engine)


# =============================================================================
# Per-test session with automatic rollback
# =============================================================================


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    The session joins an outer transaction on a dedicated connection.  A
    ``session.commit()`` inside the test only releases a savepoint; the
    outer transaction is rolled back at teardown, undoing every change.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Identity and time
# =============================================================================


@pytest.fixture
def test_actor_id() -> UUID:
    """Provide a consistent test actor ID."""
    return TEST_ACTOR_ID


@pytest.fixture
def tenant_id() -> UUID:
    """A fresh tenant per test."""
    return uuid4()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    """Clock fixed at 2024-01-01 12:00 UTC."""
    return DeterministicClock()


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def registry(session, tenant_id) -> AccountRegistry:
    return AccountRegistry(session, tenant_id)


@pytest.fixture
def period_service(session, tenant_id, deterministic_clock) -> PeriodService:
    return PeriodService(session, tenant_id, clock=deterministic_clock)


@pytest.fixture
def journal_service(session, tenant_id, deterministic_clock) -> JournalService:
    return JournalService(session, tenant_id, clock=deterministic_clock)


@pytest.fixture
def reversal_service(session, tenant_id, deterministic_clock) -> ReversalService:
    return ReversalService(session, tenant_id, clock=deterministic_clock)


@pytest.fixture
def ledger(session, tenant_id, deterministic_clock) -> TenantLedger:
    """Tenant facade wired with the deterministic clock and default settings."""
    return TenantLedger(session, tenant_id, clock=deterministic_clock)


# =============================================================================
# Chart of accounts
# =============================================================================


@pytest.fixture
def chart(ledger, test_actor_id) -> dict:
    """The bundled default chart seeded for the test tenant, keyed by code."""
    accounts = ledger.initialize_default_chart(test_actor_id)
    return {account.code: account for account in accounts}


@pytest.fixture
def simple_accounts(registry, test_actor_id) -> dict:
    """
    A flat five-account chart for kernel tests that do not need headers.

    Keys: cash, receivable, payable, capital, revenue, expense.
    """
    return {
        "cash": registry.create_account("1010", "Cash", "asset", test_actor_id),
        "receivable": registry.create_account("1100", "Accounts Receivable", "asset", test_actor_id),
        "payable": registry.create_account("2100", "Accounts Payable", "liability", test_actor_id),
        "capital": registry.create_account("3100", "Share Capital", "equity", test_actor_id),
        "revenue": registry.create_account("4100", "Sales", "revenue", test_actor_id),
        "expense": registry.create_account("6100", "Office Expenses", "expense", test_actor_id),
    }


# =============================================================================
# Posting helpers
# =============================================================================


def make_lines(*specs) -> list[LineInput]:
    """
    Build LineInputs from ``(account, debit, credit)`` tuples.

    ``account`` is an AccountInfo or an account id; amounts may be str,
    int or Decimal and ``None``/0 for the unused side.
    """
    lines = []
    for account, debit, credit in specs:
        account_id = getattr(account, "id", account)
        lines.append(
            LineInput(
                account_id=account_id,
                debit=Decimal(str(debit)) if debit else None,
                credit=Decimal(str(credit)) if credit else None,
            )
        )
    return lines


@pytest.fixture
def post_entry(ledger, test_actor_id):
    """
    Draft and post an entry in one call.

    Usage::

        entry = post_entry(date(2024, 1, 10), (cash, "100", None), (revenue, None, "100"))
    """

    def _post(entry_date: date, *specs, description: str = "Test entry", **kwargs):
        draft = ledger.create_draft(
            entry_date,
            description,
            make_lines(*specs),
            test_actor_id,
            **kwargs,
        )
        return ledger.post(draft.id, test_actor_id)

    return _post
