"""
Pytest fixtures for the stock ledger test suite.

Provides:
- An in-memory SQLite ``LedgerStore`` per test (``store``)
- A file-backed store for tests that need several connections (``file_store``)
- A ``DeterministicClock`` and a predictable code generator
- ``ledger``: an ``InventoryLedger`` wired to all of the above
- ``captured_logs``: structured log records as parsed JSON dicts
"""

import itertools
import json
import logging
from collections.abc import Generator
from io import StringIO

import pytest

from stock_ledger.config import LedgerConfig
from stock_ledger.db.engine import LedgerStore
from stock_ledger.domain.clock import DeterministicClock
from stock_ledger.ledger import InventoryLedger
from stock_ledger.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from stock_ledger.services.signature_store import InMemorySignatureStore

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
    Capture stock_ledger logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.complete(tx.id)
            logs = captured_logs()
            assert any(r["message"] == "transaction_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("stock_ledger")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Store and ledger fixtures
# =============================================================================


@pytest.fixture
def store() -> Generator[LedgerStore, None, None]:
    """Fresh in-memory database per test."""
    s = LedgerStore("sqlite://")
    yield s
    s.dispose()


@pytest.fixture
def file_store(tmp_path) -> Generator[LedgerStore, None, None]:
    """File-backed database; each session gets its own connection."""
    s = LedgerStore(f"sqlite:///{tmp_path / 'ledger.db'}")
    yield s
    s.dispose()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


class SequentialCodes:
    """Code generator yielding 000001, 000002, ... and remembering the last."""

    def __init__(self):
        self._counter = itertools.count(1)
        self.issued: list[str] = []

    def __call__(self, digits: int) -> str:
        code = f"{next(self._counter):0{digits}d}"
        self.issued.append(code)
        return code


@pytest.fixture
def codes() -> SequentialCodes:
    return SequentialCodes()


@pytest.fixture
def signatures() -> InMemorySignatureStore:
    return InMemorySignatureStore({"sig/alice.png": b"\x89PNG-signature"})


@pytest.fixture
def config() -> LedgerConfig:
    return LedgerConfig(database_url="sqlite://")


@pytest.fixture
def ledger(store, config, clock, signatures, codes) -> InventoryLedger:
    return InventoryLedger(
        store,
        config=config,
        clock=clock,
        signature_store=signatures,
        code_generator=codes,
    )


@pytest.fixture
def stocked_ledger(ledger) -> InventoryLedger:
    """Ledger with SKU-001 holding 100 units at WH1."""
    ledger.add_item("SKU-001", "Widget", initial_qty=100, location="WH1")
    return ledger


@pytest.fixture
def session(store):
    """A mutation scope for service-level tests; committed on exit."""
    with store.mutation() as s:
        yield s
