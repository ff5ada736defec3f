"""
Module: stock_ledger.db.engine
Responsibility: The storage handle.  ``LedgerStore`` owns one SQLAlchemy
    engine, its session factory and the mutation lock, and hands out
    transactional scopes.  There is no module-level engine: every caller
    holds an explicit store.
Architecture position: DB.  May import from db/ and models/ (for table
    creation).  MUST NOT import from services/ or selectors/.

Invariants enforced:
    - Mutual exclusion: every mutating operation runs inside ``mutation()``,
      which holds the store's RLock for the whole read-modify-write cycle.
      On SQLite the database transaction is opened with BEGIN IMMEDIATE, so
      the database file's write lock is taken up front and other processes
      cannot interleave their own read-modify-write cycle.
    - Atomicity: the commit is the last step of a scope.  Any exception
      rolls the whole scope back; no partial mutation is observable.
    - Store failures surface as ``PersistenceError``; domain errors
      (StockLedgerError) pass through unchanged.

Failure modes:
    - PersistenceError wrapping SQLAlchemyError on connect, flush or commit.
    - sqlite3 "database is locked" after ``busy_timeout`` seconds when
      another process holds the write lock (surfaced as PersistenceError).
"""

import threading
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stock_ledger.db.base import Base
from stock_ledger.db.immutability import register_immutability_listeners
from stock_ledger.exceptions import PersistenceError, StockLedgerError
from stock_ledger.logging_config import get_logger

logger = get_logger("db.engine")

# Execution option marking a connection whose transaction must take the
# write lock immediately.
_WRITE_OPTION = "stock_ledger_write"


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def _install_sqlite_hooks(engine: Engine) -> None:
    """
    Take over transaction begin from the pysqlite driver.

    pysqlite defers BEGIN until the first DML statement, which lets two
    writers both read before either writes.  With the driver's own BEGIN
    disabled we emit BEGIN IMMEDIATE for write scopes and a plain BEGIN for
    reads.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get(_WRITE_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


class LedgerStore:
    """
    Storage handle with an explicit mutation-lock contract.

    Contract:
        ``mutation()`` yields a Session inside the exclusive critical
        section; the caller's changes are committed when the block exits
        normally and rolled back otherwise.  ``read()`` yields a Session
        without taking the lock; it never commits.

    Guarantees:
        - At most one ``mutation()`` scope per store is active at a time
          (re-entrant for the owning thread).
        - The commit is atomic: either every change in the scope is
          durable or none is.

    Non-goals:
        - Does NOT know about transactions, items or stock; services do.
    """

    def __init__(
        self,
        database_url: str,
        *,
        echo: bool = False,
        busy_timeout: float = 30.0,
        create_schema: bool = True,
    ):
        self.database_url = database_url
        self._lock = threading.RLock()
        # In-memory databases live on a single connection, so reads must
        # not interleave with an open mutation.
        self._serialize_reads = _is_memory_sqlite(database_url)

        kwargs: dict = {"echo": echo}
        is_sqlite = database_url.startswith("sqlite")
        if is_sqlite:
            kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": busy_timeout,
            }
            if _is_memory_sqlite(database_url):
                # One shared connection, or every session would see its own
                # empty in-memory database.
                kwargs["poolclass"] = StaticPool

        try:
            self.engine: Engine = create_engine(database_url, **kwargs)
        except SQLAlchemyError as exc:
            raise PersistenceError("connect", str(exc)) from exc

        if is_sqlite:
            _install_sqlite_hooks(self.engine)

        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

        register_immutability_listeners()
        if create_schema:
            self.create_tables()

        logger.info(
            "store_initialized",
            extra={"dialect": self.engine.dialect.name, "echo": echo},
        )

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def create_tables(self) -> None:
        """Create all tables (idempotent)."""
        # Model modules must be imported so Base.metadata knows the tables.
        import stock_ledger.models  # noqa: F401

        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise PersistenceError("create_tables", str(exc)) from exc

    # ------------------------------------------------------------------
    # Scopes
    # ------------------------------------------------------------------

    @contextmanager
    def mutation(self) -> Generator[Session, None, None]:
        """
        Exclusive read-modify-write scope.

        Usage:
            with store.mutation() as session:
                TransactionService(session, ...).complete(tx_id)
                # commits on successful exit, rolls back on exception
        """
        with self._lock:
            session = self._session_factory()
            logger.debug("mutation_started")
            try:
                session.connection(execution_options={_WRITE_OPTION: True})
                yield session
                session.commit()
                logger.debug("mutation_committed")
            except StockLedgerError:
                session.rollback()
                logger.debug("mutation_rolled_back")
                raise
            except SQLAlchemyError as exc:
                session.rollback()
                logger.warning("mutation_rolled_back", exc_info=True)
                raise PersistenceError("write", str(exc)) from exc
            except Exception:
                session.rollback()
                logger.warning("mutation_rolled_back", exc_info=True)
                raise
            finally:
                session.close()

    @contextmanager
    def read(self) -> Generator[Session, None, None]:
        """
        Read scope against the latest committed state.

        Unsynchronized for file and server databases.  In-memory SQLite
        shares one connection between all sessions, so there the scope
        waits for any open mutation to finish.
        """
        if self._serialize_reads:
            with self._lock:
                with self._read_session() as session:
                    yield session
        else:
            with self._read_session() as session:
                yield session

    @contextmanager
    def _read_session(self) -> Generator[Session, None, None]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as exc:
            raise PersistenceError("read", str(exc)) from exc
        finally:
            session.rollback()
            session.close()

    def dispose(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
