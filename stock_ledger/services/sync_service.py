"""
Outbound ticket sync.

Responsibility:
    Pushes a read-only projection of a transaction to an external ticketing
    system after the mutation that changed it has committed, and remembers
    the external id the system hands back.

Invariants enforced:
    - The ledger never depends on the sink: a failing push is logged and
      swallowed; the committed transaction is unaffected.
    - The sink is called outside the mutation lock, with a frozen
      ``TicketProjection``; it cannot reach the session.
    - At most one ExternalSync pointer per transaction (upserted).

Failure modes:
    - Sink errors: logged as ``ticket_sync_failed`` at WARNING, never raised.
    - Pointer write errors: logged as ``ticket_sync_pointer_failed``.
"""

from typing import Any, Protocol

import requests

from stock_ledger.db.engine import LedgerStore
from stock_ledger.domain.clock import Clock, SystemClock
from stock_ledger.domain.dtos import TicketProjection, TransactionInfo
from stock_ledger.logging_config import LogContext, get_logger
from stock_ledger.models.transaction import ExternalSync
from stock_ledger.services.transaction_service import TransactionService

logger = get_logger("services.sync")


class TicketSync(Protocol):
    """Collaborator that upserts tickets keyed by ``tx_id``."""

    def push(self, projection: TicketProjection) -> str | None:
        """Send the projection; return the external id if one is known."""
        ...


class NullTicketSync:
    """Sink that does nothing."""

    def push(self, projection: TicketProjection) -> str | None:
        return None


class HttpTicketSync:
    """
    POSTs the projection as JSON to ``url``.

    The response body, if it is a JSON object carrying ``id`` (or
    ``ticket_id``), supplies the external id.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        session: requests.Session | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._http = session or requests.Session()
        self._headers = {"Content-Type": "application/json", **(headers or {})}

    def push(self, projection: TicketProjection) -> str | None:
        resp = self._http.post(
            self.url,
            json=projection.to_payload(),
            headers=self._headers,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        try:
            body: Any = resp.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            external_id = body.get("id") or body.get("ticket_id")
            return str(external_id) if external_id is not None else None
        return None


class SyncDispatcher:
    """Calls the sink after commit and records the returned pointer."""

    def __init__(
        self,
        store: LedgerStore,
        sink: TicketSync | None = None,
        clock: Clock | None = None,
        system: str = "ticketing",
    ):
        self._store = store
        self._sink = sink or NullTicketSync()
        self._clock = clock or SystemClock()
        self.system = system

    def dispatch(self, tx: TransactionInfo) -> str | None:
        """Push ``tx``; return the external id, or None on no id or failure."""
        projection = TicketProjection.from_transaction(tx)
        with LogContext.bind(transaction_id=str(tx.id), sku=tx.sku):
            try:
                external_id = self._sink.push(projection)
            except Exception as exc:
                logger.warning(
                    "ticket_sync_failed",
                    extra={"system": self.system, "status": tx.status.value, "error": str(exc)},
                )
                return None

            if external_id is None:
                return None

            try:
                self._record_pointer(tx, external_id)
            except Exception as exc:
                logger.warning(
                    "ticket_sync_pointer_failed",
                    extra={"system": self.system, "external_id": external_id, "error": str(exc)},
                )
                return None

            logger.info(
                "ticket_synced",
                extra={"system": self.system, "external_id": external_id},
            )
            return external_id

    def _record_pointer(self, tx: TransactionInfo, external_id: str) -> None:
        with self._store.mutation() as session:
            row = TransactionService(session, self._clock).load(tx.id)
            now = self._clock.now()
            if row.external_sync is None:
                row.external_sync = ExternalSync(
                    system=self.system,
                    external_id=external_id,
                    synced_at=now,
                )
            else:
                row.external_sync.system = self.system
                row.external_sync.external_id = external_id
                row.external_sync.synced_at = now
            session.flush()
