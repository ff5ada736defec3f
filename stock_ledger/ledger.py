"""
InventoryLedger -- the public entry point.

Responsibility:
    Wires a ``LedgerStore`` to the services and selectors and runs every
    operation in the right scope: each mutating call is one
    ``store.mutation()`` (lock held, committed or rolled back as a whole),
    each query is one ``store.read()``.  After a mutation that changes a
    transaction's visible state commits, the ticket sync dispatcher is
    called outside the lock.

Architecture position:
    Top of the package.  Callers (CLI, embedding applications, tests) go
    through this class; services and selectors never open scopes on their
    own.

Failure modes:
    Any ``StockLedgerError`` raised by a service propagates unchanged after
    the scope rolls back.  Storage failures surface as PersistenceError.
"""

from datetime import timedelta
from typing import Any
from uuid import UUID

from stock_ledger.config import LedgerConfig
from stock_ledger.db.engine import LedgerStore
from stock_ledger.domain.clock import Clock, SystemClock
from stock_ledger.domain.dtos import (
    IssuedCode,
    ItemInfo,
    LedgerRow,
    PickupConfirmationInfo,
    SnapshotEntry,
    TransactionInfo,
)
from stock_ledger.domain.transaction import TransactionStatus, TransactionType
from stock_ledger.logging_config import get_logger
from stock_ledger.selectors import RegistrySelector, SnapshotSelector, TransactionSelector
from stock_ledger.services.confirmation_service import (
    PickupConfirmationService,
    generate_numeric_code,
)
from stock_ledger.services.registry_service import RegistryService
from stock_ledger.services.signature_store import FileSignatureStore, SignatureStore
from stock_ledger.services.sync_service import (
    HttpTicketSync,
    NullTicketSync,
    SyncDispatcher,
    TicketSync,
)
from stock_ledger.services.transaction_service import TransactionService

logger = get_logger("ledger")


class InventoryLedger:
    """
    Stock/inventory transaction ledger.

    Usage:
        store = LedgerStore("sqlite:///stock.db")
        ledger = InventoryLedger(store)
        ledger.add_item("SKU-001", "Widget", initial_qty=100, location="WH1")
        tx = ledger.create("pickup", "SKU-001", 5, from_location="WH1")
        issued = ledger.generate_code(tx.id, "alice")
        ledger.confirm_by_code(tx.id, "alice", issued.code)
        ledger.complete(tx.id)
        ledger.stock_level("SKU-001", "WH1")   # 95
    """

    def __init__(
        self,
        store: LedgerStore,
        config: LedgerConfig | None = None,
        clock: Clock | None = None,
        signature_store: SignatureStore | None = None,
        ticket_sync: TicketSync | None = None,
        code_generator=generate_numeric_code,
    ):
        self.store = store
        self.config = config or LedgerConfig()
        self.clock = clock or SystemClock()
        self.signature_store = signature_store or FileSignatureStore(
            self.config.signature_root
        )
        self._code_generator = code_generator
        self._sync = SyncDispatcher(store, ticket_sync or NullTicketSync(), self.clock)

    @classmethod
    def from_config(
        cls,
        config: LedgerConfig,
        clock: Clock | None = None,
    ) -> "InventoryLedger":
        """Build store, signature store and ticket sink from ``config``."""
        store = LedgerStore(config.database_url)
        sink: TicketSync | None = None
        if config.ticket_sync_url:
            sink = HttpTicketSync(config.ticket_sync_url, timeout=config.ticket_sync_timeout)
        logger.info(
            "ledger_opened",
            extra={"dialect": store.engine.dialect.name, "ticket_sync": sink is not None},
        )
        return cls(store, config=config, clock=clock, ticket_sync=sink)

    # ------------------------------------------------------------------
    # Service factories (one per scope)
    # ------------------------------------------------------------------

    def _registry(self, session) -> RegistryService:
        return RegistryService(
            session, self.clock, adjustment_location=self.config.adjustment_location,
        )

    def _transactions(self, session) -> TransactionService:
        return TransactionService(
            session, self.clock, adjustment_location=self.config.adjustment_location,
        )

    def _confirmations(self, session) -> PickupConfirmationService:
        return PickupConfirmationService(
            session,
            self.clock,
            signature_store=self.signature_store,
            code_ttl=timedelta(minutes=self.config.code_ttl_minutes),
            code_digits=self.config.code_digits,
            code_generator=self._code_generator,
        )

    def _synced(self, tx: TransactionInfo) -> TransactionInfo:
        if self._sync.dispatch(tx) is None:
            return tx
        return self.get(tx.id)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def add_item(
        self,
        sku: str,
        name: str,
        uom: str = "ea",
        initial_qty: int = 0,
        location: str | None = None,
        tags: dict[str, str] | None = None,
    ) -> ItemInfo:
        with self.store.mutation() as session:
            registry = self._registry(session)
            item = registry.add_item(
                sku, name, uom=uom, initial_qty=initial_qty, location=location, tags=tags,
            )
        if registry.seeded is not None:
            self._sync.dispatch(registry.seeded)
        return item

    def set_active(self, sku: str, active: bool) -> ItemInfo:
        with self.store.mutation() as session:
            return self._registry(session).set_active(sku, active)

    def get_item(self, sku: str) -> ItemInfo:
        with self.store.read() as session:
            return RegistrySelector(session).get_item(sku)

    def list_items(self, include_inactive: bool = False) -> tuple[ItemInfo, ...]:
        with self.store.read() as session:
            return RegistrySelector(session).list_items(include_inactive)

    def list_locations(self) -> tuple[str, ...]:
        with self.store.read() as session:
            return RegistrySelector(session).list_locations()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def create(
        self,
        tx_type: TransactionType | str,
        sku: str,
        qty: int,
        from_location: str | None = None,
        to_location: str | None = None,
        ref: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> TransactionInfo:
        with self.store.mutation() as session:
            tx = self._transactions(session).create(
                tx_type, sku, qty,
                from_location=from_location,
                to_location=to_location,
                ref=ref,
                meta=meta,
            )
        return self._synced(tx)

    def transition(
        self,
        transaction_id: UUID | str,
        target: TransactionStatus | str,
    ) -> TransactionInfo:
        with self.store.mutation() as session:
            tx = self._transactions(session).transition(transaction_id, target)
        return self._synced(tx)

    def mark_in_transit(self, transaction_id: UUID | str) -> TransactionInfo:
        return self.transition(transaction_id, TransactionStatus.IN_TRANSIT)

    def complete(self, transaction_id: UUID | str) -> TransactionInfo:
        return self.transition(transaction_id, TransactionStatus.COMPLETED)

    def cancel(self, transaction_id: UUID | str) -> TransactionInfo:
        return self.transition(transaction_id, TransactionStatus.CANCELLED)

    def get(self, transaction_id: UUID | str) -> TransactionInfo:
        with self.store.read() as session:
            return TransactionSelector(session).get(transaction_id)

    def list_transactions(
        self,
        sku: str | None = None,
        status: TransactionStatus | str | None = None,
        tx_type: TransactionType | str | None = None,
    ) -> tuple[TransactionInfo, ...]:
        with self.store.read() as session:
            return TransactionSelector(session).list(sku=sku, status=status, tx_type=tx_type)

    # ------------------------------------------------------------------
    # Pickup confirmation
    # ------------------------------------------------------------------

    def generate_code(self, transaction_id: UUID | str, picker_name: str) -> IssuedCode:
        with self.store.mutation() as session:
            return self._confirmations(session).generate_code(transaction_id, picker_name)

    def confirm_by_code(
        self,
        transaction_id: UUID | str,
        picker_name: str,
        code: str,
    ) -> PickupConfirmationInfo:
        with self.store.mutation() as session:
            return self._confirmations(session).confirm_by_code(
                transaction_id, picker_name, code,
            )

    def confirm_by_signature(
        self,
        transaction_id: UUID | str,
        picker_name: str,
        signature_ref: str,
    ) -> PickupConfirmationInfo:
        with self.store.mutation() as session:
            return self._confirmations(session).confirm_by_signature(
                transaction_id, picker_name, signature_ref,
            )

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    def stock_level(self, sku: str, location: str) -> int:
        with self.store.read() as session:
            return SnapshotSelector(session).stock_level(sku, location)

    def snapshot(self, sku: str | None = None) -> tuple[SnapshotEntry, ...]:
        with self.store.read() as session:
            return SnapshotSelector(session).snapshot(sku)

    def location_snapshot(self, location: str) -> tuple[SnapshotEntry, ...]:
        with self.store.read() as session:
            return SnapshotSelector(session).at_location(location)

    def ledger_rows(self, sku: str | None = None) -> tuple[LedgerRow, ...]:
        with self.store.read() as session:
            return SnapshotSelector(session).ledger_rows(sku)

    def total_for_sku(self, sku: str) -> int:
        with self.store.read() as session:
            return SnapshotSelector(session).total_for_sku(sku)

    def canonical_hash(self) -> str:
        with self.store.read() as session:
            return SnapshotSelector(session).canonical_hash()
