"""
Module: stock_ledger.selectors.snapshot_selector
Responsibility: Read path for stock figures.  Loads the completed subset of
    the transaction log and runs it through the pure projector.  There are
    no stored quantities anywhere in the system, and nothing here caches:
    every call recomputes from the log.

Invariants enforced:
    - Only COMPLETED + applied transactions are read.
    - Results are independent of the order rows come back from the store.
    - canonical_hash() is deterministic for a given log.
"""

from sqlalchemy.orm import Session

from stock_ledger.domain import projector
from stock_ledger.domain.dtos import LedgerRow, SnapshotEntry
from stock_ledger.models.transaction import InventoryTransaction
from stock_ledger.selectors.base import BaseSelector
from stock_ledger.selectors.transaction_selector import RegistrySelector, TransactionSelector


class SnapshotSelector(BaseSelector[InventoryTransaction]):
    """
    Stock-level queries derived from the ledger.

    Non-goals:
        - Does NOT validate that the SKU or location exists; an unknown
          pair simply has quantity 0.
    """

    def __init__(self, session: Session):
        super().__init__(session)
        self._transactions = TransactionSelector(session)

    def ledger_rows(self, sku: str | None = None) -> tuple[LedgerRow, ...]:
        return projector.project(self._transactions.completed(sku))

    def totals(self, sku: str | None = None) -> dict[projector.SnapshotKey, int]:
        return projector.aggregate(self.ledger_rows(sku), sku_filter=sku)

    def snapshot(self, sku: str | None = None) -> tuple[SnapshotEntry, ...]:
        return projector.to_entries(self.totals(sku))

    def stock_level(self, sku: str, location: str) -> int:
        return self.totals(sku).get((sku, location), 0)

    def at_location(self, location: str) -> tuple[SnapshotEntry, ...]:
        """Every SKU held at ``location``; unknown names raise LocationNotFoundError."""
        RegistrySelector(self.session).require_location(location)
        return tuple(entry for entry in self.snapshot() if entry.location == location)

    def total_for_sku(self, sku: str) -> int:
        """System-wide quantity of one SKU across every location."""
        return sum(self.totals(sku).values())

    def canonical_hash(self) -> str:
        return projector.canonical_hash(self.totals())
