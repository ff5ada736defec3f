"""Read-only selectors over the stock ledger."""

from stock_ledger.selectors.snapshot_selector import SnapshotSelector
from stock_ledger.selectors.transaction_selector import (
    RegistrySelector,
    TransactionSelector,
)

__all__ = ["RegistrySelector", "SnapshotSelector", "TransactionSelector"]
