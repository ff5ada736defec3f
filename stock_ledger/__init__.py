"""
Stock Ledger

An append-only inventory transaction ledger with:
- A strict transaction state machine (open, in transit, completed, cancelled)
- Pickup gating by one-time code or signature
- Stock derived from the completed log, never stored
- Serialized, atomic writes
"""

from stock_ledger.config import LedgerConfig, load_config
from stock_ledger.db.engine import LedgerStore
from stock_ledger.ledger import InventoryLedger

__version__ = "0.1.0"

__all__ = [
    "InventoryLedger",
    "LedgerConfig",
    "LedgerStore",
    "load_config",
]
