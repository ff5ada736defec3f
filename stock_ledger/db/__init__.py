"""Database layer - store handle, base classes, column types and immutability."""

from stock_ledger.db.base import Base, TrackedBase
from stock_ledger.db.engine import LedgerStore
from stock_ledger.db.types import UTCDateTime, UUIDString

__all__ = [
    "Base",
    "LedgerStore",
    "TrackedBase",
    "UTCDateTime",
    "UUIDString",
]
