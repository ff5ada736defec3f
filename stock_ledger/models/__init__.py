"""ORM models for the stock ledger."""

from stock_ledger.models.item import Item, Location
from stock_ledger.models.transaction import (
    ExternalSync,
    InventoryTransaction,
    PickupConfirmation,
)

__all__ = [
    "ExternalSync",
    "InventoryTransaction",
    "Item",
    "Location",
    "PickupConfirmation",
]
