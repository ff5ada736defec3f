"""
RegistryService -- item and location registry.

Responsibility:
    Declares items (SKUs), toggles their active flag, and registers
    location names on first reference.  Seeds initial stock by issuing an
    ADJUSTMENT through the transaction engine; the item row itself never
    holds a quantity.

Invariants enforced:
    - SKU uniqueness, exact case-sensitive match (DuplicateItemError).
    - Items and locations are never removed.
    - Deactivating an item does not touch its historical transactions.

Failure modes:
    - DuplicateItemError: SKU already registered.
    - InvalidQuantityError: negative initial quantity.
    - ItemNotFoundError: unknown SKU in set_active / require_active_item.
    - InactiveItemError: SKU exists but is deactivated.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_ledger.domain.clock import Clock
from stock_ledger.domain.dtos import ItemInfo, TransactionInfo
from stock_ledger.exceptions import (
    DuplicateItemError,
    InactiveItemError,
    InvalidQuantityError,
    ItemNotFoundError,
    ValidationError,
)
from stock_ledger.logging_config import get_logger
from stock_ledger.models.item import Item, Location
from stock_ledger.selectors.transaction_selector import item_to_info
from stock_ledger.services.base import BaseService

logger = get_logger("services.registry")


class RegistryService(BaseService[Item]):
    """
    Service for the open-ended sets of known SKUs and locations.

    Non-goals:
        - Does NOT call ``session.commit()`` -- the store scope does.
        - Does NOT offer item or location deletion.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        adjustment_location: str = "ADJUST",
    ):
        super().__init__(session, clock)
        self._adjustment_location = adjustment_location
        # Completed seed ADJUSTMENT from the last add_item, if any
        self.seeded: TransactionInfo | None = None

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def _find_item(self, sku: str) -> Item | None:
        return self.session.execute(
            select(Item).where(Item.sku == sku)
        ).scalar_one_or_none()

    def add_item(
        self,
        sku: str,
        name: str,
        uom: str = "ea",
        initial_qty: int = 0,
        location: str | None = None,
        tags: dict[str, str] | None = None,
    ) -> ItemInfo:
        """
        Register a new SKU, optionally seeding stock.

        If ``initial_qty`` is positive an ADJUSTMENT of that quantity to
        ``location`` (or the adjustment sentinel) is created and completed
        in the same scope and left on ``self.seeded`` for post-commit
        ticket sync.

        Raises:
            DuplicateItemError: If ``sku`` already exists.
            InvalidQuantityError: If ``initial_qty`` is negative or not an int.
            ValidationError: If ``sku`` or ``name`` is blank.
        """
        self.seeded = None
        if not sku or not sku.strip():
            raise ValidationError("SKU must not be blank", field="sku")
        if not name or not name.strip():
            raise ValidationError("Item name must not be blank", field="name")
        if isinstance(initial_qty, bool) or not isinstance(initial_qty, int) or initial_qty < 0:
            raise InvalidQuantityError(initial_qty, field="initial_qty")

        if self._find_item(sku) is not None:
            raise DuplicateItemError(sku)

        now = self._clock.now()
        item = Item(
            sku=sku,
            name=name,
            uom=uom or "ea",
            is_active=True,
            tags=dict(tags) if tags else None,
            created_at=now,
            updated_at=now,
        )
        self.session.add(item)
        self.session.flush()

        logger.info("item_added", extra={"sku": sku, "initial_qty": initial_qty})

        if initial_qty > 0:
            # Inline import: the engine depends on this registry
            from stock_ledger.domain.transaction import TransactionType
            from stock_ledger.services.transaction_service import TransactionService

            engine = TransactionService(
                self.session,
                self._clock,
                adjustment_location=self._adjustment_location,
            )
            seed = engine.create(
                TransactionType.ADJUSTMENT,
                sku,
                initial_qty,
                to_location=location,
                ref="initial-stock",
            )
            self.seeded = engine.complete(seed.id)

        return item_to_info(item)

    def set_active(self, sku: str, active: bool) -> ItemInfo:
        """Toggle an item's listing/validation visibility."""
        item = self._find_item(sku)
        if item is None:
            raise ItemNotFoundError(sku)
        if item.is_active != bool(active):
            item.is_active = bool(active)
            item.updated_at = self._clock.now()
            self.session.flush()
            logger.info("item_active_changed", extra={"sku": sku, "is_active": item.is_active})
        return item_to_info(item)

    def require_active_item(self, sku: str) -> Item:
        """Return the item or raise if it is unknown or inactive."""
        item = self._find_item(sku)
        if item is None:
            raise ItemNotFoundError(sku)
        if not item.is_active:
            raise InactiveItemError(sku)
        return item

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    def ensure_location(self, name: str) -> str:
        """Register ``name`` if it is new; return it either way."""
        existing = self.session.execute(
            select(Location).where(Location.name == name)
        ).scalar_one_or_none()
        if existing is None:
            self.session.add(Location(name=name, created_at=self._clock.now()))
            self.session.flush()
            logger.info("location_registered", extra={"location": name})
        return name
