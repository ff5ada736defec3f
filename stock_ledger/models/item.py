"""
Module: stock_ledger.models.item
Responsibility: ORM persistence for the item and location registry.
Architecture position: Models.  May import from db/ and domain enums only.

Invariants enforced:
    - SKU uniqueness, case-sensitive (UNIQUE constraint uq_item_sku).
    - Location name uniqueness (UNIQUE constraint uq_location_name).
    - No quantity column anywhere: stock is derived from the transaction log.
    - Items and locations are never deleted (db/immutability.py).
"""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_ledger.db.base import Base, TrackedBase


class Item(TrackedBase):
    """
    A stock-keeping unit.

    Contract:
        Created once by RegistryService.add_item; afterwards only
        ``is_active`` (and the ``updated_at`` bookkeeping stamp) may change.
    """

    __tablename__ = "items"

    __table_args__ = (
        UniqueConstraint("sku", name="uq_item_sku"),
        Index("idx_item_active", "is_active"),
    )

    sku: Mapped[str] = mapped_column(String(100), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Unit of measure (e.g. "ea", "box", "kg")
    uom: Mapped[str] = mapped_column(String(20), nullable=False, default="ea")

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    tags: Mapped[dict[str, str] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<Item {self.sku}: {self.name}>"


class Location(Base):
    """A registered location name; created on first reference."""

    __tablename__ = "locations"

    __table_args__ = (
        UniqueConstraint("name", name="uq_location_name"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Location {self.name}>"
