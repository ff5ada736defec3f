"""
Module: stock_ledger.models.transaction
Responsibility: ORM persistence for inventory transactions and their
    optional sub-records -- the single source of truth for stock.
Architecture position: Models.  May import from db/ and domain enums only.

Invariants enforced:
    - qty > 0 (CHECK constraint ck_transaction_qty_positive).
    - seq is unique and increases with creation order.
    - status and applied move together: COMPLETED <=> applied
      (CHECK constraint ck_transaction_applied_matches_status).
    - Once COMPLETED and applied, business fields (tx_type, sku, qty,
      from_location, to_location, ref) are frozen (db/immutability.py).
    - A confirmed PickupConfirmation is frozen (db/immutability.py).
    - ExternalSync is bookkeeping and may attach to a frozen transaction.

Failure modes:
    - IntegrityError on a CHECK violation (surfaced as PersistenceError).
    - ImmutabilityViolationError on UPDATE of frozen fields.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_ledger.db.base import Base, TrackedBase
from stock_ledger.db.types import UUIDString
from stock_ledger.domain.transaction import (
    ConfirmationMethod,
    TransactionStatus,
    TransactionType,
)


def _enum_column(enum_cls, length: int = 20) -> SAEnum:
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class InventoryTransaction(TrackedBase):
    """
    One inventory movement.

    Contract:
        Created OPEN by TransactionService.create.  Status changes only
        through TransactionService, which checks every edge against
        domain.transaction.TRANSACTION_TRANSITIONS.  Completion flips status
        and ``applied`` in the same flush.
    """

    __tablename__ = "inventory_transactions"

    __table_args__ = (
        CheckConstraint("qty > 0", name="ck_transaction_qty_positive"),
        CheckConstraint(
            "(status = 'completed' AND applied = true) OR "
            "(status != 'completed' AND applied = false)",
            name="ck_transaction_applied_matches_status",
        ),
        UniqueConstraint("seq", name="uq_transaction_seq"),
        Index("idx_transaction_sku", "sku"),
        Index("idx_transaction_status", "status"),
    )

    # Monotonic creation order, assigned under the mutation lock
    seq: Mapped[int] = mapped_column(Integer, nullable=False)

    tx_type: Mapped[TransactionType] = mapped_column(
        _enum_column(TransactionType), nullable=False,
    )

    sku: Mapped[str] = mapped_column(
        String(100), ForeignKey("items.sku"), nullable=False,
    )

    qty: Mapped[int] = mapped_column(Integer, nullable=False)

    from_location: Mapped[str | None] = mapped_column(
        String(100), ForeignKey("locations.name"), nullable=True,
    )

    to_location: Mapped[str | None] = mapped_column(
        String(100), ForeignKey("locations.name"), nullable=True,
    )

    # External reference (order number, ticket, ...)
    ref: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[TransactionStatus] = mapped_column(
        _enum_column(TransactionStatus),
        nullable=False,
        default=TransactionStatus.OPEN,
    )

    applied: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    applied_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Freeform caller metadata (operator, notes); never read by the engine
    attributes: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    pickup_confirmation: Mapped["PickupConfirmation | None"] = relationship(
        back_populates="transaction",
        uselist=False,
        lazy="joined",
    )

    external_sync: Mapped["ExternalSync | None"] = relationship(
        back_populates="transaction",
        uselist=False,
        lazy="joined",
    )

    def __repr__(self) -> str:
        return f"<InventoryTransaction {self.id} {self.tx_type} {self.status}>"

    @property
    def is_frozen(self) -> bool:
        """Completed and applied; business fields can no longer change."""
        return self.status == TransactionStatus.COMPLETED and bool(self.applied)


class PickupConfirmation(Base):
    """
    Proof-of-possession record for a pickup transaction.

    ``code`` holds the single active one-time code; issuing a new code
    overwrites it and consuming it sets it back to NULL.
    """

    __tablename__ = "pickup_confirmations"

    __table_args__ = (
        UniqueConstraint("transaction_id", name="uq_confirmation_transaction"),
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_transactions.id"),
        nullable=False,
    )

    picker_name: Mapped[str] = mapped_column(String(255), nullable=False)

    method: Mapped[ConfirmationMethod | None] = mapped_column(
        _enum_column(ConfirmationMethod), nullable=True,
    )

    code: Mapped[str | None] = mapped_column(String(16), nullable=True)

    code_issued_at: Mapped[datetime | None] = mapped_column(nullable=True)

    code_expires_at: Mapped[datetime | None] = mapped_column(nullable=True)

    confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    confirmed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    signature_ref: Mapped[str | None] = mapped_column(String(500), nullable=True)

    transaction: Mapped[InventoryTransaction] = relationship(
        back_populates="pickup_confirmation",
    )


class ExternalSync(Base):
    """Pointer to the transaction's counterpart in the ticketing system."""

    __tablename__ = "external_syncs"

    __table_args__ = (
        UniqueConstraint("transaction_id", name="uq_external_sync_transaction"),
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_transactions.id"),
        nullable=False,
    )

    system: Mapped[str] = mapped_column(String(50), nullable=False)

    external_id: Mapped[str] = mapped_column(String(255), nullable=False)

    synced_at: Mapped[datetime] = mapped_column(nullable=False)

    transaction: Mapped[InventoryTransaction] = relationship(
        back_populates="external_sync",
    )
