"""
Data transfer objects (``stock_ledger.domain.dtos``).

Frozen dataclasses returned across the service boundary.  Services and
selectors never hand ORM instances to callers; every public method returns
one of these (or a tuple of them).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from stock_ledger.domain.transaction import (
    ConfirmationMethod,
    TransactionStatus,
    TransactionType,
)


@dataclass(frozen=True)
class ItemInfo:
    sku: str
    name: str
    uom: str
    is_active: bool
    tags: dict[str, str] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass(frozen=True)
class PickupConfirmationInfo:
    """
    Proof-of-possession state for a pickup.

    ``has_active_code`` is exposed instead of the code itself so the secret
    never leaves the confirmation service through a read path.
    """

    picker_name: str
    method: ConfirmationMethod | None
    confirmed: bool
    confirmed_at: datetime | None = None
    code_expires_at: datetime | None = None
    has_active_code: bool = False
    signature_ref: str | None = None


@dataclass(frozen=True)
class ExternalSyncInfo:
    system: str
    external_id: str
    synced_at: datetime


@dataclass(frozen=True)
class TransactionInfo:
    """Read-only view of one transaction in the log."""

    id: UUID
    seq: int
    tx_type: TransactionType
    sku: str
    qty: int
    from_location: str | None
    to_location: str | None
    ref: str | None
    status: TransactionStatus
    applied: bool
    created_at: datetime
    updated_at: datetime
    applied_at: datetime | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    pickup_confirmation: PickupConfirmationInfo | None = None
    external_sync: ExternalSyncInfo | None = None

    @property
    def is_confirmed(self) -> bool:
        return self.pickup_confirmation is not None and self.pickup_confirmation.confirmed


@dataclass(frozen=True)
class IssuedCode:
    """A freshly issued one-time code; the only place the code is returned."""

    transaction_id: UUID
    code: str
    expires_at: datetime


@dataclass(frozen=True)
class LedgerRow:
    """One signed quantity delta for a (sku, location) pair."""

    sku: str
    location: str
    delta: int
    transaction_id: UUID
    occurred_at: datetime | None = None


@dataclass(frozen=True)
class SnapshotEntry:
    sku: str
    location: str
    quantity: int


@dataclass(frozen=True)
class TicketProjection:
    """
    Read-only projection handed to the external ticketing collaborator.

    The collaborator upserts by ``tx_id`` and must tolerate repeats.
    """

    tx_id: str
    type: str
    sku: str
    qty: int
    from_location: str | None
    to_location: str | None
    status: str
    ref: str | None
    confirmed: bool
    picker: str | None
    updated: datetime

    def to_payload(self) -> dict[str, Any]:
        """Wire shape with the short ``from``/``to`` keys."""
        return {
            "tx_id": self.tx_id,
            "type": self.type,
            "sku": self.sku,
            "qty": self.qty,
            "from": self.from_location,
            "to": self.to_location,
            "status": self.status,
            "ref": self.ref,
            "confirmed": self.confirmed,
            "picker": self.picker,
            "updated": self.updated.isoformat(),
        }

    @classmethod
    def from_transaction(cls, tx: TransactionInfo) -> "TicketProjection":
        confirmation = tx.pickup_confirmation
        return cls(
            tx_id=str(tx.id),
            type=tx.tx_type.value,
            sku=tx.sku,
            qty=tx.qty,
            from_location=tx.from_location,
            to_location=tx.to_location,
            status=tx.status.value,
            ref=tx.ref,
            confirmed=tx.is_confirmed,
            picker=confirmation.picker_name if confirmation is not None else None,
            updated=tx.updated_at,
        )
