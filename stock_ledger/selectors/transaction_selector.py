"""
Module: stock_ledger.selectors.transaction_selector
Responsibility: Read-only queries over items, locations and the
    transaction log, plus the ORM -> DTO converters shared with services.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_ledger.domain.dtos import (
    ExternalSyncInfo,
    ItemInfo,
    PickupConfirmationInfo,
    TransactionInfo,
)
from stock_ledger.domain.transaction import TransactionStatus, TransactionType
from stock_ledger.exceptions import (
    ItemNotFoundError,
    LocationNotFoundError,
    TransactionNotFoundError,
)
from stock_ledger.models.item import Item, Location
from stock_ledger.models.transaction import InventoryTransaction, PickupConfirmation
from stock_ledger.selectors.base import BaseSelector


def item_to_info(item: Item) -> ItemInfo:
    return ItemInfo(
        sku=item.sku,
        name=item.name,
        uom=item.uom,
        is_active=item.is_active,
        tags=dict(item.tags or {}),
        created_at=item.created_at,
    )


def confirmation_to_info(conf: PickupConfirmation) -> PickupConfirmationInfo:
    return PickupConfirmationInfo(
        picker_name=conf.picker_name,
        method=conf.method,
        confirmed=conf.confirmed,
        confirmed_at=conf.confirmed_at,
        code_expires_at=conf.code_expires_at,
        has_active_code=conf.code is not None,
        signature_ref=conf.signature_ref,
    )


def transaction_to_info(tx: InventoryTransaction) -> TransactionInfo:
    sync = tx.external_sync
    return TransactionInfo(
        id=tx.id,
        seq=tx.seq,
        tx_type=TransactionType(tx.tx_type),
        sku=tx.sku,
        qty=tx.qty,
        from_location=tx.from_location,
        to_location=tx.to_location,
        ref=tx.ref,
        status=TransactionStatus(tx.status),
        applied=tx.applied,
        created_at=tx.created_at,
        updated_at=tx.updated_at,
        applied_at=tx.applied_at,
        attributes=dict(tx.attributes or {}),
        pickup_confirmation=(
            confirmation_to_info(tx.pickup_confirmation)
            if tx.pickup_confirmation is not None
            else None
        ),
        external_sync=(
            ExternalSyncInfo(
                system=sync.system,
                external_id=sync.external_id,
                synced_at=sync.synced_at,
            )
            if sync is not None
            else None
        ),
    )


class TransactionSelector(BaseSelector[InventoryTransaction]):
    """Lookups and listings over the log."""

    def __init__(self, session: Session):
        super().__init__(session)

    def get(self, transaction_id: UUID | str) -> TransactionInfo:
        tx = self.session.get(InventoryTransaction, parse_transaction_id(transaction_id))
        if tx is None:
            raise TransactionNotFoundError(str(transaction_id))
        return transaction_to_info(tx)

    def list(
        self,
        sku: str | None = None,
        status: TransactionStatus | None = None,
        tx_type: TransactionType | None = None,
    ) -> tuple[TransactionInfo, ...]:
        """Transactions in creation order, optionally filtered."""
        query = select(InventoryTransaction)
        if sku is not None:
            query = query.where(InventoryTransaction.sku == sku)
        if status is not None:
            query = query.where(InventoryTransaction.status == TransactionStatus(status))
        if tx_type is not None:
            query = query.where(InventoryTransaction.tx_type == TransactionType(tx_type))
        query = query.order_by(InventoryTransaction.seq)
        rows = self.session.execute(query).unique().scalars().all()
        return tuple(transaction_to_info(tx) for tx in rows)

    def completed(self, sku: str | None = None) -> tuple[TransactionInfo, ...]:
        """The ledger: completed and applied transactions only."""
        query = select(InventoryTransaction).where(
            InventoryTransaction.status == TransactionStatus.COMPLETED,
            InventoryTransaction.applied.is_(True),
        )
        if sku is not None:
            query = query.where(InventoryTransaction.sku == sku)
        query = query.order_by(InventoryTransaction.seq)
        rows = self.session.execute(query).unique().scalars().all()
        return tuple(transaction_to_info(tx) for tx in rows)


class RegistrySelector(BaseSelector[Item]):
    """Lookups over items and locations."""

    def get_item(self, sku: str) -> ItemInfo:
        item = self.session.execute(
            select(Item).where(Item.sku == sku)
        ).scalar_one_or_none()
        if item is None:
            raise ItemNotFoundError(sku)
        return item_to_info(item)

    def list_items(self, include_inactive: bool = False) -> tuple[ItemInfo, ...]:
        query = select(Item)
        if not include_inactive:
            query = query.where(Item.is_active.is_(True))
        rows = self.session.execute(query.order_by(Item.sku)).scalars().all()
        return tuple(item_to_info(item) for item in rows)

    def list_locations(self) -> tuple[str, ...]:
        rows = self.session.execute(select(Location.name).order_by(Location.name)).scalars().all()
        return tuple(rows)

    def require_location(self, name: str) -> str:
        exists = self.session.execute(
            select(Location.name).where(Location.name == name)
        ).scalar_one_or_none()
        if exists is None:
            raise LocationNotFoundError(name)
        return name


def parse_transaction_id(value: UUID | str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise TransactionNotFoundError(str(value)) from None
