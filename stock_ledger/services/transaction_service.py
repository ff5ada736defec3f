"""
TransactionService -- the transaction ledger engine.

Responsibility:
    Creates transactions, drives the status state machine, and applies
    completed transactions to the ledger.

Architecture position:
    Services -- imperative shell.  Depends on RegistryService (SKU and
    location validation) and on the PickupConfirmation record (pickup
    gating).  Called through ``InventoryLedger`` inside one
    ``LedgerStore.mutation()`` scope per operation.

Invariants enforced:
    - qty > 0 on every transaction.
    - Per-type location requirements (domain.transaction.LOCATION_RULES).
    - Every status edge is checked by domain.transaction.validate_transition.
    - Completion sets status=COMPLETED, applied=True and applied_at in the
      same flush, inside the caller's single database transaction: no
      observer sees COMPLETED-but-unapplied or OPEN-but-applied.
    - A PICKUP completes only with a confirmed PickupConfirmation.
    - complete() on a COMPLETED transaction is a no-op; the ledger effect
      is never applied twice.

Failure modes:
    - InvalidQuantityError, MissingLocationError, ItemNotFoundError,
      InactiveItemError from create().
    - TransactionNotFoundError for unknown ids.
    - IllegalTransitionError for edges outside the table.
    - ConfirmationRequiredError for unconfirmed pickups (no state change).
"""

from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stock_ledger.domain.clock import Clock
from stock_ledger.domain.dtos import TransactionInfo
from stock_ledger.domain.transaction import (
    TransactionStatus,
    TransactionType,
    resolve_locations,
    validate_quantity,
    validate_transition,
)
from stock_ledger.exceptions import (
    ConfirmationRequiredError,
    TransactionNotFoundError,
    ValidationError,
)
from stock_ledger.logging_config import LogContext, get_logger
from stock_ledger.models.transaction import InventoryTransaction
from stock_ledger.selectors.transaction_selector import parse_transaction_id, transaction_to_info
from stock_ledger.services.base import BaseService
from stock_ledger.services.registry_service import RegistryService

logger = get_logger("services.transaction")


class TransactionService(BaseService[InventoryTransaction]):
    """
    Service for the transaction lifecycle.

    Contract:
        Accepts plain values, returns frozen ``TransactionInfo`` DTOs, and
        raises typed ``StockLedgerError`` subclasses.  Flushes within the
        caller's scope.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT issue or check pickup codes (PickupConfirmationService).
        - Does NOT compute stock (SnapshotSelector).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        adjustment_location: str = "ADJUST",
    ):
        super().__init__(session, clock)
        self._adjustment_location = adjustment_location
        self._registry = RegistryService(
            session, self._clock, adjustment_location=adjustment_location,
        )

    def load(self, transaction_id: UUID | str) -> InventoryTransaction:
        """Fetch the ORM row or raise TransactionNotFoundError."""
        tx = self.session.get(InventoryTransaction, parse_transaction_id(transaction_id))
        if tx is None:
            raise TransactionNotFoundError(str(transaction_id))
        return tx

    def get(self, transaction_id: UUID | str) -> TransactionInfo:
        return transaction_to_info(self.load(transaction_id))

    def _next_seq(self) -> int:
        current = self.session.execute(select(func.max(InventoryTransaction.seq))).scalar()
        return (current or 0) + 1

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(
        self,
        tx_type: TransactionType | str,
        sku: str,
        qty: int,
        from_location: str | None = None,
        to_location: str | None = None,
        ref: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> TransactionInfo:
        """
        Record a new OPEN transaction.

        Locations named by the transaction are registered if new.

        Raises:
            ValidationError: unknown ``tx_type``.
            InvalidQuantityError: ``qty`` is not a positive integer.
            ItemNotFoundError / InactiveItemError: SKU unusable.
            MissingLocationError: a required location is absent.
        """
        try:
            tx_type = TransactionType(tx_type)
        except ValueError:
            raise ValidationError(f"Unknown transaction type: {tx_type!r}", field="type") from None

        qty = validate_quantity(qty)
        self._registry.require_active_item(sku)
        source, dest = resolve_locations(
            tx_type, from_location, to_location, self._adjustment_location,
        )
        for name in (source, dest):
            if name is not None:
                self._registry.ensure_location(name)

        now = self._clock.now()
        tx = InventoryTransaction(
            seq=self._next_seq(),
            tx_type=tx_type,
            sku=sku,
            qty=qty,
            from_location=source,
            to_location=dest,
            ref=ref or None,
            status=TransactionStatus.OPEN,
            applied=False,
            attributes=dict(meta) if meta else None,
            created_at=now,
            updated_at=now,
        )
        self.session.add(tx)
        self.session.flush()

        logger.info(
            "transaction_created",
            extra={
                "transaction_id": str(tx.id),
                "tx_type": tx_type.value,
                "sku": sku,
                "qty": qty,
                "from_location": source,
                "to_location": dest,
                "ref": ref,
            },
        )
        return transaction_to_info(tx)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def transition(
        self,
        transaction_id: UUID | str,
        target: TransactionStatus | str,
    ) -> TransactionInfo:
        """
        Move a transaction along one edge of the transition table.

        COMPLETED is routed through ``complete()`` so pickup gating and
        the applied flag cannot be bypassed.
        """
        try:
            target = TransactionStatus(target)
        except ValueError:
            raise ValidationError(f"Unknown status: {target!r}", field="status") from None

        if target == TransactionStatus.COMPLETED:
            return self.complete(transaction_id)

        tx = self.load(transaction_id)
        with LogContext.bind(transaction_id=str(tx.id)):
            previous = TransactionStatus(tx.status)
            validate_transition(str(tx.id), previous, target)
            tx.status = target
            tx.updated_at = self._clock.now()
            self.session.flush()
            logger.info(
                "transaction_transitioned",
                extra={"from_status": previous.value, "to_status": target.value},
            )
            return transaction_to_info(tx)

    def mark_in_transit(self, transaction_id: UUID | str) -> TransactionInfo:
        return self.transition(transaction_id, TransactionStatus.IN_TRANSIT)

    def cancel(self, transaction_id: UUID | str) -> TransactionInfo:
        """Cancel an OPEN or IN_TRANSIT transaction; it never reaches the ledger."""
        return self.transition(transaction_id, TransactionStatus.CANCELLED)

    def complete(self, transaction_id: UUID | str) -> TransactionInfo:
        """
        Complete a transaction and apply it to the ledger.

        Postconditions:
            - status is COMPLETED, applied is True, applied_at is set --
              all in one flush.
            - Calling again returns the stored transaction unchanged.

        Raises:
            IllegalTransitionError: transaction is CANCELLED.
            ConfirmationRequiredError: PICKUP without a confirmed proof.
        """
        tx = self.load(transaction_id)
        with LogContext.bind(transaction_id=str(tx.id), sku=tx.sku):
            if tx.is_frozen:
                logger.info("transaction_already_completed")
                return transaction_to_info(tx)

            status = TransactionStatus(tx.status)

            validate_transition(str(tx.id), status, TransactionStatus.COMPLETED)

            if TransactionType(tx.tx_type) == TransactionType.PICKUP:
                confirmation = tx.pickup_confirmation
                if confirmation is None or not confirmation.confirmed:
                    logger.warning("pickup_completion_blocked")
                    raise ConfirmationRequiredError(str(tx.id))

            now = self._clock.now()
            tx.status = TransactionStatus.COMPLETED
            tx.applied = True
            tx.applied_at = now
            tx.updated_at = now
            self.session.flush()

            logger.info(
                "transaction_completed",
                extra={
                    "from_status": status.value,
                    "tx_type": TransactionType(tx.tx_type).value,
                    "qty": tx.qty,
                },
            )
            return transaction_to_info(tx)
