"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

The transaction log is the only source of truth for stock.  Once a
transaction is completed and applied, changing its quantity or locations
would silently rewrite history and every derived stock figure with it.
The services never do this; these listeners make sure nothing else can
through the ORM either.

SQLAlchemy fires events before UPDATE/DELETE statements are emitted:

    session.flush()
         |
         v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
         |
         v
    [before_delete] --> _check_*_delete() ---------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                | When Immutable                  | Mutable fields
----------------------|---------------------------------|----------------------
InventoryTransaction  | status COMPLETED and applied    | updated_at
InventoryTransaction  | status CANCELLED                | updated_at, attributes
PickupConfirmation    | confirmed                       | (none)
Item                  | always                          | is_active, updated_at
InventoryTransaction  | DELETE always blocked           |
Item, Location        | DELETE always blocked           |

The ExternalSync pointer lives in its own table, so attaching it to a
frozen transaction is an INSERT there and never touches the frozen row.

===============================================================================
USAGE
===============================================================================

    from stock_ledger.db.immutability import register_immutability_listeners
    register_immutability_listeners()   # LedgerStore does this on init

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from stock_ledger.domain.transaction import TransactionStatus
from stock_ledger.exceptions import ImmutabilityViolationError
from stock_ledger.logging_config import get_logger

logger = get_logger("db.immutability")

_BOOKKEEPING_FIELDS = frozenset({"updated_at"})


def _previous_value(target, key: str):
    """Value the row had before this flush began."""
    hist = get_history(target, key)
    if hist.deleted:
        return hist.deleted[0]
    if hist.unchanged:
        return hist.unchanged[0]
    return getattr(target, key)


def _changed_columns(target, allowed: frozenset[str]) -> list[str]:
    insp = inspect(target)
    changed = []
    for attr in insp.mapper.column_attrs:
        if attr.key in allowed:
            continue
        if insp.attrs[attr.key].history.has_changes():
            changed.append(attr.key)
    return changed


def _block(entity_type: str, entity_id, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_transaction_immutability(mapper, connection, target):
    """
    Block changes to completed+applied or cancelled transactions.

    Completion itself (OPEN/IN_TRANSIT -> COMPLETED with applied set) is
    allowed: the check looks at the values the row had BEFORE this flush.
    """
    old_status = TransactionStatus(_previous_value(target, "status"))
    old_applied = bool(_previous_value(target, "applied"))

    if old_status == TransactionStatus.COMPLETED and old_applied:
        changed = _changed_columns(target, _BOOKKEEPING_FIELDS)
        if changed:
            _block(
                "InventoryTransaction", target.id, "UPDATE",
                f"Cannot modify field '{changed[0]}' on a completed transaction",
                field=changed[0],
            )
    elif old_status == TransactionStatus.CANCELLED:
        changed = _changed_columns(target, _BOOKKEEPING_FIELDS | {"attributes"})
        if changed:
            _block(
                "InventoryTransaction", target.id, "UPDATE",
                f"Cannot modify field '{changed[0]}' on a cancelled transaction",
                field=changed[0],
            )


def _check_confirmation_immutability(mapper, connection, target):
    """A confirmed pickup confirmation never changes again."""
    if not bool(_previous_value(target, "confirmed")):
        return
    changed = _changed_columns(target, frozenset())
    if changed:
        _block(
            "PickupConfirmation", target.transaction_id, "UPDATE",
            f"Cannot modify field '{changed[0]}' on a confirmed pickup",
            field=changed[0],
        )


def _check_item_immutability(mapper, connection, target):
    """Only the active flag of an item may change after it is registered."""
    changed = _changed_columns(target, _BOOKKEEPING_FIELDS | {"is_active"})
    if changed:
        _block(
            "Item", _previous_value(target, "sku"), "UPDATE",
            f"Cannot modify field '{changed[0]}' on an item; only is_active may change",
            field=changed[0],
        )


def _check_transaction_delete(mapper, connection, target):
    _block("InventoryTransaction", target.id, "DELETE", "Transactions cannot be deleted")


def _check_item_delete(mapper, connection, target):
    _block("Item", target.sku, "DELETE", "Items cannot be deleted; deactivate instead")


def _check_location_delete(mapper, connection, target):
    _block("Location", target.name, "DELETE", "Locations cannot be deleted")


def _listeners():
    from stock_ledger.models.item import Item, Location
    from stock_ledger.models.transaction import InventoryTransaction, PickupConfirmation

    return (
        (InventoryTransaction, "before_update", _check_transaction_immutability),
        (InventoryTransaction, "before_delete", _check_transaction_delete),
        (PickupConfirmation, "before_update", _check_confirmation_immutability),
        (Item, "before_update", _check_item_immutability),
        (Item, "before_delete", _check_item_delete),
        (Location, "before_delete", _check_location_delete),
    )


def register_immutability_listeners() -> None:
    """Register all immutability listeners (idempotent)."""
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """
    Remove immutability listeners.

    WARNING: Only use this in tests that need to violate the rules on purpose.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
