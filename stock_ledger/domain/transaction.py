"""
Transaction domain types (``stock_ledger.domain.transaction``).

Responsibility
--------------
Closed enumerations for transaction type and status, the status
transition table, and the per-type location rules.  Every status change
in the system is checked against ``TRANSACTION_TRANSITIONS`` through
``validate_transition()``; nothing re-checks edges ad hoc.

Architecture position
---------------------
Domain layer -- pure.  ZERO I/O.  No imports from ``db/``, ``services/``
or ``selectors/``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from stock_ledger.exceptions import (
    IllegalTransitionError,
    InvalidQuantityError,
    MissingLocationError,
)


class TransactionType(str, Enum):
    """Kinds of inventory movement."""

    PICKUP = "pickup"
    DELIVERY = "delivery"
    RETURN = "return"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"


class ConfirmationMethod(str, Enum):
    """How a pickup was proven."""

    ONE_TIME_CODE = "one_time_code"
    SIGNATURE = "signature"


class TransactionStatus(str, Enum):
    """Transaction lifecycle states."""

    OPEN = "open"
    IN_TRANSIT = "in_transit"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TRANSACTION_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.OPEN: frozenset({
        TransactionStatus.IN_TRANSIT,
        TransactionStatus.COMPLETED,
        TransactionStatus.CANCELLED,
    }),
    TransactionStatus.IN_TRANSIT: frozenset({
        TransactionStatus.COMPLETED,
        TransactionStatus.CANCELLED,
    }),
    TransactionStatus.COMPLETED: frozenset(),
    TransactionStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES: frozenset[TransactionStatus] = frozenset({
    TransactionStatus.COMPLETED,
    TransactionStatus.CANCELLED,
})

ACTIVE_STATUSES: frozenset[TransactionStatus] = frozenset({
    TransactionStatus.OPEN,
    TransactionStatus.IN_TRANSIT,
})


def can_transition(current: TransactionStatus, target: TransactionStatus) -> bool:
    return target in TRANSACTION_TRANSITIONS[TransactionStatus(current)]


def validate_transition(
    transaction_id: str,
    current: TransactionStatus,
    target: TransactionStatus,
) -> None:
    """Raise ``IllegalTransitionError`` unless ``current -> target`` is an allowed edge."""
    current = TransactionStatus(current)
    target = TransactionStatus(target)
    if not can_transition(current, target):
        raise IllegalTransitionError(str(transaction_id), current.value, target.value)


# =========================================================================
# Location rules
# =========================================================================


@dataclass(frozen=True)
class LocationRule:
    """Which of from/to a transaction type needs."""

    requires_from: bool
    requires_to: bool
    default_to: bool = False


LOCATION_RULES: dict[TransactionType, LocationRule] = {
    TransactionType.PICKUP: LocationRule(requires_from=True, requires_to=False),
    TransactionType.DELIVERY: LocationRule(requires_from=False, requires_to=True),
    TransactionType.RETURN: LocationRule(requires_from=False, requires_to=True),
    TransactionType.TRANSFER: LocationRule(requires_from=True, requires_to=True),
    # ADJUSTMENT falls back to the sentinel adjustment location
    TransactionType.ADJUSTMENT: LocationRule(
        requires_from=False, requires_to=True, default_to=True,
    ),
}


def _blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


def resolve_locations(
    tx_type: TransactionType,
    from_location: str | None,
    to_location: str | None,
    adjustment_location: str = "ADJUST",
) -> tuple[str | None, str | None]:
    """
    Apply the per-type location rules.

    Returns the normalized ``(from, to)`` pair with blank strings turned
    into ``None`` and the adjustment sentinel filled in.

    Raises:
        MissingLocationError: naming the first missing required field.
    """
    tx_type = TransactionType(tx_type)
    rule = LOCATION_RULES[tx_type]
    source = None if _blank(from_location) else str(from_location).strip()
    dest = None if _blank(to_location) else str(to_location).strip()

    if rule.default_to and dest is None:
        dest = adjustment_location
    if rule.requires_from and source is None:
        raise MissingLocationError(tx_type.value, "from")
    if rule.requires_to and dest is None:
        raise MissingLocationError(tx_type.value, "to")
    return source, dest


def validate_quantity(qty) -> int:
    """Return ``qty`` as an int; reject non-integers and values <= 0."""
    if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
        raise InvalidQuantityError(qty)
    return qty
