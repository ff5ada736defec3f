"""
Typed Exception Hierarchy for the Stock Ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the menu, scripts, an API layer) must react to failures without
parsing message strings.  Every error therefore:
  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (sku, transaction_id, field...)

Example:
    try:
        ledger.complete(tx_id)
    except ConfirmationRequiredError as e:
        prompt_for_code(e.transaction_id)
    except IllegalTransitionError as e:
        show(f"cannot move {e.from_status} -> {e.to_status}")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockLedgerError (base)
    |
    +-- ValidationError
    |   +-- InvalidQuantityError
    |   +-- MissingLocationError
    |   +-- InactiveItemError
    |
    +-- NotFoundError
    |   +-- ItemNotFoundError
    |   +-- TransactionNotFoundError
    |   +-- LocationNotFoundError
    |
    +-- DuplicateError
    |   +-- DuplicateItemError
    |
    +-- IllegalStateError
    |   +-- IllegalTransitionError
    |   +-- TransactionNotActiveError
    |   +-- AlreadyConfirmedError
    |   +-- ConfirmationConflictError
    |   +-- ImmutabilityViolationError
    |
    +-- ConfirmationError
    |   +-- ConfirmationRequiredError
    |   +-- ExpiredCodeError
    |   +-- CodeMismatchError
    |   +-- NoActiveCodeError
    |
    +-- PersistenceError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                      | When Raised
--------------|---------------------------|------------------------------------
Validation    | VALIDATION_ERROR          | Bad input (generic)
              | INVALID_QUANTITY          | qty <= 0, negative initial stock
              | MISSING_LOCATION          | Type requires from/to, not given
              | INACTIVE_ITEM             | SKU exists but is deactivated
--------------|---------------------------|------------------------------------
Not found     | ITEM_NOT_FOUND            | Unknown SKU
              | TRANSACTION_NOT_FOUND     | Unknown transaction id
              | LOCATION_NOT_FOUND        | Unknown location name
--------------|---------------------------|------------------------------------
Duplicate     | DUPLICATE_ITEM            | SKU already registered
--------------|---------------------------|------------------------------------
State         | ILLEGAL_TRANSITION        | Edge not in the transition table
              | TRANSACTION_NOT_ACTIVE    | Operation needs OPEN/IN_TRANSIT
              | ALREADY_CONFIRMED         | Code requested for confirmed pickup
              | CONFIRMATION_CONFLICT     | Different picker re-confirms
              | IMMUTABILITY_VIOLATION    | Frozen record modified
--------------|---------------------------|------------------------------------
Confirmation  | CONFIRMATION_REQUIRED     | Pickup completed without proof
              | EXPIRED_CODE              | Code presented after expiry
              | CODE_MISMATCH             | Code presented does not match
              | NO_ACTIVE_CODE            | No code was issued
--------------|---------------------------|------------------------------------
Persistence   | PERSISTENCE_ERROR         | Underlying store read/write failed

===============================================================================
"""


class StockLedgerError(Exception):
    """
    Base exception for all stock ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "STOCK_LEDGER_ERROR"


# Validation


class ValidationError(StockLedgerError):
    """Bad or missing input."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidQuantityError(ValidationError):
    """Quantity is not a positive integer."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, qty, field: str = "qty"):
        self.qty = qty
        super().__init__(f"Quantity must be a positive integer, got {qty!r}", field=field)


class MissingLocationError(ValidationError):
    """A location required by the transaction type was not supplied."""

    code: str = "MISSING_LOCATION"

    def __init__(self, tx_type: str, field: str):
        self.tx_type = tx_type
        super().__init__(f"{tx_type} transactions require '{field}'", field=field)


class InactiveItemError(ValidationError):
    """Item exists but is deactivated."""

    code: str = "INACTIVE_ITEM"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Item '{sku}' is inactive", field="sku")


# Not found


class NotFoundError(StockLedgerError):
    """Base exception for unknown references."""

    code: str = "NOT_FOUND"


class ItemNotFoundError(NotFoundError):
    """No item with the given SKU."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Item not found: {sku}")


class TransactionNotFoundError(NotFoundError):
    """No transaction with the given id."""

    code: str = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction not found: {transaction_id}")


class LocationNotFoundError(NotFoundError):
    """No location with the given name."""

    code: str = "LOCATION_NOT_FOUND"

    def __init__(self, location: str):
        self.location = location
        super().__init__(f"Location not found: {location}")


# Duplicates


class DuplicateError(StockLedgerError):
    """Base exception for uniqueness violations."""

    code: str = "DUPLICATE"


class DuplicateItemError(DuplicateError):
    """SKU already registered (exact, case-sensitive match)."""

    code: str = "DUPLICATE_ITEM"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Item already exists: {sku}")


# State


class IllegalStateError(StockLedgerError):
    """Base exception for operations not allowed in the current state."""

    code: str = "ILLEGAL_STATE"


class IllegalTransitionError(IllegalStateError):
    """Requested status edge is not in the transition table."""

    code: str = "ILLEGAL_TRANSITION"

    def __init__(self, transaction_id: str, from_status: str, to_status: str):
        self.transaction_id = transaction_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Illegal transition for transaction {transaction_id}: "
            f"{from_status} -> {to_status}"
        )


class TransactionNotActiveError(IllegalStateError):
    """Operation requires an OPEN or IN_TRANSIT transaction."""

    code: str = "TRANSACTION_NOT_ACTIVE"

    def __init__(self, transaction_id: str, status: str):
        self.transaction_id = transaction_id
        self.status = status
        super().__init__(
            f"Transaction {transaction_id} is {status}; expected open or in_transit"
        )


class AlreadyConfirmedError(IllegalStateError):
    """Pickup is already confirmed; no new code can be issued."""

    code: str = "ALREADY_CONFIRMED"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Pickup {transaction_id} is already confirmed")


class ConfirmationConflictError(IllegalStateError):
    """A different picker tried to confirm an already confirmed pickup."""

    code: str = "CONFIRMATION_CONFLICT"

    def __init__(self, transaction_id: str, confirmed_by: str, attempted_by: str):
        self.transaction_id = transaction_id
        self.confirmed_by = confirmed_by
        self.attempted_by = attempted_by
        super().__init__(
            f"Pickup {transaction_id} already confirmed by '{confirmed_by}'; "
            f"'{attempted_by}' cannot re-confirm"
        )


class ImmutabilityViolationError(IllegalStateError):
    """Attempted modification of a frozen record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )


# Confirmation


class ConfirmationError(StockLedgerError):
    """Base exception for pickup proof-of-possession failures."""

    code: str = "CONFIRMATION_ERROR"


class ConfirmationRequiredError(ConfirmationError):
    """Pickup completion attempted without a confirmed proof."""

    code: str = "CONFIRMATION_REQUIRED"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(
            f"Pickup {transaction_id} requires a confirmed code or signature "
            f"before completion"
        )


class ExpiredCodeError(ConfirmationError):
    """Code presented after its expiry instant."""

    code: str = "EXPIRED_CODE"

    def __init__(self, transaction_id: str, expired_at: str):
        self.transaction_id = transaction_id
        self.expired_at = expired_at
        super().__init__(
            f"Confirmation code for {transaction_id} expired at {expired_at}"
        )


class CodeMismatchError(ConfirmationError):
    """Code presented does not equal the stored code."""

    code: str = "CODE_MISMATCH"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Confirmation code mismatch for {transaction_id}")


class NoActiveCodeError(ConfirmationError):
    """No unconsumed code exists for the transaction."""

    code: str = "NO_ACTIVE_CODE"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"No active confirmation code for {transaction_id}")


# Persistence


class PersistenceError(StockLedgerError):
    """Underlying store read or write failed."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Store {operation} failed: {detail}")
