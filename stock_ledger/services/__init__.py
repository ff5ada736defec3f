"""Services: the only code that writes to the ledger."""

from stock_ledger.services.registry_service import RegistryService
from stock_ledger.services.transaction_service import TransactionService
from stock_ledger.services.confirmation_service import (
    PickupConfirmationService,
    generate_numeric_code,
)
from stock_ledger.services.signature_store import (
    FileSignatureStore,
    InMemorySignatureStore,
    SignatureStore,
)
from stock_ledger.services.sync_service import (
    HttpTicketSync,
    NullTicketSync,
    SyncDispatcher,
    TicketSync,
)

__all__ = [
    "FileSignatureStore",
    "HttpTicketSync",
    "InMemorySignatureStore",
    "NullTicketSync",
    "PickupConfirmationService",
    "RegistryService",
    "SignatureStore",
    "SyncDispatcher",
    "TicketSync",
    "TransactionService",
    "generate_numeric_code",
]
