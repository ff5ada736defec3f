"""
Snapshot projector (``stock_ledger.domain.projector``).

Responsibility
--------------
Turns the transaction log into stock figures.  ``project()`` expands each
completed transaction into signed ``LedgerRow`` deltas; ``aggregate()``
sums them per (sku, location).  Nothing here is cached or persisted: a
stock figure is always recomputed from the log.

Invariants
----------
* Only COMPLETED transactions with ``applied`` set contribute rows.
  OPEN, IN_TRANSIT and CANCELLED transactions contribute nothing.
* Summation is commutative and associative, so any ordering of the input
  (replay, shuffled journal, concurrent insertion) yields the same totals.
* A TRANSFER contributes a net zero per SKU across all locations.

Architecture position
---------------------
Domain layer -- pure functions.  ZERO I/O.
"""

from __future__ import annotations

import hashlib
import json
from collections import defaultdict
from collections.abc import Iterable, Mapping

from stock_ledger.domain.dtos import LedgerRow, SnapshotEntry, TransactionInfo
from stock_ledger.domain.transaction import TransactionStatus, TransactionType

SnapshotKey = tuple[str, str]

# (location attribute, sign) pairs each type expands to
_EXPANSION: dict[TransactionType, tuple[tuple[str, int], ...]] = {
    TransactionType.PICKUP: (("from_location", -1),),
    TransactionType.DELIVERY: (("to_location", 1),),
    TransactionType.RETURN: (("to_location", 1),),
    TransactionType.TRANSFER: (("from_location", -1), ("to_location", 1)),
    TransactionType.ADJUSTMENT: (("to_location", 1),),
}


def contributes(tx: TransactionInfo) -> bool:
    """True when the transaction belongs to the ledger."""
    return tx.status == TransactionStatus.COMPLETED and tx.applied


def rows_for(tx: TransactionInfo) -> tuple[LedgerRow, ...]:
    """Ledger rows of a single transaction (empty unless it contributes)."""
    if not contributes(tx):
        return ()
    rows = []
    for attr, sign in _EXPANSION[TransactionType(tx.tx_type)]:
        rows.append(
            LedgerRow(
                sku=tx.sku,
                location=getattr(tx, attr),
                delta=sign * tx.qty,
                transaction_id=tx.id,
                occurred_at=tx.applied_at or tx.updated_at,
            )
        )
    return tuple(rows)


def project(transactions: Iterable[TransactionInfo]) -> tuple[LedgerRow, ...]:
    """Expand completed transactions into ledger rows."""
    rows: list[LedgerRow] = []
    for tx in transactions:
        rows.extend(rows_for(tx))
    return tuple(rows)


def aggregate(
    rows: Iterable[LedgerRow],
    sku_filter: str | None = None,
) -> dict[SnapshotKey, int]:
    """Sum row deltas per (sku, location), optionally for one SKU."""
    totals: dict[SnapshotKey, int] = defaultdict(int)
    for row in rows:
        if sku_filter is not None and row.sku != sku_filter:
            continue
        totals[(row.sku, row.location)] += row.delta
    return dict(totals)


def to_entries(totals: Mapping[SnapshotKey, int]) -> tuple[SnapshotEntry, ...]:
    """Sorted snapshot entries; zero balances are kept."""
    return tuple(
        SnapshotEntry(sku=sku, location=location, quantity=qty)
        for (sku, location), qty in sorted(totals.items())
    )


def snapshot(
    transactions: Iterable[TransactionInfo],
    sku_filter: str | None = None,
) -> tuple[SnapshotEntry, ...]:
    return to_entries(aggregate(project(transactions), sku_filter))


def canonical_hash(totals: Mapping[SnapshotKey, int]) -> str:
    """
    Deterministic SHA-256 over the sorted snapshot.

    The same log always hashes identically regardless of the order it was
    read in, so two replays can be compared by hash.
    """
    canonical = [[sku, location, qty] for (sku, location), qty in sorted(totals.items())]
    encoded = json.dumps(canonical, separators=(",", ":"), ensure_ascii=True)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()
