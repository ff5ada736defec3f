"""Tests for SnapshotSelector via InventoryLedger's read operations."""

import pytest

from stock_ledger.domain.dtos import SnapshotEntry
from stock_ledger.exceptions import LocationNotFoundError


@pytest.fixture
def busy_ledger(stocked_ledger):
    stocked_ledger.add_item("SKU-002", "Gadget", initial_qty=40, location="WH2")
    t = stocked_ledger.create("transfer", "SKU-001", 30, from_location="WH1", to_location="WH2")
    stocked_ledger.complete(t.id)
    d = stocked_ledger.create("delivery", "SKU-002", 5, to_location="WH1")
    stocked_ledger.complete(d.id)
    stocked_ledger.create("delivery", "SKU-002", 500, to_location="WH1")  # stays open
    return stocked_ledger


class TestSnapshot:

    def test_full_snapshot(self, busy_ledger):
        assert busy_ledger.snapshot() == (
            SnapshotEntry("SKU-001", "WH1", 70),
            SnapshotEntry("SKU-001", "WH2", 30),
            SnapshotEntry("SKU-002", "WH1", 5),
            SnapshotEntry("SKU-002", "WH2", 40),
        )

    def test_sku_filter(self, busy_ledger):
        assert busy_ledger.snapshot("SKU-002") == (
            SnapshotEntry("SKU-002", "WH1", 5),
            SnapshotEntry("SKU-002", "WH2", 40),
        )

    def test_stock_level_of_unknown_pair_is_zero(self, busy_ledger):
        assert busy_ledger.stock_level("SKU-001", "NOWHERE") == 0
        assert busy_ledger.stock_level("NOPE", "WH1") == 0

    def test_total_for_sku(self, busy_ledger):
        assert busy_ledger.total_for_sku("SKU-001") == 100
        assert busy_ledger.total_for_sku("SKU-002") == 45

    def test_location_snapshot(self, busy_ledger):
        assert busy_ledger.location_snapshot("WH1") == (
            SnapshotEntry("SKU-001", "WH1", 70),
            SnapshotEntry("SKU-002", "WH1", 5),
        )

    def test_location_snapshot_of_unknown_location(self, busy_ledger):
        with pytest.raises(LocationNotFoundError):
            busy_ledger.location_snapshot("NOWHERE")

    def test_ledger_rows_cover_completed_only(self, busy_ledger):
        rows = busy_ledger.ledger_rows()
        assert sum(r.delta for r in rows) == 145
        assert all(r.delta != 500 for r in rows)

    def test_canonical_hash_tracks_changes(self, busy_ledger):
        before = busy_ledger.canonical_hash()
        assert busy_ledger.canonical_hash() == before
        tx = busy_ledger.create("return", "SKU-001", 1, to_location="WH1")
        assert busy_ledger.canonical_hash() == before
        busy_ledger.complete(tx.id)
        assert busy_ledger.canonical_hash() != before
