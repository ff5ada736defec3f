"""
Tests for the pure transaction rules (``stock_ledger.domain.transaction``).

Covers:
- TRANSACTION_TRANSITIONS is the only source of legal status edges.
  Terminal states have no outgoing edges.
- Per-type location requirements and the adjustment sentinel.
- Quantity validation.
"""

import pytest

from stock_ledger.domain.transaction import (
    ACTIVE_STATUSES,
    LOCATION_RULES,
    TERMINAL_STATUSES,
    TRANSACTION_TRANSITIONS,
    TransactionStatus,
    TransactionType,
    can_transition,
    resolve_locations,
    validate_quantity,
    validate_transition,
)
from stock_ledger.exceptions import (
    IllegalTransitionError,
    InvalidQuantityError,
    MissingLocationError,
)

S = TransactionStatus


class TestTransitionTable:

    @pytest.mark.parametrize(
        "current,target",
        [
            (S.OPEN, S.IN_TRANSIT),
            (S.OPEN, S.COMPLETED),
            (S.OPEN, S.CANCELLED),
            (S.IN_TRANSIT, S.COMPLETED),
            (S.IN_TRANSIT, S.CANCELLED),
        ],
    )
    def test_allowed_edges(self, current, target):
        assert can_transition(current, target)
        validate_transition("tx-1", current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (S.IN_TRANSIT, S.OPEN),
            (S.COMPLETED, S.OPEN),
            (S.COMPLETED, S.CANCELLED),
            (S.CANCELLED, S.COMPLETED),
            (S.CANCELLED, S.OPEN),
            (S.OPEN, S.OPEN),
        ],
    )
    def test_forbidden_edges_raise(self, current, target):
        assert not can_transition(current, target)
        with pytest.raises(IllegalTransitionError) as exc_info:
            validate_transition("tx-1", current, target)
        assert exc_info.value.from_status == current.value
        assert exc_info.value.to_status == target.value
        assert exc_info.value.code == "ILLEGAL_TRANSITION"

    def test_terminal_states_have_no_outgoing_edges(self):
        for status in TERMINAL_STATUSES:
            assert TRANSACTION_TRANSITIONS[status] == frozenset()

    def test_every_status_has_a_row(self):
        assert set(TRANSACTION_TRANSITIONS) == set(TransactionStatus)

    def test_active_and_terminal_partition_statuses(self):
        assert ACTIVE_STATUSES | TERMINAL_STATUSES == set(TransactionStatus)
        assert not ACTIVE_STATUSES & TERMINAL_STATUSES

    def test_accepts_string_values(self):
        assert can_transition("open", "in_transit")


class TestLocationRules:

    def test_every_type_has_a_rule(self):
        assert set(LOCATION_RULES) == set(TransactionType)

    def test_pickup_requires_from(self):
        with pytest.raises(MissingLocationError) as exc_info:
            resolve_locations(TransactionType.PICKUP, None, "WH2")
        assert exc_info.value.field == "from"

    def test_pickup_to_is_optional(self):
        assert resolve_locations(TransactionType.PICKUP, "WH1", None) == ("WH1", None)

    @pytest.mark.parametrize("tx_type", [TransactionType.DELIVERY, TransactionType.RETURN])
    def test_inbound_types_require_to(self, tx_type):
        with pytest.raises(MissingLocationError) as exc_info:
            resolve_locations(tx_type, "WH1", None)
        assert exc_info.value.field == "to"

    def test_transfer_requires_both(self):
        with pytest.raises(MissingLocationError):
            resolve_locations(TransactionType.TRANSFER, "WH1", None)
        with pytest.raises(MissingLocationError):
            resolve_locations(TransactionType.TRANSFER, None, "WH2")
        assert resolve_locations(TransactionType.TRANSFER, "WH1", "WH2") == ("WH1", "WH2")

    def test_adjustment_defaults_to_sentinel(self):
        assert resolve_locations(TransactionType.ADJUSTMENT, None, None) == (None, "ADJUST")

    def test_adjustment_sentinel_is_configurable(self):
        assert resolve_locations(
            TransactionType.ADJUSTMENT, None, None, adjustment_location="CYCLE-COUNT",
        ) == (None, "CYCLE-COUNT")

    def test_adjustment_explicit_location_wins(self):
        assert resolve_locations(TransactionType.ADJUSTMENT, None, "WH1") == (None, "WH1")

    def test_blank_strings_count_as_missing(self):
        with pytest.raises(MissingLocationError):
            resolve_locations(TransactionType.PICKUP, "   ", None)

    def test_whitespace_is_trimmed(self):
        assert resolve_locations(TransactionType.DELIVERY, None, " WH1 ") == (None, "WH1")


class TestQuantity:

    @pytest.mark.parametrize("qty", [1, 5, 10_000])
    def test_positive_integers_accepted(self, qty):
        assert validate_quantity(qty) == qty

    @pytest.mark.parametrize("qty", [0, -1, -100, 1.5, "3", None, True])
    def test_everything_else_rejected(self, qty):
        with pytest.raises(InvalidQuantityError) as exc_info:
            validate_quantity(qty)
        assert exc_info.value.field == "qty"
