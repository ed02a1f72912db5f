"""
Tests for LotLedger - per-product FIFO cost lots.

Tests cover:
- Lot creation and validation
- FIFO draws across lot boundaries
- Shortfall remainder
- Mean unit cost and available value queries
- Snapshot immutability
"""

from dataclasses import FrozenInstanceError
from datetime import date
from decimal import Decimal

import pytest

from inventory_engines.valuation import Lot, LotLedger


def _ledger_with_two_lots() -> LotLedger:
    ledger = LotLedger()
    ledger.add_lot(1, date(2025, 1, 1), Decimal("10"), Decimal("2"), "RECEPTION-1")
    ledger.add_lot(1, date(2025, 1, 2), Decimal("5"), Decimal("3"), "RECEPTION-2")
    return ledger


class TestAddLot:
    """Tests for creating lots."""

    def test_new_lot_is_fully_available(self):
        ledger = LotLedger()
        lot = ledger.add_lot(7, date(2025, 1, 1), Decimal("12"), Decimal("1.5"), "RECEPTION-9")

        assert lot.initial_quantity == Decimal("12")
        assert lot.available_quantity == Decimal("12")
        assert lot.consumed_quantity == Decimal("0")
        assert lot.origin_ref == "RECEPTION-9"
        assert ledger.lot_count() == 1
        assert ledger.has_lots(7)

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValueError):
            LotLedger().add_lot(1, date(2025, 1, 1), Decimal("0"), Decimal("1"), "R")

    def test_negative_cost_kept(self):
        """Credit-note costs below zero still produce a lot."""
        ledger = LotLedger()
        lot = ledger.add_lot(1, date(2025, 1, 1), Decimal("4"), Decimal("-1.5"), "RECEPTION-3")

        assert lot.unit_cost == Decimal("-1.5")
        assert ledger.available_value(1) == Decimal("-6.0")

    def test_lot_ids_are_deterministic(self):
        """Same inputs in the same order give the same lot ids."""
        ids_a = [lot.lot_id for lot in _ledger_with_two_lots().all_lots()]
        ids_b = [lot.lot_id for lot in _ledger_with_two_lots().all_lots()]
        assert ids_a == ids_b
        assert len(set(ids_a)) == 2

    def test_lots_sorted_by_entry_date(self):
        """A lot entered later with an earlier date is consumed first."""
        ledger = LotLedger()
        ledger.add_lot(1, date(2025, 1, 5), Decimal("1"), Decimal("9"), "RECEPTION-late")
        ledger.add_lot(1, date(2025, 1, 1), Decimal("1"), Decimal("1"), "RECEPTION-early")

        assert [lot.origin_ref for lot in ledger.lots(1)] == ["RECEPTION-early", "RECEPTION-late"]

    def test_equal_dates_keep_arrival_order(self):
        ledger = LotLedger()
        for n in range(3):
            ledger.add_lot(1, date(2025, 1, 1), Decimal("1"), Decimal(n), f"RECEPTION-{n}")

        assert [lot.origin_ref for lot in ledger.lots(1)] == [
            "RECEPTION-0", "RECEPTION-1", "RECEPTION-2",
        ]


class TestDraw:
    """Tests for FIFO depletion."""

    def test_draw_within_first_lot(self):
        ledger = _ledger_with_two_lots()
        draws, remaining = ledger.draw(1, Decimal("4"))

        assert remaining == Decimal("0")
        assert len(draws) == 1
        assert draws[0].quantity == Decimal("4")
        assert draws[0].cost == Decimal("8")
        assert draws[0].lot.available_quantity == Decimal("6")

    def test_draw_across_lot_boundary(self):
        ledger = _ledger_with_two_lots()
        draws, remaining = ledger.draw(1, Decimal("12"))

        assert remaining == Decimal("0")
        assert [(d.quantity, d.lot.unit_cost) for d in draws] == [
            (Decimal("10"), Decimal("2")),
            (Decimal("2"), Decimal("3")),
        ]
        lots = ledger.lots(1)
        assert lots[0].available_quantity == Decimal("0")
        assert lots[0].is_depleted
        assert lots[1].available_quantity == Decimal("3")

    def test_draw_beyond_stock_returns_remainder(self):
        ledger = _ledger_with_two_lots()
        draws, remaining = ledger.draw(1, Decimal("20"))

        assert sum(d.quantity for d in draws) == Decimal("15")
        assert remaining == Decimal("5")
        assert ledger.available_quantity(1) == Decimal("0")

    def test_depleted_lots_skipped(self):
        ledger = _ledger_with_two_lots()
        ledger.draw(1, Decimal("10"))
        draws, _ = ledger.draw(1, Decimal("1"))

        assert len(draws) == 1
        assert draws[0].lot.origin_ref == "RECEPTION-2"

    def test_unknown_product_draws_nothing(self):
        draws, remaining = LotLedger().draw(99, Decimal("3"))
        assert draws == []
        assert remaining == Decimal("3")

    def test_zero_draw_touches_nothing(self):
        ledger = _ledger_with_two_lots()
        draws, remaining = ledger.draw(1, Decimal("0"))
        assert draws == []
        assert remaining == Decimal("0")


class TestQueries:
    """Tests for read-side aggregates."""

    def test_mean_unit_cost_over_all_lots(self):
        """Depleted lots still count toward the mean."""
        ledger = _ledger_with_two_lots()
        ledger.draw(1, Decimal("10"))
        assert ledger.mean_unit_cost(1) == Decimal("2.5")

    def test_mean_unit_cost_without_lots_is_zero(self):
        assert LotLedger().mean_unit_cost(1) == Decimal("0")

    def test_available_value(self):
        ledger = _ledger_with_two_lots()
        assert ledger.available_value(1) == Decimal("35")
        ledger.draw(1, Decimal("12"))
        assert ledger.available_value(1) == Decimal("9")

    def test_snapshots_are_frozen(self):
        lot = _ledger_with_two_lots().lots(1)[0]
        with pytest.raises(FrozenInstanceError):
            lot.available_quantity = Decimal("0")

    def test_snapshot_not_affected_by_later_draws(self):
        ledger = _ledger_with_two_lots()
        before = ledger.lots(1)[0]
        ledger.draw(1, Decimal("3"))
        assert before.available_quantity == Decimal("10")


class TestLotInvariant:
    """Lot snapshots reject impossible balances."""

    def test_available_above_initial_rejected(self):
        with pytest.raises(ValueError):
            Lot(
                lot_id=LotLedger().add_lot(
                    1, date(2025, 1, 1), Decimal("1"), Decimal("1"), "R",
                ).lot_id,
                product_code=1,
                entry_date=date(2025, 1, 1),
                initial_quantity=Decimal("1"),
                available_quantity=Decimal("2"),
                unit_cost=Decimal("1"),
                origin_ref="R",
            )
