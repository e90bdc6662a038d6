"""Unit tests for the pure ledger primitives."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from shopledger.domain.exceptions import (
    InsufficientStockError,
    InvalidQuantityError,
    OverReleaseError,
)
from shopledger.domain.model.stock import Stock, StockKey
from shopledger.domain.service.ledger import (
    OperationKind,
    ReleasePolicy,
    apply_operation,
    release,
    reserve,
    restock,
    sell,
    weighted_average_cost,
)

KEY = StockKey("shop-1", "widget")
NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _stock(**kwargs) -> Stock:
    return Stock(KEY, **kwargs)


class TestReserve:

    def test_reserve_reduces_available_only(self):
        after = reserve(_stock(on_hand=10), 7)
        assert after.on_hand == 10
        assert after.reserved == 7
        assert after.available == 3

    def test_reserve_more_than_available_rejected(self):
        stock = _stock(on_hand=10, reserved=8)
        with pytest.raises(InsufficientStockError, match="need 3, have 2"):
            reserve(stock, 3)

    def test_input_untouched_on_failure(self):
        stock = _stock(on_hand=1)
        with pytest.raises(InsufficientStockError):
            reserve(stock, 2)
        assert stock.reserved == 0


class TestRelease:

    def test_release_returns_units(self):
        after = release(_stock(on_hand=10, reserved=7), 7)
        assert after.reserved == 0
        assert after.available == 10

    def test_clamp_policy_floors_at_zero(self):
        after = release(_stock(on_hand=10, reserved=2), 5, ReleasePolicy.CLAMP)
        assert after.reserved == 0

    def test_strict_policy_rejects_over_release(self):
        with pytest.raises(OverReleaseError, match="only 2 currently reserved"):
            release(_stock(on_hand=10, reserved=2), 5, ReleasePolicy.STRICT)

    def test_strict_policy_allows_exact_release(self):
        after = release(_stock(on_hand=10, reserved=2), 2, ReleasePolicy.STRICT)
        assert after.reserved == 0

    def test_release_zero_is_rejected_and_changes_nothing(self):
        stock = _stock(on_hand=10, reserved=2)
        with pytest.raises(InvalidQuantityError):
            release(stock, 0)
        assert stock.reserved == 2


class TestSell:

    def test_sell_reduces_on_hand_and_stamps_time(self):
        after = sell(_stock(on_hand=10), 4, NOW)
        assert after.on_hand == 6
        assert after.last_sold_at == NOW

    def test_sell_respects_reservations(self):
        with pytest.raises(InsufficientStockError):
            sell(_stock(on_hand=10, reserved=7), 7, NOW)

    @pytest.mark.parametrize("qty", [0, -1])
    def test_non_positive_rejected(self, qty):
        with pytest.raises(InvalidQuantityError, match="Sell quantity must be a positive"):
            sell(_stock(on_hand=10), qty, NOW)


class TestRestock:

    def test_restock_from_empty_sets_cost_and_value(self):
        after = restock(_stock(), 10, NOW, unit_cost=Decimal("5"))
        assert after.on_hand == 10
        assert after.average_cost == Decimal("5")
        assert after.stock_value == Decimal("50")
        assert after.last_restocked_at == NOW

    def test_restock_without_cost_keeps_average(self):
        after = restock(_stock(on_hand=4, average_cost=Decimal("2.5")), 6, NOW)
        assert after.on_hand == 10
        assert after.average_cost == Decimal("2.5")

    def test_weighted_average(self):
        after = restock(_stock(on_hand=10, average_cost=Decimal("4")), 10, NOW, Decimal("6"))
        assert after.average_cost == Decimal("5.0000")

    def test_restock_zero_is_rejected(self):
        stock = _stock(on_hand=3)
        with pytest.raises(InvalidQuantityError):
            restock(stock, 0, NOW)
        assert stock.on_hand == 3


class TestWeightedAverageCost:

    def test_rounds_to_four_places(self):
        assert weighted_average_cost(1, Decimal("1"), 2, Decimal("2")) == Decimal("1.6667")

    def test_negative_cost_rejected(self):
        with pytest.raises(InvalidQuantityError, match="cannot be negative"):
            weighted_average_cost(0, Decimal("0"), 1, Decimal("-1"))


class TestScenarios:

    def test_reserve_then_sell_then_release(self):
        stock = _stock(on_hand=10, low_stock_threshold=3, reorder_point=2)
        stock = reserve(stock, 7)
        assert stock.available == 3

        with pytest.raises(InsufficientStockError):
            sell(stock, 7, NOW)

        stock = release(stock, 7)
        assert stock.reserved == 0
        assert stock.available == 10

    def test_sell_then_restock_round_trip(self):
        original = _stock(on_hand=10, average_cost=Decimal("5"))
        after = restock(sell(original, 3, NOW), 3, NOW, unit_cost=Decimal("5"))
        assert after.on_hand == original.on_hand
        assert after.average_cost == original.average_cost

    def test_invariants_hold_over_a_sequence(self):
        stock = _stock()
        steps = [
            (OperationKind.RESTOCK, 20),
            (OperationKind.RESERVE, 5),
            (OperationKind.SELL, 10),
            (OperationKind.RELEASE, 8),
            (OperationKind.RESERVE, 10),
            (OperationKind.SELL, 1),
            (OperationKind.RELEASE, 0),
        ]
        for kind, qty in steps:
            try:
                stock = apply_operation(stock, kind, qty, NOW)
            except (InsufficientStockError, InvalidQuantityError):
                pass
            assert 0 <= stock.reserved <= stock.on_hand
            assert stock.available == stock.on_hand - stock.reserved


class TestApplyOperation:

    def test_dispatches_by_kind(self):
        stock = _stock(on_hand=5)
        assert apply_operation(stock, OperationKind.RESERVE, 2, NOW).reserved == 2
        assert apply_operation(stock, OperationKind.SELL, 2, NOW).on_hand == 3
        assert apply_operation(stock, OperationKind.RESTOCK, 2, NOW).on_hand == 7

    def test_release_policy_is_forwarded(self):
        with pytest.raises(OverReleaseError):
            apply_operation(
                _stock(on_hand=5), OperationKind.RELEASE, 1, NOW, policy=ReleasePolicy.STRICT
            )
