"""Tests for the read-only stock reports."""

from datetime import datetime, timezone
from decimal import Decimal

from shopledger.application.stock_reports import StockReportHandler
from shopledger.domain.model.movement import StockMovement
from shopledger.domain.model.stock import Stock, StockKey
from shopledger.domain.model.value_objects import Money
from shopledger.domain.service.ledger import OperationKind
from tests.fakes import FakeMovementRepository, FakeStockRepository


def _setup():
    stocks = [
        Stock(StockKey("acme", "mug"), on_hand=50, low_stock_threshold=5,
              reorder_point=10, average_cost=Decimal("2.5")),
        Stock(StockKey("acme", "tshirt", "red-m"), on_hand=3, low_stock_threshold=5,
              reorder_point=4, reorder_quantity=24, average_cost=Decimal("7.1234")),
        Stock(StockKey("acme", "tshirt", "blue-l"), on_hand=0, reorder_point=2),
        Stock(StockKey("other", "mug"), on_hand=1, average_cost=Decimal("100")),
    ]
    movements = FakeMovementRepository()
    return StockReportHandler(FakeStockRepository(stocks), movements), movements


class TestStockReports:

    def test_list_stock_is_shop_scoped_and_sorted(self):
        handler, _ = _setup()
        ids = [line.stock_id for line in handler.list_stock("acme")]
        assert ids == ["acme/mug", "acme/tshirt/blue-l", "acme/tshirt/red-m"]

    def test_low_stock(self):
        handler, _ = _setup()
        ids = [line.stock_id for line in handler.list_low_stock("acme")]
        assert ids == ["acme/tshirt/blue-l", "acme/tshirt/red-m"]

    def test_out_of_stock(self):
        handler, _ = _setup()
        assert [line.stock_id for line in handler.list_out_of_stock("acme")] == [
            "acme/tshirt/blue-l"
        ]

    def test_reorder_suggestions(self):
        handler, _ = _setup()
        lines = {line.stock_id: line for line in handler.list_needs_reorder("acme")}
        assert set(lines) == {"acme/tshirt/blue-l", "acme/tshirt/red-m"}
        # configured reorder quantity wins
        assert lines["acme/tshirt/red-m"].suggested_quantity == 24
        # otherwise climb back above the reorder point
        assert lines["acme/tshirt/blue-l"].suggested_quantity == 3

    def test_total_inventory_value(self):
        handler, _ = _setup()
        # 50 * 2.5 + 3 * 7.1234 = 146.3702
        assert handler.total_inventory_value("acme") == Money.of("146.37")

    def test_value_of_empty_shop_is_zero(self):
        handler, _ = _setup()
        assert handler.total_inventory_value("nobody").is_zero

    def test_movements(self):
        handler, movements = _setup()
        movements.append([
            StockMovement(
                stock_id="acme/mug",
                kind=OperationKind.SELL,
                quantity=2,
                on_hand_after=48,
                reserved_after=0,
                occurred_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
                reference="sale:1/item:1",
            )
        ])
        [line] = handler.movements(StockKey("acme", "mug"))
        assert line.direction == "out"
        assert line.occurred_at == "2025-03-01 00:00:00 UTC"
