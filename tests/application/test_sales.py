"""Integration tests for the sale use cases.

Uses in-memory fake repositories, no file I/O.
"""

from datetime import datetime, timezone

import pytest

from shopledger.application.add_sale_item import AddSaleItemHandler
from shopledger.application.advance_sale import AdvanceSaleHandler
from shopledger.application.cancel_sale import CancelSaleHandler
from shopledger.application.create_sale import CreateSaleHandler
from shopledger.application.dto import SaleItemSpec
from shopledger.application.locking import KeyedLockManager
from shopledger.application.show_sale import ShowSaleHandler
from shopledger.application.stock_ledger import StockLedger
from shopledger.domain.clock import FixedClock
from shopledger.domain.exceptions import (
    EntityNotFoundError,
    InsufficientStockError,
    InvalidStateTransitionError,
    ValidationError,
)
from shopledger.domain.model.sale import SaleStatus
from shopledger.domain.model.stock import Stock, StockKey
from tests.fakes import (
    FakeMovementRepository,
    FakeRefundRepository,
    FakeSaleRepository,
    FakeStockRepository,
)

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
MUG = StockKey("acme", "mug")
SHIRT = StockKey("acme", "tshirt", "red-m")


class Harness:
    """Fake repositories plus the handlers under test, sharing one lock table."""

    def __init__(self, stocks=None) -> None:
        self.clock = FixedClock(NOW)
        self.locks = KeyedLockManager(timeout=2.0)
        self.stocks = FakeStockRepository(stocks or [
            Stock(MUG, on_hand=10, version=1),
            Stock(SHIRT, on_hand=3, version=1),
        ])
        self.movements = FakeMovementRepository()
        self.sales = FakeSaleRepository()
        self.refunds = FakeRefundRepository()
        self.ledger = StockLedger(
            self.stocks, self.movements, self.locks, self.clock, retry_backoff=0
        )
        self.create = CreateSaleHandler(self.sales, self.ledger, self.clock)
        self.add_item = AddSaleItemHandler(self.sales, self.ledger, self.locks)
        self.advance = AdvanceSaleHandler(self.sales, self.locks)
        self.cancel = CancelSaleHandler(
            self.sales, self.refunds, self.ledger, self.locks, self.clock
        )
        self.show = ShowSaleHandler(self.sales, self.refunds)

    def on_hand(self, key: StockKey) -> int:
        return self.stocks.get(key).on_hand


def _mugs(qty: int = 2) -> SaleItemSpec:
    return SaleItemSpec(product_id="mug", quantity=qty, unit_price="8.00")


def _shirts(qty: int = 1) -> SaleItemSpec:
    return SaleItemSpec(product_id="tshirt", variant_id="red-m", quantity=qty, unit_price="20.00")


class TestCreateSale:

    def test_creates_draft_and_sells_stock(self):
        h = Harness()
        dto = h.create.handle("acme", [_mugs(2), _shirts(1)], customer_name="Alice")
        assert dto.status == "draft"
        assert dto.total == "$36.00"
        assert dto.sale_number == "ACM-20250301-000001"
        assert h.on_hand(MUG) == 8
        assert h.on_hand(SHIRT) == 2

    def test_items_reference_their_movements(self):
        h = Harness()
        dto = h.create.handle("acme", [_mugs(2)])
        [movement] = h.movements.list_for(MUG.stock_id)
        assert movement.reference == f"sale:{dto.id}/item:1"

    def test_one_short_line_sells_nothing(self):
        h = Harness()
        with pytest.raises(InsufficientStockError):
            h.create.handle("acme", [_mugs(2), _shirts(4)])
        assert h.on_hand(MUG) == 10
        assert h.on_hand(SHIRT) == 3
        assert h.sales.get_by_id(1) is None

    def test_invalid_line_rejected_before_selling(self):
        h = Harness()
        with pytest.raises(ValidationError):
            h.create.handle("acme", [SaleItemSpec(product_id="mug", quantity=1, unit_price="abc")])
        assert h.on_hand(MUG) == 10

    def test_tax_shipping_and_discount(self):
        h = Harness()
        spec = SaleItemSpec(product_id="mug", quantity=2, unit_price="10.00", tax_rate="10")
        dto = h.create.handle("acme", [spec], shipping="5.00", discount="3.00")
        assert dto.subtotal == "$20.00"
        assert dto.tax == "$2.00"
        assert dto.total == "$24.00"


class TestAddSaleItem:

    def test_adds_item_and_sells_it(self):
        h = Harness()
        dto = h.create.handle("acme", [_mugs(1)])
        result = h.add_item.handle("acme", dto.id, _shirts(2))
        assert result.ok
        assert result.value.id == 2
        assert h.on_hand(SHIRT) == 1
        assert len(h.sales.get_by_id(dto.id).items) == 2

    def test_insufficient_stock_leaves_sale_untouched(self):
        h = Harness()
        dto = h.create.handle("acme", [_mugs(1)])
        result = h.add_item.handle("acme", dto.id, _shirts(9))
        assert isinstance(result.error, InsufficientStockError)
        assert len(h.sales.get_by_id(dto.id).items) == 1

    def test_closed_sale_rejects_items_without_selling(self):
        h = Harness()
        dto = h.create.handle("acme", [_mugs(1)])
        h.advance.handle("acme", dto.id, SaleStatus.PENDING)
        h.advance.handle("acme", dto.id, SaleStatus.CONFIRMED)
        result = h.add_item.handle("acme", dto.id, _mugs(1))
        assert isinstance(result.error, InvalidStateTransitionError)
        assert h.on_hand(MUG) == 9

    def test_other_shop_cannot_see_sale(self):
        h = Harness()
        dto = h.create.handle("acme", [_mugs(1)])
        result = h.add_item.handle("other", dto.id, _mugs(1))
        assert isinstance(result.error, EntityNotFoundError)


class TestAdvanceSale:

    def test_full_lifecycle(self):
        h = Harness()
        dto = h.create.handle("acme", [_mugs(1)])
        for target in (SaleStatus.PENDING, SaleStatus.CONFIRMED, SaleStatus.COMPLETED):
            assert h.advance.handle("acme", dto.id, target) is target
        assert h.sales.get_by_id(dto.id).status is SaleStatus.COMPLETED

    def test_empty_sale_cannot_be_submitted(self):
        h = Harness()
        dto = h.create.handle("acme", [])
        with pytest.raises(ValidationError, match="at least one item"):
            h.advance.handle("acme", dto.id, SaleStatus.PENDING)

    def test_refunded_is_not_a_manual_target(self):
        h = Harness()
        dto = h.create.handle("acme", [_mugs(1)])
        with pytest.raises(InvalidStateTransitionError, match="refund flow"):
            h.advance.handle("acme", dto.id, SaleStatus.REFUNDED)


class TestCancelSale:

    def test_cancel_restocks_every_item(self):
        h = Harness()
        dto = h.create.handle("acme", [_mugs(2), _shirts(1)])
        h.cancel.handle("acme", dto.id, "changed mind")
        assert h.on_hand(MUG) == 10
        assert h.on_hand(SHIRT) == 3
        sale = h.sales.get_by_id(dto.id)
        assert sale.status is SaleStatus.CANCELLED
        assert sale.cancelled_at == NOW

    def test_cancel_twice_restocks_once(self):
        h = Harness()
        dto = h.create.handle("acme", [_mugs(2)])
        h.cancel.handle("acme", dto.id)
        with pytest.raises(InvalidStateTransitionError):
            h.cancel.handle("acme", dto.id)
        assert h.on_hand(MUG) == 10

    def test_completed_sale_cannot_be_cancelled(self):
        h = Harness()
        dto = h.create.handle("acme", [_mugs(2)])
        for target in (SaleStatus.PENDING, SaleStatus.CONFIRMED, SaleStatus.COMPLETED):
            h.advance.handle("acme", dto.id, target)
        with pytest.raises(InvalidStateTransitionError):
            h.cancel.handle("acme", dto.id)
        assert h.on_hand(MUG) == 8


class TestShowSale:

    def test_show_returns_items(self):
        h = Harness()
        dto = h.create.handle("acme", [_mugs(2)])
        shown = h.show.handle("acme", dto.id)
        assert shown.items[0].product_id == "mug"
        assert shown.items[0].refunded == 0

    def test_missing_sale(self):
        with pytest.raises(EntityNotFoundError, match="Sale #99 not found"):
            Harness().show.handle("acme", 99)
