"""Tests for the JSON-file repositories, against a temporary data directory."""

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from shopledger.domain.exceptions import ConcurrencyConflictError
from shopledger.domain.model.movement import StockMovement
from shopledger.domain.model.payment import Payment, PaymentStatus
from shopledger.domain.model.refund import Refund
from shopledger.domain.model.sale import Sale
from shopledger.domain.model.stock import Stock, StockKey
from shopledger.domain.model.value_objects import Money
from shopledger.domain.service.ledger import OperationKind
from shopledger.infrastructure.persistence.json_movement_repository import JsonMovementRepository
from shopledger.infrastructure.persistence.json_payment_repository import JsonPaymentRepository
from shopledger.infrastructure.persistence.json_refund_repository import JsonRefundRepository
from shopledger.infrastructure.persistence.json_sale_repository import JsonSaleRepository
from shopledger.infrastructure.persistence.json_stock_repository import JsonStockRepository

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
MUG = StockKey("acme", "mug")
SHIRT = StockKey("acme", "tshirt", "red-m")


class TestJsonStockRepository:

    def test_creates_empty_file(self, tmp_path):
        JsonStockRepository(tmp_path / "data" / "stocks.json")
        assert json.loads((tmp_path / "data" / "stocks.json").read_text()) == []

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "stocks.json"
        stock = Stock(
            SHIRT, on_hand=12, reserved=2, reorder_point=3,
            average_cost=Decimal("4.1250"), last_restocked_at=NOW,
        )
        [saved] = JsonStockRepository(path).save_all([stock])
        assert saved.version == 1

        loaded = JsonStockRepository(path).get(SHIRT)
        assert loaded == saved
        assert loaded.average_cost == Decimal("4.1250")
        assert loaded.last_restocked_at == NOW

    def test_stale_version_is_rejected(self, tmp_path):
        repo = JsonStockRepository(tmp_path / "stocks.json")
        [first] = repo.save_all([Stock(MUG, on_hand=5)])
        repo.save_all([Stock(MUG, on_hand=4, version=first.version)])

        with pytest.raises(ConcurrencyConflictError, match="expected 1"):
            repo.save_all([Stock(MUG, on_hand=99, version=first.version)])
        assert repo.get(MUG).on_hand == 4

    def test_conflict_in_batch_writes_nothing(self, tmp_path):
        repo = JsonStockRepository(tmp_path / "stocks.json")
        repo.save_all([Stock(MUG, on_hand=5)])
        with pytest.raises(ConcurrencyConflictError):
            repo.save_all([Stock(SHIRT, on_hand=1), Stock(MUG, on_hand=9)])
        assert repo.get(SHIRT) is None
        assert repo.get(MUG).on_hand == 5

    def test_list_by_shop(self, tmp_path):
        repo = JsonStockRepository(tmp_path / "stocks.json")
        repo.save_all([Stock(SHIRT), Stock(MUG), Stock(StockKey("other", "mug"))])
        assert [s.key for s in repo.list_by_shop("acme")] == [MUG, SHIRT]


class TestJsonMovementRepository:

    def test_append_and_filter(self, tmp_path):
        repo = JsonMovementRepository(tmp_path / "movements.json")
        repo.append([
            StockMovement(MUG.stock_id, OperationKind.RESTOCK, 10, 10, 0, NOW, unit_cost=Decimal("2")),
            StockMovement(SHIRT.stock_id, OperationKind.SELL, 1, 4, 0, NOW, reference="sale:1/item:1"),
        ])
        [movement] = JsonMovementRepository(tmp_path / "movements.json").list_for(MUG.stock_id)
        assert movement.kind is OperationKind.RESTOCK
        assert movement.unit_cost == Decimal("2")
        assert movement.occurred_at == NOW


class TestJsonSaleRepository:

    def _sale(self, repo) -> Sale:
        sale = Sale.create(
            shop_id="acme", created_at=NOW, customer_name="Alice",
            shipping_amount=Money.of("4.99"),
        )
        sale.id = repo.next_id()
        sale.attach(sale.build_item(
            "tshirt", 2, Money.of("19.99"), variant_id="red-m",
            tax_rate=Decimal("8.25"), discount=Money.of("1.00"),
        ))
        sale.assign_number()
        return sale

    def test_next_id_never_repeats(self, tmp_path):
        repo = JsonSaleRepository(tmp_path / "sales.json")
        assert repo.next_id() == 1
        assert repo.next_id() == 2

    def test_round_trip(self, tmp_path):
        path = tmp_path / "sales.json"
        repo = JsonSaleRepository(path)
        sale = self._sale(repo)
        repo.save(sale)

        loaded = JsonSaleRepository(path).get_by_id(sale.id)
        assert loaded == sale
        assert loaded.total == sale.total

    def test_save_upserts(self, tmp_path):
        repo = JsonSaleRepository(tmp_path / "sales.json")
        sale = self._sale(repo)
        repo.save(sale)
        sale.submit()
        repo.save(sale)
        assert repo.get_by_id(sale.id).status.value == "pending"
        assert len(json.loads((tmp_path / "sales.json").read_text())) == 1

    def test_ids_continue_after_reopen(self, tmp_path):
        path = tmp_path / "sales.json"
        repo = JsonSaleRepository(path)
        repo.save(self._sale(repo))
        assert JsonSaleRepository(path).next_id() == 2


class TestJsonPaymentRepository:

    def test_assigns_ids_and_lists_by_sale(self, tmp_path):
        repo = JsonPaymentRepository(tmp_path / "payments.json")
        first = Payment(id=None, shop_id="acme", sale_id=1, amount=Money.of("10"), paid_at=NOW)
        second = Payment(id=None, shop_id="acme", sale_id=2, amount=Money.of("5"), paid_at=NOW)
        repo.save(first)
        repo.save(second)
        assert (first.id, second.id) == (1, 2)

        first.status = PaymentStatus.PARTIALLY_REFUNDED
        repo.save(first)
        [loaded] = repo.list_by_sale(1)
        assert loaded == first


class TestJsonRefundRepository:

    def test_round_trip_and_queries(self, tmp_path):
        sale = Sale.create(shop_id="acme", created_at=NOW)
        sale.id = 1
        item = sale.build_item("mug", 3, Money.of("8"))
        sale.attach(item)

        repo = JsonRefundRepository(tmp_path / "refunds.json")
        refund = Refund.create("acme", sale_id=1, payment_id=7, currency="USD", created_at=NOW)
        refund.add_item(item, 2, already_refunded=0, reason="chipped")
        refund.assign_number(1)
        repo.save(refund)

        loaded = JsonRefundRepository(tmp_path / "refunds.json").get_by_id(refund.id)
        assert loaded == refund
        assert [r.id for r in repo.list_by_payment(7)] == [refund.id]
        assert [r.id for r in repo.list_by_sale(1)] == [refund.id]
        assert repo.count_numbered("acme", "REF-202503-") == 1
        assert repo.count_numbered("other", "REF-202503-") == 0
