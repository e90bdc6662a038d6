"""In-memory fake repositories for testing.

These implement the same abstract interfaces as the JSON repositories
but keep everything in a dict. No file I/O, no side effects.  Aggregates
are copied on the way in and out, as a real store would.
"""

from __future__ import annotations

import threading
from copy import deepcopy
from dataclasses import replace

from shopledger.domain.exceptions import ConcurrencyConflictError
from shopledger.domain.model.movement import StockMovement
from shopledger.domain.model.payment import Payment
from shopledger.domain.model.refund import Refund
from shopledger.domain.model.sale import Sale
from shopledger.domain.model.stock import Stock, StockKey
from shopledger.domain.repository.movement_repository import MovementRepository
from shopledger.domain.repository.payment_repository import PaymentRepository
from shopledger.domain.repository.refund_repository import RefundRepository
from shopledger.domain.repository.sale_repository import SaleRepository
from shopledger.domain.repository.stock_repository import StockRepository


class FakeStockRepository(StockRepository):

    def __init__(self, stocks: list[Stock] | None = None) -> None:
        self._store: dict[str, Stock] = {}
        self._guard = threading.Lock()
        self.save_calls = 0
        for stock in stocks or []:
            self._store[stock.key.stock_id] = stock

    def get(self, key: StockKey) -> Stock | None:
        return self._store.get(key.stock_id)

    def list_by_shop(self, shop_id: str) -> list[Stock]:
        return sorted(
            (s for s in self._store.values() if s.key.shop_id == shop_id),
            key=lambda s: s.key.stock_id,
        )

    def save_all(self, stocks: list[Stock]) -> list[Stock]:
        with self._guard:
            self.save_calls += 1
            for stock in stocks:
                current = self._store.get(stock.key.stock_id)
                stored = current.version if current is not None else 0
                if stored != stock.version:
                    raise ConcurrencyConflictError(
                        f"Stock {stock.key} is at version {stored}, expected {stock.version}"
                    )
            saved = [replace(s, version=s.version + 1) for s in stocks]
            for stock in saved:
                self._store[stock.key.stock_id] = stock
            return saved

    def bump(self, key: StockKey, **changes) -> None:
        """Simulate a write by another process."""
        current = self._store[key.stock_id]
        self._store[key.stock_id] = replace(current, version=current.version + 1, **changes)


class FakeMovementRepository(MovementRepository):

    def __init__(self) -> None:
        self.movements: list[StockMovement] = []

    def append(self, movements: list[StockMovement]) -> None:
        self.movements.extend(movements)

    def list_for(self, stock_id: str) -> list[StockMovement]:
        return [m for m in self.movements if m.stock_id == stock_id]


class FakeSaleRepository(SaleRepository):

    def __init__(self) -> None:
        self._store: dict[int, Sale] = {}
        self._next_id = 1

    def next_id(self) -> int:
        sale_id = self._next_id
        self._next_id += 1
        return sale_id

    def get_by_id(self, sale_id: int) -> Sale | None:
        sale = self._store.get(sale_id)
        return deepcopy(sale) if sale is not None else None

    def save(self, sale: Sale) -> None:
        if sale.id is None:
            sale.id = self.next_id()
        self._store[sale.id] = deepcopy(sale)


class FakePaymentRepository(PaymentRepository):

    def __init__(self) -> None:
        self._store: dict[int, Payment] = {}

    def get_by_id(self, payment_id: int) -> Payment | None:
        payment = self._store.get(payment_id)
        return deepcopy(payment) if payment is not None else None

    def list_by_sale(self, sale_id: int) -> list[Payment]:
        return [deepcopy(p) for p in self._store.values() if p.sale_id == sale_id]

    def save(self, payment: Payment) -> None:
        if payment.id is None:
            payment.id = max(self._store, default=0) + 1
        self._store[payment.id] = deepcopy(payment)


class FakeRefundRepository(RefundRepository):

    def __init__(self) -> None:
        self._store: dict[int, Refund] = {}

    def get_by_id(self, refund_id: int) -> Refund | None:
        refund = self._store.get(refund_id)
        return deepcopy(refund) if refund is not None else None

    def list_by_sale(self, sale_id: int) -> list[Refund]:
        return [deepcopy(r) for r in self._store.values() if r.sale_id == sale_id]

    def list_by_payment(self, payment_id: int) -> list[Refund]:
        return [deepcopy(r) for r in self._store.values() if r.payment_id == payment_id]

    def count_numbered(self, shop_id: str, prefix: str) -> int:
        return sum(
            1
            for r in self._store.values()
            if r.shop_id == shop_id and (r.refund_number or "").startswith(prefix)
        )

    def save(self, refund: Refund) -> None:
        if refund.id is None:
            refund.id = max(self._store, default=0) + 1
        self._store[refund.id] = deepcopy(refund)
