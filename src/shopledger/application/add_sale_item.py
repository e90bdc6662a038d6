"""Application service: Add Sale Item use case.

The item is only attached to the sale once the ledger has sold its
quantity, and the sale is saved inside the same ledger commit: a sale
item exists if and only if its stock was decremented exactly once.
"""

from __future__ import annotations

from shopledger.application.create_sale import build_sale_item, sell_operations
from shopledger.application.dto import SaleItemSpec
from shopledger.application.locking import KeyedLockManager
from shopledger.application.lookups import get_sale
from shopledger.application.stock_ledger import LedgerResult, StockLedger, capture
from shopledger.domain.model.sale import SaleItem
from shopledger.domain.model.stock import Stock
from shopledger.domain.repository.sale_repository import SaleRepository


class AddSaleItemHandler:

    def __init__(
        self,
        sale_repo: SaleRepository,
        ledger: StockLedger,
        locks: KeyedLockManager,
    ) -> None:
        self._sale_repo = sale_repo
        self._ledger = ledger
        self._locks = locks

    def handle(self, shop_id: str, sale_id: int, spec: SaleItemSpec) -> LedgerResult[SaleItem]:
        return capture(lambda: self._add(shop_id, sale_id, spec))

    def _add(self, shop_id: str, sale_id: int, spec: SaleItemSpec) -> SaleItem:
        with self._locks.hold([f"sale:{sale_id}"]):
            sale = get_sale(self._sale_repo, shop_id, sale_id)
            item = build_sale_item(sale, spec)

            def commit(_stocks: list[Stock]) -> None:
                sale.attach(item)
                self._sale_repo.save(sale)

            self._ledger.apply(sell_operations(sale, [item]), on_commit=commit)
            return item
