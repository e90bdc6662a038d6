"""Application service: Add Refund Item use case.

Serialized per sale so two concurrent requests cannot both claim the
last refundable unit of a sale item.
"""

from __future__ import annotations

from shopledger.application.locking import KeyedLockManager
from shopledger.application.lookups import get_refund, get_sale
from shopledger.application.stock_ledger import LedgerResult, capture
from shopledger.domain.exceptions import EntityNotFoundError
from shopledger.domain.model.refund import RefundItem, refunded_quantities
from shopledger.domain.model.value_objects import Money
from shopledger.domain.repository.refund_repository import RefundRepository
from shopledger.domain.repository.sale_repository import SaleRepository


class AddRefundItemHandler:

    def __init__(
        self,
        sale_repo: SaleRepository,
        refund_repo: RefundRepository,
        locks: KeyedLockManager,
    ) -> None:
        self._sale_repo = sale_repo
        self._refund_repo = refund_repo
        self._locks = locks

    def handle(
        self,
        shop_id: str,
        refund_id: int,
        sale_item_id: int,
        quantity: int,
        reason: str = "",
        unit_price: str | None = None,
    ) -> LedgerResult[RefundItem]:
        """Refund up to ``quantity`` units; the result carries the clamped item."""
        return capture(
            lambda: self._add(shop_id, refund_id, sale_item_id, quantity, reason, unit_price)
        )

    def _add(
        self,
        shop_id: str,
        refund_id: int,
        sale_item_id: int,
        quantity: int,
        reason: str,
        unit_price: str | None,
    ) -> RefundItem:
        sale_id = get_refund(self._refund_repo, shop_id, refund_id).sale_id
        with self._locks.hold([f"sale:{sale_id}"]):
            refund = get_refund(self._refund_repo, shop_id, refund_id)
            sale = get_sale(self._sale_repo, shop_id, sale_id)
            sale_item = sale.find_item(sale_item_id)
            if sale_item is None:
                raise EntityNotFoundError(
                    f"Sale item #{sale_item_id} not found in sale #{sale_id}"
                )

            others = [r for r in self._refund_repo.list_by_sale(sale_id) if r.id != refund.id]
            already = refunded_quantities(others + [refund]).get(sale_item_id, 0)
            item = refund.add_item(
                sale_item,
                quantity,
                already_refunded=already,
                unit_price=Money.of(unit_price, sale.currency) if unit_price else None,
                reason=reason,
            )
            self._refund_repo.save(refund)
            return item
