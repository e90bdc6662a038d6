"""Application service: move a sale along draft -> pending -> confirmed -> completed."""

from __future__ import annotations

import logging

from shopledger.application.locking import KeyedLockManager
from shopledger.application.lookups import get_sale
from shopledger.domain.exceptions import InvalidStateTransitionError
from shopledger.domain.model.sale import SaleStatus
from shopledger.domain.repository.sale_repository import SaleRepository

logger = logging.getLogger(__name__)


class AdvanceSaleHandler:

    def __init__(self, sale_repo: SaleRepository, locks: KeyedLockManager) -> None:
        self._sale_repo = sale_repo
        self._locks = locks

    def handle(self, shop_id: str, sale_id: int, target: SaleStatus) -> SaleStatus:
        """Cancellation and refunds have their own handlers."""
        with self._locks.hold([f"sale:{sale_id}"]):
            sale = get_sale(self._sale_repo, shop_id, sale_id)
            previous = sale.status
            if target == SaleStatus.PENDING:
                sale.submit()
            elif target == SaleStatus.CONFIRMED:
                sale.confirm()
            elif target == SaleStatus.COMPLETED:
                sale.complete()
            else:
                raise InvalidStateTransitionError(
                    f"Use the cancel or refund flow to move a sale to {target.value}"
                )
            self._sale_repo.save(sale)

        logger.info("Sale #%d moved from %s to %s", sale_id, previous.value, sale.status.value)
        return sale.status
