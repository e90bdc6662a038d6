"""Application service: Cancel Sale use case.

Cancelling puts the sold quantity back on the shelf.  Quantities already
restocked by processed refunds are not restocked again, and a sale with
pending refunds must have them settled (processed or cancelled) first.
"""

from __future__ import annotations

import logging

from shopledger.application.locking import KeyedLockManager
from shopledger.application.lookups import get_sale
from shopledger.application.stock_ledger import LedgerOperation, StockLedger
from shopledger.domain.clock import Clock
from shopledger.domain.exceptions import InvalidStateTransitionError, ValidationError
from shopledger.domain.model.refund import RefundStatus, refunded_quantities
from shopledger.domain.model.sale import SaleStatus
from shopledger.domain.model.stock import Stock
from shopledger.domain.repository.refund_repository import RefundRepository
from shopledger.domain.repository.sale_repository import SaleRepository
from shopledger.domain.service.ledger import OperationKind

logger = logging.getLogger(__name__)


class CancelSaleHandler:

    def __init__(
        self,
        sale_repo: SaleRepository,
        refund_repo: RefundRepository,
        ledger: StockLedger,
        locks: KeyedLockManager,
        clock: Clock,
    ) -> None:
        self._sale_repo = sale_repo
        self._refund_repo = refund_repo
        self._ledger = ledger
        self._locks = locks
        self._clock = clock

    def handle(self, shop_id: str, sale_id: int, reason: str = "") -> None:
        with self._locks.hold([f"sale:{sale_id}"]):
            sale = get_sale(self._sale_repo, shop_id, sale_id)
            if not sale.can_transition_to(SaleStatus.CANCELLED):
                raise InvalidStateTransitionError(
                    f"Cannot cancel sale #{sale_id} in {sale.status.value} status"
                )

            refunds = self._refund_repo.list_by_sale(sale_id)
            if any(r.status == RefundStatus.PENDING for r in refunds):
                raise ValidationError(
                    f"Sale #{sale_id} has pending refunds; process or cancel them first"
                )
            refunded = refunded_quantities(refunds)

            operations = []
            for item in sale.items:
                remaining = item.quantity.value - refunded.get(item.id, 0)
                if remaining > 0:
                    operations.append(
                        LedgerOperation(
                            kind=OperationKind.RESTOCK,
                            key=sale.stock_key(item),
                            quantity=remaining,
                            reason="sale_cancelled",
                            reference=f"sale:{sale.id}/item:{item.id}",
                        )
                    )

            def commit(_stocks: list[Stock]) -> None:
                sale.cancel(self._clock.now(), reason)
                self._sale_repo.save(sale)

            if operations:
                self._ledger.apply(operations, on_commit=commit)
            else:
                commit([])

        logger.info("Cancelled sale #%d, restocked %d line(s)", sale_id, len(operations))
