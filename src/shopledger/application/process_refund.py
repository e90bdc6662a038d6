"""Application service: Process Refund use case.

PENDING -> PROCESSED is one-way, and the status check, the restock and
the status change all happen under the sale's lock and inside a single
ledger commit, so a refund's items are restocked exactly once.  When a
write inside the commit fails, the payment and sale records already
written are put back and the ledger restores the stock.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from datetime import datetime
from typing import Callable

from shopledger.application.dto import RefundDTO
from shopledger.application.locking import KeyedLockManager
from shopledger.application.lookups import get_payment, get_refund, get_sale
from shopledger.application.stock_ledger import LedgerOperation, StockLedger
from shopledger.domain.clock import Clock
from shopledger.domain.exceptions import (
    EntityNotFoundError,
    InvalidStateTransitionError,
    OverRefundError,
)
from shopledger.domain.model.refund import Refund, processed_total
from shopledger.domain.model.sale import Sale, SaleStatus
from shopledger.domain.model.stock import Stock
from shopledger.domain.repository.payment_repository import PaymentRepository
from shopledger.domain.repository.refund_repository import RefundRepository
from shopledger.domain.repository.sale_repository import SaleRepository
from shopledger.domain.service.ledger import OperationKind

logger = logging.getLogger(__name__)


class ProcessRefundHandler:

    def __init__(
        self,
        sale_repo: SaleRepository,
        payment_repo: PaymentRepository,
        refund_repo: RefundRepository,
        ledger: StockLedger,
        locks: KeyedLockManager,
        clock: Clock,
    ) -> None:
        self._sale_repo = sale_repo
        self._payment_repo = payment_repo
        self._refund_repo = refund_repo
        self._ledger = ledger
        self._locks = locks
        self._clock = clock

    def handle(
        self,
        shop_id: str,
        refund_id: int,
        processor_reference: str | None = None,
    ) -> RefundDTO:
        sale_id = get_refund(self._refund_repo, shop_id, refund_id).sale_id
        with self._locks.hold([f"sale:{sale_id}"]):
            refund = get_refund(self._refund_repo, shop_id, refund_id)
            if not refund.is_pending:
                raise InvalidStateTransitionError(
                    f"Cannot process refund #{refund_id}: current status is "
                    f"{refund.status.value}, expected pending"
                )
            sale = get_sale(self._sale_repo, shop_id, sale_id)
            payment = get_payment(self._payment_repo, shop_id, refund.payment_id)

            currency = payment.amount.currency
            refunded = processed_total(self._refund_repo.list_by_payment(payment.id), currency)  # type: ignore[arg-type]
            refundable = payment.refundable_amount(refunded)
            if refund.amount.is_zero and not refund.items:
                raise OverRefundError(f"Refund #{refund_id} is empty")
            if refund.amount > refundable:
                raise OverRefundError(
                    f"Refund {refund.amount} exceeds the refundable amount {refundable}"
                )

            # The refund is saved last, so it stays pending until every
            # other write has landed.
            def commit(_stocks: list[Stock]) -> None:
                now = self._clock.now()
                payment_before = deepcopy(payment)
                sale_before = deepcopy(sale)
                written: list[Callable[[], None]] = []
                try:
                    refund.mark_processed(now, processor_reference)
                    payment.apply_refunded_total(refunded + refund.amount)
                    self._payment_repo.save(payment)
                    written.append(lambda: self._payment_repo.save(payment_before))
                    if self._settle_sale(sale, refund, now):
                        written.append(lambda: self._sale_repo.save(sale_before))
                    self._refund_repo.save(refund)
                except Exception:
                    logger.warning(
                        "Could not process refund #%d, restoring %d record(s)",
                        refund_id, len(written),
                    )
                    for restore in reversed(written):
                        restore()
                    raise

            operations = self._restock_operations(refund, sale)
            if operations:
                self._ledger.apply(operations, on_commit=commit)
            else:
                commit([])

        logger.info(
            "Processed refund %s: %s, %d line(s) restocked",
            refund.refund_number, refund.amount, len(operations),
        )
        return RefundDTO.from_refund(refund)

    @staticmethod
    def _restock_operations(refund: Refund, sale: Sale) -> list[LedgerOperation]:
        operations = []
        for item in refund.items:
            sale_item = sale.find_item(item.sale_item_id)
            if sale_item is None:
                raise EntityNotFoundError(
                    f"Sale item #{item.sale_item_id} not found in sale #{sale.id}"
                )
            operations.append(
                LedgerOperation(
                    kind=OperationKind.RESTOCK,
                    key=sale.stock_key(sale_item),
                    quantity=item.quantity_refunded,
                    reason="refund",
                    reference=f"refund:{refund.id}/item:{item.id}",
                )
            )
        return operations

    def _settle_sale(self, sale: Sale, refund: Refund, now: datetime) -> bool:
        """Mark the sale refunded once processed refunds cover its total.

        Returns whether the sale was saved.
        """
        others = [
            r for r in self._refund_repo.list_by_sale(sale.id)  # type: ignore[arg-type]
            if r.id != refund.id
        ]
        total_refunded = processed_total(others, sale.currency) + refund.amount
        if total_refunded >= sale.total and sale.can_transition_to(SaleStatus.REFUNDED):
            sale.mark_refunded(now)
            self._sale_repo.save(sale)
            return True
        return False
