"""Application service: Record Payment use case."""

from __future__ import annotations

import logging

from shopledger.application.locking import KeyedLockManager
from shopledger.application.lookups import get_sale
from shopledger.domain.clock import Clock
from shopledger.domain.exceptions import InvalidStateTransitionError, ValidationError
from shopledger.domain.model.payment import Payment
from shopledger.domain.model.sale import SaleStatus
from shopledger.domain.model.value_objects import Money
from shopledger.domain.repository.payment_repository import PaymentRepository
from shopledger.domain.repository.sale_repository import SaleRepository

logger = logging.getLogger(__name__)

_PAYABLE = (SaleStatus.PENDING, SaleStatus.CONFIRMED, SaleStatus.COMPLETED)


class RecordPaymentHandler:

    def __init__(
        self,
        sale_repo: SaleRepository,
        payment_repo: PaymentRepository,
        locks: KeyedLockManager,
        clock: Clock,
    ) -> None:
        self._sale_repo = sale_repo
        self._payment_repo = payment_repo
        self._locks = locks
        self._clock = clock

    def handle(
        self,
        shop_id: str,
        sale_id: int,
        amount: str | None = None,
        method: str = "cash",
        reference: str | None = None,
    ) -> Payment:
        """Record a completed payment; defaults to the outstanding balance."""
        with self._locks.hold([f"sale:{sale_id}"]):
            sale = get_sale(self._sale_repo, shop_id, sale_id)
            if sale.status not in _PAYABLE:
                raise InvalidStateTransitionError(
                    f"Cannot take payment for a sale in {sale.status.value} status"
                )

            paid = Money.zero(sale.currency)
            for existing in self._payment_repo.list_by_sale(sale_id):
                paid = paid + existing.amount
            if paid >= sale.total:
                raise ValidationError(f"Sale #{sale_id} is already fully paid")
            balance = sale.total - paid

            value = Money.of(amount, sale.currency) if amount is not None else balance
            if value > balance:
                raise ValidationError(
                    f"Payment {value} exceeds the outstanding balance {balance}"
                )

            now = self._clock.now()
            payment = Payment(
                id=None,
                shop_id=shop_id,
                sale_id=sale_id,
                amount=value,
                method=method,
                reference=reference,
                paid_at=now,
            )
            self._payment_repo.save(payment)
            if paid + value >= sale.total:
                sale.mark_paid(now)
                self._sale_repo.save(sale)

        logger.info("Recorded payment #%s of %s for sale #%d", payment.id, value, sale_id)
        return payment
