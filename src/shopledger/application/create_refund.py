"""Application service: Create Refund use case.

Three shapes of refund, all created PENDING (no stock moves until the
refund is processed):

- itemized: refund specific sale items; the amount accumulates from the
  refunded lines;
- amount only: a money-only partial refund, no stock movement;
- full: neither items nor amount given; refunds everything still
  refundable on the payment and every unit not yet refunded.
"""

from __future__ import annotations

import logging

from shopledger.application.dto import RefundDTO, RefundItemSpec
from shopledger.application.locking import KeyedLockManager
from shopledger.application.lookups import get_payment, get_sale
from shopledger.domain.clock import Clock
from shopledger.domain.exceptions import (
    EntityNotFoundError,
    InvalidStateTransitionError,
    OverRefundError,
    ValidationError,
)
from shopledger.domain.model.refund import Refund, processed_total, refunded_quantities
from shopledger.domain.model.sale import Sale, SaleStatus
from shopledger.domain.model.value_objects import Money
from shopledger.domain.repository.payment_repository import PaymentRepository
from shopledger.domain.repository.refund_repository import RefundRepository
from shopledger.domain.repository.sale_repository import SaleRepository

logger = logging.getLogger(__name__)

REFUNDABLE_SALE_STATUSES = (SaleStatus.CONFIRMED, SaleStatus.COMPLETED)


class CreateRefundHandler:

    def __init__(
        self,
        sale_repo: SaleRepository,
        payment_repo: PaymentRepository,
        refund_repo: RefundRepository,
        locks: KeyedLockManager,
        clock: Clock,
    ) -> None:
        self._sale_repo = sale_repo
        self._payment_repo = payment_repo
        self._refund_repo = refund_repo
        self._locks = locks
        self._clock = clock

    def handle(
        self,
        shop_id: str,
        payment_id: int,
        items: list[RefundItemSpec] | None = None,
        amount: str | None = None,
        reason: str = "customer_request",
    ) -> RefundDTO:
        if items and amount is not None:
            raise ValidationError("Give either refund items or an amount, not both")

        payment = get_payment(self._payment_repo, shop_id, payment_id)
        with self._locks.hold([f"sale:{payment.sale_id}"]):
            sale = get_sale(self._sale_repo, shop_id, payment.sale_id)
            if sale.status not in REFUNDABLE_SALE_STATUSES:
                raise InvalidStateTransitionError(
                    f"Cannot refund a sale in {sale.status.value} status"
                )

            currency = payment.amount.currency
            refunded = processed_total(self._refund_repo.list_by_payment(payment_id), currency)
            if not payment.can_be_refunded(refunded):
                raise OverRefundError(f"Payment #{payment_id} has nothing left to refund")
            refundable = payment.refundable_amount(refunded)

            refund = Refund.create(
                shop_id=shop_id,
                sale_id=sale.id,  # type: ignore[arg-type]
                payment_id=payment_id,
                currency=currency,
                created_at=self._clock.now(),
                reason=reason,
            )
            claimed = refunded_quantities(self._refund_repo.list_by_sale(sale.id))  # type: ignore[arg-type]

            if items:
                self._add_items(refund, sale, items, claimed)
            elif amount is not None:
                value = Money.of(amount, currency)
                if value.is_zero:
                    raise ValidationError("Refund amount must be greater than zero")
                if value > refundable:
                    raise OverRefundError(
                        f"Refund {value} exceeds the refundable amount {refundable}"
                    )
                refund.amount = value
            else:
                self._add_everything(refund, sale, claimed)
                refund.amount = refundable

            sequence = self._refund_repo.count_numbered(shop_id, refund.number_prefix) + 1
            refund.assign_number(sequence)
            self._refund_repo.save(refund)

        logger.info("Created refund %s for %s", refund.refund_number, refund.amount)
        return RefundDTO.from_refund(refund)

    @staticmethod
    def _add_items(
        refund: Refund,
        sale: Sale,
        specs: list[RefundItemSpec],
        claimed: dict[int, int],
    ) -> None:
        for spec in specs:
            sale_item = sale.find_item(spec.sale_item_id)
            if sale_item is None:
                raise EntityNotFoundError(
                    f"Sale item #{spec.sale_item_id} not found in sale #{sale.id}"
                )
            already = claimed.get(sale_item.id, 0) + refund.quantity_by_sale_item().get(sale_item.id, 0)
            refund.add_item(
                sale_item,
                spec.quantity,
                already_refunded=already,
                unit_price=Money.of(spec.unit_price, sale.currency) if spec.unit_price else None,
                reason=spec.reason,
            )

    @staticmethod
    def _add_everything(refund: Refund, sale: Sale, claimed: dict[int, int]) -> None:
        for sale_item in sale.items:
            already = claimed.get(sale_item.id, 0)
            if sale_item.quantity.value - already <= 0:
                continue
            refund.add_item(
                sale_item,
                sale_item.quantity.value,
                already_refunded=already,
                reason=refund.reason,
                accumulate=False,
            )
