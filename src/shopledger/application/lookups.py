"""Shop-scoped loaders shared by the application handlers.

An entity that exists but belongs to another shop is reported exactly
like a missing one.
"""

from __future__ import annotations

from shopledger.domain.exceptions import EntityNotFoundError
from shopledger.domain.model.payment import Payment
from shopledger.domain.model.refund import Refund
from shopledger.domain.model.sale import Sale
from shopledger.domain.repository.payment_repository import PaymentRepository
from shopledger.domain.repository.refund_repository import RefundRepository
from shopledger.domain.repository.sale_repository import SaleRepository


def get_sale(sale_repo: SaleRepository, shop_id: str, sale_id: int) -> Sale:
    sale = sale_repo.get_by_id(sale_id)
    if sale is None or sale.shop_id != shop_id:
        raise EntityNotFoundError(f"Sale #{sale_id} not found")
    return sale


def get_payment(payment_repo: PaymentRepository, shop_id: str, payment_id: int) -> Payment:
    payment = payment_repo.get_by_id(payment_id)
    if payment is None or payment.shop_id != shop_id:
        raise EntityNotFoundError(f"Payment #{payment_id} not found")
    return payment


def get_refund(refund_repo: RefundRepository, shop_id: str, refund_id: int) -> Refund:
    refund = refund_repo.get_by_id(refund_id)
    if refund is None or refund.shop_id != shop_id:
        raise EntityNotFoundError(f"Refund #{refund_id} not found")
    return refund
