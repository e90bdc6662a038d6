"""Application service: Show Sale use case (query)."""

from __future__ import annotations

from shopledger.application.dto import SaleDTO
from shopledger.application.lookups import get_sale
from shopledger.domain.model.refund import refunded_quantities
from shopledger.domain.repository.refund_repository import RefundRepository
from shopledger.domain.repository.sale_repository import SaleRepository


class ShowSaleHandler:

    def __init__(self, sale_repo: SaleRepository, refund_repo: RefundRepository) -> None:
        self._sale_repo = sale_repo
        self._refund_repo = refund_repo

    def handle(self, shop_id: str, sale_id: int) -> SaleDTO:
        sale = get_sale(self._sale_repo, shop_id, sale_id)
        refunded = refunded_quantities(self._refund_repo.list_by_sale(sale_id))
        return SaleDTO.from_sale(sale, refunded)
