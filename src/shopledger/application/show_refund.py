"""Application service: Show Refund use case (query)."""

from __future__ import annotations

from shopledger.application.dto import RefundDTO
from shopledger.application.lookups import get_refund
from shopledger.domain.repository.refund_repository import RefundRepository


class ShowRefundHandler:

    def __init__(self, refund_repo: RefundRepository) -> None:
        self._refund_repo = refund_repo

    def handle(self, shop_id: str, refund_id: int) -> RefundDTO:
        return RefundDTO.from_refund(get_refund(self._refund_repo, shop_id, refund_id))
