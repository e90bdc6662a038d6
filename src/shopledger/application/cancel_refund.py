"""Application service: Cancel Refund use case (pending refunds only, no stock movement)."""

from __future__ import annotations

import logging

from shopledger.application.locking import KeyedLockManager
from shopledger.application.lookups import get_refund
from shopledger.domain.repository.refund_repository import RefundRepository

logger = logging.getLogger(__name__)


class CancelRefundHandler:

    def __init__(self, refund_repo: RefundRepository, locks: KeyedLockManager) -> None:
        self._refund_repo = refund_repo
        self._locks = locks

    def handle(self, shop_id: str, refund_id: int, reason: str = "") -> None:
        sale_id = get_refund(self._refund_repo, shop_id, refund_id).sale_id
        with self._locks.hold([f"sale:{sale_id}"]):
            refund = get_refund(self._refund_repo, shop_id, refund_id)
            refund.cancel(reason)
            self._refund_repo.save(refund)
        logger.info("Cancelled refund #%d", refund_id)
