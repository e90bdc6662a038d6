"""Application service: Fail Refund use case.

The payment processor rejected a pending refund.  No money and no stock
moved, so the refund only records why and gives up its claim on the
sale item quantities.
"""

from __future__ import annotations

import logging

from shopledger.application.dto import RefundDTO
from shopledger.application.locking import KeyedLockManager
from shopledger.application.lookups import get_refund
from shopledger.domain.exceptions import ValidationError
from shopledger.domain.repository.refund_repository import RefundRepository

logger = logging.getLogger(__name__)


class FailRefundHandler:

    def __init__(self, refund_repo: RefundRepository, locks: KeyedLockManager) -> None:
        self._refund_repo = refund_repo
        self._locks = locks

    def handle(self, shop_id: str, refund_id: int, failure_reason: str) -> RefundDTO:
        if not failure_reason.strip():
            raise ValidationError("A failure reason is required")
        sale_id = get_refund(self._refund_repo, shop_id, refund_id).sale_id
        with self._locks.hold([f"sale:{sale_id}"]):
            refund = get_refund(self._refund_repo, shop_id, refund_id)
            refund.mark_failed(failure_reason.strip())
            self._refund_repo.save(refund)
        logger.info("Refund #%d failed: %s", refund_id, refund.failure_reason)
        return RefundDTO.from_refund(refund)
