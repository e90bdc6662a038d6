"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from shopledger.application.locking import KeyedLockManager
from shopledger.application.stock_ledger import StockLedger
from shopledger.domain.clock import Clock, SystemClock
from shopledger.infrastructure.config import Settings
from shopledger.infrastructure.persistence.json_movement_repository import (
    JsonMovementRepository,
)
from shopledger.infrastructure.persistence.json_payment_repository import (
    JsonPaymentRepository,
)
from shopledger.infrastructure.persistence.json_refund_repository import (
    JsonRefundRepository,
)
from shopledger.infrastructure.persistence.json_sale_repository import (
    JsonSaleRepository,
)
from shopledger.infrastructure.persistence.json_stock_repository import (
    JsonStockRepository,
)

# One lock table per process: every handler must share it for per-key
# serialization to mean anything.
_LOCKS: KeyedLockManager | None = None


def lock_manager(settings: Settings) -> KeyedLockManager:
    global _LOCKS
    if _LOCKS is None:
        _LOCKS = KeyedLockManager(timeout=settings.lock_timeout)
    return _LOCKS


def clock() -> Clock:
    return SystemClock()


def stock_repository(settings: Settings) -> JsonStockRepository:
    return JsonStockRepository(settings.data_dir / "stocks.json")


def movement_repository(settings: Settings) -> JsonMovementRepository:
    return JsonMovementRepository(settings.data_dir / "movements.json")


def sale_repository(settings: Settings) -> JsonSaleRepository:
    return JsonSaleRepository(settings.data_dir / "sales.json")


def payment_repository(settings: Settings) -> JsonPaymentRepository:
    return JsonPaymentRepository(settings.data_dir / "payments.json")


def refund_repository(settings: Settings) -> JsonRefundRepository:
    return JsonRefundRepository(settings.data_dir / "refunds.json")


def stock_ledger(settings: Settings) -> StockLedger:
    return StockLedger(
        stock_repo=stock_repository(settings),
        movement_repo=movement_repository(settings),
        locks=lock_manager(settings),
        clock=clock(),
        release_policy=settings.release_policy,
        max_retries=settings.max_retries,
        retry_backoff=settings.retry_backoff,
        low_stock_threshold=settings.low_stock_threshold,
        reorder_point=settings.reorder_point,
        reorder_quantity=settings.reorder_quantity,
    )
