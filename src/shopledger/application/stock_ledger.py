"""Application service: the stock ledger.

Turns the pure ledger primitives into persisted, serialized, all-or-
nothing operations:

  1. lock every affected Stock row (ascending stock id, bounded wait);
  2. load the rows, creating empty records lazily;
  3. apply every operation in memory; any business-rule failure raises
     here, before anything is written;
  4. compare-and-swap all rows in one ``save_all``;
  5. run the caller's ``on_commit`` (e.g. saving the sale that sold the
     stock); if it fails the rows are put back and the error propagates;
  6. append the movement log.

A version conflict at step 4 means another process wrote a row since
step 2; the whole batch is retried with linear backoff.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Callable, Generic, TypeVar

from shopledger.application.locking import KeyedLockManager
from shopledger.domain.clock import Clock
from shopledger.domain.exceptions import (
    ConcurrencyConflictError,
    DomainException,
    InvalidQuantityError,
    ValidationError,
)
from shopledger.domain.model.movement import StockMovement
from shopledger.domain.model.stock import Stock, StockKey
from shopledger.domain.repository.movement_repository import MovementRepository
from shopledger.domain.repository.stock_repository import StockRepository
from shopledger.domain.service.ledger import (
    OperationKind,
    ReleasePolicy,
    apply_operation,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class LedgerResult(Generic[T]):
    """Outcome of a business operation: a value or the reason it failed."""

    value: T | None = None
    error: DomainException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    @staticmethod
    def success(value: T) -> LedgerResult[T]:
        return LedgerResult(value=value)

    @staticmethod
    def failure(error: DomainException) -> LedgerResult[T]:
        return LedgerResult(error=error)


def capture(operation: Callable[[], T]) -> LedgerResult[T]:
    """Run ``operation``, turning business-rule failures into a result.

    Only DomainExceptions are captured; infrastructure faults propagate.
    """
    try:
        return LedgerResult.success(operation())
    except DomainException as exc:
        logger.warning("Operation rejected (%s): %s", exc.code, exc)
        return LedgerResult.failure(exc)


@dataclass(frozen=True)
class LedgerOperation:
    kind: OperationKind
    key: StockKey
    quantity: int
    unit_cost: Decimal | None = None
    reason: str = ""
    reference: str | None = None


class _StaleRead(Exception):
    """A row changed between load and save; the batch must be replayed."""


class StockLedger:

    def __init__(
        self,
        stock_repo: StockRepository,
        movement_repo: MovementRepository,
        locks: KeyedLockManager,
        clock: Clock,
        release_policy: ReleasePolicy = ReleasePolicy.CLAMP,
        max_retries: int = 3,
        retry_backoff: float = 0.05,
        low_stock_threshold: int = 5,
        reorder_point: int = 0,
        reorder_quantity: int = 0,
    ) -> None:
        self._stock_repo = stock_repo
        self._movement_repo = movement_repo
        self._locks = locks
        self._clock = clock
        self._release_policy = release_policy
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff
        self._defaults = {
            "low_stock_threshold": low_stock_threshold,
            "reorder_point": reorder_point,
            "reorder_quantity": reorder_quantity,
        }

    # --- Single operations ----------------------------------------------------

    def reserve(
        self, key: StockKey, quantity: int, reference: str | None = None
    ) -> LedgerResult[Stock]:
        op = LedgerOperation(OperationKind.RESERVE, key, quantity, reason="reservation", reference=reference)
        return capture(lambda: self.apply([op])[0])

    def release(
        self, key: StockKey, quantity: int, reference: str | None = None
    ) -> LedgerResult[Stock]:
        op = LedgerOperation(OperationKind.RELEASE, key, quantity, reason="release", reference=reference)
        return capture(lambda: self.apply([op])[0])

    def sell(
        self, key: StockKey, quantity: int, reference: str | None = None
    ) -> LedgerResult[Stock]:
        op = LedgerOperation(OperationKind.SELL, key, quantity, reason="sale", reference=reference)
        return capture(lambda: self.apply([op])[0])

    def restock(
        self,
        key: StockKey,
        quantity: int,
        unit_cost: Decimal | None = None,
        reason: str = "restock",
        reference: str | None = None,
    ) -> LedgerResult[Stock]:
        op = LedgerOperation(
            OperationKind.RESTOCK, key, quantity,
            unit_cost=unit_cost, reason=reason, reference=reference,
        )
        return capture(lambda: self.apply([op])[0])

    def set_thresholds(
        self,
        key: StockKey,
        low_stock_threshold: int | None = None,
        reorder_point: int | None = None,
        reorder_quantity: int | None = None,
    ) -> LedgerResult[Stock]:
        """Change the signalling thresholds; quantities are untouched."""
        changes = {
            name: value
            for name, value in (
                ("low_stock_threshold", low_stock_threshold),
                ("reorder_point", reorder_point),
                ("reorder_quantity", reorder_quantity),
            )
            if value is not None
        }

        def configure() -> Stock:
            for name, value in changes.items():
                if value < 0:
                    raise ValidationError(f"{name} cannot be negative, got {value}")
            with self._locks.hold([f"stock:{key.stock_id}"]):
                stock = self._stock_repo.get(key) or Stock.empty(key, **self._defaults)
                try:
                    return self._stock_repo.save_all([replace(stock, **changes)])[0]
                except ConcurrencyConflictError:
                    logger.warning("Stock %s changed while configuring it", key)
                    raise

        return capture(configure)

    # --- Batches --------------------------------------------------------------

    def apply(
        self,
        operations: list[LedgerOperation],
        on_commit: Callable[[list[Stock]], None] | None = None,
    ) -> list[Stock]:
        """Apply ``operations`` all-or-nothing.

        Returns the committed stocks, one per distinct key, in the order
        the keys first appear in ``operations``.  Raises a DomainException
        (nothing written) when any operation is rejected.
        """
        if not operations:
            raise ValidationError("At least one ledger operation is required")
        for op in operations:
            if not isinstance(op.quantity, int) or isinstance(op.quantity, bool) or op.quantity <= 0:
                raise InvalidQuantityError(
                    f"{op.kind.value.capitalize()} quantity must be a positive "
                    f"integer, got {op.quantity!r}"
                )

        lock_keys = [f"stock:{op.key.stock_id}" for op in operations]
        attempt = 0
        while True:
            attempt += 1
            try:
                with self._locks.hold(lock_keys):
                    return self._apply_locked(operations, on_commit)
            except _StaleRead as exc:
                if attempt > self._max_retries:
                    logger.warning(
                        "Giving up after %d attempts: %s", attempt, exc
                    )
                    raise ConcurrencyConflictError(str(exc)) from exc
                logger.warning("Stock changed concurrently, retrying (attempt %d)", attempt)
                time.sleep(self._retry_backoff * attempt)

    def _apply_locked(
        self,
        operations: list[LedgerOperation],
        on_commit: Callable[[list[Stock]], None] | None,
    ) -> list[Stock]:
        at = self._clock.now()
        order = list(dict.fromkeys(op.key.stock_id for op in operations))
        loaded: dict[str, Stock] = {}
        for op in operations:
            sid = op.key.stock_id
            if sid not in loaded:
                loaded[sid] = self._stock_repo.get(op.key) or Stock.empty(op.key, **self._defaults)

        current = dict(loaded)
        movements: list[StockMovement] = []
        for op in operations:
            sid = op.key.stock_id
            after = apply_operation(
                current[sid], op.kind, op.quantity, at, op.unit_cost, self._release_policy
            )
            current[sid] = after
            movements.append(
                StockMovement(
                    stock_id=sid,
                    kind=op.kind,
                    quantity=op.quantity,
                    on_hand_after=after.on_hand,
                    reserved_after=after.reserved,
                    occurred_at=at,
                    unit_cost=op.unit_cost,
                    reason=op.reason,
                    reference=op.reference,
                )
            )

        try:
            saved = self._stock_repo.save_all([current[sid] for sid in sorted(current)])
        except ConcurrencyConflictError as exc:
            raise _StaleRead(str(exc)) from exc
        by_id = {stock.key.stock_id: stock for stock in saved}
        committed = [by_id[sid] for sid in order]

        if on_commit is not None:
            try:
                on_commit(committed)
            except Exception:
                logger.warning("Commit hook failed, restoring %d stock record(s)", len(loaded))
                self._restore(loaded, by_id)
                raise

        self._movement_repo.append(movements)
        logger.info(
            "Committed %d ledger operation(s) on %s",
            len(operations), ", ".join(order),
        )
        return committed

    def _restore(self, loaded: dict[str, Stock], saved: dict[str, Stock]) -> None:
        previous = [
            replace(loaded[sid], version=saved[sid].version) for sid in sorted(loaded)
        ]
        try:
            self._stock_repo.save_all(previous)
        except ConcurrencyConflictError:
            logger.error("Could not restore stock records %s", ", ".join(sorted(loaded)))
            raise
