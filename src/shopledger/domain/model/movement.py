"""StockMovement: append-only audit trail of committed ledger operations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from shopledger.domain.service.ledger import OperationKind


@dataclass(frozen=True)
class StockMovement:
    """One committed ledger operation against one Stock.

    ``reference`` ties the movement to what caused it, e.g.
    ``"sale:12/item:3"`` or ``"refund:4/item:1"``.
    """

    stock_id: str
    kind: OperationKind
    quantity: int
    on_hand_after: int
    reserved_after: int
    occurred_at: datetime
    unit_cost: Decimal | None = None
    reason: str = ""
    reference: str | None = None

    @property
    def direction(self) -> str:
        """``in`` / ``out`` for on-hand changes, ``hold`` for reservations."""
        if self.kind is OperationKind.RESTOCK:
            return "in"
        if self.kind is OperationKind.SELL:
            return "out"
        return "hold"
