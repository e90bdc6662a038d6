"""JSON-file-backed implementation of MovementRepository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from shopledger.domain.model.movement import StockMovement
from shopledger.domain.repository.movement_repository import MovementRepository
from shopledger.domain.service.ledger import OperationKind
from shopledger.infrastructure.persistence.json_file import JsonFile


class JsonMovementRepository(MovementRepository):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    def append(self, movements: list[StockMovement]) -> None:
        with self._file.lock:
            records = self._file.load()
            records.extend(self._to_raw(m) for m in movements)
            self._file.persist(records)

    def list_for(self, stock_id: str) -> list[StockMovement]:
        return [
            self._to_domain(raw) for raw in self._file.load() if raw["stock_id"] == stock_id
        ]

    @staticmethod
    def _to_raw(movement: StockMovement) -> dict:
        return {
            "stock_id": movement.stock_id,
            "kind": movement.kind.value,
            "quantity": movement.quantity,
            "on_hand_after": movement.on_hand_after,
            "reserved_after": movement.reserved_after,
            "occurred_at": movement.occurred_at.isoformat(),
            "unit_cost": str(movement.unit_cost) if movement.unit_cost is not None else None,
            "reason": movement.reason,
            "reference": movement.reference,
        }

    @staticmethod
    def _to_domain(raw: dict) -> StockMovement:
        return StockMovement(
            stock_id=raw["stock_id"],
            kind=OperationKind(raw["kind"]),
            quantity=raw["quantity"],
            on_hand_after=raw["on_hand_after"],
            reserved_after=raw["reserved_after"],
            occurred_at=datetime.fromisoformat(raw["occurred_at"]),
            unit_cost=Decimal(raw["unit_cost"]) if raw.get("unit_cost") is not None else None,
            reason=raw.get("reason", ""),
            reference=raw.get("reference"),
        )
