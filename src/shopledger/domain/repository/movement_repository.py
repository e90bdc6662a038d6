"""Abstract repository for the append-only stock movement log."""

from __future__ import annotations

from abc import ABC, abstractmethod

from shopledger.domain.model.movement import StockMovement


class MovementRepository(ABC):

    @abstractmethod
    def append(self, movements: list[StockMovement]) -> None:
        """Append movements, all or none."""

    @abstractmethod
    def list_for(self, stock_id: str) -> list[StockMovement]:
        """Return the movements of one stock, oldest first."""
