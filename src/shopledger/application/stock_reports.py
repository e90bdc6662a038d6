"""Application service: stock reporting (queries only).

Reads take no locks; a report may be a moment behind concurrent ledger
writes, which is fine for listing and valuation.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from shopledger.application.dto import MovementDTO, StockLineDTO
from shopledger.domain.model.stock import StockKey
from shopledger.domain.model.value_objects import Money
from shopledger.domain.repository.movement_repository import MovementRepository
from shopledger.domain.repository.stock_repository import StockRepository


@dataclass(frozen=True)
class ReorderLineDTO:
    stock_id: str
    on_hand: int
    reorder_point: int
    suggested_quantity: int


class StockReportHandler:

    def __init__(
        self,
        stock_repo: StockRepository,
        movement_repo: MovementRepository,
    ) -> None:
        self._stock_repo = stock_repo
        self._movement_repo = movement_repo

    def list_stock(self, shop_id: str) -> list[StockLineDTO]:
        return [StockLineDTO.from_stock(s) for s in self._stock_repo.list_by_shop(shop_id)]

    def list_low_stock(self, shop_id: str) -> list[StockLineDTO]:
        return [
            StockLineDTO.from_stock(s)
            for s in self._stock_repo.list_by_shop(shop_id)
            if s.is_low_stock()
        ]

    def list_out_of_stock(self, shop_id: str) -> list[StockLineDTO]:
        return [
            StockLineDTO.from_stock(s)
            for s in self._stock_repo.list_by_shop(shop_id)
            if s.is_out_of_stock()
        ]

    def list_needs_reorder(self, shop_id: str) -> list[ReorderLineDTO]:
        """Stocks at or below their reorder point.

        The suggestion is the configured reorder quantity, or enough to
        climb back above the reorder point when none is configured.
        """
        lines = []
        for stock in self._stock_repo.list_by_shop(shop_id):
            if not stock.needs_restock():
                continue
            suggested = stock.reorder_quantity or (stock.reorder_point - stock.on_hand + 1)
            lines.append(
                ReorderLineDTO(
                    stock_id=stock.key.stock_id,
                    on_hand=stock.on_hand,
                    reorder_point=stock.reorder_point,
                    suggested_quantity=suggested,
                )
            )
        return lines

    def total_inventory_value(self, shop_id: str, currency: str = "USD") -> Money:
        total = sum(
            (s.stock_value for s in self._stock_repo.list_by_shop(shop_id)),
            Decimal("0"),
        )
        return Money(total, currency).quantized()

    def movements(self, key: StockKey) -> list[MovementDTO]:
        return [MovementDTO.from_movement(m) for m in self._movement_repo.list_for(key.stock_id)]
