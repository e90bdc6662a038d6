"""JSON-file-backed implementation of StockRepository."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from shopledger.domain.exceptions import ConcurrencyConflictError
from shopledger.domain.model.stock import Stock, StockKey
from shopledger.domain.repository.stock_repository import StockRepository
from shopledger.infrastructure.persistence.json_file import JsonFile


class JsonStockRepository(StockRepository):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    # --- StockRepository interface --------------------------------------------

    def get(self, key: StockKey) -> Stock | None:
        for raw in self._file.load():
            if raw["stock_id"] == key.stock_id:
                return self._to_domain(raw)
        return None

    def list_by_shop(self, shop_id: str) -> list[Stock]:
        stocks = [
            self._to_domain(raw) for raw in self._file.load() if raw["shop_id"] == shop_id
        ]
        return sorted(stocks, key=lambda s: s.key.stock_id)

    def save_all(self, stocks: list[Stock]) -> list[Stock]:
        with self._file.lock:
            records = self._file.load()
            index = {raw["stock_id"]: i for i, raw in enumerate(records)}

            for stock in stocks:
                sid = stock.key.stock_id
                stored = records[index[sid]]["version"] if sid in index else 0
                if stored != stock.version:
                    raise ConcurrencyConflictError(
                        f"Stock {sid} is at version {stored}, expected {stock.version}"
                    )

            saved = []
            for stock in stocks:
                new = replace(stock, version=stock.version + 1)
                sid = new.key.stock_id
                if sid in index:
                    records[index[sid]] = self._to_raw(new)
                else:
                    index[sid] = len(records)
                    records.append(self._to_raw(new))
                saved.append(new)
            self._file.persist(records)
            return saved

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(stock: Stock) -> dict:
        return {
            "stock_id": stock.key.stock_id,
            "shop_id": stock.key.shop_id,
            "product_id": stock.key.product_id,
            "variant_id": stock.key.variant_id,
            "on_hand": stock.on_hand,
            "reserved": stock.reserved,
            "low_stock_threshold": stock.low_stock_threshold,
            "reorder_point": stock.reorder_point,
            "reorder_quantity": stock.reorder_quantity,
            "average_cost": str(stock.average_cost),
            "last_restocked_at": _iso(stock.last_restocked_at),
            "last_sold_at": _iso(stock.last_sold_at),
            "version": stock.version,
        }

    @staticmethod
    def _to_domain(raw: dict) -> Stock:
        return Stock(
            key=StockKey(raw["shop_id"], raw["product_id"], raw.get("variant_id")),
            on_hand=raw["on_hand"],
            reserved=raw.get("reserved", 0),
            low_stock_threshold=raw.get("low_stock_threshold", 5),
            reorder_point=raw.get("reorder_point", 0),
            reorder_quantity=raw.get("reorder_quantity", 0),
            average_cost=Decimal(raw.get("average_cost", "0")),
            last_restocked_at=_parse(raw.get("last_restocked_at")),
            last_sold_at=_parse(raw.get("last_sold_at")),
            version=raw.get("version", 1),
        )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
