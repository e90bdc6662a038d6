"""Stock aggregate: on-hand, reserved and costing data per product/variant.

A Stock is an immutable value.  It is never edited in place: the ledger
primitives in ``shopledger.domain.service.ledger`` take a Stock and return
the next one.  ``available`` and ``stock_value`` are derived and cannot be
set independently.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from shopledger.domain.exceptions import ValidationError


class StockStatus(Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


@dataclass(frozen=True, order=True)
class StockKey:
    """Shop-scoped identity of a Stock row.

    A product without variants has ``variant_id=None``; each variant of a
    product owns its own Stock.
    """

    shop_id: str
    product_id: str
    variant_id: str | None = None

    def __post_init__(self) -> None:
        for name in ("shop_id", "product_id", "variant_id"):
            value = getattr(self, name)
            if value is None and name == "variant_id":
                continue
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"Stock key {name} cannot be empty")
            if "/" in value:
                raise ValidationError(
                    f"Stock key {name} cannot contain '/', got {value!r}"
                )

    @property
    def stock_id(self) -> str:
        """Stable textual id, also used to order lock acquisition."""
        parts = [self.shop_id, self.product_id]
        if self.variant_id is not None:
            parts.append(self.variant_id)
        return "/".join(parts)

    @staticmethod
    def parse(stock_id: str) -> StockKey:
        parts = stock_id.split("/")
        if len(parts) not in (2, 3) or not all(parts):
            raise ValidationError(f"Malformed stock id: {stock_id!r}")
        return StockKey(*parts)

    def __str__(self) -> str:
        return self.stock_id


@dataclass(frozen=True)
class Stock:
    """Aggregate root for inventory tracking.

    Invariants:
    - ``on_hand`` and ``reserved`` are never negative
    - ``reserved`` never exceeds ``on_hand``
    - ``average_cost`` is never negative
    """

    key: StockKey
    on_hand: int = 0
    reserved: int = 0
    low_stock_threshold: int = 5
    reorder_point: int = 0
    reorder_quantity: int = 0
    average_cost: Decimal = Decimal("0")
    last_restocked_at: datetime | None = None
    last_sold_at: datetime | None = None
    version: int = 0

    def __post_init__(self) -> None:
        if self.on_hand < 0:
            raise ValidationError(f"On-hand quantity of {self.key} cannot be negative")
        if self.reserved < 0:
            raise ValidationError(f"Reserved quantity of {self.key} cannot be negative")
        if self.reserved > self.on_hand:
            raise ValidationError(
                f"Reserved quantity ({self.reserved}) of {self.key} "
                f"exceeds on-hand quantity ({self.on_hand})"
            )
        if self.average_cost < 0:
            raise ValidationError(f"Average cost of {self.key} cannot be negative")

    @staticmethod
    def empty(
        key: StockKey,
        low_stock_threshold: int = 5,
        reorder_point: int = 0,
        reorder_quantity: int = 0,
    ) -> Stock:
        """The record created lazily on the first stock-affecting operation."""
        return Stock(
            key=key,
            low_stock_threshold=low_stock_threshold,
            reorder_point=reorder_point,
            reorder_quantity=reorder_quantity,
        )

    # --- Derived fields -------------------------------------------------------

    @property
    def available(self) -> int:
        return max(0, self.on_hand - self.reserved)

    @property
    def stock_value(self) -> Decimal:
        return self.on_hand * self.average_cost

    @property
    def status(self) -> StockStatus:
        """Same basis as ``is_out_of_stock``/``is_low_stock``: units on hand."""
        if self.is_out_of_stock():
            return StockStatus.OUT_OF_STOCK
        if self.is_low_stock():
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK

    # --- Queries --------------------------------------------------------------

    def needs_restock(self) -> bool:
        return self.on_hand <= self.reorder_point

    def is_low_stock(self) -> bool:
        return self.on_hand <= self.low_stock_threshold

    def is_out_of_stock(self) -> bool:
        return self.on_hand <= 0
