"""Ledger primitives: the only sanctioned ways to change a Stock.

Each primitive is a pure function from a Stock (plus quantity, and a
timestamp or cost where relevant) to the next Stock.  On a business-rule
violation it raises a DomainException and the input Stock is, being
immutable, left exactly as it was.

Persistence, locking and retries are the caller's job (see
``shopledger.application.stock_ledger``).
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from shopledger.domain.exceptions import (
    InsufficientStockError,
    InvalidQuantityError,
    OverReleaseError,
)
from shopledger.domain.model.stock import Stock

COST_PLACES = Decimal("0.0001")


class OperationKind(Enum):
    RESERVE = "reserve"
    RELEASE = "release"
    SELL = "sell"
    RESTOCK = "restock"


class ReleasePolicy(Enum):
    """What ``release`` does when asked to free more than is reserved.

    CLAMP floors ``reserved`` at zero; STRICT rejects the release.
    """

    CLAMP = "clamp"
    STRICT = "strict"


def reserve(stock: Stock, quantity: int) -> Stock:
    """Hold ``quantity`` units; on-hand is unchanged, available shrinks."""
    _require_positive(quantity, OperationKind.RESERVE)
    if stock.available < quantity:
        raise InsufficientStockError(
            f"Insufficient stock for {stock.key} "
            f"(need {quantity}, have {stock.available} available)"
        )
    return replace(stock, reserved=stock.reserved + quantity)


def release(
    stock: Stock,
    quantity: int,
    policy: ReleasePolicy = ReleasePolicy.CLAMP,
) -> Stock:
    """Give back previously reserved units."""
    _require_positive(quantity, OperationKind.RELEASE)
    if quantity > stock.reserved and policy is ReleasePolicy.STRICT:
        raise OverReleaseError(
            f"Cannot release {quantity} of {stock.key} "
            f"- only {stock.reserved} currently reserved"
        )
    return replace(stock, reserved=max(0, stock.reserved - quantity))


def sell(stock: Stock, quantity: int, at: datetime) -> Stock:
    """Permanently remove ``quantity`` unreserved units from on-hand."""
    _require_positive(quantity, OperationKind.SELL)
    if stock.available < quantity:
        raise InsufficientStockError(
            f"Insufficient stock for {stock.key} "
            f"(need {quantity}, have {stock.available} available)"
        )
    return replace(stock, on_hand=stock.on_hand - quantity, last_sold_at=at)


def restock(
    stock: Stock,
    quantity: int,
    at: datetime,
    unit_cost: Decimal | None = None,
) -> Stock:
    """Add ``quantity`` units, folding ``unit_cost`` into the average cost."""
    _require_positive(quantity, OperationKind.RESTOCK)
    average_cost = stock.average_cost
    if unit_cost is not None:
        average_cost = weighted_average_cost(
            stock.on_hand, stock.average_cost, quantity, unit_cost
        )
    return replace(
        stock,
        on_hand=stock.on_hand + quantity,
        average_cost=average_cost,
        last_restocked_at=at,
    )


def weighted_average_cost(
    on_hand_before: int,
    average_cost: Decimal,
    quantity: int,
    unit_cost: Decimal,
) -> Decimal:
    if unit_cost < 0:
        raise InvalidQuantityError(f"Unit cost cannot be negative, got {unit_cost}")
    total_quantity = on_hand_before + quantity
    if total_quantity <= 0:
        return Decimal("0")
    total_value = on_hand_before * average_cost + quantity * unit_cost
    return (total_value / total_quantity).quantize(COST_PLACES, rounding=ROUND_HALF_UP)


def apply_operation(
    stock: Stock,
    kind: OperationKind,
    quantity: int,
    at: datetime,
    unit_cost: Decimal | None = None,
    policy: ReleasePolicy = ReleasePolicy.CLAMP,
) -> Stock:
    """Dispatch a ledger operation by kind."""
    if kind is OperationKind.RESERVE:
        return reserve(stock, quantity)
    if kind is OperationKind.RELEASE:
        return release(stock, quantity, policy)
    if kind is OperationKind.SELL:
        return sell(stock, quantity, at)
    return restock(stock, quantity, at, unit_cost)


def _require_positive(quantity: int, kind: OperationKind) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise InvalidQuantityError(
            f"{kind.value.capitalize()} quantity must be a positive integer, "
            f"got {quantity!r}"
        )
