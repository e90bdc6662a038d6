"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass

from shopledger.domain.model.movement import StockMovement
from shopledger.domain.model.refund import Refund
from shopledger.domain.model.sale import Sale
from shopledger.domain.model.stock import Stock
from shopledger.domain.model.value_objects import Money


@dataclass(frozen=True)
class SaleItemSpec:
    """Input: one line to sell."""

    product_id: str
    quantity: int
    unit_price: str
    variant_id: str | None = None
    tax_rate: str = "0"
    discount: str | None = None


@dataclass(frozen=True)
class RefundItemSpec:
    """Input: how many units of a sale item to refund."""

    sale_item_id: int
    quantity: int
    reason: str = ""
    unit_price: str | None = None


@dataclass(frozen=True)
class StockLineDTO:
    stock_id: str
    product_id: str
    variant_id: str | None
    on_hand: int
    reserved: int
    available: int
    status: str
    average_cost: str
    stock_value: str
    reorder_point: int
    reorder_quantity: int

    @staticmethod
    def from_stock(stock: Stock) -> StockLineDTO:
        return StockLineDTO(
            stock_id=stock.key.stock_id,
            product_id=stock.key.product_id,
            variant_id=stock.key.variant_id,
            on_hand=stock.on_hand,
            reserved=stock.reserved,
            available=stock.available,
            status=stock.status.value,
            average_cost=f"{stock.average_cost:.4f}",
            stock_value=str(Money(stock.stock_value).quantized()),
            reorder_point=stock.reorder_point,
            reorder_quantity=stock.reorder_quantity,
        )


@dataclass(frozen=True)
class MovementDTO:
    occurred_at: str
    kind: str
    direction: str
    quantity: int
    on_hand_after: int
    reserved_after: int
    reason: str
    reference: str

    @staticmethod
    def from_movement(movement: StockMovement) -> MovementDTO:
        return MovementDTO(
            occurred_at=movement.occurred_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
            kind=movement.kind.value,
            direction=movement.direction,
            quantity=movement.quantity,
            on_hand_after=movement.on_hand_after,
            reserved_after=movement.reserved_after,
            reason=movement.reason,
            reference=movement.reference or "",
        )


@dataclass(frozen=True)
class SaleItemDTO:
    id: int
    product_id: str
    variant_id: str | None
    quantity: int
    refunded: int
    unit_price: str
    line_total: str


@dataclass(frozen=True)
class SaleDTO:
    id: int
    shop_id: str
    sale_number: str
    status: str
    customer_name: str
    items: list[SaleItemDTO]
    subtotal: str
    tax: str
    total: str
    created_at: str

    @staticmethod
    def from_sale(sale: Sale, refunded: dict[int, int] | None = None) -> SaleDTO:
        refunded = refunded or {}
        return SaleDTO(
            id=sale.id,  # type: ignore[arg-type]
            shop_id=sale.shop_id,
            sale_number=sale.sale_number or "",
            status=sale.status.value,
            customer_name=sale.customer_name,
            items=[
                SaleItemDTO(
                    id=item.id,
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                    quantity=item.quantity.value,
                    refunded=refunded.get(item.id, 0),
                    unit_price=str(item.unit_price),
                    line_total=str(item.line_total),
                )
                for item in sale.items
            ],
            subtotal=str(sale.subtotal),
            tax=str(sale.tax_amount),
            total=str(sale.total),
            created_at=sale.created_at.strftime("%Y-%m-%d %H:%M UTC"),
        )


@dataclass(frozen=True)
class RefundItemDTO:
    id: int
    sale_item_id: int
    quantity: int
    unit_price: str
    refund_amount: str
    reason: str


@dataclass(frozen=True)
class RefundDTO:
    id: int
    refund_number: str
    sale_id: int
    payment_id: int
    status: str
    amount: str
    reason: str
    items: list[RefundItemDTO]

    @staticmethod
    def from_refund(refund: Refund) -> RefundDTO:
        return RefundDTO(
            id=refund.id,  # type: ignore[arg-type]
            refund_number=refund.refund_number or "",
            sale_id=refund.sale_id,
            payment_id=refund.payment_id,
            status=refund.status.value,
            amount=str(refund.amount),
            reason=refund.reason,
            items=[
                RefundItemDTO(
                    id=item.id,
                    sale_item_id=item.sale_item_id,
                    quantity=item.quantity_refunded,
                    unit_price=str(item.unit_price),
                    refund_amount=str(item.refund_amount),
                    reason=item.reason,
                )
                for item in refund.items
            ],
        )
