"""Refund aggregate: money returned against a payment, item by item.

Invariant enforced by ``Refund.add_item``: across all live refunds of a
sale, the quantity refunded for a sale item never exceeds the quantity
sold.  Stock is restored exactly once, when the refund moves from
PENDING to PROCESSED (a one-way transition).
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable

from shopledger.domain.exceptions import (
    InvalidQuantityError,
    InvalidStateTransitionError,
    OverRefundError,
    ValidationError,
)
from shopledger.domain.model.sale import SaleItem
from shopledger.domain.model.value_objects import Money


class RefundStatus(Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Refunds in these states hold a claim on sale item quantities.
LIVE_STATUSES = frozenset({RefundStatus.PENDING, RefundStatus.PROCESSED})


@dataclass(frozen=True)
class RefundItem:

    id: int
    sale_item_id: int
    quantity_refunded: int
    unit_price: Money
    reason: str = ""

    def __post_init__(self) -> None:
        if self.quantity_refunded <= 0:
            raise InvalidQuantityError("Refunded quantity must be positive")

    @property
    def refund_amount(self) -> Money:
        return self.unit_price * self.quantity_refunded


@dataclass
class Refund:
    """Aggregate root for refunds.

    Use ``Refund.create()`` for new refunds; ``__init__`` reconstitutes.
    """

    id: int | None
    shop_id: str
    sale_id: int
    payment_id: int
    amount: Money
    reason: str = ""
    status: RefundStatus = RefundStatus.PENDING
    items: list[RefundItem] = field(default_factory=list)
    refund_number: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    processed_at: datetime | None = None
    processor_reference: str | None = None
    failure_reason: str | None = None
    notes: str = ""

    @staticmethod
    def create(
        shop_id: str,
        sale_id: int,
        payment_id: int,
        currency: str,
        created_at: datetime,
        reason: str = "",
        amount: Money | None = None,
    ) -> Refund:
        return Refund(
            id=None,
            shop_id=shop_id,
            sale_id=sale_id,
            payment_id=payment_id,
            amount=amount if amount is not None else Money.zero(currency),
            reason=reason,
            created_at=created_at,
        )

    # --- Items ----------------------------------------------------------------

    def add_item(
        self,
        sale_item: SaleItem,
        quantity: int,
        already_refunded: int,
        unit_price: Money | None = None,
        reason: str = "",
        accumulate: bool = True,
    ) -> RefundItem:
        """Refund up to ``quantity`` units of ``sale_item``.

        The request is clamped to what remains refundable.  Raises
        OverRefundError when nothing remains.  ``already_refunded`` must
        cover every live refund of the sale, this one included.
        """
        if not self.is_pending:
            raise InvalidStateTransitionError(
                f"Cannot add items to a {self.status.value} refund"
            )
        if quantity <= 0:
            raise InvalidQuantityError("Refund quantity must be positive")

        max_refundable = sale_item.quantity.value - already_refunded
        to_refund = min(quantity, max_refundable)
        if to_refund <= 0:
            raise OverRefundError(
                f"Sale item #{sale_item.id} has nothing left to refund "
                f"({already_refunded} of {sale_item.quantity.value} already refunded)"
            )

        price = unit_price if unit_price is not None else sale_item.unit_price
        if price.currency != self.amount.currency:
            raise ValidationError(
                f"Cannot refund a {price.currency} price on a {self.amount.currency} refund"
            )
        item = RefundItem(
            id=max((i.id for i in self.items), default=0) + 1,
            sale_item_id=sale_item.id,
            quantity_refunded=to_refund,
            unit_price=price,
            reason=reason,
        )
        self.items.append(item)
        if accumulate:
            self.amount = self.amount + item.refund_amount
        return item

    # --- State transitions ----------------------------------------------------

    @property
    def is_pending(self) -> bool:
        return self.status == RefundStatus.PENDING

    @property
    def is_processed(self) -> bool:
        return self.status == RefundStatus.PROCESSED

    def mark_processed(self, at: datetime, processor_reference: str | None = None) -> None:
        self._require_pending("process")
        self.status = RefundStatus.PROCESSED
        self.processed_at = at
        self.processor_reference = processor_reference

    def mark_failed(self, failure_reason: str) -> None:
        self._require_pending("fail")
        self.status = RefundStatus.FAILED
        self.failure_reason = failure_reason

    def cancel(self, reason: str = "") -> None:
        self._require_pending("cancel")
        self.status = RefundStatus.CANCELLED
        self.notes = (self.notes + f"\nCancelled: {reason}").strip()

    def _require_pending(self, action: str) -> None:
        if not self.is_pending:
            raise InvalidStateTransitionError(
                f"Cannot {action} refund #{self.id}: current status is "
                f"{self.status.value}, expected pending"
            )

    def assign_number(self, sequence: int) -> str:
        """``REF-202501-0007``: month of creation, per-shop sequence."""
        if self.refund_number is None:
            self.refund_number = f"{self.number_prefix}{sequence:04d}"
        return self.refund_number

    @property
    def number_prefix(self) -> str:
        return f"REF-{self.created_at:%Y%m}-"

    def quantity_by_sale_item(self) -> dict[int, int]:
        result: dict[int, int] = defaultdict(int)
        for item in self.items:
            result[item.sale_item_id] += item.quantity_refunded
        return dict(result)


def refunded_quantities(refunds: Iterable[Refund]) -> dict[int, int]:
    """Sum refunded quantity per sale item over live refunds."""
    result: dict[int, int] = defaultdict(int)
    for refund in refunds:
        if refund.status not in LIVE_STATUSES:
            continue
        for sale_item_id, qty in refund.quantity_by_sale_item().items():
            result[sale_item_id] += qty
    return dict(result)


def processed_total(refunds: Iterable[Refund], currency: str) -> Money:
    total = Money.zero(currency)
    for refund in refunds:
        if refund.is_processed:
            total = total + refund.amount
    return total
