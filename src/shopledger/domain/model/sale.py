"""Sale aggregate: a shop's sale and the items it sold.

The Sale owns its SaleItems.  A SaleItem is only attached *after* the
ledger has sold its quantity (coordinated by the application handlers),
so an attached item always means stock was decremented exactly once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from shopledger.domain.exceptions import InvalidStateTransitionError, ValidationError
from shopledger.domain.model.stock import StockKey
from shopledger.domain.model.value_objects import Money, Quantity


class SaleStatus(Enum):
    DRAFT = "draft"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


_TRANSITIONS: dict[SaleStatus, frozenset[SaleStatus]] = {
    SaleStatus.DRAFT: frozenset({SaleStatus.PENDING, SaleStatus.CANCELLED}),
    SaleStatus.PENDING: frozenset({SaleStatus.CONFIRMED, SaleStatus.CANCELLED}),
    SaleStatus.CONFIRMED: frozenset(
        {SaleStatus.COMPLETED, SaleStatus.CANCELLED, SaleStatus.REFUNDED}
    ),
    SaleStatus.COMPLETED: frozenset({SaleStatus.REFUNDED}),
    SaleStatus.CANCELLED: frozenset(),
    SaleStatus.REFUNDED: frozenset(),
}

MAX_LINE_ITEMS = 200


@dataclass(frozen=True)
class SaleItem:
    """A sold line.  Immutable: refunds are booked against it, not on it."""

    id: int
    product_id: str
    quantity: Quantity
    unit_price: Money
    variant_id: str | None = None
    tax_rate: Decimal = Decimal("0")  # percent
    discount: Money | None = None

    @property
    def gross(self) -> Money:
        return self.unit_price * self.quantity.value

    @property
    def line_total(self) -> Money:
        if self.discount is None:
            return self.gross
        return self.gross - self.discount

    @property
    def line_tax(self) -> Money:
        return self.line_total.percent(self.tax_rate)

    @property
    def line_total_with_tax(self) -> Money:
        return self.line_total + self.line_tax


@dataclass
class Sale:
    """Aggregate root for sales.

    Use ``Sale.create()`` for new sales.  The ``__init__`` is kept simple
    so repositories can reconstitute persisted sales without re-validating.
    """

    id: int | None
    shop_id: str
    items: list[SaleItem] = field(default_factory=list)
    status: SaleStatus = SaleStatus.DRAFT
    currency: str = "USD"
    customer_name: str = ""
    shipping_amount: Money | None = None
    discount_amount: Money | None = None
    sale_number: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    paid_at: datetime | None = None
    cancelled_at: datetime | None = None
    refunded_at: datetime | None = None
    notes: str = ""

    # --- Factory --------------------------------------------------------------

    @staticmethod
    def create(
        shop_id: str,
        created_at: datetime,
        currency: str = "USD",
        customer_name: str = "",
        shipping_amount: Money | None = None,
        discount_amount: Money | None = None,
    ) -> Sale:
        if not shop_id or not shop_id.strip():
            raise ValidationError("Shop id is required")
        for extra in (shipping_amount, discount_amount):
            if extra is not None and extra.currency != currency:
                raise ValidationError(
                    f"Cannot combine {currency} sale with {extra.currency} amount"
                )
        return Sale(
            id=None,
            shop_id=shop_id.strip(),
            currency=currency,
            customer_name=customer_name.strip(),
            shipping_amount=shipping_amount,
            discount_amount=discount_amount,
            created_at=created_at,
        )

    # --- Items ----------------------------------------------------------------

    @property
    def accepts_items(self) -> bool:
        return self.status in (SaleStatus.DRAFT, SaleStatus.PENDING)

    @property
    def next_item_id(self) -> int:
        return max((item.id for item in self.items), default=0) + 1

    def build_item(
        self,
        product_id: str,
        quantity: int,
        unit_price: Money,
        variant_id: str | None = None,
        tax_rate: Decimal = Decimal("0"),
        discount: Money | None = None,
        item_id: int | None = None,
    ) -> SaleItem:
        """Validate and number a new item *without* attaching it.

        The caller sells the stock first and attaches the item only once
        the ledger has committed.
        """
        if not self.accepts_items:
            raise InvalidStateTransitionError(
                f"Cannot add items to a sale in {self.status.value} status"
            )
        if not product_id:
            raise ValidationError("Product id is required")
        if unit_price.currency != self.currency:
            raise ValidationError(
                f"Cannot sell a {unit_price.currency} price on a {self.currency} sale"
            )
        if not Decimal("0") <= tax_rate <= Decimal("100"):
            raise ValidationError(f"Tax rate must be between 0 and 100, got {tax_rate}")
        item = SaleItem(
            id=item_id if item_id is not None else self.next_item_id,
            product_id=product_id,
            variant_id=variant_id,
            quantity=Quantity(quantity),
            unit_price=unit_price,
            tax_rate=tax_rate,
            discount=discount,
        )
        if discount is not None and discount > item.gross:
            raise ValidationError(
                f"Discount {discount} exceeds line amount {item.gross}"
            )
        return item

    def attach(self, item: SaleItem) -> None:
        if not self.accepts_items:
            raise InvalidStateTransitionError(
                f"Cannot add items to a sale in {self.status.value} status"
            )
        if any(existing.id == item.id for existing in self.items):
            raise ValidationError(f"Sale item #{item.id} already exists")
        if len(self.items) >= MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per sale")
        self.items.append(item)

    def find_item(self, item_id: int) -> SaleItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def stock_key(self, item: SaleItem) -> StockKey:
        return StockKey(self.shop_id, item.product_id, item.variant_id)

    # --- State transitions ----------------------------------------------------

    def submit(self) -> None:
        """DRAFT -> PENDING; a sale must carry at least one item."""
        if self.status == SaleStatus.DRAFT and not self.items:
            raise ValidationError("Sale must contain at least one item")
        self._transition(SaleStatus.PENDING)

    def confirm(self) -> None:
        self._transition(SaleStatus.CONFIRMED)

    def complete(self) -> None:
        self._transition(SaleStatus.COMPLETED)

    def cancel(self, at: datetime, reason: str = "") -> None:
        """Cancelling restocks the items; the handler does that first."""
        self._transition(SaleStatus.CANCELLED)
        self.cancelled_at = at
        self.notes = (self.notes + f"\nCancelled: {reason or 'No reason provided'}").strip()

    def mark_refunded(self, at: datetime) -> None:
        self._transition(SaleStatus.REFUNDED)
        self.refunded_at = at

    def mark_paid(self, at: datetime) -> None:
        self.paid_at = at

    def can_transition_to(self, target: SaleStatus) -> bool:
        return target in _TRANSITIONS[self.status]

    def _transition(self, target: SaleStatus) -> None:
        if not self.can_transition_to(target):
            raise InvalidStateTransitionError(
                f"Cannot move sale #{self.id} from {self.status.value} "
                f"to {target.value}"
            )
        self.status = target

    # --- Computed properties --------------------------------------------------

    @property
    def subtotal(self) -> Money:
        result = Money.zero(self.currency)
        for item in self.items:
            result = result + item.line_total
        return result

    @property
    def tax_amount(self) -> Money:
        result = Money.zero(self.currency)
        for item in self.items:
            result = result + item.line_tax
        return result

    @property
    def total(self) -> Money:
        gross = self.subtotal + self.tax_amount
        if self.shipping_amount is not None:
            gross = gross + self.shipping_amount
        if self.discount_amount is None:
            return gross
        if self.discount_amount > gross:
            return Money.zero(self.currency)
        return gross - self.discount_amount

    def assign_number(self) -> str:
        """``ABC-20250101-000042``: shop prefix, sale date, padded id."""
        if self.sale_number is None:
            if self.id is None:
                raise ValidationError("Sale must be saved before it is numbered")
            prefix = self.shop_id[:3].upper()
            self.sale_number = f"{prefix}-{self.created_at:%Y%m%d}-{self.id:06d}"
        return self.sale_number
