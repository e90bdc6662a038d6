"""Payment aggregate: money received against a sale, and what was refunded."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from shopledger.domain.exceptions import ValidationError
from shopledger.domain.model.value_objects import Money


class PaymentStatus(Enum):
    COMPLETED = "completed"
    PARTIALLY_REFUNDED = "partially_refunded"
    REFUNDED = "refunded"


@dataclass
class Payment:

    id: int | None
    shop_id: str
    sale_id: int
    amount: Money
    method: str = "cash"
    status: PaymentStatus = PaymentStatus.COMPLETED
    reference: str | None = None
    paid_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.amount.is_zero:
            raise ValidationError("Payment amount must be greater than zero")

    def refundable_amount(self, refunded: Money) -> Money:
        """What is left to refund given the total of processed refunds."""
        if refunded >= self.amount:
            return Money.zero(self.amount.currency)
        return self.amount - refunded

    def can_be_refunded(self, refunded: Money) -> bool:
        return self.status != PaymentStatus.REFUNDED and refunded < self.amount

    def apply_refunded_total(self, refunded: Money) -> None:
        """Resolve status from the total of processed refunds."""
        if refunded >= self.amount:
            self.status = PaymentStatus.REFUNDED
        elif not refunded.is_zero:
            self.status = PaymentStatus.PARTIALLY_REFUNDED
        else:
            self.status = PaymentStatus.COMPLETED
