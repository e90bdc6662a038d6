"""Unit tests for the Payment aggregate."""

from decimal import Decimal

import pytest

from shopledger.domain.exceptions import ValidationError
from shopledger.domain.model.payment import Payment, PaymentStatus
from shopledger.domain.model.value_objects import Money


def _payment(amount: str = "50.00") -> Payment:
    return Payment(id=1, shop_id="acme", sale_id=1, amount=Money.of(amount))


class TestPayment:

    def test_zero_amount_rejected(self):
        with pytest.raises(ValidationError, match="greater than zero"):
            Payment(id=None, shop_id="acme", sale_id=1, amount=Money(Decimal("0")))

    def test_refundable_amount(self):
        assert _payment().refundable_amount(Money.of("20")) == Money.of("30.00")

    def test_refundable_amount_never_negative(self):
        assert _payment().refundable_amount(Money.of("80")).is_zero

    def test_partial_refund_status(self):
        payment = _payment()
        payment.apply_refunded_total(Money.of("10"))
        assert payment.status is PaymentStatus.PARTIALLY_REFUNDED
        assert payment.can_be_refunded(Money.of("10"))

    def test_full_refund_status(self):
        payment = _payment()
        payment.apply_refunded_total(Money.of("50"))
        assert payment.status is PaymentStatus.REFUNDED
        assert not payment.can_be_refunded(Money.of("50"))
