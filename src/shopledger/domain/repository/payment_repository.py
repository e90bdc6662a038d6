"""Abstract repository for the Payment aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from shopledger.domain.model.payment import Payment


class PaymentRepository(ABC):

    @abstractmethod
    def get_by_id(self, payment_id: int) -> Payment | None:
        """Return a payment by its ID, or None if not found."""

    @abstractmethod
    def list_by_sale(self, sale_id: int) -> list[Payment]:
        """Return every payment recorded against a sale."""

    @abstractmethod
    def save(self, payment: Payment) -> None:
        """Persist a new or updated payment, assigning an ID to new ones."""
