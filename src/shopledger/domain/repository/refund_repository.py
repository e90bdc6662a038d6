"""Abstract repository for the Refund aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from shopledger.domain.model.refund import Refund


class RefundRepository(ABC):

    @abstractmethod
    def get_by_id(self, refund_id: int) -> Refund | None:
        """Return a refund by its ID, or None if not found."""

    @abstractmethod
    def list_by_sale(self, sale_id: int) -> list[Refund]:
        """Return every refund booked against a sale."""

    @abstractmethod
    def list_by_payment(self, payment_id: int) -> list[Refund]:
        """Return every refund booked against a payment."""

    @abstractmethod
    def count_numbered(self, shop_id: str, prefix: str) -> int:
        """Count a shop's refunds whose number starts with ``prefix``."""

    @abstractmethod
    def save(self, refund: Refund) -> None:
        """Persist a new or updated refund, assigning an ID to new ones."""
