"""Abstract repository for the Sale aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from shopledger.domain.model.sale import Sale


class SaleRepository(ABC):

    @abstractmethod
    def next_id(self) -> int:
        """Reserve and return a sale ID no other sale will be given."""

    @abstractmethod
    def get_by_id(self, sale_id: int) -> Sale | None:
        """Return a sale by its ID, or None if not found."""

    @abstractmethod
    def save(self, sale: Sale) -> None:
        """Persist a new or updated sale, assigning an ID to new ones."""
