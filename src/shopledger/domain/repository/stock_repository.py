"""Abstract repository for the Stock aggregate.

Defined in the domain layer so the domain never depends on
infrastructure.  Writes are compare-and-swap on ``Stock.version``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from shopledger.domain.model.stock import Stock, StockKey


class StockRepository(ABC):

    @abstractmethod
    def get(self, key: StockKey) -> Stock | None:
        """Return the stock record for a product/variant, or None."""

    @abstractmethod
    def list_by_shop(self, shop_id: str) -> list[Stock]:
        """Return every stock record of a shop, ordered by stock id."""

    @abstractmethod
    def save_all(self, stocks: list[Stock]) -> list[Stock]:
        """Atomically persist several stock records.

        Each record's ``version`` is the version it was loaded at (0 for a
        record that does not exist yet).  If any stored version differs,
        raise ConcurrencyConflictError and write nothing.  Otherwise store
        every record with ``version + 1`` and return the stored records.
        """
