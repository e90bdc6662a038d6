"""Application service: Create Sale use case.

All items of the new sale are sold through a single ledger batch.  If
any line cannot be sold, no stock moves and no sale is persisted.
"""

from __future__ import annotations

import logging

from shopledger.application.dto import SaleDTO, SaleItemSpec
from shopledger.application.stock_ledger import LedgerOperation, StockLedger
from shopledger.domain.clock import Clock
from shopledger.domain.model.sale import Sale, SaleItem
from shopledger.domain.model.stock import Stock
from shopledger.domain.model.value_objects import Money, parse_decimal
from shopledger.domain.repository.sale_repository import SaleRepository
from shopledger.domain.service.ledger import OperationKind

logger = logging.getLogger(__name__)


class CreateSaleHandler:

    def __init__(
        self,
        sale_repo: SaleRepository,
        ledger: StockLedger,
        clock: Clock,
    ) -> None:
        self._sale_repo = sale_repo
        self._ledger = ledger
        self._clock = clock

    def handle(
        self,
        shop_id: str,
        item_specs: list[SaleItemSpec],
        customer_name: str = "",
        currency: str = "USD",
        shipping: str | None = None,
        discount: str | None = None,
    ) -> SaleDTO:
        """Create a draft sale, selling every requested line.

        Steps:
        1. Build the sale and validate every line (nothing is sold yet).
        2. Sell all lines in one ledger batch.
        3. Inside the batch commit, attach the items and persist the sale.
        """
        sale = Sale.create(
            shop_id=shop_id,
            created_at=self._clock.now(),
            currency=currency,
            customer_name=customer_name,
            shipping_amount=Money.of(shipping, currency) if shipping else None,
            discount_amount=Money.of(discount, currency) if discount else None,
        )
        sale.id = self._sale_repo.next_id()

        first_id = sale.next_item_id
        items = [
            build_sale_item(sale, spec, item_id=first_id + offset)
            for offset, spec in enumerate(item_specs)
        ]

        def commit(_stocks: list[Stock]) -> None:
            for item in items:
                sale.attach(item)
            sale.assign_number()
            self._sale_repo.save(sale)

        if items:
            self._ledger.apply(sell_operations(sale, items), on_commit=commit)
        else:
            commit([])

        logger.info("Created sale %s with %d item(s)", sale.sale_number, len(items))
        return SaleDTO.from_sale(sale)


def build_sale_item(sale: Sale, spec: SaleItemSpec, item_id: int | None = None) -> SaleItem:
    return sale.build_item(
        product_id=spec.product_id,
        variant_id=spec.variant_id,
        quantity=spec.quantity,
        unit_price=Money.of(spec.unit_price, sale.currency),
        tax_rate=parse_decimal(spec.tax_rate, "tax rate"),
        discount=Money.of(spec.discount, sale.currency) if spec.discount else None,
        item_id=item_id,
    )


def sell_operations(sale: Sale, items: list[SaleItem]) -> list[LedgerOperation]:
    return [
        LedgerOperation(
            kind=OperationKind.SELL,
            key=sale.stock_key(item),
            quantity=item.quantity.value,
            reason="sale",
            reference=f"sale:{sale.id}/item:{item.id}",
        )
        for item in items
    ]
