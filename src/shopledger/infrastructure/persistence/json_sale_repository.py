"""JSON-file-backed implementation of SaleRepository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from shopledger.domain.model.sale import Sale, SaleItem, SaleStatus
from shopledger.domain.model.value_objects import Money, Quantity
from shopledger.domain.repository.sale_repository import SaleRepository
from shopledger.infrastructure.persistence.json_file import JsonFile


class JsonSaleRepository(SaleRepository):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)
        self._last_issued = 0

    # --- SaleRepository interface ---------------------------------------------

    def next_id(self) -> int:
        with self._file.lock:
            stored = max((raw["id"] for raw in self._file.load()), default=0)
            self._last_issued = max(stored, self._last_issued) + 1
            return self._last_issued

    def get_by_id(self, sale_id: int) -> Sale | None:
        for raw in self._file.load():
            if raw["id"] == sale_id:
                return self._to_domain(raw)
        return None

    def save(self, sale: Sale) -> None:
        with self._file.lock:
            if sale.id is None:
                sale.id = self.next_id()
            records = self._file.load()

            # Upsert: replace if exists, otherwise append
            replaced = False
            for i, raw in enumerate(records):
                if raw["id"] == sale.id:
                    records[i] = self._to_raw(sale)
                    replaced = True
                    break
            if not replaced:
                records.append(self._to_raw(sale))
            self._file.persist(records)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(sale: Sale) -> dict:
        return {
            "id": sale.id,
            "shop_id": sale.shop_id,
            "sale_number": sale.sale_number,
            "status": sale.status.value,
            "currency": sale.currency,
            "customer_name": sale.customer_name,
            "shipping_amount": _amount(sale.shipping_amount),
            "discount_amount": _amount(sale.discount_amount),
            "created_at": sale.created_at.isoformat(),
            "paid_at": _iso(sale.paid_at),
            "cancelled_at": _iso(sale.cancelled_at),
            "refunded_at": _iso(sale.refunded_at),
            "notes": sale.notes,
            "items": [
                {
                    "id": item.id,
                    "product_id": item.product_id,
                    "variant_id": item.variant_id,
                    "quantity": item.quantity.value,
                    "unit_price": str(item.unit_price.amount),
                    "tax_rate": str(item.tax_rate),
                    "discount": _amount(item.discount),
                }
                for item in sale.items
            ],
        }

    @staticmethod
    def _to_domain(raw: dict) -> Sale:
        currency = raw.get("currency", "USD")
        items = [
            SaleItem(
                id=i["id"],
                product_id=i["product_id"],
                variant_id=i.get("variant_id"),
                quantity=Quantity(i["quantity"]),
                unit_price=Money(Decimal(i["unit_price"]), currency),
                tax_rate=Decimal(i.get("tax_rate", "0")),
                discount=_money(i.get("discount"), currency),
            )
            for i in raw["items"]
        ]
        return Sale(
            id=raw["id"],
            shop_id=raw["shop_id"],
            items=items,
            status=SaleStatus(raw["status"]),
            currency=currency,
            customer_name=raw.get("customer_name", ""),
            shipping_amount=_money(raw.get("shipping_amount"), currency),
            discount_amount=_money(raw.get("discount_amount"), currency),
            sale_number=raw.get("sale_number"),
            created_at=datetime.fromisoformat(raw["created_at"]),
            paid_at=_parse(raw.get("paid_at")),
            cancelled_at=_parse(raw.get("cancelled_at")),
            refunded_at=_parse(raw.get("refunded_at")),
            notes=raw.get("notes", ""),
        )


def _amount(money: Money | None) -> str | None:
    return str(money.amount) if money is not None else None


def _money(raw: str | None, currency: str) -> Money | None:
    return Money(Decimal(raw), currency) if raw is not None else None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
