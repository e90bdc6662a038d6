"""JSON-file-backed implementation of RefundRepository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from shopledger.domain.model.refund import Refund, RefundItem, RefundStatus
from shopledger.domain.model.value_objects import Money
from shopledger.domain.repository.refund_repository import RefundRepository
from shopledger.infrastructure.persistence.json_file import JsonFile


class JsonRefundRepository(RefundRepository):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    # --- RefundRepository interface -------------------------------------------

    def get_by_id(self, refund_id: int) -> Refund | None:
        for raw in self._file.load():
            if raw["id"] == refund_id:
                return self._to_domain(raw)
        return None

    def list_by_sale(self, sale_id: int) -> list[Refund]:
        return [self._to_domain(raw) for raw in self._file.load() if raw["sale_id"] == sale_id]

    def list_by_payment(self, payment_id: int) -> list[Refund]:
        return [
            self._to_domain(raw) for raw in self._file.load() if raw["payment_id"] == payment_id
        ]

    def count_numbered(self, shop_id: str, prefix: str) -> int:
        return sum(
            1
            for raw in self._file.load()
            if raw["shop_id"] == shop_id and (raw.get("refund_number") or "").startswith(prefix)
        )

    def save(self, refund: Refund) -> None:
        with self._file.lock:
            records = self._file.load()
            if refund.id is None:
                refund.id = max((raw["id"] for raw in records), default=0) + 1
            records = [raw for raw in records if raw["id"] != refund.id]
            records.append(self._to_raw(refund))
            records.sort(key=lambda raw: raw["id"])
            self._file.persist(records)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(refund: Refund) -> dict:
        return {
            "id": refund.id,
            "shop_id": refund.shop_id,
            "sale_id": refund.sale_id,
            "payment_id": refund.payment_id,
            "refund_number": refund.refund_number,
            "amount": str(refund.amount.amount),
            "currency": refund.amount.currency,
            "reason": refund.reason,
            "status": refund.status.value,
            "created_at": refund.created_at.isoformat(),
            "processed_at": refund.processed_at.isoformat() if refund.processed_at else None,
            "processor_reference": refund.processor_reference,
            "failure_reason": refund.failure_reason,
            "notes": refund.notes,
            "items": [
                {
                    "id": item.id,
                    "sale_item_id": item.sale_item_id,
                    "quantity_refunded": item.quantity_refunded,
                    "unit_price": str(item.unit_price.amount),
                    "reason": item.reason,
                }
                for item in refund.items
            ],
        }

    @staticmethod
    def _to_domain(raw: dict) -> Refund:
        currency = raw.get("currency", "USD")
        return Refund(
            id=raw["id"],
            shop_id=raw["shop_id"],
            sale_id=raw["sale_id"],
            payment_id=raw["payment_id"],
            amount=Money(Decimal(raw["amount"]), currency),
            reason=raw.get("reason", ""),
            status=RefundStatus(raw["status"]),
            items=[
                RefundItem(
                    id=i["id"],
                    sale_item_id=i["sale_item_id"],
                    quantity_refunded=i["quantity_refunded"],
                    unit_price=Money(Decimal(i["unit_price"]), currency),
                    reason=i.get("reason", ""),
                )
                for i in raw["items"]
            ],
            refund_number=raw.get("refund_number"),
            created_at=datetime.fromisoformat(raw["created_at"]),
            processed_at=datetime.fromisoformat(raw["processed_at"]) if raw.get("processed_at") else None,
            processor_reference=raw.get("processor_reference"),
            failure_reason=raw.get("failure_reason"),
            notes=raw.get("notes", ""),
        )
