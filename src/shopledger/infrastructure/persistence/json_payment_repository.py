"""JSON-file-backed implementation of PaymentRepository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from shopledger.domain.model.payment import Payment, PaymentStatus
from shopledger.domain.model.value_objects import Money
from shopledger.domain.repository.payment_repository import PaymentRepository
from shopledger.infrastructure.persistence.json_file import JsonFile


class JsonPaymentRepository(PaymentRepository):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    def get_by_id(self, payment_id: int) -> Payment | None:
        for raw in self._file.load():
            if raw["id"] == payment_id:
                return self._to_domain(raw)
        return None

    def list_by_sale(self, sale_id: int) -> list[Payment]:
        return [self._to_domain(raw) for raw in self._file.load() if raw["sale_id"] == sale_id]

    def save(self, payment: Payment) -> None:
        with self._file.lock:
            records = self._file.load()
            if payment.id is None:
                payment.id = max((raw["id"] for raw in records), default=0) + 1
            records = [raw for raw in records if raw["id"] != payment.id]
            records.append(self._to_raw(payment))
            records.sort(key=lambda raw: raw["id"])
            self._file.persist(records)

    @staticmethod
    def _to_raw(payment: Payment) -> dict:
        return {
            "id": payment.id,
            "shop_id": payment.shop_id,
            "sale_id": payment.sale_id,
            "amount": str(payment.amount.amount),
            "currency": payment.amount.currency,
            "method": payment.method,
            "status": payment.status.value,
            "reference": payment.reference,
            "paid_at": payment.paid_at.isoformat(),
        }

    @staticmethod
    def _to_domain(raw: dict) -> Payment:
        return Payment(
            id=raw["id"],
            shop_id=raw["shop_id"],
            sale_id=raw["sale_id"],
            amount=Money(Decimal(raw["amount"]), raw.get("currency", "USD")),
            method=raw.get("method", "cash"),
            status=PaymentStatus(raw["status"]),
            reference=raw.get("reference"),
            paid_at=datetime.fromisoformat(raw["paid_at"]),
        )
