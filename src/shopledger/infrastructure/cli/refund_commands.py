"""CLI commands for the Refund aggregate."""

from __future__ import annotations

import click

from shopledger.application.add_refund_item import AddRefundItemHandler
from shopledger.application.cancel_refund import CancelRefundHandler
from shopledger.application.create_refund import CreateRefundHandler
from shopledger.application.dto import RefundDTO, RefundItemSpec
from shopledger.application.fail_refund import FailRefundHandler
from shopledger.application.process_refund import ProcessRefundHandler
from shopledger.application.show_refund import ShowRefundHandler
from shopledger.domain.exceptions import DomainException
from shopledger.infrastructure.bootstrap import (
    clock,
    lock_manager,
    payment_repository,
    refund_repository,
    sale_repository,
    stock_ledger,
)
from shopledger.infrastructure.cli.options import shop_option, unwrap
from shopledger.infrastructure.config import Settings


def _parse_refund_items(raw: str, reason: str) -> list[RefundItemSpec]:
    """Parse '1:2,3:1' (sale item number : quantity) into RefundItemSpec list."""
    specs: list[RefundItemSpec] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'SaleItem:Quantity'."
            )
        item_str, qty_str = pair.split(":", 1)
        try:
            specs.append(
                RefundItemSpec(sale_item_id=int(item_str), quantity=int(qty_str), reason=reason)
            )
        except ValueError:
            raise click.BadParameter(f"Invalid refund item '{pair}'.")
    return specs


def _display_refund(dto: RefundDTO) -> None:
    click.echo(f"Refund #{dto.id} {dto.refund_number}  (status={dto.status})")
    click.echo(f"Sale #{dto.sale_id}, payment #{dto.payment_id}, reason: {dto.reason}")
    if dto.items:
        click.echo()
        click.echo(f"  {'Sale item':<10} {'Qty':>5} {'Price':>10} {'Amount':>10}")
        click.echo(f"  {'-'*38}")
        for item in dto.items:
            click.echo(
                f"  {item.sale_item_id:<10} {item.quantity:>5} "
                f"{item.unit_price:>10} {item.refund_amount:>10}"
            )
        click.echo(f"  {'-'*38}")
    click.echo(f"  {'Refund Total':<16} {dto.amount:>21}")


@click.command("create")
@shop_option
@click.option("--payment", "payment_id", required=True, type=int, help="Payment ID to refund.")
@click.option("--items", default=None, help="Items as 'SaleItem:Qty,...'; omit with --amount for a full refund.")
@click.option("--amount", default=None, help="Money-only partial refund amount.")
@click.option("--reason", default="customer_request", show_default=True, help="Refund reason.")
@click.pass_obj
def refund_create(
    settings: Settings,
    shop_id: str,
    payment_id: int,
    items: str | None,
    amount: str | None,
    reason: str,
) -> None:
    """Create a pending refund (itemized, amount-only, or full)."""
    specs = _parse_refund_items(items, reason) if items else None

    handler = CreateRefundHandler(
        sale_repo=sale_repository(settings),
        payment_repo=payment_repository(settings),
        refund_repo=refund_repository(settings),
        locks=lock_manager(settings),
        clock=clock(),
    )

    try:
        dto = handler.handle(shop_id, payment_id, items=specs, amount=amount, reason=reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_refund(dto)


@click.command("add-item")
@shop_option
@click.option("--id", "refund_id", required=True, type=int, help="Refund ID.")
@click.option("--sale-item", "sale_item_id", required=True, type=int, help="Sale item number.")
@click.option("--quantity", required=True, type=int, help="Units to refund.")
@click.option("--reason", default="", help="Why this item is refunded.")
@click.option("--price", default=None, help="Refund price per unit (defaults to the sale price).")
@click.pass_obj
def refund_add_item(
    settings: Settings,
    shop_id: str,
    refund_id: int,
    sale_item_id: int,
    quantity: int,
    reason: str,
    price: str | None,
) -> None:
    """Add a sale item to a pending refund (clamped to what is refundable)."""
    handler = AddRefundItemHandler(
        sale_repo=sale_repository(settings),
        refund_repo=refund_repository(settings),
        locks=lock_manager(settings),
    )
    item = unwrap(
        handler.handle(shop_id, refund_id, sale_item_id, quantity, reason=reason, unit_price=price)
    )
    click.echo(
        f"Refund #{refund_id}: {item.quantity_refunded} of sale item "
        f"#{sale_item_id} added ({item.refund_amount})"
    )
    if item.quantity_refunded < quantity:
        click.echo(f"Requested {quantity}, only {item.quantity_refunded} remained refundable.")


@click.command("process")
@shop_option
@click.option("--id", "refund_id", required=True, type=int, help="Refund ID to process.")
@click.option("--processor-reference", default=None, help="Payment processor reference.")
@click.pass_obj
def refund_process(
    settings: Settings, shop_id: str, refund_id: int, processor_reference: str | None
) -> None:
    """Process a pending refund (restocks its items)."""
    handler = ProcessRefundHandler(
        sale_repo=sale_repository(settings),
        payment_repo=payment_repository(settings),
        refund_repo=refund_repository(settings),
        ledger=stock_ledger(settings),
        locks=lock_manager(settings),
        clock=clock(),
    )

    try:
        dto = handler.handle(shop_id, refund_id, processor_reference)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Refund {dto.refund_number} processed: {dto.amount} returned.")


@click.command("cancel")
@shop_option
@click.option("--id", "refund_id", required=True, type=int, help="Refund ID to cancel.")
@click.option("--reason", default="", help="Why the refund is cancelled.")
@click.pass_obj
def refund_cancel(settings: Settings, shop_id: str, refund_id: int, reason: str) -> None:
    """Cancel a pending refund."""
    handler = CancelRefundHandler(
        refund_repo=refund_repository(settings),
        locks=lock_manager(settings),
    )

    try:
        handler.handle(shop_id, refund_id, reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Refund #{refund_id} cancelled.")


@click.command("fail")
@shop_option
@click.option("--id", "refund_id", required=True, type=int, help="Refund ID that failed.")
@click.option("--reason", required=True, help="Why the processor rejected the refund.")
@click.pass_obj
def refund_fail(settings: Settings, shop_id: str, refund_id: int, reason: str) -> None:
    """Mark a pending refund as failed at the payment processor."""
    handler = FailRefundHandler(
        refund_repo=refund_repository(settings),
        locks=lock_manager(settings),
    )

    try:
        dto = handler.handle(shop_id, refund_id, reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Refund {dto.refund_number} marked failed: {reason}")


@click.command("show")
@shop_option
@click.option("--id", "refund_id", required=True, type=int, help="Refund ID to display.")
@click.pass_obj
def refund_show(settings: Settings, shop_id: str, refund_id: int) -> None:
    """Show details of a refund."""
    handler = ShowRefundHandler(refund_repo=refund_repository(settings))

    try:
        dto = handler.handle(shop_id, refund_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_refund(dto)
