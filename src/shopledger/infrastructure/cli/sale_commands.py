"""CLI commands for the Sale aggregate."""

from __future__ import annotations

import click

from shopledger.application.add_sale_item import AddSaleItemHandler
from shopledger.application.advance_sale import AdvanceSaleHandler
from shopledger.application.cancel_sale import CancelSaleHandler
from shopledger.application.create_sale import CreateSaleHandler
from shopledger.application.dto import SaleDTO, SaleItemSpec
from shopledger.application.show_sale import ShowSaleHandler
from shopledger.domain.exceptions import DomainException
from shopledger.domain.model.sale import SaleStatus
from shopledger.infrastructure.bootstrap import (
    clock,
    lock_manager,
    refund_repository,
    sale_repository,
    stock_ledger,
)
from shopledger.infrastructure.cli.options import shop_option, unwrap
from shopledger.infrastructure.config import Settings


def _parse_items(raw: str, tax_rate: str) -> list[SaleItemSpec]:
    """Parse 'TSHIRT/RED-M:2@19.99,MUG:1@7.50' into SaleItemSpec list."""
    specs: list[SaleItemSpec] = []
    for entry in raw.split(","):
        entry = entry.strip()
        if ":" not in entry or "@" not in entry:
            raise click.BadParameter(
                f"Invalid item format '{entry}'. Expected 'Product[/Variant]:Qty@Price'."
            )
        product, rest = entry.rsplit(":", 1)
        qty_str, price = rest.split("@", 1)
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for product '{product}'."
            )
        product_id, _, variant_id = product.strip().partition("/")
        specs.append(
            SaleItemSpec(
                product_id=product_id,
                variant_id=variant_id or None,
                quantity=qty,
                unit_price=price.strip(),
                tax_rate=tax_rate,
            )
        )
    return specs


def _display_sale(dto: SaleDTO) -> None:
    """Shared formatting for displaying a sale."""
    click.echo(f"Sale #{dto.id} {dto.sale_number}  (status={dto.status})")
    if dto.customer_name:
        click.echo(f"Customer: {dto.customer_name}")
    click.echo(f"Created:  {dto.created_at}")
    click.echo()
    click.echo(
        f"  {'#':<4} {'Product':<24} {'Qty':>5} {'Refunded':>9} {'Price':>10} {'Total':>10}"
    )
    click.echo(f"  {'-'*67}")
    for item in dto.items:
        product = item.product_id if item.variant_id is None else f"{item.product_id}/{item.variant_id}"
        click.echo(
            f"  {item.id:<4} {product:<24} {item.quantity:>5} {item.refunded:>9} "
            f"{item.unit_price:>10} {item.line_total:>10}"
        )
    click.echo(f"  {'-'*67}")
    click.echo(f"  {'Subtotal':<34} {dto.subtotal:>32}")
    click.echo(f"  {'Tax':<34} {dto.tax:>32}")
    click.echo(f"  {'Sale Total':<34} {dto.total:>32}")


@click.command("create")
@shop_option
@click.option("--items", required=True, help="Items as 'Product[/Variant]:Qty@Price,...'.")
@click.option("--customer", default="", help="Customer name.")
@click.option("--currency", default="USD", show_default=True, help="Sale currency.")
@click.option("--tax-rate", default="0", show_default=True, help="Tax rate in percent, applied to every item.")
@click.option("--shipping", default=None, help="Shipping amount.")
@click.option("--discount", default=None, help="Sale-level discount amount.")
@click.pass_obj
def sale_create(
    settings: Settings,
    shop_id: str,
    items: str,
    customer: str,
    currency: str,
    tax_rate: str,
    shipping: str | None,
    discount: str | None,
) -> None:
    """Create a draft sale; every item is sold from stock at once."""
    specs = _parse_items(items, tax_rate)

    handler = CreateSaleHandler(
        sale_repo=sale_repository(settings),
        ledger=stock_ledger(settings),
        clock=clock(),
    )

    try:
        dto = handler.handle(
            shop_id=shop_id,
            item_specs=specs,
            customer_name=customer,
            currency=currency,
            shipping=shipping,
            discount=discount,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_sale(dto)


@click.command("add-item")
@shop_option
@click.option("--id", "sale_id", required=True, type=int, help="Sale ID.")
@click.option("--product", required=True, help="Product ID.")
@click.option("--variant", default=None, help="Variant ID.")
@click.option("--quantity", required=True, type=int, help="Units to sell.")
@click.option("--price", required=True, help="Unit price (e.g. 19.99).")
@click.option("--tax-rate", default="0", show_default=True, help="Tax rate in percent.")
@click.option("--discount", default=None, help="Line discount amount.")
@click.pass_obj
def sale_add_item(
    settings: Settings,
    shop_id: str,
    sale_id: int,
    product: str,
    variant: str | None,
    quantity: int,
    price: str,
    tax_rate: str,
    discount: str | None,
) -> None:
    """Sell one more item on a draft or pending sale."""
    handler = AddSaleItemHandler(
        sale_repo=sale_repository(settings),
        ledger=stock_ledger(settings),
        locks=lock_manager(settings),
    )
    spec = SaleItemSpec(
        product_id=product,
        variant_id=variant,
        quantity=quantity,
        unit_price=price,
        tax_rate=tax_rate,
        discount=discount,
    )
    item = unwrap(handler.handle(shop_id, sale_id, spec))
    click.echo(f"Added item #{item.id} to sale #{sale_id}: {item.quantity} x {item.unit_price}")


def _advance(settings: Settings, shop_id: str, sale_id: int, target: SaleStatus) -> None:
    handler = AdvanceSaleHandler(
        sale_repo=sale_repository(settings),
        locks=lock_manager(settings),
    )

    try:
        status = handler.handle(shop_id, sale_id, target)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Sale #{sale_id} is now {status.value}.")


@click.command("submit")
@shop_option
@click.option("--id", "sale_id", required=True, type=int, help="Sale ID to submit.")
@click.pass_obj
def sale_submit(settings: Settings, shop_id: str, sale_id: int) -> None:
    """Submit a draft sale (draft -> pending)."""
    _advance(settings, shop_id, sale_id, SaleStatus.PENDING)


@click.command("confirm")
@shop_option
@click.option("--id", "sale_id", required=True, type=int, help="Sale ID to confirm.")
@click.pass_obj
def sale_confirm(settings: Settings, shop_id: str, sale_id: int) -> None:
    """Confirm a pending sale."""
    _advance(settings, shop_id, sale_id, SaleStatus.CONFIRMED)


@click.command("complete")
@shop_option
@click.option("--id", "sale_id", required=True, type=int, help="Sale ID to complete.")
@click.pass_obj
def sale_complete(settings: Settings, shop_id: str, sale_id: int) -> None:
    """Complete a confirmed sale."""
    _advance(settings, shop_id, sale_id, SaleStatus.COMPLETED)


@click.command("cancel")
@shop_option
@click.option("--id", "sale_id", required=True, type=int, help="Sale ID to cancel.")
@click.option("--reason", default="", help="Why the sale is cancelled.")
@click.pass_obj
def sale_cancel(settings: Settings, shop_id: str, sale_id: int, reason: str) -> None:
    """Cancel a sale (puts its unrefunded items back in stock)."""
    handler = CancelSaleHandler(
        sale_repo=sale_repository(settings),
        refund_repo=refund_repository(settings),
        ledger=stock_ledger(settings),
        locks=lock_manager(settings),
        clock=clock(),
    )

    try:
        handler.handle(shop_id, sale_id, reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Sale #{sale_id} cancelled.")


@click.command("show")
@shop_option
@click.option("--id", "sale_id", required=True, type=int, help="Sale ID to display.")
@click.pass_obj
def sale_show(settings: Settings, shop_id: str, sale_id: int) -> None:
    """Show details of an existing sale."""
    handler = ShowSaleHandler(
        sale_repo=sale_repository(settings),
        refund_repo=refund_repository(settings),
    )

    try:
        dto = handler.handle(shop_id, sale_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_sale(dto)
