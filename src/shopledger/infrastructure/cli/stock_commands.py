"""CLI commands for the stock ledger."""

from __future__ import annotations

import click

from shopledger.application.stock_reports import StockReportHandler
from shopledger.domain.exceptions import DomainException
from shopledger.domain.model.stock import Stock
from shopledger.domain.model.value_objects import parse_decimal
from shopledger.infrastructure.bootstrap import (
    movement_repository,
    stock_ledger,
    stock_repository,
)
from shopledger.infrastructure.cli.options import (
    shop_option,
    stock_key,
    stock_key_options,
    unwrap,
)
from shopledger.infrastructure.config import Settings


def _echo_stock(action: str, stock: Stock) -> None:
    click.echo(
        f"{action} {stock.key}: on hand {stock.on_hand}, "
        f"reserved {stock.reserved}, available {stock.available} ({stock.status.value})"
    )


@click.command("restock")
@stock_key_options
@click.option("--quantity", required=True, type=int, help="Units received.")
@click.option("--unit-cost", default=None, help="Purchase cost per unit (e.g. 4.50).")
@click.option("--reason", default="restock", show_default=True, help="Movement reason.")
@click.pass_obj
def stock_restock(
    settings: Settings,
    shop_id: str,
    product: str,
    variant: str | None,
    quantity: int,
    unit_cost: str | None,
    reason: str,
) -> None:
    """Receive units into stock."""
    try:
        cost = parse_decimal(unit_cost, "unit cost") if unit_cost is not None else None
    except DomainException as exc:
        raise click.ClickException(str(exc))

    ledger = stock_ledger(settings)
    stock = unwrap(
        ledger.restock(stock_key(shop_id, product, variant), quantity, unit_cost=cost, reason=reason)
    )
    _echo_stock("Restocked", stock)
    click.echo(f"Average cost: {stock.average_cost:.4f}")


@click.command("reserve")
@stock_key_options
@click.option("--quantity", required=True, type=int, help="Units to hold.")
@click.option("--reference", default=None, help="What the units are held for.")
@click.pass_obj
def stock_reserve(
    settings: Settings,
    shop_id: str,
    product: str,
    variant: str | None,
    quantity: int,
    reference: str | None,
) -> None:
    """Hold units without removing them from stock."""
    ledger = stock_ledger(settings)
    stock = unwrap(ledger.reserve(stock_key(shop_id, product, variant), quantity, reference))
    _echo_stock("Reserved", stock)


@click.command("release")
@stock_key_options
@click.option("--quantity", required=True, type=int, help="Units to give back.")
@click.option("--reference", default=None, help="What the units were held for.")
@click.pass_obj
def stock_release(
    settings: Settings,
    shop_id: str,
    product: str,
    variant: str | None,
    quantity: int,
    reference: str | None,
) -> None:
    """Release previously reserved units."""
    ledger = stock_ledger(settings)
    stock = unwrap(ledger.release(stock_key(shop_id, product, variant), quantity, reference))
    _echo_stock("Released", stock)


@click.command("sell")
@stock_key_options
@click.option("--quantity", required=True, type=int, help="Units sold.")
@click.option("--reference", default=None, help="Sale reference.")
@click.pass_obj
def stock_sell(
    settings: Settings,
    shop_id: str,
    product: str,
    variant: str | None,
    quantity: int,
    reference: str | None,
) -> None:
    """Remove sold units from stock (outside of a sale)."""
    ledger = stock_ledger(settings)
    stock = unwrap(ledger.sell(stock_key(shop_id, product, variant), quantity, reference))
    _echo_stock("Sold", stock)


@click.command("thresholds")
@stock_key_options
@click.option("--low-stock", "low_stock_threshold", type=int, default=None, help="Low-stock threshold.")
@click.option("--reorder-point", type=int, default=None, help="Reorder at or below this on-hand level.")
@click.option("--reorder-quantity", type=int, default=None, help="Units to order when reordering.")
@click.pass_obj
def stock_thresholds(
    settings: Settings,
    shop_id: str,
    product: str,
    variant: str | None,
    low_stock_threshold: int | None,
    reorder_point: int | None,
    reorder_quantity: int | None,
) -> None:
    """Configure the low-stock and reorder thresholds of a stock."""
    ledger = stock_ledger(settings)
    stock = unwrap(
        ledger.set_thresholds(
            stock_key(shop_id, product, variant),
            low_stock_threshold=low_stock_threshold,
            reorder_point=reorder_point,
            reorder_quantity=reorder_quantity,
        )
    )
    click.echo(
        f"{stock.key}: low stock at {stock.low_stock_threshold}, "
        f"reorder {stock.reorder_quantity} at {stock.reorder_point}"
    )


@click.command("show")
@shop_option
@click.pass_obj
def stock_show(settings: Settings, shop_id: str) -> None:
    """Show stock levels of a shop."""
    handler = StockReportHandler(
        stock_repo=stock_repository(settings),
        movement_repo=movement_repository(settings),
    )
    lines = handler.list_stock(shop_id)

    if not lines:
        click.echo("No stock records found.")
        return

    click.echo(
        f"{'Stock':<30} {'On hand':>8} {'Reserved':>9} {'Available':>10} "
        f"{'Avg cost':>10} {'Status':<13}"
    )
    click.echo("-" * 85)
    for line in lines:
        click.echo(
            f"{line.stock_id:<30} {line.on_hand:>8} {line.reserved:>9} "
            f"{line.available:>10} {line.average_cost:>10} {line.status:<13}"
        )


@click.command("movements")
@stock_key_options
@click.pass_obj
def stock_movements(
    settings: Settings, shop_id: str, product: str, variant: str | None
) -> None:
    """Show the movement history of one stock."""
    handler = StockReportHandler(
        stock_repo=stock_repository(settings),
        movement_repo=movement_repository(settings),
    )
    movements = handler.movements(stock_key(shop_id, product, variant))

    if not movements:
        click.echo("No movements recorded.")
        return

    click.echo(
        f"{'When':<24} {'Kind':<8} {'Qty':>5} {'On hand':>8} {'Reserved':>9}  {'Reference'}"
    )
    click.echo("-" * 80)
    for m in movements:
        click.echo(
            f"{m.occurred_at:<24} {m.kind:<8} {m.quantity:>5} "
            f"{m.on_hand_after:>8} {m.reserved_after:>9}  {m.reference}"
        )
