"""CLI commands for stock reports."""

from __future__ import annotations

import click

from shopledger.application.stock_reports import StockReportHandler
from shopledger.infrastructure.bootstrap import movement_repository, stock_repository
from shopledger.infrastructure.cli.options import shop_option
from shopledger.infrastructure.config import Settings


def _handler(settings: Settings) -> StockReportHandler:
    return StockReportHandler(
        stock_repo=stock_repository(settings),
        movement_repo=movement_repository(settings),
    )


@click.command("low-stock")
@shop_option
@click.option("--out-only", is_flag=True, default=False, help="Only list stocks that ran out.")
@click.pass_obj
def report_low_stock(settings: Settings, shop_id: str, out_only: bool) -> None:
    """List stocks at or below their low-stock threshold."""
    handler = _handler(settings)
    lines = handler.list_out_of_stock(shop_id) if out_only else handler.list_low_stock(shop_id)

    if not lines:
        click.echo("Nothing is running low.")
        return

    click.echo(f"{'Stock':<30} {'On hand':>8} {'Available':>10} {'Status':<13}")
    click.echo("-" * 64)
    for line in lines:
        click.echo(f"{line.stock_id:<30} {line.on_hand:>8} {line.available:>10} {line.status:<13}")


@click.command("reorder")
@shop_option
@click.pass_obj
def report_reorder(settings: Settings, shop_id: str) -> None:
    """List stocks at or below their reorder point, with a suggested order."""
    lines = _handler(settings).list_needs_reorder(shop_id)

    if not lines:
        click.echo("Nothing needs reordering.")
        return

    click.echo(f"{'Stock':<30} {'On hand':>8} {'Reorder at':>11} {'Order':>7}")
    click.echo("-" * 59)
    for line in lines:
        click.echo(
            f"{line.stock_id:<30} {line.on_hand:>8} {line.reorder_point:>11} "
            f"{line.suggested_quantity:>7}"
        )


@click.command("value")
@shop_option
@click.option("--currency", default="USD", show_default=True, help="Currency of the costs.")
@click.pass_obj
def report_value(settings: Settings, shop_id: str, currency: str) -> None:
    """Total inventory value at average cost."""
    total = _handler(settings).total_inventory_value(shop_id, currency)
    click.echo(f"Inventory value for {shop_id}: {total}")
