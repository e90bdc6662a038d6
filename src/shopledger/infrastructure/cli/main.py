from __future__ import annotations

from pathlib import Path

import click

from shopledger.infrastructure.cli.payment_commands import payment_record
from shopledger.infrastructure.cli.refund_commands import (
    refund_add_item,
    refund_cancel,
    refund_create,
    refund_fail,
    refund_process,
    refund_show,
)
from shopledger.infrastructure.cli.report_commands import (
    report_low_stock,
    report_reorder,
    report_value,
)
from shopledger.infrastructure.cli.sale_commands import (
    sale_add_item,
    sale_cancel,
    sale_complete,
    sale_confirm,
    sale_create,
    sale_show,
    sale_submit,
)
from shopledger.infrastructure.cli.stock_commands import (
    stock_movements,
    stock_release,
    stock_reserve,
    stock_restock,
    stock_sell,
    stock_show,
    stock_thresholds,
)
from shopledger.infrastructure.config import (
    LOG_LEVELS,
    ConfigurationError,
    Settings,
    parse_release_policy,
)
from shopledger.infrastructure.logging_config import configure_logging


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding the JSON data files.",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging verbosity.",
)
@click.option(
    "--release-policy",
    type=click.Choice(["clamp", "strict"], case_sensitive=False),
    default=None,
    help="Releasing more than is reserved: clamp to zero or reject.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    data_dir: Path | None,
    log_level: str | None,
    release_policy: str | None,
) -> None:
    """shopledger - per-shop stock ledger, sales and refunds"""
    try:
        settings = Settings.from_env().override(
            data_dir=data_dir,
            log_level=log_level.upper() if log_level else None,
            release_policy=parse_release_policy(release_policy) if release_policy else None,
        )
    except ConfigurationError as exc:
        raise click.UsageError(str(exc))

    configure_logging(settings.log_level)
    ctx.obj = settings


@cli.group()
def stock() -> None:
    """Move and inspect stock."""


@cli.group()
def sale() -> None:
    """Manage sales."""


@cli.group()
def payment() -> None:
    """Record payments."""


@cli.group()
def refund() -> None:
    """Manage refunds."""


@cli.group()
def report() -> None:
    """Stock reports."""


# Register subcommands
stock.add_command(stock_movements)
stock.add_command(stock_release)
stock.add_command(stock_reserve)
stock.add_command(stock_restock)
stock.add_command(stock_sell)
stock.add_command(stock_show)
stock.add_command(stock_thresholds)
sale.add_command(sale_add_item)
sale.add_command(sale_cancel)
sale.add_command(sale_complete)
sale.add_command(sale_confirm)
sale.add_command(sale_create)
sale.add_command(sale_show)
sale.add_command(sale_submit)
payment.add_command(payment_record)
refund.add_command(refund_add_item)
refund.add_command(refund_cancel)
refund.add_command(refund_create)
refund.add_command(refund_fail)
refund.add_command(refund_process)
refund.add_command(refund_show)
report.add_command(report_low_stock)
report.add_command(report_reorder)
report.add_command(report_value)
