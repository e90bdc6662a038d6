"""CLI commands for payments."""

from __future__ import annotations

import click

from shopledger.application.record_payment import RecordPaymentHandler
from shopledger.domain.exceptions import DomainException
from shopledger.infrastructure.bootstrap import (
    clock,
    lock_manager,
    payment_repository,
    sale_repository,
)
from shopledger.infrastructure.cli.options import shop_option
from shopledger.infrastructure.config import Settings


@click.command("record")
@shop_option
@click.option("--sale", "sale_id", required=True, type=int, help="Sale ID being paid.")
@click.option("--amount", default=None, help="Amount paid (defaults to the outstanding balance).")
@click.option("--method", default="cash", show_default=True, help="Payment method.")
@click.option("--reference", default=None, help="Processor or receipt reference.")
@click.pass_obj
def payment_record(
    settings: Settings,
    shop_id: str,
    sale_id: int,
    amount: str | None,
    method: str,
    reference: str | None,
) -> None:
    """Record a completed payment against a sale."""
    handler = RecordPaymentHandler(
        sale_repo=sale_repository(settings),
        payment_repo=payment_repository(settings),
        locks=lock_manager(settings),
        clock=clock(),
    )

    try:
        payment = handler.handle(
            shop_id, sale_id, amount=amount, method=method, reference=reference
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Payment #{payment.id} of {payment.amount} recorded for sale #{sale_id}")
