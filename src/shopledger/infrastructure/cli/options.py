"""Options and error translation shared by the command modules."""

from __future__ import annotations

from typing import Callable, TypeVar

import click

from shopledger.application.stock_ledger import LedgerResult
from shopledger.domain.exceptions import ValidationError
from shopledger.domain.model.stock import StockKey

T = TypeVar("T")
F = TypeVar("F", bound=Callable)


def shop_option(func: F) -> F:
    return click.option(
        "--shop", "shop_id", required=True, envvar="SHOPLEDGER_SHOP", help="Shop ID."
    )(func)


def stock_key_options(func: F) -> F:
    """--shop / --product / --variant, identifying one Stock row."""
    func = click.option("--variant", default=None, help="Variant ID (omit for simple products).")(func)
    func = click.option("--product", required=True, help="Product ID.")(func)
    return shop_option(func)


def stock_key(shop_id: str, product: str, variant: str | None) -> StockKey:
    try:
        return StockKey(shop_id, product, variant)
    except ValidationError as exc:
        raise click.BadParameter(str(exc))


def unwrap(result: LedgerResult[T]) -> T:
    """Return the value of a successful result, or exit with its error."""
    if not result.ok:
        raise click.ClickException(str(result.error))
    return result.value  # type: ignore[return-value]
