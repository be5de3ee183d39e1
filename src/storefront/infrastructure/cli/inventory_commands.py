"""CLI commands for the inventory ledger."""

from __future__ import annotations

import click

from storefront.domain.exceptions import DomainException
from storefront.infrastructure.bootstrap import show_inventory_handler


@click.command("show")
def inventory_show() -> None:
    """Show current stock levels and prices."""
    try:
        lines = show_inventory_handler().handle()
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not lines:
        click.echo("No inventory records found.")
        return

    click.echo(f"{'Product':<20} {'SKU':<24} {'Stock':>8} {'Price':>12}")
    click.echo("-" * 67)
    for line in lines:
        click.echo(
            f"{line.product_id:<20} {line.sku:<24} {line.stock_level:>8} {line.current_price:>12}"
        )
