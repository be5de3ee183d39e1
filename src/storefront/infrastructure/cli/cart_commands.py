"""CLI commands for per-user carts."""

from __future__ import annotations

import click

from storefront.application.dto import CartDTO
from storefront.domain.exceptions import DomainException
from storefront.infrastructure.bootstrap import cart_service


def _display_cart(dto: CartDTO) -> None:
    if not dto.items:
        click.echo(f"Cart for {dto.user_id} is empty.")
        return

    click.echo(f"Cart for {dto.user_id}")
    click.echo()
    click.echo(f"  {'Item':>5} {'Product':<20} {'Qty':>5} {'Price':>14} {'Total':>14} {'Stock':>6}")
    click.echo(f"  {'-'*69}")
    for line in dto.items:
        click.echo(
            f"  {line.cart_item_id:>5} {line.product_id:<20} {line.quantity:>5} "
            f"{line.unit_price:>14} {line.line_total:>14} {line.stock_level:>6}"
        )
    click.echo(f"  {'-'*69}")
    click.echo(f"  {'Cart Total':<32} {dto.total:>30}")


@click.command("add")
@click.option("--user", "user_id", required=True, help="User ID.")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--qty", "quantity", type=int, default=1, help="Quantity to add.")
def cart_add(user_id: str, product_id: str, quantity: int) -> None:
    """Add a product to the cart (merges with an existing line)."""
    try:
        dto = cart_service().add_item(user_id, product_id, quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_cart(dto)


@click.command("show")
@click.option("--user", "user_id", required=True, help="User ID.")
def cart_show(user_id: str) -> None:
    """Show the cart with current prices."""
    try:
        dto = cart_service().show(user_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_cart(dto)


@click.command("update")
@click.option("--user", "user_id", required=True, help="User ID.")
@click.option("--item", "cart_item_id", type=int, required=True, help="Cart item ID.")
@click.option("--qty", "quantity", type=int, required=True, help="New quantity.")
def cart_update(user_id: str, cart_item_id: int, quantity: int) -> None:
    """Change the quantity of a cart line."""
    try:
        dto = cart_service().update_item(user_id, cart_item_id, quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_cart(dto)


@click.command("remove")
@click.option("--user", "user_id", required=True, help="User ID.")
@click.option("--item", "cart_item_id", type=int, required=True, help="Cart item ID.")
def cart_remove(user_id: str, cart_item_id: int) -> None:
    """Remove a line from the cart."""
    try:
        dto = cart_service().remove_item(user_id, cart_item_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_cart(dto)


@click.command("clear")
@click.option("--user", "user_id", required=True, help="User ID.")
def cart_clear(user_id: str) -> None:
    """Empty the cart."""
    try:
        removed = cart_service().clear(user_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Removed {removed} line(s) from the cart.")
