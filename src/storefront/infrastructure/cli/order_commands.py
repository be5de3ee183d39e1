"""CLI commands for the Order aggregate."""

from __future__ import annotations

import json

import click

from storefront.application.dto import OrderDTO, OrderItemSpec
from storefront.domain.exceptions import DomainException
from storefront.domain.model.value_objects import ShippingAddress
from storefront.infrastructure.bootstrap import (
    create_order_handler,
    show_order_handler,
    update_order_status_handler,
)


def _parse_items(raw: str) -> list[OrderItemSpec]:
    """Parse 'prod_a:3,prod_b:5' into OrderItemSpec list."""
    specs: list[OrderItemSpec] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'ProductId:Quantity'."
            )
        product_id, qty_str = pair.rsplit(":", 1)
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for product '{product_id}'."
            )
        specs.append(OrderItemSpec(product_id=product_id.strip(), quantity=qty))
    return specs


@click.command("create")
@click.option("--user", "user_id", required=True, help="User ID.")
@click.option("--items", default=None, help="Items as 'ProductId:Qty,...' (defaults to the cart).")
@click.option("--name", required=True, help="Recipient name.")
@click.option("--line1", required=True, help="Street address.")
@click.option("--city", required=True, help="City.")
@click.option("--state", required=True, help="State.")
@click.option("--pincode", required=True, help="Postal code.")
@click.option("--email", default=None, help="Customer email for the provider receipt.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the wire response.")
def order_create(
    user_id: str,
    items: str | None,
    name: str,
    line1: str,
    city: str,
    state: str,
    pincode: str,
    email: str | None,
    as_json: bool,
) -> None:
    """Create an order and its payment intent."""
    specs = _parse_items(items) if items else None

    try:
        shipping = ShippingAddress.from_mapping(
            {"name": name, "line1": line1, "city": city, "state": state, "pincode": pincode}
        )
        dto = create_order_handler().handle(
            user_id=user_id, shipping=shipping, items=specs, customer_email=email
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if as_json:
        click.echo(json.dumps(dto.to_wire()))
        return
    click.echo(f"Order #{dto.order_id} created  (status=Pending Payment)")
    click.echo(f"Amount:   {dto.currency} {dto.amount}")
    click.echo(f"Provider: {dto.provider_order_ref}")
    if dto.checkout_url:
        click.echo(f"Checkout: {dto.checkout_url}")


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order #{dto.id}  (status={dto.status})")
    click.echo(f"User:     {dto.user_id}")
    click.echo(f"Ship to:  {dto.shipping}")
    click.echo(f"Created:  {dto.created_at}")
    if dto.tracking_number:
        carrier = f" via {dto.carrier_name}" if dto.carrier_name else ""
        click.echo(f"Tracking: {dto.tracking_number}{carrier}")
    click.echo()
    click.echo(f"  {'Product':<20} {'Qty':>5} {'Price':>14} {'Total':>14}")
    click.echo(f"  {'-'*55}")
    for item in dto.items:
        click.echo(
            f"  {item.product_id:<20} {item.quantity:>5} {item.unit_price:>14} {item.line_total:>14}"
        )
    click.echo(f"  {'-'*55}")
    click.echo(f"  {'Order Total':<27} {dto.total:>28}")


@click.command("show")
@click.option("--id", "order_id", type=int, default=None, help="Order ID to display.")
@click.option("--user", "user_id", default=None, help="List (or restrict to) this user's orders.")
def order_show(order_id: int | None, user_id: str | None) -> None:
    """Show one order, or every order of a user."""
    if order_id is None and user_id is None:
        raise click.UsageError("Give --id or --user")

    handler = show_order_handler()
    try:
        if order_id is not None:
            _display_order(handler.handle(order_id, user_id=user_id))
            return
        orders = handler.list_for_user(user_id)  # type: ignore[arg-type]
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not orders:
        click.echo(f"No orders for {user_id}.")
    for dto in orders:
        _display_order(dto)
        click.echo()


@click.command("status")
@click.option("--id", "order_id", type=int, required=True, help="Order ID.")
@click.option("--status", required=True, help="New status, e.g. 'Shipped'.")
@click.option("--tracking-number", default=None, help="Carrier tracking number.")
@click.option("--carrier", "carrier_name", default=None, help="Carrier name.")
@click.option("--tracking-url", default=None, help="Tracking URL.")
def order_status(
    order_id: int,
    status: str,
    tracking_number: str | None,
    carrier_name: str | None,
    tracking_url: str | None,
) -> None:
    """Change an order's status (admin)."""
    try:
        change = update_order_status_handler().handle(
            order_id,
            status,
            tracking_number=tracking_number,
            carrier_name=carrier_name,
            tracking_url=tracking_url,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if change.changed:
        click.echo(f"Order #{order_id}: {change.previous_status} -> {change.status}")
    else:
        click.echo(f"Order #{order_id} already {change.status}; tracking updated.")
