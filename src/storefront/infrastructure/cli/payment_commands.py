"""CLI commands for the client payment-confirmation path."""

from __future__ import annotations

import click

from storefront.domain.exceptions import DomainException
from storefront.infrastructure.bootstrap import confirm_payment_handler


@click.command("confirm")
@click.option("--user", "user_id", required=True, help="User ID that owns the order.")
@click.option("--session", "session_id", required=True, help="Provider session/order reference.")
def payment_confirm(user_id: str, session_id: str) -> None:
    """Confirm a completed checkout and mark the order Paid."""
    try:
        result = confirm_payment_handler().handle(user_id, session_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if result.duplicate:
        click.echo(f"Order #{result.order_id} was already paid (status={result.status}).")
    else:
        click.echo(f"Order #{result.order_id} paid.")
