"""CLI commands that feed provider and carrier webhooks into the system.

The raw body is read as bytes, from a file or stdin, because the
signature covers the exact bytes the sender signed.
"""

from __future__ import annotations

import click

from storefront.domain.exceptions import DomainException
from storefront.infrastructure.bootstrap import (
    shipping_update_handler,
    webhook_processor,
)


@click.command("payment")
@click.option("--body", "body_file", type=click.File("rb"), default="-", help="Raw body file (default: stdin).")
@click.option("--signature", required=True, help="Hex HMAC-SHA256 signature header.")
@click.option("--no-process", is_flag=True, help="Only store the delivery; apply it later.")
def webhook_payment(body_file, signature: str, no_process: bool) -> None:
    """Receive a payment provider webhook, acknowledge it, then apply it."""
    body = body_file.read()
    try:
        processor = webhook_processor()
        ack = processor.receive(body, signature)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"ack: {ack.to_wire()}")
    if no_process:
        return
    try:
        results = processor.process_pending()
    except DomainException as exc:
        raise click.ClickException(str(exc))
    _echo_results(results)


@click.command("process")
@click.option("--limit", type=int, default=100, help="Maximum deliveries to apply.")
def webhook_process(limit: int) -> None:
    """Apply stored payment webhook deliveries that are due."""
    try:
        processor = webhook_processor()
        results = processor.process_pending(limit=limit)
        pending = processor.pending
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _echo_results(results)
    click.echo(f"Still pending: {pending}")


def _echo_results(results) -> None:
    for event, outcome in results:
        click.echo(f"{event.kind} ({event.delivery_id}): {outcome.value}")


@click.command("shipping")
@click.option("--body", "body_file", type=click.File("rb"), default="-", help="Raw body file (default: stdin).")
@click.option("--signature", required=True, help="Hex HMAC-SHA256 signature header.")
def webhook_shipping(body_file, signature: str) -> None:
    """Receive a carrier tracking update."""
    body = body_file.read()
    try:
        change = shipping_update_handler().handle(body, signature)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if change.changed:
        click.echo(f"Order #{change.order_id}: {change.previous_status} -> {change.status}")
    else:
        click.echo(f"Order #{change.order_id} already {change.status}")


@click.command("retry")
@click.option("--limit", type=int, default=100, help="Maximum dead letters to retry.")
def webhook_retry(limit: int) -> None:
    """Retry dead-lettered webhook deliveries."""
    try:
        report = webhook_processor().retry_dead_letters(limit)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Resolved: {len(report.resolved)}  Still failing: {len(report.still_failing)}")
