import click

from storefront.domain.exceptions import ConfigurationError
from storefront.infrastructure.bootstrap import settings
from storefront.infrastructure.cli.cart_commands import (
    cart_add,
    cart_clear,
    cart_remove,
    cart_show,
    cart_update,
)
from storefront.infrastructure.cli.inventory_commands import inventory_show
from storefront.infrastructure.cli.order_commands import (
    order_create,
    order_show,
    order_status,
)
from storefront.infrastructure.cli.payment_commands import payment_confirm
from storefront.infrastructure.cli.product_commands import (
    product_add_category,
    product_create,
    product_delete,
    product_delete_category,
    product_reconcile,
    product_set_inventory,
    product_update,
    product_update_category,
)
from storefront.infrastructure.cli.webhook_commands import (
    webhook_payment,
    webhook_process,
    webhook_retry,
    webhook_shipping,
)
from storefront.infrastructure.logging import configure_logging


@click.group()
def cli() -> None:
    """Storefront: catalog, cart, order and payment core"""
    try:
        cfg = settings()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc))
    configure_logging(cfg.log_level, cfg.log_format)


@cli.group()
def product() -> None:
    """Manage products and categories."""


@cli.group()
def cart() -> None:
    """Manage user carts."""


@cli.group()
def order() -> None:
    """Manage orders."""


@cli.group()
def payment() -> None:
    """Confirm payments."""


@cli.group()
def webhook() -> None:
    """Feed provider and carrier webhooks."""


@cli.group()
def inventory() -> None:
    """Inspect the inventory ledger."""


# Register subcommands
product.add_command(product_create)
product.add_command(product_update)
product.add_command(product_set_inventory)
product.add_command(product_delete)
product.add_command(product_reconcile)
product.add_command(product_add_category)
product.add_command(product_update_category)
product.add_command(product_delete_category)
cart.add_command(cart_add)
cart.add_command(cart_show)
cart.add_command(cart_update)
cart.add_command(cart_remove)
cart.add_command(cart_clear)
order.add_command(order_create)
order.add_command(order_show)
order.add_command(order_status)
payment.add_command(payment_confirm)
webhook.add_command(webhook_payment)
webhook.add_command(webhook_process)
webhook.add_command(webhook_shipping)
webhook.add_command(webhook_retry)
inventory.add_command(inventory_show)
