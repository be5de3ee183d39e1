"""CLI commands for products across the catalog and the inventory ledger."""

from __future__ import annotations

import click

from storefront.domain.exceptions import DomainException, UnrecoverablePartialState
from storefront.infrastructure.bootstrap import (
    add_category_handler,
    catalog_reconciler,
    delete_category_handler,
    product_coordinator,
    update_category_handler,
)


def _parse_specs(pairs: tuple[str, ...]) -> dict[str, str]:
    """Parse ('RAM=8GB', 'Colour=Black') into a specs dict."""
    specs: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter(f"Invalid spec '{pair}'. Expected 'Key=Value'.")
        key, value = pair.split("=", 1)
        specs[key.strip()] = value.strip()
    return specs


@click.command("create")
@click.option("--name", required=True, help="Product name.")
@click.option("--category", "category_id", required=True, help="Registered category ID.")
@click.option("--price", default="0", help="Price (e.g. 100.00).")
@click.option("--stock", default="0", help="Initial stock level.")
@click.option("--sku", default=None, help="SKU (defaults to SKU-<PRODUCT_ID>).")
@click.option("--id", "product_id", default=None, help="Product ID (generated if omitted).")
@click.option("--description", default="", help="Display description.")
@click.option("--image", "images", multiple=True, help="Image URL (repeatable).")
@click.option("--flag", "flags", multiple=True, help="Display flag (repeatable).")
@click.option("--spec", "specs", multiple=True, help="Technical spec as 'Key=Value' (repeatable).")
def product_create(
    name: str,
    category_id: str,
    price: str,
    stock: str,
    sku: str | None,
    product_id: str | None,
    description: str,
    images: tuple[str, ...],
    flags: tuple[str, ...],
    specs: tuple[str, ...],
) -> None:
    """Create a product in both stores."""
    payload = {
        "product_id": product_id,
        "sku": sku,
        "name": name,
        "category_id": category_id,
        "description": description,
        "current_price": price,
        "stock_level": stock,
        "images": list(images),
        "display_flags": list(flags),
        "technical_specs": _parse_specs(specs),
    }

    try:
        dto = product_coordinator().create_product(payload)
    except UnrecoverablePartialState as exc:
        raise click.ClickException(f"{exc} (product {exc.product_id})")
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Product {dto.product_id} '{dto.name}' created  "
        f"(sku={dto.sku}, stock={dto.stock_level}, price={dto.current_price})"
    )


@click.command("update")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.option("--name", default=None, help="New name.")
@click.option("--category", "category_id", default=None, help="New category ID.")
@click.option("--description", default=None, help="New description.")
@click.option("--image", "images", multiple=True, help="Replace images (repeatable).")
@click.option("--flag", "flags", multiple=True, help="Replace display flags (repeatable).")
@click.option("--spec", "specs", multiple=True, help="Replace specs, 'Key=Value' (repeatable).")
def product_update(
    product_id: str,
    name: str | None,
    category_id: str | None,
    description: str | None,
    images: tuple[str, ...],
    flags: tuple[str, ...],
    specs: tuple[str, ...],
) -> None:
    """Update a product's display details (catalog only)."""
    changes: dict = {}
    if name is not None:
        changes["name"] = name
    if category_id is not None:
        changes["category_id"] = category_id
    if description is not None:
        changes["description"] = description
    if images:
        changes["images"] = list(images)
    if flags:
        changes["display_flags"] = list(flags)
    if specs:
        changes["technical_specs"] = _parse_specs(specs)

    try:
        product_coordinator().update_details(product_id, changes)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product {product_id} updated: {', '.join(sorted(changes))}")


@click.command("set-inventory")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.option("--stock", default=None, help="New stock level.")
@click.option("--price", default=None, help="New price (e.g. 129.00).")
def product_set_inventory(product_id: str, stock: str | None, price: str | None) -> None:
    """Set stock level and/or price in the inventory ledger."""
    try:
        line = product_coordinator().update_inventory(
            product_id, stock_level=stock, current_price=price
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Inventory for {line.product_id} set to stock={line.stock_level}, "
        f"price={line.current_price}"
    )


@click.command("delete")
@click.option("--id", "product_id", required=True, help="Product ID.")
def product_delete(product_id: str) -> None:
    """Delete a product from both stores (refused while open orders use it)."""
    try:
        product_coordinator().delete_product(product_id)
    except UnrecoverablePartialState as exc:
        raise click.ClickException(f"{exc} (product {exc.product_id})")
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product {product_id} deleted.")


@click.command("reconcile")
@click.option("--dry-run", is_flag=True, default=False, help="Report without changing anything.")
def product_reconcile(dry_run: bool) -> None:
    """Repair drift between the catalog and the inventory ledger."""
    try:
        report = catalog_reconciler().run(dry_run=dry_run)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    prefix = "Would remove" if dry_run else "Removed"
    click.echo(f"{prefix} orphaned documents: {', '.join(report.orphans_removed) or '-'}")
    click.echo(f"Inventory without document: {', '.join(report.missing_documents) or '-'}")
    click.echo(f"Mirrors repaired:           {', '.join(report.mirrors_repaired) or '-'}")
    if report.skipped_recent:
        click.echo(f"Skipped (too recent):       {', '.join(report.skipped_recent)}")


@click.command("add-category")
@click.option("--id", "category_id", required=True, help="Category ID.")
@click.option("--name", required=True, help="Category name.")
@click.option("--label", "short_label", default=None, help="Short label (defaults to name).")
@click.option("--color", "color_hex", default="#000000", help="Colour as '#rrggbb'.")
@click.option("--popular", is_flag=True, default=False, help="Mark as popular.")
@click.option("--sort-order", type=int, default=0, help="Display order.")
def product_add_category(
    category_id: str,
    name: str,
    short_label: str | None,
    color_hex: str,
    popular: bool,
    sort_order: int,
) -> None:
    """Register a product category."""
    try:
        category = add_category_handler().handle(
            category_id=category_id,
            name=name,
            short_label=short_label,
            color_hex=color_hex,
            is_popular=popular,
            sort_order=sort_order,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Category '{category.category_id}' ({category.name}) registered")


@click.command("update-category")
@click.option("--id", "category_id", required=True, help="Category ID.")
@click.option("--name", default=None, help="New name.")
@click.option("--label", "short_label", default=None, help="New short label.")
@click.option("--color", "color_hex", default=None, help="New colour as '#rrggbb'.")
@click.option("--popular/--not-popular", "popular", default=None, help="Popular flag.")
@click.option("--sort-order", type=int, default=None, help="New display order.")
def product_update_category(
    category_id: str,
    name: str | None,
    short_label: str | None,
    color_hex: str | None,
    popular: bool | None,
    sort_order: int | None,
) -> None:
    """Update a product category."""
    given = {
        "name": name,
        "short_label": short_label,
        "color_hex": color_hex,
        "is_popular": popular,
        "sort_order": sort_order,
    }
    changes = {key: value for key, value in given.items() if value is not None}
    try:
        category = update_category_handler().handle(category_id, changes)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Category '{category.category_id}' updated ({', '.join(sorted(changes))})")


@click.command("delete-category")
@click.option("--id", "category_id", required=True, help="Category ID.")
def product_delete_category(category_id: str) -> None:
    """Delete a category no product uses any more."""
    try:
        delete_category_handler().handle(category_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Category '{category_id}' deleted")
