"""Best-effort mirroring of ledger values into catalog documents.

These writes run after the relational commit. They take absolute values,
so running one twice, or late, is harmless; a failure only leaves the
display copy stale until the next mirror or reconciliation pass.
"""

from __future__ import annotations

from decimal import Decimal

import structlog

from storefront.domain.repository.catalog_store import CatalogStore

logger = structlog.get_logger(__name__)


def mirror_stock_levels(catalog: CatalogStore, stock_levels: dict[str, int]) -> int:
    """Push post-commit stock levels to the catalog; return how many were written."""
    written = 0
    for product_id, stock_level in stock_levels.items():
        if _mirror(catalog.set_display_stock, product_id, stock_level, "stock_level"):
            written += 1
    return written


def mirror_price(catalog: CatalogStore, product_id: str, price: Decimal) -> bool:
    return _mirror(catalog.set_display_price, product_id, price, "price_display")


def _mirror(setter, product_id: str, value, field: str) -> bool:
    log = logger.bind(product_id=product_id, field=field)
    try:
        found = setter(product_id, value)
    except Exception as exc:
        log.warning("catalog_mirror_failed", error=str(exc), error_type=type(exc).__name__)
        return False
    if not found:
        log.warning("catalog_mirror_missing_document")
        return False
    return True
