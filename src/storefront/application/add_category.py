"""Application service: Add Category use case."""

from __future__ import annotations

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.product import Category, check_color_hex
from storefront.domain.repository.catalog_store import CatalogStore


class AddCategoryHandler:

    def __init__(self, catalog: CatalogStore) -> None:
        self._catalog = catalog

    def handle(
        self,
        category_id: str,
        name: str,
        short_label: str | None = None,
        color_hex: str = "#000000",
        is_popular: bool = False,
        sort_order: int = 0,
    ) -> Category:
        """Register a category (or overwrite one with the same id)."""
        if not category_id or not category_id.strip():
            raise ValidationError("category_id is required")
        if not name or not name.strip():
            raise ValidationError("Category name is required")

        category = Category(
            category_id=category_id.strip(),
            name=name.strip(),
            short_label=(short_label or name).strip(),
            color_hex=check_color_hex(color_hex),
            is_popular=is_popular,
            sort_order=sort_order,
        )
        self._catalog.add_category(category)
        return category
