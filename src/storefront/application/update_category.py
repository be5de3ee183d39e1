"""Application service: Update Category use case."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

import structlog

from storefront.domain.exceptions import EntityNotFoundError, ValidationError
from storefront.domain.model.product import Category, check_color_hex
from storefront.domain.repository.catalog_store import CatalogStore

logger = structlog.get_logger(__name__)

EDITABLE_FIELDS = ("name", "short_label", "color_hex", "is_popular", "sort_order")


class UpdateCategoryHandler:

    def __init__(self, catalog: CatalogStore) -> None:
        self._catalog = catalog

    def handle(self, category_id: str, changes: dict[str, Any]) -> Category:
        """Apply *changes* to a registered category; the id cannot change."""
        if not changes:
            raise ValidationError("No category fields to update")
        unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown category fields: {', '.join(unknown)}")

        current = self._catalog.get_category(category_id)
        if current is None:
            raise EntityNotFoundError(f"Category not found: '{category_id}'")

        cleaned = dict(changes)
        for key in ("name", "short_label"):
            if key in cleaned:
                value = str(cleaned[key] or "").strip()
                if not value:
                    raise ValidationError(f"Category {key} cannot be empty")
                cleaned[key] = value
        if "color_hex" in cleaned:
            check_color_hex(cleaned["color_hex"])
        if "sort_order" in cleaned:
            try:
                cleaned["sort_order"] = int(cleaned["sort_order"])
            except (TypeError, ValueError):
                raise ValidationError("sort_order must be an integer") from None
        if "is_popular" in cleaned:
            cleaned["is_popular"] = bool(cleaned["is_popular"])

        updated = replace(current, **cleaned)
        self._catalog.add_category(updated)
        logger.info("category_updated", category_id=category_id, fields=sorted(cleaned))
        return updated
