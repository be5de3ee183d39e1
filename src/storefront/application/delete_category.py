"""Application service: Delete Category use case.

A category still used by any product document cannot be removed.
"""

from __future__ import annotations

import structlog

from storefront.domain.exceptions import EntityNotFoundError
from storefront.domain.repository.catalog_store import CatalogStore

logger = structlog.get_logger(__name__)


class DeleteCategoryHandler:

    def __init__(self, catalog: CatalogStore) -> None:
        self._catalog = catalog

    def handle(self, category_id: str) -> None:
        if not self._catalog.delete_category(category_id):
            raise EntityNotFoundError(f"Category not found: '{category_id}'")
        logger.info("category_deleted", category_id=category_id)
