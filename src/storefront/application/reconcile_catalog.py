"""Application service: Catalog reconciliation pass.

Compares the catalog with the inventory ledger and repairs what the
write paths cannot: orphaned documents left by a failed compensation,
and display mirrors that drifted because a best-effort write failed.
Inventory rows without a document are only reported; their display
data cannot be recreated from the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import structlog

from storefront.domain.repository.catalog_store import CatalogStore
from storefront.domain.repository.unit_of_work import UnitOfWorkFactory

logger = structlog.get_logger(__name__)

# A document younger than this may belong to a create whose relational
# commit has not landed yet.
DEFAULT_GRACE_PERIOD = timedelta(minutes=5)


@dataclass
class ReconciliationReport:
    orphans_removed: list[str] = field(default_factory=list)
    missing_documents: list[str] = field(default_factory=list)
    mirrors_repaired: list[str] = field(default_factory=list)
    skipped_recent: list[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (self.orphans_removed or self.missing_documents or self.mirrors_repaired)


class CatalogReconciler:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        catalog: CatalogStore,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
    ) -> None:
        self._uow_factory = uow_factory
        self._catalog = catalog
        self._grace_period = grace_period

    def run(self, dry_run: bool = False, now: datetime | None = None) -> ReconciliationReport:
        now = now or datetime.now(timezone.utc)
        with self._uow_factory() as uow:
            ledger = {record.product_id: record for record in uow.inventory.list_all()}

        report = ReconciliationReport()
        documents = self._catalog.list_all()
        seen = set()

        for document in documents:
            seen.add(document.product_id)
            record = ledger.get(document.product_id)
            log = logger.bind(product_id=document.product_id, dry_run=dry_run)

            if record is None:
                if now - document.created_at < self._grace_period:
                    report.skipped_recent.append(document.product_id)
                    continue
                if not dry_run:
                    self._catalog.delete(document.product_id)
                report.orphans_removed.append(document.product_id)
                log.warning("orphan_catalog_document_removed")
                continue

            drifted = (
                document.stock_level != record.stock_level
                or document.price_display != record.current_price
            )
            if drifted:
                if not dry_run:
                    self._catalog.set_display_stock(record.product_id, record.stock_level)
                    self._catalog.set_display_price(record.product_id, record.current_price)
                report.mirrors_repaired.append(record.product_id)
                log.info(
                    "catalog_mirror_repaired",
                    stock_level=record.stock_level,
                    was_stock_level=document.stock_level,
                )

        for product_id in sorted(set(ledger) - seen):
            report.missing_documents.append(product_id)
            logger.warning("inventory_without_catalog_document", product_id=product_id)

        logger.info(
            "catalog_reconciled",
            orphans=len(report.orphans_removed),
            missing=len(report.missing_documents),
            repaired=len(report.mirrors_repaired),
            dry_run=dry_run,
        )
        return report
