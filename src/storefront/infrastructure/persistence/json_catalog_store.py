"""JSON-file-backed implementation of CatalogStore.

The file holds one document with two collections::

    {"categories": [...], "products": [...]}

Every write is a read-modify-write of the whole file, serialized by a
process lock plus an exclusive ``flock`` on a sibling lock file, so
threads and other processes cannot interleave and lose each other's
changes. The new content goes to a private temporary file that is then
renamed over the original, so readers never see a half-written file
and need no lock.
"""

from __future__ import annotations

import fcntl
import json
import os
import tempfile
import threading
from contextlib import contextmanager, suppress
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterator

from storefront.domain.exceptions import ConflictError, EntityNotFoundError
from storefront.domain.model.product import CatalogProduct, Category, Review
from storefront.domain.repository.catalog_store import CatalogStore

# One lock per catalog file, shared by every store instance in the process.
_PROCESS_LOCKS: dict[Path, threading.Lock] = {}
_PROCESS_LOCKS_GUARD = threading.Lock()


def _process_lock(path: Path) -> threading.Lock:
    with _PROCESS_LOCKS_GUARD:
        return _PROCESS_LOCKS.setdefault(path, threading.Lock())


class JsonCatalogStore(CatalogStore):

    def __init__(self, file_path: Path) -> None:
        self._file_path = Path(file_path).resolve()
        self._lock_path = self._file_path.with_name(f".{self._file_path.name}.lock")
        self._ensure_file()

    # --- Products -------------------------------------------------------------

    def get(self, product_id: str) -> CatalogProduct | None:
        for raw in self._load_raw()["products"]:
            if raw["product_id"] == product_id:
                return self._to_domain(raw)
        return None

    def list_all(self) -> list[CatalogProduct]:
        return [self._to_domain(raw) for raw in self._load_raw()["products"]]

    def insert(self, product: CatalogProduct) -> None:
        with self._locked() as document:
            if any(raw["product_id"] == product.product_id for raw in document["products"]):
                raise ConflictError(f"Catalog product '{product.product_id}' already exists")
            document["products"].append(self._to_raw(product))

    def replace(self, product: CatalogProduct) -> None:
        with self._locked() as document:
            for i, raw in enumerate(document["products"]):
                if raw["product_id"] == product.product_id:
                    document["products"][i] = self._to_raw(product)
                    return
            raise EntityNotFoundError(f"Catalog product '{product.product_id}' not found")

    def delete(self, product_id: str) -> bool:
        with self._locked() as document:
            remaining = [r for r in document["products"] if r["product_id"] != product_id]
            removed = len(remaining) != len(document["products"])
            document["products"] = remaining
        return removed

    def set_display_stock(self, product_id: str, stock_level: int) -> bool:
        return self._set_field(product_id, "stock_level", stock_level)

    def set_display_price(self, product_id: str, price: Decimal) -> bool:
        return self._set_field(product_id, "price_display", str(price))

    # --- Categories -----------------------------------------------------------

    def category_exists(self, category_id: str) -> bool:
        return self.get_category(category_id) is not None

    def get_category(self, category_id: str) -> Category | None:
        for raw in self._load_raw()["categories"]:
            if raw["category_id"] == category_id:
                return Category(**raw)
        return None

    def add_category(self, category: Category) -> None:
        raw_category = {
            "category_id": category.category_id,
            "name": category.name,
            "short_label": category.short_label,
            "color_hex": category.color_hex,
            "is_popular": category.is_popular,
            "sort_order": category.sort_order,
        }
        with self._locked() as document:
            document["categories"] = [
                r for r in document["categories"] if r["category_id"] != category.category_id
            ]
            document["categories"].append(raw_category)
            document["categories"].sort(key=lambda r: (r["sort_order"], r["name"]))

    def delete_category(self, category_id: str) -> bool:
        with self._locked() as document:
            in_use = sum(1 for r in document["products"] if r["category_id"] == category_id)
            if in_use:
                raise ConflictError(
                    f"Cannot delete category '{category_id}': "
                    f"{in_use} product(s) still use it"
                )
            remaining = [r for r in document["categories"] if r["category_id"] != category_id]
            removed = len(remaining) != len(document["categories"])
            document["categories"] = remaining
        return removed

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(product: CatalogProduct) -> dict:
        return {
            "product_id": product.product_id,
            "category_id": product.category_id,
            "name": product.name,
            "description": product.description,
            "price_display": str(product.price_display),
            "images": list(product.images),
            "technical_specs": dict(product.technical_specs),
            "display_flags": list(product.display_flags),
            "reviews": [
                {
                    "user_id": r.user_id,
                    "rating": r.rating,
                    "comment": r.comment,
                    "date": r.date.isoformat(),
                }
                for r in product.reviews
            ],
            "stock_level": product.stock_level,
            "created_at": product.created_at.isoformat(),
            "updated_at": product.updated_at.isoformat(),
        }

    @staticmethod
    def _to_domain(raw: dict) -> CatalogProduct:
        return CatalogProduct(
            product_id=raw["product_id"],
            category_id=raw["category_id"],
            name=raw["name"],
            description=raw.get("description", ""),
            price_display=Decimal(raw["price_display"]),
            images=raw.get("images", []),
            technical_specs=raw.get("technical_specs", {}),
            display_flags=raw.get("display_flags", []),
            reviews=[
                Review(
                    user_id=r["user_id"],
                    rating=r["rating"],
                    comment=r["comment"],
                    date=datetime.fromisoformat(r["date"]),
                )
                for r in raw.get("reviews", [])
            ],
            stock_level=raw.get("stock_level"),
            created_at=datetime.fromisoformat(raw["created_at"]),
            updated_at=datetime.fromisoformat(raw["updated_at"]),
        )

    # --- File helpers ---------------------------------------------------------

    @contextmanager
    def _file_lock(self) -> Iterator[None]:
        with _process_lock(self._file_path):
            with open(self._lock_path, "w") as lock_file:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    @contextmanager
    def _locked(self) -> Iterator[dict]:
        """Yield the current document for editing and persist it on clean exit.

        Raising inside the block leaves the file untouched.
        """
        with self._file_lock():
            document = self._load_raw()
            yield document
            self._persist_raw(document)

    def _set_field(self, product_id: str, key: str, value) -> bool:
        with self._locked() as document:
            for raw in document["products"]:
                if raw["product_id"] == product_id:
                    raw[key] = value
                    return True
        return False

    def _load_raw(self) -> dict:
        document = json.loads(self._file_path.read_text(encoding="utf-8"))
        document.setdefault("categories", [])
        document.setdefault("products", [])
        return document

    def _persist_raw(self, document: dict) -> None:
        fd, temp_path = tempfile.mkstemp(
            dir=self._file_path.parent, prefix=f".{self._file_path.stem}_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
                f.write("\n")
            os.replace(temp_path, self._file_path)
        except Exception:
            with suppress(OSError):
                os.unlink(temp_path)
            raise

    def _ensure_file(self) -> None:
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        with self._file_lock():
            if not self._file_path.exists():
                self._persist_raw({"categories": [], "products": []})
