"""Tests for the JSON-file catalog store."""

import json
import threading
from decimal import Decimal

import pytest

from storefront.domain.exceptions import ConflictError, EntityNotFoundError
from storefront.domain.model.product import CatalogProduct, Category, Review
from storefront.infrastructure.persistence.json_catalog_store import JsonCatalogStore


def _product(product_id: str = "prod_a") -> CatalogProduct:
    return CatalogProduct(
        product_id=product_id,
        category_id="phones",
        name="Phone",
        description="A phone",
        price_display=Decimal("99.90"),
        images=["a.jpg"],
        technical_specs={"RAM": "8 GB"},
        reviews=[Review(user_id="u1", rating=5, comment="great")],
        stock_level=4,
    )


class TestJsonCatalogStore:

    def test_creates_empty_file(self, tmp_path):
        path = tmp_path / "nested" / "catalog.json"
        JsonCatalogStore(path)
        assert json.loads(path.read_text()) == {"categories": [], "products": []}

    def test_insert_and_read_back(self, tmp_path):
        store = JsonCatalogStore(tmp_path / "catalog.json")
        store.insert(_product())

        loaded = store.get("prod_a")
        assert loaded.price_display == Decimal("99.90")
        assert loaded.technical_specs == {"RAM": "8 GB"}
        assert loaded.reviews[0].rating == 5
        assert loaded.created_at.tzinfo is not None

    def test_duplicate_insert_rejected(self, tmp_path):
        store = JsonCatalogStore(tmp_path / "catalog.json")
        store.insert(_product())
        with pytest.raises(ConflictError):
            store.insert(_product())

    def test_replace_missing_product(self, tmp_path):
        store = JsonCatalogStore(tmp_path / "catalog.json")
        with pytest.raises(EntityNotFoundError):
            store.replace(_product())

    def test_delete_reports_whether_removed(self, tmp_path):
        store = JsonCatalogStore(tmp_path / "catalog.json")
        store.insert(_product())
        assert store.delete("prod_a") is True
        assert store.delete("prod_a") is False
        assert store.list_all() == []

    def test_display_mirrors(self, tmp_path):
        store = JsonCatalogStore(tmp_path / "catalog.json")
        store.insert(_product())
        assert store.set_display_stock("prod_a", 1) is True
        assert store.set_display_price("prod_a", Decimal("79.00")) is True
        assert store.set_display_stock("missing", 1) is False

        loaded = store.get("prod_a")
        assert loaded.stock_level == 1
        assert loaded.price_display == Decimal("79.00")

    def test_categories_sorted_and_overwritten(self, tmp_path):
        path = tmp_path / "catalog.json"
        store = JsonCatalogStore(path)
        store.add_category(Category("laptops", "Laptops", "LAP", sort_order=2))
        store.add_category(Category("phones", "Phones", "PHN", sort_order=1))
        store.add_category(Category("laptops", "Notebooks", "NB", sort_order=0))

        assert store.category_exists("phones")
        assert not store.category_exists("tablets")
        names = [c["name"] for c in json.loads(path.read_text())["categories"]]
        assert names == ["Notebooks", "Phones"]

    def test_no_temp_file_left_behind(self, tmp_path):
        store = JsonCatalogStore(tmp_path / "catalog.json")
        store.insert(_product())
        store.set_display_stock("prod_a", 2)
        assert list(tmp_path.glob("*.tmp")) == []
        assert (tmp_path / "catalog.json").exists()

    def test_delete_category_guarded_while_in_use(self, tmp_path):
        store = JsonCatalogStore(tmp_path / "catalog.json")
        store.add_category(Category("phones", "Phones", "PHN"))
        store.insert(_product())

        with pytest.raises(ConflictError, match="still use it"):
            store.delete_category("phones")
        assert store.category_exists("phones")

        store.delete("prod_a")
        assert store.delete_category("phones") is True
        assert store.delete_category("phones") is False
        assert store.get_category("phones") is None


# ── Concurrent writers ───────────────────────────────────────────────────────


class TestJsonCatalogStoreConcurrency:

    def test_threads_do_not_lose_writes(self, tmp_path):
        path = tmp_path / "catalog.json"
        store = JsonCatalogStore(path)
        store.insert(_product("prod_hot"))
        errors = []

        def mirror_stock():
            try:
                for level in range(60):
                    store.set_display_stock("prod_hot", level)
            except Exception as exc:
                errors.append(exc)

        def insert_products():
            try:
                for i in range(60):
                    store.insert(_product(f"prod_{i}"))
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=mirror_stock), threading.Thread(target=insert_products)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        document = json.loads(path.read_text())
        ids = {p["product_id"] for p in document["products"]}
        assert ids == {"prod_hot"} | {f"prod_{i}" for i in range(60)}
        assert store.get("prod_hot").stock_level == 59

    def test_separate_instances_on_one_file_share_writes(self, tmp_path):
        path = tmp_path / "catalog.json"
        first = JsonCatalogStore(path)
        second = JsonCatalogStore(path)

        def insert_into(store, prefix):
            for i in range(30):
                store.insert(_product(f"{prefix}_{i}"))

        threads = [
            threading.Thread(target=insert_into, args=(first, "a")),
            threading.Thread(target=insert_into, args=(second, "b")),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(first.list_all()) == 60
