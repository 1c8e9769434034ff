"""
Unit Tests - Inventory Aggregations
"""
import pytest

from ops_dashboard.aggregation import (
    build_stock_map,
    out_of_stock_products,
    out_of_stock_variants,
    products_with_stock,
    stock_summary,
)
from ops_dashboard.models import InventoryItem, Product


def _product(product_id, *variants, **fields):
    return Product.model_validate({"id": product_id, "title": product_id.title(), "variants": list(variants), **fields})


class TestStockMap:
    """Tests for the SKU to stock map"""

    def test_sums_locations_and_duplicate_skus(self):
        items = [
            InventoryItem.model_validate({"sku": "A", "location_levels": [{"stocked_quantity": 2}, {"stocked_quantity": 3}]}),
            InventoryItem.model_validate({"sku": "A", "location_levels": [{"stocked_quantity": 1}]}),
            InventoryItem.model_validate({"sku": "B", "location_levels": [{"stocked_quantity": None}, {}]}),
        ]

        assert build_stock_map(items) == {"A": 6, "B": 0}

    def test_items_without_sku_are_ignored(self):
        items = [InventoryItem.model_validate({"sku": None, "location_levels": [{"stocked_quantity": 9}]})]

        assert build_stock_map(items) == {}

    def test_malformed_levels(self):
        item = InventoryItem.model_validate({"sku": "A", "location_levels": "n/a"})

        assert item.stocked_quantity == 0


class TestProductsWithStock:
    """Tests for the per-product stock rollup"""

    def test_all_variants_out_of_stock(self):
        product = _product("prod", {"sku": "A"}, {"sku": "B"})

        [result] = products_with_stock([product], {"A": 0, "B": -1})

        assert result.all_out_of_stock
        assert result.total_stock == -1

    def test_one_variant_in_stock(self):
        product = _product("prod", {"sku": "A"}, {"sku": "B"})

        [result] = products_with_stock([product], {"A": 0, "B": 4})

        assert not result.all_out_of_stock
        assert result.total_stock == 4

    @pytest.mark.parametrize("variants", [
        [],
        [{"sku": "A", "manage_inventory": False}],
    ])
    def test_no_managed_variants_is_never_out_of_stock(self, variants):
        [result] = products_with_stock([_product("prod", *variants)], {})

        assert not result.all_out_of_stock
        assert result.total_stock == 0

    def test_unmanaged_variant_ignores_stock(self):
        product = _product("prod", {"sku": "A", "manage_inventory": False}, {"sku": "B"})

        [result] = products_with_stock([product], {"A": 10, "B": 0})

        assert [v.inventory_quantity for v in result.variants] == [0, 0]
        assert result.all_out_of_stock

    def test_unknown_or_missing_sku_has_no_stock(self):
        product = _product("prod", {"sku": "ZZZ"}, {"sku": None})

        [result] = products_with_stock([product], {"A": 5})

        assert result.all_out_of_stock

    def test_manage_inventory_defaults_to_managed(self):
        product = _product("prod", {"sku": "A", "manage_inventory": None})

        [result] = products_with_stock([product], {"A": 0})

        assert result.variants[0].manage_inventory is True
        assert result.all_out_of_stock

    def test_variants_carry_their_product(self):
        product = _product("prod", {"id": "var", "sku": "A"}, thumbnail="img.png")

        [result] = products_with_stock([product], {"A": 1})

        dumped = result.model_dump(by_alias=True)
        assert dumped["totalStock"] == 1
        assert dumped["variants"][0]["productTitle"] == "Prod"
        assert dumped["variants"][0]["productThumbnail"] == "img.png"


class TestOutOfStockPages:
    """Tests for the out-of-stock listings and their headline figures"""

    @pytest.fixture
    def catalog(self):
        products = [
            _product("shirt", {"title": "S", "sku": "SH-S"}, {"title": "M", "sku": "SH-M"}, external_id="EXT-1"),
            _product("hoodie", {"title": "U", "sku": "HO-U"}, external_id="EXT-2"),
            _product("card", {"title": "Digital", "manage_inventory": False}),
        ]
        return products_with_stock(products, {"SH-S": 3, "SH-M": 0, "HO-U": 0})

    def test_out_of_stock_products(self, catalog):
        assert [p.id for p in out_of_stock_products(catalog)] == ["hoodie"]
        assert [p.id for p in out_of_stock_products(catalog, "ext-2")] == ["hoodie"]
        assert out_of_stock_products(catalog, "shirt") == []

    def test_out_of_stock_variants(self, catalog):
        assert [v.sku for v in out_of_stock_variants(catalog)] == ["SH-M", "HO-U"]
        assert [v.sku for v in out_of_stock_variants(catalog, "sh-")] == ["SH-M"]

    def test_summary(self, catalog):
        summary = stock_summary(catalog)

        assert summary["out_of_stock_products"] == 1
        assert summary["pct_catalog"] == 33.3
        assert summary["out_of_stock_variants"] == 2
        assert summary["products_affected"] == 2
        assert summary["pct_variants"] == 66.7

    def test_empty_catalog(self):
        summary = stock_summary([])

        assert summary["pct_catalog"] == 0.0
        assert summary["pct_variants"] == 0.0
