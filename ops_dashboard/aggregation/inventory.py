"""
Inventory Aggregations

Catalog products joined with real stock levels. Stock lives on inventory
items keyed by SKU, so variants are matched to it by SKU; a variant that
does not manage inventory never counts as stocked or out of stock.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import polars as pl

from ops_dashboard.aggregation.orders import plain_number
from ops_dashboard.models import CamelModel, InventoryItem, Product


class VariantStock(CamelModel):
    id: Optional[str] = None
    title: Optional[str] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None
    manage_inventory: bool = True
    inventory_quantity: Union[int, float] = 0
    product_id: Optional[str] = None
    product_title: Optional[str] = None
    product_thumbnail: Optional[str] = None

    @property
    def out_of_stock(self) -> bool:
        return self.manage_inventory and self.inventory_quantity <= 0


class ProductStock(CamelModel):
    id: Optional[str] = None
    title: Optional[str] = None
    thumbnail: Optional[str] = None
    external_id: Optional[str] = None
    variants: List[VariantStock] = []
    total_stock: Union[int, float] = 0
    all_out_of_stock: bool = False


def build_stock_map(items: Iterable[InventoryItem]) -> Dict[str, Union[int, float]]:
    """Stocked quantity per SKU, summed over locations and duplicate items"""
    rows = [
        {"sku": item.sku, "stock": float(item.stocked_quantity)}
        for item in items
        if item.sku
    ]
    frame = pl.DataFrame(rows, schema={"sku": pl.Utf8, "stock": pl.Float64})
    totals = frame.group_by("sku").agg(pl.col("stock").sum())
    return {row["sku"]: plain_number(row["stock"]) for row in totals.iter_rows(named=True)}


def products_with_stock(
    products: Sequence[Product],
    stock_by_sku: Dict[str, Union[int, float]],
) -> List[ProductStock]:
    """
    Attach stock to every variant and roll it up per product.

    ``total_stock`` sums managed variants only. A product is all out of
    stock when it has at least one managed variant and none of them has
    stock left.
    """
    result = []
    for product in products:
        variants = [
            VariantStock(
                id=v.id,
                title=v.title,
                sku=v.sku,
                barcode=v.barcode,
                manage_inventory=v.manage_inventory,
                inventory_quantity=stock_by_sku.get(v.sku, 0) if v.manage_inventory and v.sku else 0,
                product_id=product.id,
                product_title=product.title,
                product_thumbnail=product.thumbnail,
            )
            for v in product.variants
        ]
        managed = [v for v in variants if v.manage_inventory]

        result.append(ProductStock(
            id=product.id,
            title=product.title,
            thumbnail=product.thumbnail,
            external_id=product.external_id,
            variants=variants,
            total_stock=plain_number(sum(v.inventory_quantity for v in managed)),
            all_out_of_stock=bool(managed) and all(v.inventory_quantity <= 0 for v in managed),
        ))
    return result


def _matches(query: str, *values: Optional[str]) -> bool:
    return any(value and query in value.lower() for value in values)


def out_of_stock_products(
    products: Sequence[ProductStock],
    search: Optional[str] = None,
) -> List[ProductStock]:
    """Products with every managed variant sold out; search hits title or external id"""
    result = [p for p in products if p.all_out_of_stock]
    if search:
        query = search.lower()
        result = [p for p in result if _matches(query, p.title, p.external_id)]
    return result


def out_of_stock_variants(
    products: Sequence[ProductStock],
    search: Optional[str] = None,
) -> List[VariantStock]:
    """Managed variants without stock; search hits product title, variant title or SKU"""
    result = [v for p in products for v in p.variants if v.out_of_stock]
    if search:
        query = search.lower()
        result = [v for v in result if _matches(query, v.product_title, v.title, v.sku)]
    return result


def _share(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole > 0 else 0.0


def stock_summary(products: Sequence[ProductStock]) -> Dict[str, Any]:
    """Headline figures of the out-of-stock pages, over the whole catalog"""
    sold_out = [p for p in products if p.all_out_of_stock]
    variants = [v for p in products for v in p.variants]
    managed = [v for v in variants if v.manage_inventory]
    sold_out_variants = [v for v in managed if v.inventory_quantity <= 0]

    return {
        "products": len(products),
        "out_of_stock_products": len(sold_out),
        "variants_affected": sum(len(p.variants) for p in sold_out),
        "pct_catalog": _share(len(sold_out), len(products)),
        "managed_variants": len(managed),
        "out_of_stock_variants": len(sold_out_variants),
        "products_affected": len({v.product_id for v in sold_out_variants}),
        "pct_variants": _share(len(sold_out_variants), len(managed)),
    }
