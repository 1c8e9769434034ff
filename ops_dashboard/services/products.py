"""
Products Page Service

Catalog stock (products whose variants are sold out, variants without
stock) and units sold per product.
"""

import asyncio
from typing import Any, Dict, List, Optional

import structlog

from ops_dashboard.aggregation import (
    ProductStock,
    VariantStock,
    aggregate_product_units,
    build_stock_map,
    out_of_stock_products,
    out_of_stock_variants,
    products_with_stock,
    stock_summary,
)
from ops_dashboard.clients import UpstreamClients
from ops_dashboard.config.settings import Settings
from ops_dashboard.models import DateRange
from ops_dashboard.serving.cache import CacheManager, products_cache

logger = structlog.get_logger(__name__)

CATALOG_KEY = "with-stock"


class ProductService:
    """Stock and sales figures over the commerce catalog"""

    def __init__(
        self,
        clients: UpstreamClients,
        settings: Settings,
        cache: Optional[CacheManager] = None,
    ):
        self.clients = clients
        self.settings = settings
        self.cache = cache or products_cache

    async def catalog(self) -> List[ProductStock]:
        """Every product with stock attached to its variants"""
        cached = await self.cache.get(CATALOG_KEY)
        if cached is not None:
            return [ProductStock.model_validate(p) for p in cached]

        commerce = self.clients.commerce
        items, products = await asyncio.gather(
            commerce.list_inventory_items(),
            commerce.list_products(),
        )
        catalog = products_with_stock(products, build_stock_map(items))
        logger.info("Catalog stock loaded", products=len(catalog), inventory_items=len(items))

        await self.cache.set(CATALOG_KEY, [p.model_dump(mode="json") for p in catalog])
        return catalog

    async def stock_summary(self) -> Dict[str, Any]:
        return stock_summary(await self.catalog())

    async def out_of_stock(self, search: Optional[str] = None) -> List[ProductStock]:
        return out_of_stock_products(await self.catalog(), search)

    async def out_of_stock_variants(self, search: Optional[str] = None) -> List[VariantStock]:
        return out_of_stock_variants(await self.catalog(), search)

    async def units(self, date_range: DateRange) -> Dict[str, Any]:
        """Units sold per product over the paid orders of the range"""
        orders = await self.clients.commerce.fetch_all_orders(date_range)
        products = aggregate_product_units(orders)
        total_units = sum(p["quantity"] for p in products)
        return {
            "products": products,
            "total_units": total_units,
            "avg_units_per_product": total_units / len(products) if products else 0.0,
        }
