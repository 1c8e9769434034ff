"""
Commerce Platform Client

Admin API of the e-commerce backend: orders, customers and native
customer groups. Listings are offset-paginated and walked until the
reported ``count`` is reached.
"""

from typing import Any, Dict, List, Optional

import httpx
import structlog

from ops_dashboard.clients.base import UpstreamClient
from ops_dashboard.config.settings import Settings
from ops_dashboard.models import (
    Customer,
    CustomerGroup,
    DateRange,
    InventoryItem,
    Order,
    Product,
    to_number,
)

logger = structlog.get_logger(__name__)

ORDER_FIELDS = (
    "id,customer_id,email,total,subtotal,currency_code,status,payment_status,"
    "fulfillment_status,created_at,display_id,*items,*shipping_address"
)

INVENTORY_FIELDS = "id,sku,*location_levels"
PRODUCT_FIELDS = "id,title,thumbnail,external_id,*variants"

# Pages beyond this are never requested, whatever ``count`` says
MAX_PAGES = 500


class CommerceClient(UpstreamClient):
    """Read-only access to the commerce admin API"""

    source = "commerce"

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 30.0,
        page_size: int = 100,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(base_url, headers=headers, timeout=timeout, transport=transport)
        self.page_size = page_size

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "CommerceClient":
        return cls(
            settings.commerce.base_url,
            headers=settings.commerce.auth_headers,
            timeout=settings.commerce.timeout_seconds,
            page_size=settings.commerce.page_size,
            transport=transport,
        )

    @staticmethod
    def _order_params(
        date_range: Optional[DateRange],
        limit: int,
        offset: int,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "limit": limit,
            "offset": offset,
            "order": "-created_at",
            "fields": ORDER_FIELDS,
        }
        if date_range is not None:
            params["created_at[$gte]"] = date_range.start.isoformat()
            params["created_at[$lte]"] = date_range.end.isoformat()
        return params

    async def list_orders(
        self,
        date_range: Optional[DateRange] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """One page of orders, newest first"""
        data = await self.get_json("/admin/orders", params=self._order_params(date_range, limit, offset))
        data = data or {}
        return {
            "orders": self.parse_list(Order, data.get("orders")),
            "count": int(to_number(data.get("count"))),
            "offset": offset,
            "limit": limit,
        }

    async def _fetch_all(self, path: str, key: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        records: List[Dict[str, Any]] = []
        offset = 0
        total = 1
        pages = 0

        while offset < total and pages < MAX_PAGES:
            page_params = {**params, "limit": self.page_size, "offset": offset}
            data = await self.get_json(path, params=page_params) or {}
            page = data.get(key) or []
            records.extend(page)
            total = int(to_number(data.get("count")))
            offset += self.page_size
            pages += 1
            if not page:
                break

        logger.debug("Fetched paginated listing", source=self.source, path=path, records=len(records), pages=pages)
        return records

    async def fetch_all_orders(self, date_range: Optional[DateRange] = None) -> List[Order]:
        """Every order created within ``date_range``"""
        params = self._order_params(date_range, self.page_size, 0)
        return self.parse_list(Order, await self._fetch_all("/admin/orders", "orders", params))

    async def fetch_all_customers(self) -> List[Customer]:
        """Every customer, newest first"""
        raw = await self._fetch_all("/admin/customers", "customers", {"order": "-created_at"})
        return self.parse_list(Customer, raw)

    async def list_customer_groups(self) -> List[CustomerGroup]:
        data = await self.get_json("/admin/customer-groups", params={"limit": 100}) or {}
        return self.parse_list(CustomerGroup, data.get("customer_groups"))

    async def get_customer(self, customer_id: str) -> Customer:
        data = await self.get_json(f"/admin/customers/{customer_id}") or {}
        return self.parse(Customer, data.get("customer"))

    async def customer_orders(self, customer_id: str, limit: int = 100) -> List[Order]:
        """Most recent orders of one customer, with shipping address"""
        params = {
            "customer_id": customer_id,
            "limit": limit,
            "order": "-created_at",
            "fields": ORDER_FIELDS,
        }
        data = await self.get_json("/admin/orders", params=params) or {}
        return self.parse_list(Order, data.get("orders"))

    async def list_inventory_items(self) -> List[InventoryItem]:
        """Every inventory item with its per-location stock levels"""
        raw = await self._fetch_all("/admin/inventory-items", "inventory_items", {"fields": INVENTORY_FIELDS})
        return self.parse_list(InventoryItem, raw)

    async def list_products(self) -> List[Product]:
        """Every product with its variants"""
        raw = await self._fetch_all("/admin/products", "products", {"fields": PRODUCT_FIELDS})
        return self.parse_list(Product, raw)
