"""
Test Suite Configuration
"""
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Set
from urllib.parse import unquote

import httpx
import pytest
from fastapi.testclient import TestClient

from ops_dashboard.config import Settings
from ops_dashboard.config.settings import (
    CommerceSettings,
    EventsSettings,
    GA4Settings,
    MetaSettings,
    ProxySettings,
)
from ops_dashboard.models import Customer, Order, parse_timestamp

NOW = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)

COMMERCE_URL = "http://commerce.test"
EVENTS_URL = "http://events.test"
GA4_URL = "http://ga4.test/v1beta"
META_URL = "http://meta.test"
PICKING_URL = "http://picking.test"


def _days_ago(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


@pytest.fixture
def now() -> datetime:
    """Fixed clock for recency calculations"""
    return NOW


@pytest.fixture
def make_order() -> Callable[..., Order]:
    """Build an order from keyword overrides"""
    def _make(**fields: Any) -> Order:
        data = {
            "id": "order_1",
            "total": 1000,
            "payment_status": "captured",
            "fulfillment_status": "not_fulfilled",
            "created_at": "2024-03-01T15:00:00Z",
            "items": [],
        }
        data.update(fields)
        return Order.model_validate(data)
    return _make


@pytest.fixture
def make_customer() -> Callable[..., Customer]:
    """Build a customer from keyword overrides"""
    def _make(**fields: Any) -> Customer:
        data = {"id": "cus_1", "email": "ana@example.com", "first_name": "Ana", "last_name": "Gomez"}
        data.update(fields)
        return Customer.model_validate(data)
    return _make


@pytest.fixture
def test_settings() -> Settings:
    """Settings pointing every upstream at a mock host"""
    return Settings(
        app_env="testing",
        debug=True,
        commerce=CommerceSettings(base_url=COMMERCE_URL, page_size=2),
        events=EventsSettings(api_url=EVENTS_URL, api_key="events-key"),
        ga4=GA4Settings(property_id=None, access_token=None, api_url=GA4_URL),
        meta=MetaSettings(ad_account_id="act_1", access_token="meta-token", api_url=META_URL),
        proxy=ProxySettings(picking_url=PICKING_URL, picking_api_key="picking-key"),
    )


class FakeBackend:
    """
    In-memory stand-in for the upstream HTTP services.

    Hosts listed in ``failing`` answer 500. Every request is recorded so
    tests can assert on paths, params and headers.
    """

    def __init__(self):
        self.orders: List[Dict[str, Any]] = [
            {
                "id": "order_1", "customer_id": "cus_1", "email": "ana@example.com",
                "total": 1000, "payment_status": "captured", "fulfillment_status": "delivered",
                "created_at": _days_ago(2),
                "items": [{"product_id": "prod_1", "title": "Remera", "quantity": 2, "unit_price": 500}],
            },
            {
                "id": "order_2", "customer_id": None, "email": "LUIS@example.com",
                "total": 600, "payment_status": "captured", "fulfillment_status": "shipped",
                "created_at": _days_ago(3),
                "items": [{"product_id": "prod_2", "title": "Buzo", "quantity": 1, "total": 600}],
                "shipping_address": {"phone": "+54 11 5555-0000"},
            },
            {
                "id": "order_3", "customer_id": "cus_1", "email": "ana@example.com",
                "total": 400, "payment_status": "refunded", "fulfillment_status": "canceled",
                "created_at": _days_ago(4),
                "items": [{"product_id": "prod_1", "title": "Remera", "quantity": 1, "unit_price": 400}],
            },
        ]
        self.customers: List[Dict[str, Any]] = [
            {"id": "cus_1", "email": "ana@example.com", "first_name": "Ana", "last_name": "Gomez",
             "metadata": {"customer_group": "cgrp_mayorista"}},
            {"id": "cus_2", "email": "luis@example.com", "first_name": "Luis", "last_name": "Perez"},
            {"id": "cus_3", "email": "sofia@example.com", "first_name": "Sofia", "last_name": "Diaz",
             "metadata": {"customer_group": "Revendedor"}},
        ]
        self.groups = [{"id": "cgrp_mayorista", "name": "Mayorista"}]
        self.event_stats = {
            "total_events": 500,
            "by_type": {
                "product.viewed": 200,
                "product.added_to_cart": 40,
                "checkout.started": 20,
                "checkout.abandoned": 8,
                "order.placed": 12,
            },
            "by_source": {"storefront": 500},
            "by_day": [],
        }
        self.event_products: List[Dict[str, Any]] = [
            {"product_id": "prod_1", "title": "Remera", "views": 120, "clicks": 30, "added_to_cart": 10},
            {"product_id": "prod_9", "title": "Gorra", "views": 80, "clicks": 5, "added_to_cart": 1},
        ]
        self.inventory_items: List[Dict[str, Any]] = [
            {"id": "iitem_1", "sku": "REM-S", "location_levels": [{"stocked_quantity": 3}, {"stocked_quantity": 2}]},
            {"id": "iitem_2", "sku": "REM-M", "location_levels": [{"stocked_quantity": 0}]},
            {"id": "iitem_3", "sku": "BUZ-U", "location_levels": [{"stocked_quantity": None}]},
            {"id": "iitem_4", "sku": None, "location_levels": [{"stocked_quantity": 50}]},
        ]
        self.products: List[Dict[str, Any]] = [
            {"id": "prod_1", "title": "Remera", "external_id": "EXT-1", "variants": [
                {"id": "var_1", "title": "S", "sku": "REM-S"},
                {"id": "var_2", "title": "M", "sku": "REM-M", "barcode": "779000"},
            ]},
            {"id": "prod_2", "title": "Buzo", "external_id": "EXT-2", "variants": [
                {"id": "var_3", "title": "Unico", "sku": "BUZ-U", "manage_inventory": True},
            ]},
            {"id": "prod_3", "title": "Gift card", "variants": [
                {"id": "var_4", "title": "Digital", "sku": None, "manage_inventory": False},
            ]},
        ]
        self.abandoned = [
            {"_id": "evt_1", "event": "checkout.abandoned", "data": {"total": 1500},
             "timestamp": _days_ago(1)},
            {"_id": "evt_2", "event": "checkout.abandoned", "data": {"total": 2500},
             "timestamp": _days_ago(1)},
        ]
        self.meta_insights = [
            {"spend": "2000", "impressions": "10000", "clicks": "300", "ctr": "3", "cpc": "6.6",
             "reach": "8000", "frequency": "1.25",
             "actions": [{"action_type": "purchase", "value": "3"}],
             "purchase_roas": [{"action_type": "omni_purchase", "value": "1.2"}]},
        ]
        self.failing: Set[str] = set()
        self.requests: List[httpx.Request] = []
        self.proxy_status = 200
        self.proxy_body: Any = {"ok": True}

    def fail(self, host: str) -> None:
        self.failing.add(host)

    def calls(self, host: str, path: Optional[str] = None) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.url.host == host and (path is None or r.url.path == path)
        ]

    def _page(self, key: str, records: List[Dict[str, Any]], params: httpx.QueryParams) -> httpx.Response:
        offset = int(params.get("offset", 0))
        limit = int(params.get("limit", 100))
        return httpx.Response(200, json={key: records[offset:offset + limit], "count": len(records)})

    def _orders_in_range(self, params: httpx.QueryParams) -> List[Dict[str, Any]]:
        start = parse_timestamp(unquote(params.get("created_at[$gte]", "")))
        end = parse_timestamp(unquote(params.get("created_at[$lte]", "")))
        selected = []
        for order in self.orders:
            created = parse_timestamp(order["created_at"])
            if start and created < start:
                continue
            if end and created > end:
                continue
            if params.get("customer_id") and order["customer_id"] != params["customer_id"]:
                continue
            selected.append(order)
        return selected

    def _commerce(self, request: httpx.Request) -> httpx.Response:
        path, params = request.url.path, request.url.params
        if path == "/admin/orders":
            return self._page("orders", self._orders_in_range(params), params)
        if path == "/admin/customers":
            return self._page("customers", self.customers, params)
        if path == "/admin/inventory-items":
            return self._page("inventory_items", self.inventory_items, params)
        if path == "/admin/products":
            return self._page("products", self.products, params)
        if path == "/admin/customer-groups":
            return httpx.Response(200, json={"customer_groups": self.groups})
        if path.startswith("/admin/customers/"):
            customer_id = path.rsplit("/", 1)[-1]
            for customer in self.customers:
                if customer["id"] == customer_id:
                    return httpx.Response(200, json={"customer": customer})
            return httpx.Response(404, json={"message": "Customer not found"})
        return httpx.Response(404, json={"message": f"No route {path}"})

    def _events(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/stats":
            return httpx.Response(200, json=self.event_stats)
        if path == "/api/stats/funnel":
            return httpx.Response(200, json={
                "funnel": [{"step": "product.viewed", "count": 200}, {"step": "order.placed", "count": 12}],
                "conversion_rates": {"view_to_order": "6.0%"},
            })
        if path == "/api/stats/products":
            return httpx.Response(200, json={"products": self.event_products})
        if path == "/api/stats/search":
            return httpx.Response(200, json={
                "top_searches": [{"term": "remera", "count": 40}],
                "no_results": [{"term": "campera", "count": 10}],
            })
        if path == "/api/events":
            return httpx.Response(200, json={
                "events": self.abandoned,
                "total": len(self.abandoned),
                "limit": int(request.url.params.get("limit", 50)),
                "offset": int(request.url.params.get("offset", 0)),
            })
        if path.startswith("/api/stats/"):
            return httpx.Response(200, json={"page_url": request.url.params.get("page_url"), "points": []})
        return httpx.Response(404, json={"error": f"No route {path}"})

    def _meta(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": self.meta_insights})

    def _proxy(self, request: httpx.Request) -> httpx.Response:
        if self.proxy_body is None:
            return httpx.Response(self.proxy_status)
        return httpx.Response(self.proxy_status, json=self.proxy_body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host in self.failing:
            return httpx.Response(500, json={"message": f"{host} is down"})
        if host == "commerce.test":
            return self._commerce(request)
        if host == "events.test":
            return self._events(request)
        if host == "meta.test":
            return self._meta(request)
        if host == "picking.test":
            return self._proxy(request)
        return httpx.Response(404, json={"error": "unknown host"})

    def request_body(self, request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def transport(backend) -> httpx.MockTransport:
    return httpx.MockTransport(backend)


@pytest.fixture
def api_client(test_settings, transport):
    """Application wired to the fake backend"""
    from ops_dashboard.main import create_app

    app = create_app(settings=test_settings, transport=transport)
    with TestClient(app) as client:
        yield client
