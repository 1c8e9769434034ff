"""
Orders API Endpoints

Order listing and aggregates for a date range. Revenue figures only count
captured payments; status breakdowns and refund figures count every order.
"""

import asyncio
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Response

from ops_dashboard.aggregation import (
    aggregate_by_fulfillment_status,
    aggregate_by_status,
    aggregate_revenue_by_day,
    aggregate_top_products,
    calculate_metrics,
    filter_orders,
    order_row,
    refund_metrics,
)
from ops_dashboard.clients import UpstreamClients
from ops_dashboard.config import Settings, get_settings
from ops_dashboard.export import export_orders
from ops_dashboard.models import DateRange
from ops_dashboard.serving.api.dependencies import csv_download, get_clients, get_date_range

router = APIRouter()

PaymentFilter = Optional[Literal["captured", "authorized", "not_paid", "canceled", "refunded"]]
FulfillmentFilter = Optional[Literal["not_fulfilled", "fulfilled", "shipped", "delivered", "canceled"]]


@router.get("")
async def list_orders(
    payment_status: PaymentFilter = Query(None),
    fulfillment_status: FulfillmentFilter = Query(None),
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
    date_range: DateRange = Depends(get_date_range),
    clients: UpstreamClients = Depends(get_clients),
) -> Dict[str, Any]:
    """
    Orders of the range filtered by status, one page at a time.

    Refund figures always cover every order of the range, whatever the
    filters.
    """
    orders = await clients.commerce.fetch_all_orders(date_range)
    filtered = filter_orders(orders, payment_status, fulfillment_status)

    return {
        "orders": [order_row(o) for o in filtered[offset:offset + limit]],
        "total": len(filtered),
        "total_orders": len(orders),
        "limit": limit,
        "offset": offset,
        "refunds": refund_metrics(orders).model_dump(by_alias=True),
    }


@router.get("/refunds")
async def get_refund_metrics(
    date_range: DateRange = Depends(get_date_range),
    clients: UpstreamClients = Depends(get_clients),
) -> Dict[str, Any]:
    orders = await clients.commerce.fetch_all_orders(date_range)
    return refund_metrics(orders).model_dump(by_alias=True)


@router.get("/export.csv")
async def export_orders_csv(
    payment_status: PaymentFilter = Query(None),
    fulfillment_status: FulfillmentFilter = Query(None),
    date_range: DateRange = Depends(get_date_range),
    clients: UpstreamClients = Depends(get_clients),
    settings: Settings = Depends(get_settings),
) -> Response:
    orders = await clients.commerce.fetch_all_orders(date_range)
    filtered = filter_orders(orders, payment_status, fulfillment_status)
    return csv_download(export_orders(filtered, settings.dashboard.timezone), "ordenes")


@router.get("/metrics")
async def get_order_metrics(
    date_range: DateRange = Depends(get_date_range),
    clients: UpstreamClients = Depends(get_clients),
) -> Dict[str, Any]:
    """Headline KPIs with deltas against the previous period of equal length"""
    orders, previous = await asyncio.gather(
        clients.commerce.fetch_all_orders(date_range),
        clients.commerce.fetch_all_orders(date_range.previous()),
    )
    return calculate_metrics(orders, previous).model_dump(by_alias=True)


@router.get("/revenue-by-day")
async def get_revenue_by_day(
    date_range: DateRange = Depends(get_date_range),
    clients: UpstreamClients = Depends(get_clients),
    settings: Settings = Depends(get_settings),
) -> List[Dict[str, Any]]:
    orders = await clients.commerce.fetch_all_orders(date_range)
    return aggregate_revenue_by_day(orders, settings.dashboard.timezone)


@router.get("/by-status")
async def get_orders_by_status(
    date_range: DateRange = Depends(get_date_range),
    clients: UpstreamClients = Depends(get_clients),
) -> List[Dict[str, Any]]:
    orders = await clients.commerce.fetch_all_orders(date_range)
    return aggregate_by_status(orders)


@router.get("/by-fulfillment-status")
async def get_orders_by_fulfillment_status(
    date_range: DateRange = Depends(get_date_range),
    clients: UpstreamClients = Depends(get_clients),
) -> List[Dict[str, Any]]:
    orders = await clients.commerce.fetch_all_orders(date_range)
    return aggregate_by_fulfillment_status(orders)


@router.get("/top-products")
async def get_top_products(
    limit: Optional[int] = Query(10, ge=1, le=500),
    date_range: DateRange = Depends(get_date_range),
    clients: UpstreamClients = Depends(get_clients),
) -> List[Dict[str, Any]]:
    orders = await clients.commerce.fetch_all_orders(date_range)
    return aggregate_top_products(orders, limit=limit)
