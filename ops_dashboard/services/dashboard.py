"""
Overview Page Service

Fetches every source of the overview page concurrently and composes the
unified payload. A failing source only blanks the widgets that depend on
it; its error is reported under ``sources``.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import structlog

from ops_dashboard.aggregation import (
    abandonment_summary,
    aggregate_by_status,
    aggregate_churn_distribution,
    aggregate_revenue_by_day,
    aggregate_revenue_by_group,
    aggregate_top_products,
    build_alerts,
    build_group_name_map,
    calculate_metrics,
    cross_metrics,
    device_breakdown,
    get_customer_metrics,
    journey_steps,
    order_row,
    product_conversion,
    resolve_customer_groups,
    search_insights,
    segment_health,
)
from ops_dashboard.clients import UpstreamClients
from ops_dashboard.config.settings import Settings
from ops_dashboard.models import DateRange, Order
from ops_dashboard.serving.cache import CacheManager, dashboard_cache
from ops_dashboard.services.sources import fetch_sources

logger = structlog.get_logger(__name__)

RECENT_ORDERS = 5
TOP_PRODUCTS = 10


def _dump(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, list):
        return [_dump(v) for v in value]
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json", by_alias=True)
    return value


def recent_orders(orders: Sequence[Order], limit: int = RECENT_ORDERS) -> List[Dict[str, Any]]:
    """Latest orders as table rows"""
    latest = sorted(
        (o for o in orders if o.created_at is not None),
        key=lambda o: o.created_at,
        reverse=True,
    )[:limit]
    return [order_row(o) for o in latest]


def date_range_dict(date_range: DateRange) -> Dict[str, Any]:
    return {
        "start": date_range.start.isoformat(),
        "end": date_range.end.isoformat(),
        "label": date_range.label,
    }


class DashboardService:
    """Composes the overview page"""

    def __init__(
        self,
        clients: UpstreamClients,
        settings: Settings,
        cache: Optional[CacheManager] = None,
    ):
        self.clients = clients
        self.settings = settings
        self.cache = cache or dashboard_cache

    async def overview(
        self,
        date_range: DateRange,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Unified overview payload for ``date_range``.

        Cached only when every source answered, so a transient failure is
        not served for the whole TTL.
        """
        cached = await self.cache.get(date_range.cache_key)
        if cached is not None:
            return cached

        payload, complete = await self._compose(date_range, now)
        if complete:
            await self.cache.set(date_range.cache_key, payload)
        return payload

    async def _compose(self, date_range: DateRange, now: Optional[datetime]):
        dashboard = self.settings.dashboard
        commerce, events = self.clients.commerce, self.clients.events

        results = await fetch_sources(
            orders=commerce.fetch_all_orders(date_range),
            previous_orders=commerce.fetch_all_orders(date_range.previous()),
            customers=commerce.fetch_all_customers(),
            customer_groups=commerce.list_customer_groups(),
            event_stats=events.stats(date_range),
            event_products=events.products(date_range),
            event_search=events.search(date_range),
            abandoned=events.abandoned_checkouts(date_range, limit=dashboard.abandoned_sample_size),
            ga4_overview=self.clients.ga4.overview(date_range),
            ga4_devices=self.clients.ga4.devices(date_range),
            meta_overview=self.clients.meta.overview(date_range),
        )

        orders = results["orders"]
        order_list = orders or []

        group_names = build_group_name_map(results["customer_groups"] or [])
        customers = resolve_customer_groups(
            results["customers"] or [], group_names, dashboard.default_customer_group
        )
        enriched = []
        if customers and orders is not None:
            enriched = get_customer_metrics(customers, orders, now, dashboard.default_customer_group)

        metrics = calculate_metrics(orders, results["previous_orders"] or []) if orders is not None else None
        top_products = aggregate_top_products(order_list)
        revenue_by_group = aggregate_revenue_by_group(order_list, customers, dashboard.default_customer_group)

        cross = cross_metrics(results["event_stats"], metrics, results["meta_overview"])
        search = search_insights(results["event_search"])
        abandoned = results["abandoned"].events if results["abandoned"] else []

        payload = {
            "range": date_range_dict(date_range),
            "sources": results.status_dict(),
            "metrics": _dump(metrics),
            "revenueByDay": aggregate_revenue_by_day(order_list, dashboard.timezone),
            "byStatus": aggregate_by_status(order_list),
            "topProducts": top_products[:TOP_PRODUCTS],
            "revenueByGroup": revenue_by_group,
            "churnDistribution": aggregate_churn_distribution(enriched),
            "crossMetrics": _dump(cross),
            "journey": _dump(journey_steps(results["ga4_overview"], results["event_stats"], metrics, order_list)),
            "productConversion": _dump(product_conversion(results["event_products"], top_products)),
            "segmentHealth": _dump(segment_health(enriched, revenue_by_group, dashboard.default_customer_group)),
            "searchInsights": _dump(search),
            "abandonment": _dump(abandonment_summary(cross, abandoned)),
            "alerts": _dump(build_alerts(enriched, order_list, metrics, results["meta_overview"], cross, search)),
            "devices": device_breakdown(results["ga4_devices"]),
            "ga4": _dump(results["ga4_overview"]),
            "meta": _dump(results["meta_overview"]),
            "recentOrders": recent_orders(order_list),
        }

        logger.info(
            "Overview composed",
            range=date_range.cache_key,
            orders=len(order_list),
            customers=len(customers),
            failed_sources=[name for name, s in results.status.items() if not s.ok],
        )
        return payload, results.all_ok
