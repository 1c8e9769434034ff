"""
Customers Page Service

Customers enriched with order metrics for a date range, plus the
page filters, summary figures, churn bands and CSV export.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import structlog

from ops_dashboard.aggregation import (
    aggregate_churn_distribution,
    aggregate_revenue_by_group,
    build_group_name_map,
    extract_customer_groups,
    filter_customers,
    get_customer_metrics,
    resolve_customer_groups,
    sort_customers,
    summarize_customers,
)
from ops_dashboard.aggregation.customers import at_risk_customers
from ops_dashboard.clients import UpstreamClients
from ops_dashboard.config.settings import Settings
from ops_dashboard.export import export_customers
from ops_dashboard.models import Customer, CustomerWithMetrics, DateRange, Order

logger = structlog.get_logger(__name__)


class CustomerQuery:
    """Filters and ordering of the customers listing"""

    def __init__(
        self,
        search: Optional[str] = None,
        group: Optional[str] = None,
        min_days_since: Optional[int] = None,
        order_count: Optional[str] = None,
        sort_by: str = "total_spent",
        descending: bool = True,
    ):
        self.search = search
        self.group = group
        self.min_days_since = min_days_since
        self.order_count = order_count
        self.sort_by = sort_by
        self.descending = descending

    def apply(self, customers: List[CustomerWithMetrics]) -> List[CustomerWithMetrics]:
        filtered = filter_customers(
            customers,
            search=self.search,
            group=self.group,
            min_days_since=self.min_days_since,
            order_count=self.order_count,
        )
        return sort_customers(filtered, self.sort_by, self.descending)


class CustomerService:
    """Customer analytics over the commerce platform"""

    def __init__(self, clients: UpstreamClients, settings: Settings):
        self.clients = clients
        self.settings = settings

    @property
    def default_group(self) -> str:
        return self.settings.dashboard.default_customer_group

    async def _load(self, date_range: DateRange) -> Tuple[List[Customer], List[Order], List[str]]:
        """Resolved customers, orders of the range and every known group name"""
        commerce = self.clients.commerce
        customers, orders, groups = await asyncio.gather(
            commerce.fetch_all_customers(),
            commerce.fetch_all_orders(date_range),
            commerce.list_customer_groups(),
        )

        group_names = build_group_name_map(groups)
        resolved = resolve_customer_groups(customers, group_names, self.default_group)

        known = set(extract_customer_groups(resolved, group_names))
        known.update(g.name for g in groups if g.name)
        return resolved, orders, sorted(known)

    async def enriched(
        self,
        date_range: DateRange,
        now: Optional[datetime] = None,
    ) -> Tuple[List[CustomerWithMetrics], List[Order], List[str]]:
        customers, orders, groups = await self._load(date_range)
        enriched = get_customer_metrics(customers, orders, now, self.default_group)
        logger.debug("Customers enriched", customers=len(enriched), orders=len(orders))
        return enriched, orders, groups

    async def list(
        self,
        date_range: DateRange,
        query: CustomerQuery,
        limit: Optional[int] = None,
        offset: int = 0,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        customers, _, groups = await self.enriched(date_range, now)
        matched = query.apply(customers)
        page = matched[offset:offset + limit] if limit else matched[offset:]

        return {
            "customers": [c.model_dump(mode="json") for c in page],
            "total": len(matched),
            "groups": groups,
            "summary": summarize_customers(customers),
        }

    async def summary(self, date_range: DateRange, now: Optional[datetime] = None) -> Dict[str, Any]:
        customers, _, _ = await self.enriched(date_range, now)
        return summarize_customers(customers)

    async def churn(self, date_range: DateRange, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        customers, _, _ = await self.enriched(date_range, now)
        return aggregate_churn_distribution(customers)

    async def revenue_by_group(self, date_range: DateRange) -> List[Dict[str, Any]]:
        customers, orders, _ = await self._load(date_range)
        return aggregate_revenue_by_group(orders, customers, self.default_group)

    async def groups(self) -> List[str]:
        commerce = self.clients.commerce
        customers, groups = await asyncio.gather(
            commerce.fetch_all_customers(),
            commerce.list_customer_groups(),
        )
        group_names = build_group_name_map(groups)
        known = set(extract_customer_groups(customers, group_names))
        known.update(g.name for g in groups if g.name)
        return sorted(known)

    async def at_risk(self, date_range: DateRange, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Customers more than 60 days without buying, most valuable first"""
        customers, _, _ = await self.enriched(date_range, now)
        return [c.model_dump(mode="json") for c in at_risk_customers(customers)]

    async def export_csv(
        self,
        date_range: DateRange,
        query: CustomerQuery,
        now: Optional[datetime] = None,
    ) -> bytes:
        customers, _, _ = await self.enriched(date_range, now)
        return export_customers(query.apply(customers), tz=self.settings.dashboard.timezone)

    async def detail(self, customer_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """One customer with metrics over their latest orders"""
        commerce = self.clients.commerce
        customer, orders, groups = await asyncio.gather(
            commerce.get_customer(customer_id),
            commerce.customer_orders(customer_id),
            commerce.list_customer_groups(),
        )
        resolved = resolve_customer_groups([customer], build_group_name_map(groups), self.default_group)
        enriched = get_customer_metrics(resolved, orders, now, self.default_group)[0]

        return {
            "customer": enriched.model_dump(mode="json"),
            "orders": [o.model_dump(mode="json") for o in orders],
        }
