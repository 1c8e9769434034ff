"""
Event Analytics Service

Behavioral analytics page: event stats, funnel, product and search
statistics, checkout abandonment, and the page-level heatmap reports.
"""

from typing import Any, Dict, Optional

import structlog

from ops_dashboard.aggregation import abandons_by_day, search_insights
from ops_dashboard.aggregation.cross_source import estimated_lost_value
from ops_dashboard.clients import UpstreamClients
from ops_dashboard.config.settings import Settings
from ops_dashboard.models import DateRange, EventFilters
from ops_dashboard.services.sources import fetch_sources

logger = structlog.get_logger(__name__)


def _dump(value: Any) -> Any:
    if value is None:
        return None
    return value.model_dump(mode="json", by_alias=True)


class AnalyticsService:
    """Read side of the behavioral event store"""

    def __init__(self, clients: UpstreamClients, settings: Settings):
        self.clients = clients
        self.settings = settings

    async def summary(
        self,
        date_range: DateRange,
        page_url: Optional[str] = None,
        abandoned_limit: int = 50,
        abandoned_offset: int = 0,
    ) -> Dict[str, Any]:
        """
        Analytics page payload.

        Abandon rate is abandoned over started checkouts from the stats;
        the estimated lost value and per-day series cover only the fetched
        page of abandoned-checkout events.
        """
        events = self.clients.events
        results = await fetch_sources(
            stats=events.stats(date_range, page_url),
            funnel=events.funnel(date_range, page_url),
            products=events.products(date_range, page_url=page_url),
            search=events.search(date_range, page_url=page_url),
            abandoned=events.abandoned_checkouts(date_range, limit=abandoned_limit, offset=abandoned_offset),
        )

        stats = results["stats"]
        abandoned_count = stats.count("checkout.abandoned") if stats else 0
        started = stats.count("checkout.started") if stats else 0
        abandoned = results["abandoned"]
        abandoned_events = abandoned.events if abandoned else []

        return {
            "sources": results.status_dict(),
            "stats": _dump(stats),
            "funnel": _dump(results["funnel"]),
            "products": _dump(results["products"]),
            "search": _dump(results["search"]),
            "searchInsights": _dump(search_insights(results["search"])),
            "abandonment": {
                "count": abandoned_count,
                "rate": round(abandoned_count / started * 100, 1) if started > 0 else 0.0,
                "estimatedValue": estimated_lost_value(abandoned_events),
                "byDay": abandons_by_day(abandoned_events, self.settings.dashboard.timezone),
                "events": [e.model_dump(mode="json", by_alias=True) for e in abandoned_events],
                "total": abandoned.total if abandoned else 0,
                "limit": abandoned_limit,
                "offset": abandoned_offset,
            },
        }

    async def events(self, filters: EventFilters) -> Dict[str, Any]:
        return _dump(await self.clients.events.events(filters))

    async def page_report(self, report: str, page_url: str, date_range: DateRange) -> Any:
        """Heatmap, scroll-depth or product-visibility report of one page"""
        events = self.clients.events
        handlers = {
            "heatmap": events.heatmap,
            "scroll-depth": events.scroll_depth,
            "product-visibility": events.product_visibility,
        }
        return await handlers[report](page_url, date_range)
