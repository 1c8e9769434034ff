"""
Behavioral Event Store Client

The store filters ``timestamp < to``, so every range query sends the day
after the last requested day as ``to`` to include it completely.
"""

from typing import Any, Dict, Optional

import httpx

from ops_dashboard.clients.base import UpstreamClient
from ops_dashboard.config.settings import Settings
from ops_dashboard.models import (
    DateRange,
    EventFilters,
    EventsList,
    EventStats,
    FunnelStats,
    ProductStats,
    SearchStats,
)

ABANDONED_CHECKOUT = "checkout.abandoned"


def range_params(date_range: DateRange, page_url: Optional[str] = None) -> Dict[str, Any]:
    """``from``/``to`` as YYYY-MM-DD with an exclusive ``to``"""
    return {
        "from": date_range.start_param,
        "to": date_range.end_exclusive_param,
        "page_url": page_url,
    }


class EventsClient(UpstreamClient):
    """Read access to the event store statistics and raw events"""

    source = "events"

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "EventsClient":
        return cls(
            settings.events.api_url,
            headers={
                "X-API-Key": settings.events.api_key.get_secret_value(),
                "Content-Type": "application/json",
            },
            timeout=settings.events.timeout_seconds,
            transport=transport,
        )

    async def stats(self, date_range: DateRange, page_url: Optional[str] = None) -> EventStats:
        data = await self.get_json("/api/stats", params=range_params(date_range, page_url))
        return self.parse(EventStats, data)

    async def funnel(self, date_range: DateRange, page_url: Optional[str] = None) -> FunnelStats:
        data = await self.get_json("/api/stats/funnel", params=range_params(date_range, page_url))
        return self.parse(FunnelStats, data)

    async def products(
        self,
        date_range: DateRange,
        limit: int = 20,
        page_url: Optional[str] = None,
    ) -> ProductStats:
        params = {**range_params(date_range, page_url), "limit": limit}
        data = await self.get_json("/api/stats/products", params=params)
        return self.parse(ProductStats, data)

    async def search(
        self,
        date_range: DateRange,
        limit: int = 20,
        page_url: Optional[str] = None,
    ) -> SearchStats:
        params = {**range_params(date_range, page_url), "limit": limit}
        data = await self.get_json("/api/stats/search", params=params)
        return self.parse(SearchStats, data)

    async def events(self, filters: EventFilters) -> EventsList:
        """Raw events page; ``filters.to_date`` is sent as given"""
        data = await self.get_json("/api/events", params=filters.to_params())
        return self.parse(EventsList, data)

    async def abandoned_checkouts(
        self,
        date_range: DateRange,
        limit: int = 50,
        offset: int = 0,
    ) -> EventsList:
        """Most recent abandoned checkouts within the range"""
        filters = EventFilters(
            event=ABANDONED_CHECKOUT,
            from_date=date_range.start.date(),
            to_date=date_range.end_exclusive_date,
            limit=limit,
            offset=offset,
            sort="desc",
        )
        return await self.events(filters)

    async def heatmap(self, page_url: str, date_range: DateRange) -> Any:
        return await self.get_json("/api/stats/heatmap", params=range_params(date_range, page_url))

    async def scroll_depth(self, page_url: str, date_range: DateRange) -> Any:
        return await self.get_json("/api/stats/scroll-depth", params=range_params(date_range, page_url))

    async def product_visibility(self, page_url: str, date_range: DateRange) -> Any:
        return await self.get_json("/api/stats/product-visibility", params=range_params(date_range, page_url))
