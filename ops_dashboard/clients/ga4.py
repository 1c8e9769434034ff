"""
Google Analytics 4 Client

Calls the Data API ``runReport`` endpoint directly. When the property or
credentials are missing every call returns None instead of failing.
"""

from typing import Any, Dict, List, Optional

import httpx

from ops_dashboard.clients.base import UpstreamClient
from ops_dashboard.config.settings import Settings
from ops_dashboard.models import (
    DateRange,
    GA4DeviceRow,
    GA4Overview,
    GA4TrafficRow,
    to_number,
)

OVERVIEW_METRICS = [
    "sessions",
    "totalUsers",
    "newUsers",
    "bounceRate",
    "averageSessionDuration",
    "ecommercePurchases",
    "totalRevenue",
]


def _metric(row: Dict[str, Any], index: int) -> float:
    values = row.get("metricValues") or []
    if index >= len(values):
        return 0
    return to_number((values[index] or {}).get("value"))


def _dimension(row: Dict[str, Any], index: int) -> str:
    values = row.get("dimensionValues") or []
    if index >= len(values):
        return "unknown"
    return (values[index] or {}).get("value") or "unknown"


class GA4Client(UpstreamClient):
    """Web analytics reports for a GA4 property"""

    source = "ga4"

    def __init__(
        self,
        base_url: str,
        property_id: Optional[str],
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(base_url, headers=headers, timeout=timeout, transport=transport)
        self.property_id = property_id
        self.configured = bool(property_id and headers)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "GA4Client":
        ga4 = settings.ga4
        headers = {}
        if ga4.is_configured:
            headers = {"Authorization": f"Bearer {ga4.access_token.get_secret_value()}"}
        return cls(
            ga4.api_url,
            property_id=ga4.property_id if ga4.is_configured else None,
            headers=headers,
            timeout=ga4.timeout_seconds,
            transport=transport,
        )

    async def run_report(
        self,
        date_range: DateRange,
        metrics: List[str],
        dimensions: Optional[List[str]] = None,
    ) -> Optional[List[Dict[str, Any]]]:
        """Rows of a report; None when GA4 is not configured"""
        if not self.configured:
            return None

        body: Dict[str, Any] = {
            "dateRanges": [{"startDate": date_range.start_param, "endDate": date_range.end_param}],
            "metrics": [{"name": name} for name in metrics],
        }
        if dimensions:
            body["dimensions"] = [{"name": name} for name in dimensions]

        data = await self.post_json(f"/properties/{self.property_id}:runReport", body)
        return (data or {}).get("rows") or []

    async def overview(self, date_range: DateRange) -> Optional[GA4Overview]:
        rows = await self.run_report(date_range, OVERVIEW_METRICS)
        if not rows:
            return None

        row = rows[0]
        return GA4Overview(
            sessions=int(_metric(row, 0)),
            total_users=int(_metric(row, 1)),
            new_users=int(_metric(row, 2)),
            bounce_rate=_metric(row, 3),
            average_session_duration=_metric(row, 4),
            ecommerce_purchases=int(_metric(row, 5)),
            total_revenue=_metric(row, 6),
        )

    async def devices(self, date_range: DateRange) -> Optional[List[GA4DeviceRow]]:
        rows = await self.run_report(date_range, ["sessions", "totalUsers"], ["deviceCategory"])
        if rows is None:
            return None
        return [
            GA4DeviceRow(device=_dimension(row, 0), sessions=int(_metric(row, 0)), users=int(_metric(row, 1)))
            for row in rows
        ]

    async def traffic(self, date_range: DateRange) -> Optional[List[GA4TrafficRow]]:
        rows = await self.run_report(
            date_range,
            ["sessions", "totalUsers", "ecommercePurchases", "totalRevenue"],
            ["sessionSource", "sessionMedium"],
        )
        if rows is None:
            return None
        return [
            GA4TrafficRow(
                source=_dimension(row, 0),
                medium=_dimension(row, 1),
                sessions=int(_metric(row, 0)),
                users=int(_metric(row, 1)),
                purchases=int(_metric(row, 2)),
                revenue=_metric(row, 3),
            )
            for row in rows
        ]
