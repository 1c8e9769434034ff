"""
Behavioral Analytics API Endpoints

Event store reads: the analytics page summary, the raw events listing and
per-page heatmap reports.
"""

from datetime import date
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, Query

from ops_dashboard.models import DateRange, EventFilters
from ops_dashboard.serving.api.dependencies import get_analytics_service, get_date_range
from ops_dashboard.serving.cache import analytics_cache
from ops_dashboard.services import AnalyticsService

router = APIRouter()


@router.get("/summary")
async def analytics_summary(
    page_url: Optional[str] = Query(None, description="Restrict to one storefront page"),
    abandoned_limit: int = Query(50, ge=1, le=500),
    abandoned_offset: int = Query(0, ge=0),
    date_range: DateRange = Depends(get_date_range),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Dict[str, Any]:
    return await service.summary(
        date_range,
        page_url=page_url,
        abandoned_limit=abandoned_limit,
        abandoned_offset=abandoned_offset,
    )


@router.get("/events")
async def list_events(
    event: Optional[str] = Query(None, description="Event name, e.g. checkout.abandoned"),
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    customer_id: Optional[str] = None,
    session_id: Optional[str] = None,
    source: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    sort: Literal["asc", "desc"] = "desc",
    service: AnalyticsService = Depends(get_analytics_service),
) -> Dict[str, Any]:
    filters = EventFilters(
        event=event,
        from_date=from_date,
        to_date=to_date,
        customer_id=customer_id,
        session_id=session_id,
        source=source,
        limit=limit,
        offset=offset,
        sort=sort,
    )
    return await service.events(filters)


@router.get("/pages/{report}")
async def page_report(
    report: Literal["heatmap", "scroll-depth", "product-visibility"],
    page_url: str = Query(..., description="Storefront page the report is about"),
    date_range: DateRange = Depends(get_date_range),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Any:
    """Heatmap, scroll-depth or product-visibility report, cached per page and range"""
    return await analytics_cache.get_or_set(
        f"{report}:{page_url}:{date_range.cache_key}",
        lambda: service.page_report(report, page_url, date_range),
    )
