"""
Request dependencies shared by the API routes.
"""

from datetime import date, datetime, timezone
from typing import Optional

from fastapi import Depends, Query, Request, Response

from ops_dashboard.clients import UpstreamClients
from ops_dashboard.config import Settings, get_settings
from ops_dashboard.exceptions import InvalidDateRange
from ops_dashboard.models import DateRange
from ops_dashboard.services import AnalyticsService, CustomerService, DashboardService, ProductService


def get_clients(request: Request) -> UpstreamClients:
    return request.app.state.clients


def get_date_range(
    days: Optional[int] = Query(None, ge=1, le=730, description="Trailing window in days"),
    start_date: Optional[date] = Query(None, description="First day, inclusive"),
    end_date: Optional[date] = Query(None, description="Last day, inclusive"),
    settings: Settings = Depends(get_settings),
) -> DateRange:
    """
    Reporting window from either ``days`` or a ``start_date``/``end_date``
    pair. Defaults to the configured trailing window.
    """
    if start_date is not None or end_date is not None:
        if start_date is None or end_date is None:
            raise InvalidDateRange("start_date and end_date must be given together")
        if start_date > end_date:
            raise InvalidDateRange("start_date must not be after end_date")
        return DateRange.from_dates(start_date, end_date)

    return DateRange.last_days(days or settings.dashboard.default_range_days)


def get_dashboard_service(
    clients: UpstreamClients = Depends(get_clients),
    settings: Settings = Depends(get_settings),
) -> DashboardService:
    return DashboardService(clients, settings)


def get_customer_service(
    clients: UpstreamClients = Depends(get_clients),
    settings: Settings = Depends(get_settings),
) -> CustomerService:
    return CustomerService(clients, settings)


def get_analytics_service(
    clients: UpstreamClients = Depends(get_clients),
    settings: Settings = Depends(get_settings),
) -> AnalyticsService:
    return AnalyticsService(clients, settings)


def get_product_service(
    clients: UpstreamClients = Depends(get_clients),
    settings: Settings = Depends(get_settings),
) -> ProductService:
    return ProductService(clients, settings)


def csv_download(content: bytes, prefix: str) -> Response:
    """Attachment response named ``<prefix>_YYYY-MM-DD.csv``"""
    filename = f"{prefix}_{datetime.now(timezone.utc):%Y-%m-%d}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
