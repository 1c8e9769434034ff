"""
Overview Endpoint

The unified overview page: sales, marketing, behavior and customers.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ops_dashboard.models import DateRange
from ops_dashboard.serving.api.dependencies import get_dashboard_service, get_date_range
from ops_dashboard.services import DashboardService

router = APIRouter()


@router.get("/overview")
async def get_overview(
    date_range: DateRange = Depends(get_date_range),
    service: DashboardService = Depends(get_dashboard_service),
) -> Dict[str, Any]:
    """
    Composed overview for the range.

    Always answers 200; sources that failed are flagged under ``sources``
    and their widgets come back empty.
    """
    return await service.overview(date_range)
