"""
Marketing API Endpoints

GA4 traffic and Meta Ads performance. Both sources are optional: without
credentials the endpoints answer 503 with the source name.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from ops_dashboard.clients import UpstreamClients
from ops_dashboard.exceptions import UpstreamNotConfigured
from ops_dashboard.models import DateRange
from ops_dashboard.serving.api.dependencies import get_clients, get_date_range

router = APIRouter()


def _require(value: Any, source: str) -> Any:
    if value is None:
        raise UpstreamNotConfigured(source)
    if isinstance(value, list):
        return [row.model_dump(mode="json", by_alias=True) for row in value]
    return value.model_dump(mode="json", by_alias=True)


@router.get("/ga4/overview")
async def ga4_overview(
    date_range: DateRange = Depends(get_date_range),
    clients: UpstreamClients = Depends(get_clients),
) -> Dict[str, Any]:
    if not clients.ga4.configured:
        raise UpstreamNotConfigured("ga4")
    overview = await clients.ga4.overview(date_range)
    if overview is None:
        return {}
    return overview.model_dump(mode="json", by_alias=True)


@router.get("/ga4/devices")
async def ga4_devices(
    date_range: DateRange = Depends(get_date_range),
    clients: UpstreamClients = Depends(get_clients),
) -> List[Dict[str, Any]]:
    return _require(await clients.ga4.devices(date_range), "ga4")


@router.get("/ga4/traffic")
async def ga4_traffic(
    date_range: DateRange = Depends(get_date_range),
    clients: UpstreamClients = Depends(get_clients),
) -> List[Dict[str, Any]]:
    """Sessions, purchases and revenue per source / medium"""
    return _require(await clients.ga4.traffic(date_range), "ga4")


@router.get("/meta/overview")
async def meta_overview(
    date_range: DateRange = Depends(get_date_range),
    clients: UpstreamClients = Depends(get_clients),
) -> Dict[str, Any]:
    if not clients.meta.configured:
        raise UpstreamNotConfigured("meta")
    overview = await clients.meta.overview(date_range)
    if overview is None:
        return {}
    return overview.model_dump(mode="json", by_alias=True)


@router.get("/meta/campaigns")
async def meta_campaigns(
    date_range: DateRange = Depends(get_date_range),
    clients: UpstreamClients = Depends(get_clients),
) -> List[Dict[str, Any]]:
    return _require(await clients.meta.campaigns(date_range), "meta")
