"""
Customers API Endpoints

Customer tracking: enriched listing with filters, summary, churn bands,
revenue per group and the spreadsheet export.
"""

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Response

from ops_dashboard.aggregation.customers import CUSTOMER_SORT_FIELDS
from ops_dashboard.exceptions import InvalidQuery
from ops_dashboard.models import DateRange
from ops_dashboard.serving.api.dependencies import csv_download, get_customer_service, get_date_range
from ops_dashboard.serving.cache import customers_cache
from ops_dashboard.services import CustomerQuery, CustomerService

router = APIRouter()


def get_customer_query(
    search: Optional[str] = Query(None, description="Matches first name, last name or email"),
    group: Optional[str] = Query(None, description="Resolved group name"),
    min_days_since: Optional[int] = Query(None, ge=0, description="At least this many days without buying"),
    order_count: Optional[Literal["0", "1", "2-5", "6+"]] = Query(None),
    sort_by: str = Query("total_spent"),
    sort_dir: Literal["asc", "desc"] = Query("desc"),
) -> CustomerQuery:
    if sort_by not in CUSTOMER_SORT_FIELDS:
        raise InvalidQuery(f"Cannot sort customers by {sort_by}")
    return CustomerQuery(
        search=search,
        group=group,
        min_days_since=min_days_since,
        order_count=order_count,
        sort_by=sort_by,
        descending=sort_dir == "desc",
    )


@router.get("")
async def list_customers(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    query: CustomerQuery = Depends(get_customer_query),
    date_range: DateRange = Depends(get_date_range),
    service: CustomerService = Depends(get_customer_service),
) -> Dict[str, Any]:
    return await service.list(date_range, query, limit=limit, offset=offset)


@router.get("/summary")
async def customers_summary(
    date_range: DateRange = Depends(get_date_range),
    service: CustomerService = Depends(get_customer_service),
) -> Dict[str, Any]:
    return await service.summary(date_range)


@router.get("/churn")
async def churn_distribution(
    date_range: DateRange = Depends(get_date_range),
    service: CustomerService = Depends(get_customer_service),
) -> List[Dict[str, Any]]:
    return await service.churn(date_range)


@router.get("/revenue-by-group")
async def revenue_by_group(
    date_range: DateRange = Depends(get_date_range),
    service: CustomerService = Depends(get_customer_service),
) -> List[Dict[str, Any]]:
    return await service.revenue_by_group(date_range)


@router.get("/groups")
async def customer_groups(
    service: CustomerService = Depends(get_customer_service),
) -> List[str]:
    return await customers_cache.get_or_set("groups", service.groups)


@router.get("/at-risk")
async def at_risk_customers(
    date_range: DateRange = Depends(get_date_range),
    service: CustomerService = Depends(get_customer_service),
) -> List[Dict[str, Any]]:
    return await service.at_risk(date_range)


@router.get("/export.csv")
async def export_customers(
    query: CustomerQuery = Depends(get_customer_query),
    date_range: DateRange = Depends(get_date_range),
    service: CustomerService = Depends(get_customer_service),
) -> Response:
    """Filtered customers as a spreadsheet-ready CSV download"""
    return csv_download(await service.export_csv(date_range, query), "clientes")


@router.get("/{customer_id}")
async def customer_detail(
    customer_id: str,
    service: CustomerService = Depends(get_customer_service),
) -> Dict[str, Any]:
    return await service.detail(customer_id)
