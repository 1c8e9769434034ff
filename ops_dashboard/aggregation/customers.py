"""
Customer Aggregations

Group resolution, per-customer order metrics, churn bands and the
customers-page filters. Matching a customer to orders is by customer id
first; the case-insensitive email lookup is used only when the id lookup
finds nothing.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import polars as pl

from ops_dashboard.aggregation.orders import filter_paid_orders, plain_number
from ops_dashboard.models import (
    Customer,
    CustomerGroup,
    CustomerWithMetrics,
    Order,
)

DEFAULT_GROUP = "Minorista"

NEVER_BUCKET = "never"

# (key, inclusive upper bound in days, label, color)
CHURN_BANDS: List[Tuple[str, Optional[int], str, str]] = [
    ("active", 30, "Activo (0-30d)", "#22c55e"),
    ("warning", 60, "Alerta (31-60d)", "#eab308"),
    ("risk", 90, "Riesgo (61-90d)", "#f97316"),
    ("critical", None, "Critico (90d+)", "#ef4444"),
    (NEVER_BUCKET, None, "Sin compras", "#9ca3af"),
]

AT_RISK_DAYS = 60

ORDER_COUNT_BUCKETS = ("0", "1", "2-5", "6+")

CUSTOMER_SORT_FIELDS = (
    "total_spent",
    "order_count",
    "avg_order_value",
    "last_order_date",
    "days_since_last_order",
    "email",
    "first_name",
    "last_name",
    "created_at",
)

GROUP_SCHEMA = {
    "group": pl.Utf8,
    "total": pl.Float64,
}


# =============================================================================
# GROUP RESOLUTION
# =============================================================================

def build_group_name_map(groups: Iterable[CustomerGroup]) -> Dict[str, str]:
    """Map native group id to group name"""
    return {g.id: g.name for g in groups if g.id and g.name}


def resolve_group_name(value: str, group_names: Dict[str, str]) -> str:
    """Translate a group id to its name; readable names pass through"""
    return group_names.get(value, value)


def resolve_customer_groups(
    customers: Sequence[Customer],
    group_names: Dict[str, str],
    default_group: str = DEFAULT_GROUP,
) -> List[Customer]:
    """
    Copy customers with ``metadata.customer_group_resolved`` filled in.

    Customers without a group tag buy as guests and get ``default_group``.
    """
    resolved = []
    for customer in customers:
        raw = customer.raw_group
        name = resolve_group_name(raw, group_names) if raw else default_group
        metadata = {**customer.metadata, "customer_group_resolved": name}
        resolved.append(customer.model_copy(update={"metadata": metadata}))
    return resolved


def extract_customer_groups(
    customers: Iterable[Customer],
    group_names: Optional[Dict[str, str]] = None,
) -> List[str]:
    """Distinct group names present on customers, alphabetically"""
    groups = set()
    for customer in customers:
        raw = customer.raw_group
        if raw:
            groups.add(resolve_group_name(raw, group_names or {}))
    return sorted(groups)


# =============================================================================
# ORDER MATCHING
# =============================================================================

@dataclass
class OrderIndex:
    """Orders indexed by customer id and by lower-cased email"""
    by_id: Dict[str, List[Order]] = field(default_factory=dict)
    by_email: Dict[str, List[Order]] = field(default_factory=dict)

    @classmethod
    def build(cls, orders: Iterable[Order]) -> "OrderIndex":
        index = cls()
        for order in orders:
            if order.customer_id:
                index.by_id.setdefault(order.customer_id, []).append(order)
            if order.email:
                index.by_email.setdefault(order.email.lower(), []).append(order)
        return index


def match_customer_orders(
    customer: Customer,
    by_id: Dict[str, List[Order]],
    by_email: Dict[str, List[Order]],
) -> List[Order]:
    """
    Orders belonging to ``customer``.

    1. Orders whose customer_id equals the customer's id.
    2. Only if step 1 found nothing: orders whose email matches the
       customer's email, case-insensitively.
    3. Otherwise no orders.
    """
    if customer.id:
        matched = by_id.get(customer.id)
        if matched:
            return list(matched)

    if customer.email:
        matched = by_email.get(customer.email.lower())
        if matched:
            return list(matched)

    return []


def get_customer_metrics(
    customers: Sequence[Customer],
    orders: Sequence[Order],
    now: Optional[datetime] = None,
    default_group: str = DEFAULT_GROUP,
) -> List[CustomerWithMetrics]:
    """
    Enrich customers with metrics over their paid orders.

    ``days_since_last_order`` is the floor of whole days elapsed since the
    most recent order, None when the customer has no dated paid order. A
    missing phone is backfilled from the first order shipping address that
    carries one.
    """
    now = now or datetime.now(timezone.utc)
    index = OrderIndex.build(filter_paid_orders(orders))

    enriched = []
    for customer in customers:
        matched = match_customer_orders(customer, index.by_id, index.by_email)

        total_spent = sum(o.total or 0 for o in matched)
        order_count = len(matched)

        dated = [o.created_at for o in matched if o.created_at is not None]
        last_order_date = max(dated) if dated else None
        days_since = (now - last_order_date).days if last_order_date else None

        phone = customer.phone or next(
            (o.shipping_phone for o in matched if o.shipping_phone), None
        )

        fields = customer.model_dump()
        fields.update(
            phone=phone,
            group=customer.group_or(default_group),
            order_count=order_count,
            total_spent=plain_number(total_spent),
            avg_order_value=total_spent / order_count if order_count > 0 else 0.0,
            last_order_date=last_order_date,
            days_since_last_order=days_since,
        )
        enriched.append(CustomerWithMetrics(**fields))
    return enriched


def aggregate_revenue_by_group(
    orders: Sequence[Order],
    customers: Sequence[Customer],
    default_group: str = DEFAULT_GROUP,
) -> List[Dict[str, Any]]:
    """
    Paid revenue and order count per customer group, highest revenue first.

    Each paid order is attributed by customer id, else by email, else to
    ``default_group``.
    """
    group_by_id: Dict[str, str] = {}
    group_by_email: Dict[str, str] = {}
    for customer in customers:
        group = customer.resolved_group or default_group
        if customer.id:
            group_by_id[customer.id] = group
        if customer.email:
            group_by_email[customer.email.lower()] = group

    rows = []
    for order in filter_paid_orders(orders):
        if order.customer_id and order.customer_id in group_by_id:
            group = group_by_id[order.customer_id]
        elif order.email:
            group = group_by_email.get(order.email.lower(), default_group)
        else:
            group = default_group
        rows.append({"group": group, "total": float(order.total or 0)})

    frame = pl.DataFrame(rows, schema=GROUP_SCHEMA)
    by_group = (
        frame.group_by("group", maintain_order=True)
        .agg([
            pl.col("total").sum().alias("revenue"),
            pl.len().alias("orders"),
        ])
        .sort("revenue", descending=True, maintain_order=True)
    )

    return [
        {"group": row["group"], "revenue": plain_number(row["revenue"]), "orders": row["orders"]}
        for row in by_group.iter_rows(named=True)
    ]


# =============================================================================
# CHURN
# =============================================================================

def churn_bucket(customer: CustomerWithMetrics) -> str:
    """Recency band key; upper bounds are inclusive"""
    days = customer.days_since_last_order
    if days is None or customer.order_count == 0:
        return NEVER_BUCKET
    for key, upper, _, _ in CHURN_BANDS:
        if upper is None or days <= upper:
            return key
    return NEVER_BUCKET


def aggregate_churn_distribution(
    customers: Sequence[CustomerWithMetrics],
) -> List[Dict[str, Any]]:
    """Customer counts per recency band, fixed band order, empty bands dropped"""
    counts = {key: 0 for key, _, _, _ in CHURN_BANDS}
    for customer in customers:
        counts[churn_bucket(customer)] += 1

    return [
        {"label": label, "count": counts[key], "color": color}
        for key, _, label, color in CHURN_BANDS
        if counts[key] > 0
    ]


# =============================================================================
# CUSTOMERS PAGE
# =============================================================================

def _matches_order_bucket(order_count: int, bucket: str) -> bool:
    if bucket == "0":
        return order_count == 0
    if bucket == "1":
        return order_count == 1
    if bucket == "2-5":
        return 2 <= order_count <= 5
    if bucket == "6+":
        return order_count >= 6
    return True


def filter_customers(
    customers: Sequence[CustomerWithMetrics],
    search: Optional[str] = None,
    group: Optional[str] = None,
    min_days_since: Optional[int] = None,
    order_count: Optional[str] = None,
) -> List[CustomerWithMetrics]:
    """
    Apply the customers-page filters.

    Args:
        search: Substring matched case-insensitively against first name,
            last name and email
        group: Resolved group name
        min_days_since: Keep customers with at least this many days since
            their last order; customers who never ordered are excluded
        order_count: One of "0", "1", "2-5", "6+"
    """
    result = list(customers)

    if search:
        query = search.lower()
        result = [
            c for c in result
            if any(query in (value or "").lower() for value in (c.first_name, c.last_name, c.email))
        ]

    if group:
        result = [c for c in result if c.group == group]

    if min_days_since is not None:
        result = [
            c for c in result
            if c.days_since_last_order is not None and c.days_since_last_order >= min_days_since
        ]

    if order_count:
        result = [c for c in result if _matches_order_bucket(c.order_count, order_count)]

    return result


def sort_customers(
    customers: Sequence[CustomerWithMetrics],
    sort_by: str = "total_spent",
    descending: bool = True,
) -> List[CustomerWithMetrics]:
    """Stable sort on a customer field; missing values sort lowest"""
    if sort_by not in CUSTOMER_SORT_FIELDS:
        raise ValueError(f"Cannot sort customers by {sort_by!r}")

    def key(customer: CustomerWithMetrics):
        value = getattr(customer, sort_by)
        if isinstance(value, str):
            value = value.lower()
        return (value is not None, value if value is not None else 0)

    return sorted(customers, key=key, reverse=descending)


def summarize_customers(customers: Sequence[CustomerWithMetrics]) -> Dict[str, Any]:
    """Header figures of the customers page"""
    buyers = [c for c in customers if c.order_count > 0]
    at_risk = [
        c for c in customers
        if c.days_since_last_order is not None and c.days_since_last_order > AT_RISK_DAYS
    ]
    avg_ltv = sum(c.total_spent for c in buyers) / len(buyers) if buyers else 0.0

    return {
        "total": len(customers),
        "with_orders": len(buyers),
        "repeat": sum(1 for c in customers if c.order_count > 1),
        "at_risk": len(at_risk),
        "avg_ltv": avg_ltv,
    }


def at_risk_customers(customers: Sequence[CustomerWithMetrics]) -> List[CustomerWithMetrics]:
    """Customers past the at-risk threshold, most valuable first"""
    flagged = [
        c for c in customers
        if c.days_since_last_order is not None and c.days_since_last_order > AT_RISK_DAYS
    ]
    return sorted(flagged, key=lambda c: c.total_spent, reverse=True)
