"""
Order Aggregations

Pure reductions from order snapshots to dashboard summaries:
- Revenue by calendar day
- Payment and fulfillment status breakdowns
- Top products by revenue and by units sold
- Order listing filters and refund figures
- Period KPIs with deltas against the previous period

Revenue, AOV and product figures only ever include captured orders.
Order counts include every payment state.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union
from zoneinfo import ZoneInfo

import polars as pl

from ops_dashboard.models import (
    CamelModel,
    Order,
    PaymentStatus,
    fulfillment_status_label,
    payment_status_label,
)

DEFAULT_TIMEZONE = "America/Argentina/Buenos_Aires"

ORDER_SCHEMA = {
    "order_id": pl.Utf8,
    "day": pl.Date,
    "payment_status": pl.Utf8,
    "payment_label": pl.Utf8,
    "fulfillment_label": pl.Utf8,
    "total": pl.Float64,
    "customer_id": pl.Utf8,
}

ITEM_SCHEMA = {
    "order_id": pl.Utf8,
    "product_id": pl.Utf8,
    "name": pl.Utf8,
    "revenue": pl.Float64,
    "quantity": pl.Float64,
}


def _zone(tz: Optional[str]) -> ZoneInfo:
    return ZoneInfo(tz or DEFAULT_TIMEZONE)


def plain_number(value: Any) -> Union[int, float]:
    """Render whole floats as ints so integral totals serialize as ints"""
    if value is None:
        return 0
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def orders_frame(orders: Sequence[Order], tz: Optional[str] = None) -> pl.DataFrame:
    """
    Flatten orders into a fixed-schema frame.

    ``day`` is the creation date in the display timezone, null when the
    order carries no parseable timestamp.
    """
    zone = _zone(tz)
    rows = []
    for order in orders:
        payment_key = order.payment_status or order.status or "unknown"
        rows.append({
            "order_id": order.id,
            "day": order.created_at.astimezone(zone).date() if order.created_at else None,
            "payment_status": order.payment_status,
            "payment_label": payment_status_label(payment_key),
            "fulfillment_label": fulfillment_status_label(order.fulfillment_status or "unknown"),
            "total": float(order.total or 0),
            "customer_id": order.customer_id,
        })
    return pl.DataFrame(rows, schema=ORDER_SCHEMA)


def items_frame(orders: Sequence[Order]) -> pl.DataFrame:
    """Flatten line items of the given orders; unidentifiable items are dropped"""
    rows = []
    for order in orders:
        for item in order.items:
            key = item.group_key
            if key is None:
                continue
            rows.append({
                "order_id": order.id,
                "product_id": key,
                "name": item.display_name,
                "revenue": float(item.revenue),
                "quantity": float(item.quantity or 0),
            })
    return pl.DataFrame(rows, schema=ITEM_SCHEMA)


def filter_paid_orders(orders: Iterable[Order]) -> List[Order]:
    """Keep only orders whose payment was captured"""
    return [o for o in orders if o.payment_status == PaymentStatus.CAPTURED.value]


def count_by_payment(orders: Iterable[Order], status: str) -> int:
    return sum(1 for o in orders if o.payment_status == status)


def count_by_fulfillment(orders: Iterable[Order], statuses: Iterable[str]) -> int:
    wanted = set(statuses)
    return sum(1 for o in orders if o.fulfillment_status in wanted)


def aggregate_revenue_by_day(
    orders: Sequence[Order],
    tz: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Paid revenue and order count per calendar day.

    Days are taken in the display timezone and returned oldest first.
    Orders without a creation timestamp are left out.
    """
    frame = orders_frame(filter_paid_orders(orders), tz).filter(pl.col("day").is_not_null())

    daily = (
        frame.group_by("day")
        .agg([
            pl.col("total").sum().alias("revenue"),
            pl.len().alias("orders"),
        ])
        .sort("day")
    )

    return [
        {
            "date": row["day"].isoformat(),
            "label": row["day"].strftime("%d/%m"),
            "revenue": plain_number(row["revenue"]),
            "orders": row["orders"],
        }
        for row in daily.iter_rows(named=True)
    ]


def _count_by_label(frame: pl.DataFrame, column: str) -> List[Dict[str, Any]]:
    counts = (
        frame.group_by(column, maintain_order=True)
        .agg(pl.len().alias("count"))
        .sort("count", descending=True, maintain_order=True)
    )
    return [
        {"status": row[column], "count": row["count"]}
        for row in counts.iter_rows(named=True)
    ]


def aggregate_by_status(orders: Sequence[Order]) -> List[Dict[str, Any]]:
    """
    Count every order by payment status label, most frequent first.

    Falls back to the generic ``status`` field, then to "unknown", so every
    order lands in exactly one bucket.
    """
    return _count_by_label(orders_frame(orders), "payment_label")


def aggregate_by_fulfillment_status(orders: Sequence[Order]) -> List[Dict[str, Any]]:
    """Count every order by fulfillment status label, most frequent first"""
    return _count_by_label(orders_frame(orders), "fulfillment_label")


def aggregate_top_products(
    orders: Sequence[Order],
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Rank products of paid orders by revenue.

    Items group by product id, then variant id, then title. Line revenue is
    the explicit line total when present, else unit price times quantity.
    """
    frame = items_frame(filter_paid_orders(orders))

    products = (
        frame.group_by("product_id", maintain_order=True)
        .agg([
            pl.col("name").first(),
            pl.col("revenue").sum(),
            pl.col("quantity").sum(),
        ])
        .sort("revenue", descending=True, maintain_order=True)
    )
    if limit is not None:
        products = products.head(limit)

    return [
        {
            "product_id": row["product_id"],
            "name": row["name"],
            "revenue": plain_number(row["revenue"]),
            "quantity": plain_number(row["quantity"]),
        }
        for row in products.iter_rows(named=True)
    ]


def percentage_change(current: float, previous: float) -> float:
    """
    Relative change in percent.

    Defined as 0 whenever the previous value is not positive, so an empty
    previous period never yields NaN or infinity.
    """
    if not previous or previous <= 0:
        return 0.0
    return (current - previous) / previous * 100


@dataclass
class PeriodFigures:
    """Raw figures of one period"""
    revenue: float
    total_orders: int
    paid_orders: int
    aov: float
    unique_customers: int


def period_figures(orders: Sequence[Order]) -> PeriodFigures:
    frame = orders_frame(orders)
    paid = frame.filter(pl.col("payment_status") == PaymentStatus.CAPTURED.value)

    revenue = paid["total"].sum() or 0.0
    paid_count = paid.height

    return PeriodFigures(
        revenue=revenue,
        total_orders=frame.height,
        paid_orders=paid_count,
        aov=revenue / paid_count if paid_count > 0 else 0.0,
        unique_customers=paid["customer_id"].drop_nulls().n_unique(),
    )


class DashboardMetrics(CamelModel):
    """Headline KPIs of a period"""

    total_revenue: Union[int, float] = 0
    total_orders: int = 0
    paid_orders: int = 0
    aov: float = 0.0
    unique_customers: int = 0
    revenue_change: float = 0.0
    orders_change: float = 0.0
    paid_orders_change: float = 0.0
    aov_change: float = 0.0
    customers_change: float = 0.0


def calculate_metrics(
    orders: Sequence[Order],
    previous_orders: Sequence[Order],
) -> DashboardMetrics:
    """
    Headline KPIs for ``orders`` with deltas against ``previous_orders``.

    Revenue and AOV come from captured orders, ``total_orders`` counts all
    orders, and unique customers are distinct customer ids among captured
    orders.
    """
    current = period_figures(orders)
    previous = period_figures(previous_orders)

    return DashboardMetrics(
        total_revenue=plain_number(current.revenue),
        total_orders=current.total_orders,
        paid_orders=current.paid_orders,
        aov=current.aov,
        unique_customers=current.unique_customers,
        revenue_change=percentage_change(current.revenue, previous.revenue),
        orders_change=percentage_change(current.total_orders, previous.total_orders),
        paid_orders_change=percentage_change(current.paid_orders, previous.paid_orders),
        aov_change=percentage_change(current.aov, previous.aov),
        customers_change=percentage_change(current.unique_customers, previous.unique_customers),
    )


# =============================================================================
# ORDERS PAGE
# =============================================================================

def filter_orders(
    orders: Iterable[Order],
    payment_status: Optional[str] = None,
    fulfillment_status: Optional[str] = None,
) -> List[Order]:
    """Orders matching the exact payment and fulfillment status, when given"""
    result = list(orders)
    if payment_status:
        result = [o for o in result if o.payment_status == payment_status]
    if fulfillment_status:
        result = [o for o in result if o.fulfillment_status == fulfillment_status]
    return result


class RefundMetrics(CamelModel):
    count: int = 0
    amount: Union[int, float] = 0
    rate: float = 0.0


def refund_metrics(orders: Sequence[Order]) -> RefundMetrics:
    """
    Fully refunded orders over every order of the period.

    The rate is a percentage with one decimal, 0 for an empty period.
    """
    frame = orders_frame(orders)
    refunded = frame.filter(pl.col("payment_status") == PaymentStatus.REFUNDED.value)

    return RefundMetrics(
        count=refunded.height,
        amount=plain_number(refunded["total"].sum() or 0.0),
        rate=round(refunded.height / frame.height * 100, 1) if frame.height > 0 else 0.0,
    )


def aggregate_product_units(orders: Sequence[Order]) -> List[Dict[str, Any]]:
    """
    Units sold per product over paid orders, most units first.

    ``share`` is the product's percentage of every unit sold.
    """
    frame = items_frame(filter_paid_orders(orders))

    products = (
        frame.group_by("product_id", maintain_order=True)
        .agg([
            pl.col("name").first(),
            pl.col("quantity").sum(),
            pl.col("order_id").drop_nulls().n_unique().alias("order_count"),
        ])
        .sort("quantity", descending=True, maintain_order=True)
    )
    total_units = products["quantity"].sum() or 0.0

    return [
        {
            "product_id": row["product_id"],
            "name": row["name"],
            "quantity": plain_number(row["quantity"]),
            "order_count": row["order_count"],
            "share": round(row["quantity"] / total_units * 100, 1) if total_units > 0 else 0.0,
        }
        for row in products.iter_rows(named=True)
    ]


def order_row(order: Order) -> Dict[str, Any]:
    """One order as a table row, statuses as display labels"""
    return {
        "id": order.id,
        "display_id": order.display_id,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "email": order.email,
        "total": order.total,
        "currency_code": order.currency_code,
        "items": len(order.items),
        "payment_status": payment_status_label(order.payment_status or order.status or "unknown"),
        "fulfillment_status": fulfillment_status_label(order.fulfillment_status or "unknown"),
    }
