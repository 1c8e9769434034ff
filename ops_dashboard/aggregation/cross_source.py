"""
Cross-Source Composition

Joins commerce aggregates with behavioral events, GA4 and Meta Ads data
into the derived figures of the overview and analytics pages:
marketing efficiency, the end-to-end journey, product conversion,
segment health, search gaps, checkout abandonment and alerts.

Every function accepts None for a source that failed or is not
configured and degrades to an empty or zero result.
"""

from typing import Any, Dict, List, Optional, Sequence
from zoneinfo import ZoneInfo

import polars as pl

from ops_dashboard.aggregation.customers import AT_RISK_DAYS, DEFAULT_GROUP
from ops_dashboard.aggregation.orders import (
    DEFAULT_TIMEZONE,
    DashboardMetrics,
    count_by_fulfillment,
    count_by_payment,
    plain_number,
)
from ops_dashboard.formatting import format_currency
from ops_dashboard.models import (
    CamelModel,
    CustomerWithMetrics,
    EventItem,
    EventStats,
    FulfillmentStatus,
    GA4DeviceRow,
    GA4Overview,
    MetaOverview,
    Order,
    PaymentStatus,
    ProductStats,
    SearchStats,
    SearchTerm,
    to_number,
)

CRITICAL_CHURN_DAYS = 90
ABANDON_RATE_WARNING = 30.0
NO_RESULTS_RATE_WARNING = 15.0
PAYMENT_CONVERSION_WARNING = 50.0

DEVICE_NAMES = {
    "desktop": "Escritorio",
    "mobile": "Móvil",
    "tablet": "Tablet",
}

# (event type, step name)
EVENT_JOURNEY_STEPS = [
    ("product.viewed", "Productos Vistos"),
    ("product.added_to_cart", "Agregado al Carrito"),
    ("checkout.started", "Checkout Iniciado"),
    ("order.placed", "Orden Realizada"),
]


def _rate(part: float, whole: float, digits: int = 1) -> float:
    return round(part / whole * 100, digits) if whole > 0 else 0.0


# =============================================================================
# MARKETING EFFICIENCY
# =============================================================================

class CrossMetrics(CamelModel):
    """Figures combining orders, events and ad spend"""
    real_roas: float = 0.0
    cost_per_sale: float = 0.0
    abandon_rate: float = 0.0
    view_to_sale_rate: float = 0.0
    product_views: int = 0
    checkouts_started: int = 0
    checkouts_abandoned: int = 0


def cross_metrics(
    event_stats: Optional[EventStats],
    metrics: Optional[DashboardMetrics],
    meta_overview: Optional[MetaOverview],
) -> CrossMetrics:
    """
    Real ROAS is captured revenue over Meta spend, unlike the platform
    reported ROAS which only counts attributed purchases.
    """
    product_views = event_stats.count("product.viewed") if event_stats else 0
    started = event_stats.count("checkout.started") if event_stats else 0
    abandoned = event_stats.count("checkout.abandoned") if event_stats else 0
    paid_orders = metrics.paid_orders if metrics else 0
    revenue = metrics.total_revenue if metrics else 0
    spend = meta_overview.spend if meta_overview else 0.0

    return CrossMetrics(
        real_roas=revenue / spend if spend > 0 else 0.0,
        cost_per_sale=spend / paid_orders if paid_orders > 0 and spend > 0 else 0.0,
        abandon_rate=_rate(abandoned, started, 1),
        view_to_sale_rate=_rate(paid_orders, product_views, 2),
        product_views=product_views,
        checkouts_started=started,
        checkouts_abandoned=abandoned,
    )


# =============================================================================
# JOURNEY
# =============================================================================

class JourneyStep(CamelModel):
    name: str
    count: int
    source: str


def journey_steps(
    ga4_overview: Optional[GA4Overview],
    event_stats: Optional[EventStats],
    metrics: Optional[DashboardMetrics],
    orders: Sequence[Order],
) -> List[JourneyStep]:
    """
    Visitor journey from web sessions to delivered orders.

    Steps come from GA4, the event store and the commerce platform in that
    order. Steps with a zero count are omitted.
    """
    steps = []
    if ga4_overview and ga4_overview.sessions:
        steps.append(JourneyStep(name="Sesiones Web", count=ga4_overview.sessions, source="GA4"))

    if event_stats:
        for event_type, name in EVENT_JOURNEY_STEPS:
            count = event_stats.count(event_type)
            if count:
                steps.append(JourneyStep(name=name, count=count, source="Events"))

    if metrics and metrics.paid_orders:
        steps.append(JourneyStep(name="Pago Capturado", count=metrics.paid_orders, source="Commerce"))

    shipped = count_by_fulfillment(
        orders, [FulfillmentStatus.SHIPPED.value, FulfillmentStatus.DELIVERED.value]
    )
    delivered = count_by_fulfillment(orders, [FulfillmentStatus.DELIVERED.value])
    if shipped:
        steps.append(JourneyStep(name="Enviado", count=shipped, source="Commerce"))
    if delivered:
        steps.append(JourneyStep(name="Entregado", count=delivered, source="Commerce"))

    return steps


# =============================================================================
# PRODUCT CONVERSION
# =============================================================================

class ProductConversionRow(CamelModel):
    product_id: str
    name: str
    views: int = 0
    clicks: int = 0
    added_to_cart: int = 0
    actual_sold: float = 0
    actual_revenue: float = 0
    view_to_sale_rate: float = 0.0
    opportunity_score: float = 0


def product_conversion(
    event_products: Optional[ProductStats],
    top_products: Sequence[Dict[str, Any]],
) -> List[ProductConversionRow]:
    """
    Behavioral product counters joined with paid-order totals by product id.

    Opportunity score is views not converted into units sold. Products the
    event store reports without an id are left out. Rows are ordered by
    views, most viewed first.
    """
    if not event_products or not event_products.products or not top_products:
        return []

    sold = {p["product_id"]: p for p in top_products}

    rows = []
    for product in event_products.products:
        if not product.product_id:
            continue
        order_data = sold.get(product.product_id, {})
        quantity = order_data.get("quantity", 0)
        rows.append(ProductConversionRow(
            product_id=product.product_id,
            name=product.title or product.product_id,
            views=product.views,
            clicks=product.clicks,
            added_to_cart=product.added_to_cart,
            actual_sold=quantity,
            actual_revenue=order_data.get("revenue", 0),
            view_to_sale_rate=_rate(quantity, product.views, 1),
            opportunity_score=product.views - quantity if product.views > 0 else 0,
        ))

    return sorted(rows, key=lambda r: r.views, reverse=True)


# =============================================================================
# SEGMENT HEALTH
# =============================================================================

class SegmentHealthRow(CamelModel):
    group: str
    customers: int = 0
    with_orders: int = 0
    repeat: int = 0
    at_risk: int = 0
    total_revenue: float = 0
    avg_ltv: float = 0.0
    period_revenue: float = 0
    retention_rate: float = 0.0
    risk_rate: float = 0.0


def segment_health(
    customers: Sequence[CustomerWithMetrics],
    revenue_by_group: Sequence[Dict[str, Any]],
    default_group: str = DEFAULT_GROUP,
) -> List[SegmentHealthRow]:
    """
    Per-group retention and risk over enriched customers.

    Retention is repeat buyers over buyers; risk is customers past the
    at-risk threshold over all customers in the group. Rows are ordered by
    the lifetime revenue of the fetched window, highest first.
    """
    if not customers:
        return []

    rows = [
        {
            "group": c.group or default_group,
            "has_orders": c.order_count > 0,
            "is_repeat": c.order_count > 1,
            "is_at_risk": c.days_since_last_order is not None and c.days_since_last_order > AT_RISK_DAYS,
            "total_spent": float(c.total_spent or 0),
        }
        for c in customers
    ]
    frame = pl.DataFrame(rows, schema={
        "group": pl.Utf8,
        "has_orders": pl.Boolean,
        "is_repeat": pl.Boolean,
        "is_at_risk": pl.Boolean,
        "total_spent": pl.Float64,
    })

    segments = (
        frame.group_by("group", maintain_order=True)
        .agg([
            pl.len().alias("customers"),
            pl.col("has_orders").sum().alias("with_orders"),
            pl.col("is_repeat").sum().alias("repeat"),
            pl.col("is_at_risk").sum().alias("at_risk"),
            pl.col("total_spent").sum().alias("total_revenue"),
        ])
        .sort("total_revenue", descending=True, maintain_order=True)
    )

    period = {r["group"]: r["revenue"] for r in revenue_by_group}

    health = []
    for row in segments.iter_rows(named=True):
        with_orders = row["with_orders"]
        health.append(SegmentHealthRow(
            group=row["group"],
            customers=row["customers"],
            with_orders=with_orders,
            repeat=row["repeat"],
            at_risk=row["at_risk"],
            total_revenue=plain_number(row["total_revenue"]),
            avg_ltv=row["total_revenue"] / with_orders if with_orders > 0 else 0.0,
            period_revenue=period.get(row["group"], 0),
            retention_rate=_rate(row["repeat"], with_orders, 1),
            risk_rate=_rate(row["at_risk"], row["customers"], 1),
        ))
    return health


# =============================================================================
# SEARCH
# =============================================================================

class SearchInsights(CamelModel):
    no_results_rate: float = 0.0
    top_missing: List[SearchTerm] = []
    top_searches: List[SearchTerm] = []


def search_insights(
    search_stats: Optional[SearchStats],
    top: int = 8,
) -> Optional[SearchInsights]:
    """Share of searches with no results, plus the leading terms of each list"""
    if search_stats is None:
        return None

    no_results = sum(t.count for t in search_stats.no_results)
    searches = sum(t.count for t in search_stats.top_searches)

    return SearchInsights(
        no_results_rate=_rate(no_results, searches + no_results, 1),
        top_missing=search_stats.no_results[:top],
        top_searches=search_stats.top_searches[:top],
    )


# =============================================================================
# ABANDONMENT
# =============================================================================

class AbandonmentSummary(CamelModel):
    count: int = 0
    rate: float = 0.0
    estimated_value: float = 0
    events: List[EventItem] = []


def estimated_lost_value(events: Sequence[EventItem]) -> float:
    """Sum of cart totals carried by abandoned-checkout events"""
    return plain_number(sum(to_number(e.data.get("total")) for e in events))


def abandonment_summary(
    cross: CrossMetrics,
    abandoned_events: Sequence[EventItem],
) -> AbandonmentSummary:
    return AbandonmentSummary(
        count=cross.checkouts_abandoned,
        rate=cross.abandon_rate,
        estimated_value=estimated_lost_value(abandoned_events),
        events=list(abandoned_events),
    )


def abandons_by_day(
    events: Sequence[EventItem],
    tz: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Abandoned checkouts per calendar day in the display timezone, oldest first"""
    zone = ZoneInfo(tz or DEFAULT_TIMEZONE)
    days = [e.timestamp.astimezone(zone).date() for e in events if e.timestamp is not None]

    frame = pl.DataFrame({"day": days}, schema={"day": pl.Date})
    daily = frame.group_by("day").agg(pl.len().alias("count")).sort("day")

    return [
        {"date": row["day"].isoformat(), "label": row["day"].strftime("%d/%m"), "count": row["count"]}
        for row in daily.iter_rows(named=True)
    ]


# =============================================================================
# ALERTS
# =============================================================================

class Alert(CamelModel):
    type: str
    message: str


def build_alerts(
    customers: Sequence[CustomerWithMetrics],
    orders: Sequence[Order],
    metrics: Optional[DashboardMetrics],
    meta_overview: Optional[MetaOverview],
    cross: CrossMetrics,
    search: Optional[SearchInsights],
) -> List[Alert]:
    """
    Operational alerts, critical first.

    - critical: customers more than 90 days without buying
    - critical: real ROAS below 1 while there is ad spend
    - warning: refunds in the period
    - warning: checkout abandon rate above 30%
    - warning: more than 15% of searches without results
    - warning: fewer than half of the orders paid
    """
    alerts = []

    critical = sum(
        1 for c in customers
        if c.days_since_last_order is not None and c.days_since_last_order > CRITICAL_CHURN_DAYS
    )
    if critical > 0:
        alerts.append(Alert(
            type="critical",
            message=f"{critical} clientes en riesgo crítico (90+ días sin comprar)",
        ))

    if meta_overview and meta_overview.spend > 0 and metrics and cross.real_roas < 1:
        alerts.append(Alert(
            type="critical",
            message=(
                f"ROAS negativo: gastás {format_currency(meta_overview.spend)} en Meta "
                f"pero generás {format_currency(metrics.total_revenue)} ({cross.real_roas:.2f}x)"
            ),
        ))

    refunded = count_by_payment(orders, PaymentStatus.REFUNDED.value)
    if refunded > 0:
        alerts.append(Alert(type="warning", message=f"{refunded} reembolsos en el período seleccionado"))

    if cross.abandon_rate > ABANDON_RATE_WARNING:
        alerts.append(Alert(
            type="warning",
            message=f"Tasa de abandono de checkout alta: {cross.abandon_rate:.1f}%",
        ))

    if search and search.no_results_rate > NO_RESULTS_RATE_WARNING:
        alerts.append(Alert(
            type="warning",
            message=f"{search.no_results_rate:.1f}% de búsquedas sin resultados (demanda no satisfecha)",
        ))

    if metrics and metrics.total_orders > 0:
        rate = metrics.paid_orders / metrics.total_orders * 100
        if rate < PAYMENT_CONVERSION_WARNING:
            alerts.append(Alert(type="warning", message=f"Tasa de conversión de pago baja: {rate:.1f}%"))

    return alerts


# =============================================================================
# DEVICES
# =============================================================================

def device_breakdown(devices: Optional[Sequence[GA4DeviceRow]]) -> List[Dict[str, Any]]:
    """GA4 sessions per device category with display names"""
    if not devices:
        return []
    return [
        {"name": DEVICE_NAMES.get(d.device, d.device), "value": d.sessions}
        for d in devices
    ]
