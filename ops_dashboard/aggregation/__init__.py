"""
Aggregation Module
"""
from .orders import (
    DashboardMetrics,
    RefundMetrics,
    aggregate_product_units,
    aggregate_by_fulfillment_status,
    aggregate_by_status,
    aggregate_revenue_by_day,
    aggregate_top_products,
    calculate_metrics,
    filter_orders,
    filter_paid_orders,
    order_row,
    percentage_change,
    refund_metrics,
)
from .customers import (
    DEFAULT_GROUP,
    aggregate_churn_distribution,
    aggregate_revenue_by_group,
    build_group_name_map,
    extract_customer_groups,
    filter_customers,
    get_customer_metrics,
    match_customer_orders,
    resolve_customer_groups,
    resolve_group_name,
    sort_customers,
    summarize_customers,
)
from .cross_source import (
    CrossMetrics,
    abandonment_summary,
    abandons_by_day,
    build_alerts,
    cross_metrics,
    device_breakdown,
    journey_steps,
    product_conversion,
    search_insights,
    segment_health,
)
from .inventory import (
    ProductStock,
    VariantStock,
    build_stock_map,
    out_of_stock_products,
    out_of_stock_variants,
    products_with_stock,
    stock_summary,
)

__all__ = [
    "DashboardMetrics",
    "RefundMetrics",
    "aggregate_product_units",
    "aggregate_by_fulfillment_status",
    "aggregate_by_status",
    "aggregate_revenue_by_day",
    "aggregate_top_products",
    "calculate_metrics",
    "filter_orders",
    "filter_paid_orders",
    "order_row",
    "percentage_change",
    "refund_metrics",
    "DEFAULT_GROUP",
    "aggregate_churn_distribution",
    "aggregate_revenue_by_group",
    "build_group_name_map",
    "extract_customer_groups",
    "filter_customers",
    "get_customer_metrics",
    "match_customer_orders",
    "resolve_customer_groups",
    "resolve_group_name",
    "sort_customers",
    "summarize_customers",
    "CrossMetrics",
    "abandonment_summary",
    "abandons_by_day",
    "build_alerts",
    "cross_metrics",
    "device_breakdown",
    "journey_steps",
    "product_conversion",
    "search_insights",
    "segment_health",
    "ProductStock",
    "VariantStock",
    "build_stock_map",
    "out_of_stock_products",
    "out_of_stock_variants",
    "products_with_stock",
    "stock_summary",
]
