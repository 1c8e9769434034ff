"""
Unit Tests - Customer Aggregations
"""
from datetime import datetime, timezone

import pytest

from ops_dashboard.aggregation import (
    aggregate_churn_distribution,
    aggregate_revenue_by_group,
    build_group_name_map,
    extract_customer_groups,
    filter_customers,
    get_customer_metrics,
    match_customer_orders,
    resolve_customer_groups,
    sort_customers,
    summarize_customers,
)
from ops_dashboard.aggregation.customers import OrderIndex, at_risk_customers, churn_bucket
from ops_dashboard.models import CustomerGroup, CustomerWithMetrics


def _with_metrics(days, order_count=1, **fields) -> CustomerWithMetrics:
    return CustomerWithMetrics(days_since_last_order=days, order_count=order_count, **fields)


class TestGroupResolution:
    """Tests for group id to name resolution"""

    def test_ids_resolve_names_pass_through(self, make_customer):
        names = build_group_name_map([
            CustomerGroup(id="cgrp_1", name="Mayorista"),
            CustomerGroup(id="cgrp_2", name=None),
        ])
        customers = [
            make_customer(id="a", metadata={"customer_group": "cgrp_1"}),
            make_customer(id="b", metadata={"customer_group": "Revendedor"}),
            make_customer(id="c"),
        ]

        resolved = resolve_customer_groups(customers, names)

        assert [c.resolved_group for c in resolved] == ["Mayorista", "Revendedor", "Minorista"]
        assert names == {"cgrp_1": "Mayorista"}

    def test_inputs_not_mutated(self, make_customer):
        customer = make_customer(metadata={"customer_group": "cgrp_1"})

        resolve_customer_groups([customer], {"cgrp_1": "Mayorista"})

        assert "customer_group_resolved" not in customer.metadata

    def test_extract_groups_sorted_and_distinct(self, make_customer):
        customers = [
            make_customer(id="a", metadata={"customer_group": "Revendedor"}),
            make_customer(id="b", metadata={"customer_group": "cgrp_1"}),
            make_customer(id="c", metadata={"customer_group": "Revendedor"}),
            make_customer(id="d"),
        ]

        assert extract_customer_groups(customers, {"cgrp_1": "Mayorista"}) == ["Mayorista", "Revendedor"]


class TestOrderMatching:
    """Customer id first; email only when the id finds nothing"""

    def test_id_match_wins_over_email(self, make_customer, make_order):
        customer = make_customer(id="cus_1", email="ana@example.com")
        index = OrderIndex.build([
            make_order(id="by_id", customer_id="cus_1", email="other@example.com"),
            make_order(id="by_email", customer_id=None, email="ana@example.com"),
        ])

        matched = match_customer_orders(customer, index.by_id, index.by_email)

        assert [o.id for o in matched] == ["by_id"]

    def test_email_fallback_is_case_insensitive(self, make_customer, make_order):
        customer = make_customer(id="cus_9", email="Ana@Example.com")
        index = OrderIndex.build([make_order(id="guest", customer_id=None, email="ANA@example.COM")])

        matched = match_customer_orders(customer, index.by_id, index.by_email)

        assert [o.id for o in matched] == ["guest"]

    def test_no_match(self, make_customer, make_order):
        customer = make_customer(id="cus_9", email="nobody@example.com")
        index = OrderIndex.build([make_order(customer_id="cus_1", email="ana@example.com")])

        assert match_customer_orders(customer, index.by_id, index.by_email) == []


class TestCustomerMetrics:
    """Tests for per-customer enrichment"""

    def test_paid_orders_only(self, make_customer, make_order, now):
        customers = [make_customer(id="cus_1")]
        orders = [
            make_order(id="o1", customer_id="cus_1", total=1000, created_at="2024-03-01T15:00:00Z"),
            make_order(id="o2", customer_id="cus_1", total=500, created_at="2024-03-20T15:00:00Z"),
            make_order(id="o3", customer_id="cus_1", total=9000, payment_status="refunded",
                       created_at="2024-03-30T15:00:00Z"),
        ]

        result = get_customer_metrics(customers, orders, now=now)[0]

        assert result.order_count == 2
        assert result.total_spent == 1500
        assert result.avg_order_value == 750
        assert result.last_order_date == datetime(2024, 3, 20, 15, 0, tzinfo=timezone.utc)
        assert result.days_since_last_order == 10

    def test_days_since_is_floored(self, make_customer, make_order, now):
        orders = [make_order(customer_id="cus_1", created_at="2024-03-01T15:00:00Z")]

        result = get_customer_metrics([make_customer(id="cus_1")], orders, now=now)[0]

        # 29 days and 21 hours
        assert result.days_since_last_order == 29

    def test_customer_without_orders(self, make_customer, make_order, now):
        customers = [make_customer(id="cus_2", email="luis@example.com")]
        orders = [make_order(customer_id="cus_1", email="ana@example.com")]

        result = get_customer_metrics(customers, orders, now=now)[0]

        assert result.order_count == 0
        assert result.total_spent == 0
        assert result.avg_order_value == 0
        assert result.days_since_last_order is None
        assert result.last_order_date is None

    def test_phone_backfilled_from_shipping_address(self, make_customer, make_order, now):
        customers = [make_customer(id="cus_1", phone=None)]
        orders = [
            make_order(id="o1", customer_id="cus_1", shipping_address={"city": "CABA"}),
            make_order(id="o2", customer_id="cus_1", shipping_address={"phone": "+54 11 4444-0000"}),
        ]

        result = get_customer_metrics(customers, orders, now=now)[0]

        assert result.phone == "+54 11 4444-0000"

    def test_existing_phone_kept(self, make_customer, make_order, now):
        customers = [make_customer(id="cus_1", phone="111")]
        orders = [make_order(customer_id="cus_1", shipping_address={"phone": "222"})]

        assert get_customer_metrics(customers, orders, now=now)[0].phone == "111"

    def test_group_defaults(self, make_customer, now):
        result = get_customer_metrics([make_customer()], [], now=now)[0]

        assert result.group == "Minorista"

    def test_empty_input(self, now):
        assert get_customer_metrics([], [], now=now) == []


class TestRevenueByGroup:
    """Tests for revenue attribution to customer groups"""

    def test_customer_without_group_is_minorista(self, make_customer, make_order):
        customers = resolve_customer_groups([make_customer(id="cus_1")], {})
        orders = [make_order(customer_id="cus_1", total=800)]

        assert aggregate_revenue_by_group(orders, customers) == [
            {"group": "Minorista", "revenue": 800, "orders": 1}
        ]

    def test_attribution_by_id_then_email_then_default(self, make_customer, make_order):
        customers = resolve_customer_groups([
            make_customer(id="cus_1", email="ana@example.com", metadata={"customer_group": "cgrp_1"}),
            make_customer(id="cus_2", email="luis@example.com", metadata={"customer_group": "Revendedor"}),
        ], {"cgrp_1": "Mayorista"})
        orders = [
            make_order(id="o1", customer_id="cus_1", total=3000),
            make_order(id="o2", customer_id=None, email="LUIS@example.com", total=1000),
            make_order(id="o3", customer_id="unknown", email="guest@example.com", total=500),
            make_order(id="o4", customer_id="cus_2", total=7000, payment_status="refunded"),
        ]

        result = aggregate_revenue_by_group(orders, customers)

        assert result == [
            {"group": "Mayorista", "revenue": 3000, "orders": 1},
            {"group": "Revendedor", "revenue": 1000, "orders": 1},
            {"group": "Minorista", "revenue": 500, "orders": 1},
        ]

    def test_empty_input(self):
        assert aggregate_revenue_by_group([], []) == []


class TestChurnDistribution:
    """Recency bands with inclusive upper bounds"""

    @pytest.mark.parametrize("days,bucket", [
        (0, "active"),
        (30, "active"),
        (31, "warning"),
        (60, "warning"),
        (61, "risk"),
        (90, "risk"),
        (91, "critical"),
        (400, "critical"),
        (None, "never"),
    ])
    def test_band_edges(self, days, bucket):
        assert churn_bucket(_with_metrics(days)) == bucket

    def test_no_orders_is_never(self):
        assert churn_bucket(_with_metrics(10, order_count=0)) == "never"

    def test_counts_sum_to_input(self):
        customers = [_with_metrics(d) for d in (1, 30, 31, 60, 61, 90, 91, None)]

        result = aggregate_churn_distribution(customers)

        assert sum(row["count"] for row in result) == len(customers)
        assert [row["count"] for row in result] == [2, 2, 2, 1, 1]

    def test_empty_bands_dropped_and_order_fixed(self):
        result = aggregate_churn_distribution([_with_metrics(None), _with_metrics(5)])

        assert [row["label"] for row in result] == ["Activo (0-30d)", "Sin compras"]
        assert result[0]["color"] == "#22c55e"

    def test_empty_input(self):
        assert aggregate_churn_distribution([]) == []


class TestCustomersPage:
    """Tests for the listing filters, ordering and summary"""

    @pytest.fixture
    def customers(self):
        return [
            _with_metrics(10, order_count=1, id="a", first_name="Ana", email="ana@example.com",
                          group="Mayorista", total_spent=1000),
            _with_metrics(75, order_count=3, id="b", first_name="Luis", email="luis@example.com",
                          group="Minorista", total_spent=5000),
            _with_metrics(None, order_count=0, id="c", first_name="Sofia", email="sofia@example.com",
                          group="Minorista", total_spent=0),
            _with_metrics(120, order_count=7, id="d", first_name="Marta", email="marta@shop.com",
                          group="Revendedor", total_spent=20000),
        ]

    def test_search_matches_name_and_email(self, customers):
        assert [c.id for c in filter_customers(customers, search="LUIS")] == ["b"]
        assert [c.id for c in filter_customers(customers, search="shop.com")] == ["d"]

    def test_group_filter(self, customers):
        assert [c.id for c in filter_customers(customers, group="Minorista")] == ["b", "c"]

    def test_min_days_since_excludes_never_bought(self, customers):
        assert [c.id for c in filter_customers(customers, min_days_since=60)] == ["b", "d"]

    @pytest.mark.parametrize("bucket,expected", [
        ("0", ["c"]),
        ("1", ["a"]),
        ("2-5", ["b"]),
        ("6+", ["d"]),
    ])
    def test_order_count_buckets(self, customers, bucket, expected):
        assert [c.id for c in filter_customers(customers, order_count=bucket)] == expected

    def test_sort_by_spent(self, customers):
        assert [c.id for c in sort_customers(customers, "total_spent")] == ["d", "b", "a", "c"]
        assert [c.id for c in sort_customers(customers, "total_spent", descending=False)] == ["c", "a", "b", "d"]

    def test_sort_missing_values_lowest(self, customers):
        result = sort_customers(customers, "days_since_last_order", descending=False)

        assert result[0].id == "c"

    def test_sort_unknown_field(self, customers):
        with pytest.raises(ValueError):
            sort_customers(customers, "password")

    def test_summary(self, customers):
        summary = summarize_customers(customers)

        assert summary == {
            "total": 4,
            "with_orders": 3,
            "repeat": 2,
            "at_risk": 2,
            "avg_ltv": pytest.approx(26000 / 3),
        }

    def test_at_risk_most_valuable_first(self, customers):
        assert [c.id for c in at_risk_customers(customers)] == ["d", "b"]
