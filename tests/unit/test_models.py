"""
Unit Tests - Upstream Models
"""
import pytest

from ops_dashboard.models import FunnelStats, ProductStats, to_number


class TestToNumber:
    @pytest.mark.parametrize("value,expected", [
        (None, 0),
        (True, 0),
        (12, 12),
        ("12", 12),
        ("12.5", 12.5),
        (12.5, 12.5),
        ("abc", 0),
        ("NaN", 0),
        (float("nan"), 0),
        (float("inf"), 0),
        ("-Infinity", 0),
    ])
    def test_coercion(self, value, expected):
        assert to_number(value) == expected


class TestLenientEventModels:
    """Event store records with missing or null fields still read"""

    def test_product_stats_with_nulls(self):
        stats = ProductStats.model_validate({"products": [{"product_id": None, "views": None, "clicks": "3"}]})

        [product] = stats.products
        assert product.product_id is None
        assert product.views == 0
        assert product.clicks == 3

    def test_funnel_without_steps(self):
        funnel = FunnelStats.model_validate({"funnel": None, "conversion_rates": {"cart": None, "checkout": 12.5}})

        assert funnel.funnel == []
        assert funnel.conversion_rates == {"checkout": "12.5"}
