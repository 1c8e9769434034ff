"""
Page Services Module
"""
from .analytics import AnalyticsService
from .customers import CustomerQuery, CustomerService
from .dashboard import DashboardService
from .products import ProductService
from .sources import SourceResults, SourceStatus, fetch_sources

__all__ = [
    "AnalyticsService",
    "CustomerQuery",
    "CustomerService",
    "DashboardService",
    "ProductService",
    "SourceResults",
    "SourceStatus",
    "fetch_sources",
]
