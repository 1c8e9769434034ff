"""
API Routes Module
"""
from .health import router as health_router
from .dashboard import router as dashboard_router
from .orders import router as orders_router
from .customers import router as customers_router
from .products import router as products_router
from .analytics import router as analytics_router
from .marketing import router as marketing_router
from .proxy import router as proxy_router

__all__ = [
    "health_router",
    "dashboard_router",
    "orders_router",
    "customers_router",
    "products_router",
    "analytics_router",
    "marketing_router",
    "proxy_router",
]
