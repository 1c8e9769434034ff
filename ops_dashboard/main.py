"""
FastAPI Application

Entry point of the operations dashboard API.
"""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from ops_dashboard.clients import UpstreamClients
from ops_dashboard.config import Settings, get_settings
from ops_dashboard.config.logging import configure_logging
from ops_dashboard.exceptions import DashboardError
from ops_dashboard.serving.api.middleware import RequestLoggingMiddleware
from ops_dashboard.serving.api.routes import (
    analytics_router,
    customers_router,
    dashboard_router,
    health_router,
    marketing_router,
    orders_router,
    products_router,
    proxy_router,
)
from ops_dashboard.serving.cache import close_redis, init_redis

logger = structlog.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Overrides the environment settings for every request
        transport: httpx transport handed to all upstream clients
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings=settings)
        logger.info("Starting operations dashboard API", environment=settings.app_env)

        try:
            await init_redis()
        except (RedisError, OSError) as e:
            logger.warning("Redis init failed, serving without cache", error=str(e))

        app.state.settings = settings
        app.state.proxy_transport = transport
        app.state.clients = UpstreamClients.from_settings(settings, transport=transport)

        yield

        logger.info("Shutting down...")
        await app.state.clients.close()
        app.state.clients = None
        await close_redis()

    app = FastAPI(
        title="Operations Dashboard API",
        description="Sales, customer, behavior and marketing metrics across the store's backends",
        version=settings.version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.dependency_overrides[get_settings] = lambda: settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(DashboardError)
    async def dashboard_error_handler(request: Request, exc: DashboardError) -> JSONResponse:
        logger.warning(
            "Request rejected",
            path=request.url.path,
            error=exc.message,
            status_code=exc.status_code,
        )
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(dashboard_router, prefix="/api/v1/dashboard", tags=["Dashboard"])
    app.include_router(orders_router, prefix="/api/v1/orders", tags=["Orders"])
    app.include_router(customers_router, prefix="/api/v1/customers", tags=["Customers"])
    app.include_router(products_router, prefix="/api/v1/products", tags=["Products"])
    app.include_router(analytics_router, prefix="/api/v1/analytics", tags=["Analytics"])
    app.include_router(marketing_router, prefix="/api/v1/marketing", tags=["Marketing"])
    app.include_router(proxy_router, prefix="/api/v1/proxy", tags=["Proxy"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "Operations Dashboard API",
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs",
            "proxied_services": settings.proxy.services,
        }

    return app


app = create_app()


def run() -> None:
    """Console entry point"""
    import uvicorn

    uvicorn.run("ops_dashboard.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
