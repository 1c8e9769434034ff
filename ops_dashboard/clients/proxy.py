"""
Back-Office Proxy Client

Forwards REST calls to the picking, reseller, campaign and email-marketing
backends under ``/api/<path>`` with the backend API key. Their JSON
contracts are owned by those services and passed through untouched.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
import structlog

from ops_dashboard.clients.base import UpstreamClient
from ops_dashboard.config.settings import Settings
from ops_dashboard.exceptions import UnknownProxyTarget

logger = structlog.get_logger(__name__)

MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


@dataclass
class ProxyResponse:
    status_code: int
    data: Any


class ProxyClient(UpstreamClient):
    """Pass-through client for one back-office service"""

    def __init__(
        self,
        service: str,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url,
            headers={"x-api-key": api_key, "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )
        self.service = service
        self.source = service

    @classmethod
    def for_service(
        cls,
        settings: Settings,
        service: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ProxyClient":
        try:
            base_url, api_key = settings.proxy.target(service)
        except KeyError:
            raise UnknownProxyTarget(service) from None
        return cls(service, base_url, api_key, timeout=settings.proxy.timeout_seconds, transport=transport)

    async def forward(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Any] = None,
    ) -> ProxyResponse:
        """
        Forward one call. The body is only sent for mutating methods.

        Raises:
            UpstreamError: Carrying the backend status and error body
        """
        method = method.upper()
        json_body = body if method in MUTATING_METHODS else None
        response = await self.request(method, f"/api/{path.lstrip('/')}", params=params, json=json_body)

        logger.info("Proxied request", service=self.service, method=method, path=path, status_code=response.status_code)
        return ProxyResponse(status_code=response.status_code, data=self._json(response))
