"""
Back-Office Proxy Endpoints

Pass-through to the picking, reseller, campaign and email-marketing
backends. Upstream status codes and error bodies are returned as-is.
GET responses are cached briefly per service; any successful mutation
drops that service's cache.
"""

import json
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from ops_dashboard.clients import ProxyClient
from ops_dashboard.config import Settings, get_settings
from ops_dashboard.exceptions import InvalidQuery, UpstreamError
from ops_dashboard.serving.cache import proxy_caches

logger = structlog.get_logger(__name__)

router = APIRouter()


async def _read_body(request: Request) -> Optional[Any]:
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        raise InvalidQuery("Request body must be JSON") from None


def _cache_key(path: str, request: Request) -> str:
    query = request.url.query
    return f"{path}?{query}" if query else path


@router.api_route("/{service}/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def proxy(
    service: str,
    path: str,
    request: Request,
    settings: Settings = Depends(get_settings),
) -> Response:
    method = request.method
    cache = proxy_caches.get(service)

    if method == "GET" and cache is not None:
        cached = await cache.get(_cache_key(path, request))
        if cached is not None:
            return JSONResponse(cached)

    body = await _read_body(request) if method != "GET" else None

    transport = getattr(request.app.state, "proxy_transport", None)
    async with ProxyClient.for_service(settings, service, transport=transport) as client:
        try:
            result = await client.forward(method, path, params=dict(request.query_params), body=body)
        except UpstreamError as e:
            content = e.payload if isinstance(e.payload, (dict, list)) else e.to_dict()
            return JSONResponse(content, status_code=e.status_code)

    if cache is not None:
        if method == "GET":
            if result.data is not None:
                await cache.set(_cache_key(path, request), result.data)
        else:
            await cache.invalidate_all()

    if result.data is None:
        return Response(status_code=result.status_code)
    return JSONResponse(result.data, status_code=result.status_code)
