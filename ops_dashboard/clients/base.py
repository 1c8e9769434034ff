"""
Upstream HTTP Client Base

Thin async wrapper over httpx shared by every upstream client. Transport
failures and non-2xx responses are raised as UpstreamError tagged with the
source name; there are no automatic retries.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from ops_dashboard.exceptions import UpstreamError

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


def _error_message(payload: Any, fallback: str) -> str:
    """Best-effort human message from an upstream error body"""
    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, dict):
                nested = value.get("message")
                if isinstance(nested, str) and nested:
                    return nested
    return fallback


def clean_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop unset query parameters"""
    if not params:
        return {}
    return {k: v for k, v in params.items() if v is not None and v != ""}


class UpstreamClient:
    """
    Base class for upstream service clients.

    Example:
        async with EventsClient.from_settings(settings) as events:
            stats = await events.stats(date_range)
    """

    source: str = "upstream"

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers or {},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """
        Send a request and return the successful response.

        Raises:
            UpstreamError: On timeout, transport failure or a non-2xx status
        """
        try:
            response = await self._client.request(
                method,
                path,
                params=clean_params(params),
                json=json,
                headers=headers,
            )
        except httpx.TimeoutException as e:
            logger.warning("Upstream request timed out", source=self.source, method=method, path=path)
            raise UpstreamError(self.source, f"{self.source} request timed out") from e
        except httpx.HTTPError as e:
            logger.error("Upstream request failed", source=self.source, method=method, path=path, error=str(e))
            raise UpstreamError(self.source, f"{self.source} request failed: {e}") from e

        if response.is_error:
            payload = self._decode(response)
            message = _error_message(payload, f"{self.source} returned HTTP {response.status_code}")
            logger.warning(
                "Upstream returned error status",
                source=self.source,
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise UpstreamError(self.source, message, status_code=response.status_code, payload=payload)

        return response

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self.request("GET", path, params=params)
        return self._json(response)

    async def post_json(self, path: str, body: Any, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self.request("POST", path, params=params, json=body)
        return self._json(response)

    def _json(self, response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(self.source, f"{self.source} returned a non-JSON body") from e

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    def parse(self, model: Type[M], data: Any) -> M:
        """
        Validate an upstream payload into ``model``.

        Raises:
            UpstreamError: When the payload cannot be read as ``model``
        """
        if data is None:
            data = {}
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.warning(
                "Upstream payload rejected",
                source=self.source,
                model=model.__name__,
                errors=e.error_count(),
            )
            raise UpstreamError(self.source, f"{self.source} returned an unreadable {model.__name__}") from e

    def parse_list(self, model: Type[M], records: Any) -> List[M]:
        """Validate every record of a listing; a non-list listing is empty"""
        if not isinstance(records, list):
            return []
        return [self.parse(model, record) for record in records]
