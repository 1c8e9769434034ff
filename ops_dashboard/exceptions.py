"""
Dashboard Exceptions

Error taxonomy shared by the fetchers, services and API layer.
"""

from typing import Any, Dict, Optional


class DashboardError(Exception):
    """Base class for all dashboard errors"""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class UpstreamError(DashboardError):
    """
    A call to an upstream service failed.

    Raised for transport failures and non-2xx responses alike. The upstream
    status is preserved so the API layer can pass it through; transport
    failures carry no status and surface as 502.
    """

    def __init__(
        self,
        source: str,
        message: str,
        status_code: Optional[int] = None,
        payload: Optional[Any] = None,
    ):
        super().__init__(message)
        self.source = source
        self.upstream_status = status_code
        self.status_code = status_code or 502
        self.payload = payload

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "source": self.source}


class UpstreamNotConfigured(DashboardError):
    """An upstream source has no credentials configured"""

    status_code = 503

    def __init__(self, source: str):
        super().__init__(f"{source} is not configured")
        self.source = source

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "source": self.source}


class InvalidDateRange(DashboardError):
    """Requested date range is malformed"""

    status_code = 422


class UnknownProxyTarget(DashboardError):
    """Proxy request for a service that is not configured"""

    status_code = 404

    def __init__(self, service: str):
        super().__init__(f"Unknown proxy target: {service}")
        self.service = service


class InvalidQuery(DashboardError):
    """Query parameters that validate individually but not together"""

    status_code = 422
