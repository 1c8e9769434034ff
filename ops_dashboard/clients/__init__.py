"""
Upstream Clients Module
"""
from typing import Optional

import httpx

from ops_dashboard.config.settings import Settings

from .base import UpstreamClient
from .commerce import CommerceClient
from .events import EventsClient
from .ga4 import GA4Client
from .meta import MetaClient
from .proxy import ProxyClient, ProxyResponse


class UpstreamClients:
    """One client per upstream, created together and closed together"""

    def __init__(
        self,
        commerce: CommerceClient,
        events: EventsClient,
        ga4: GA4Client,
        meta: MetaClient,
    ):
        self.commerce = commerce
        self.events = events
        self.ga4 = ga4
        self.meta = meta

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "UpstreamClients":
        return cls(
            commerce=CommerceClient.from_settings(settings, transport=transport),
            events=EventsClient.from_settings(settings, transport=transport),
            ga4=GA4Client.from_settings(settings, transport=transport),
            meta=MetaClient.from_settings(settings, transport=transport),
        )

    async def close(self) -> None:
        for client in (self.commerce, self.events, self.ga4, self.meta):
            await client.close()


__all__ = [
    "UpstreamClient",
    "CommerceClient",
    "EventsClient",
    "GA4Client",
    "MetaClient",
    "ProxyClient",
    "ProxyResponse",
    "UpstreamClients",
]
