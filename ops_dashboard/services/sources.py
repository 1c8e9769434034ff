"""
Concurrent source fetching with per-source failure isolation.
"""

import asyncio
from typing import Any, Awaitable, Dict, Optional

import structlog
from pydantic import BaseModel

from ops_dashboard.exceptions import DashboardError

logger = structlog.get_logger(__name__)


class SourceStatus(BaseModel):
    ok: bool = True
    error: Optional[str] = None


class SourceResults:
    """Results of a concurrent fetch, keyed by source name; failed sources hold None"""

    def __init__(self, values: Dict[str, Any], status: Dict[str, SourceStatus]):
        self.values = values
        self.status = status

    def __getitem__(self, name: str) -> Any:
        return self.values.get(name)

    def ok(self, name: str) -> bool:
        return self.status[name].ok

    @property
    def all_ok(self) -> bool:
        return all(s.ok for s in self.status.values())

    def status_dict(self) -> Dict[str, Dict[str, Any]]:
        return {name: s.model_dump() for name, s in self.status.items()}


async def _guarded(name: str, awaitable: Awaitable[Any]):
    try:
        return await awaitable, SourceStatus()
    except DashboardError as e:
        logger.warning("Source unavailable", source=name, error=e.message)
        return None, SourceStatus(ok=False, error=e.message)


async def fetch_sources(**sources: Awaitable[Any]) -> SourceResults:
    """
    Await every source concurrently.

    A source raising DashboardError yields None and a failed status while
    the others complete normally. Any other exception propagates.
    """
    names = list(sources)
    outcomes = await asyncio.gather(*(_guarded(name, sources[name]) for name in names))

    values = {name: value for name, (value, _) in zip(names, outcomes)}
    status = {name: state for name, (_, state) in zip(names, outcomes)}
    return SourceResults(values, status)
