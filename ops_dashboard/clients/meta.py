"""
Meta Ads Client

Insights of the ad account through the Graph API. Purchases come from the
``purchase`` entry of ``actions``; platform ROAS from ``purchase_roas``.
"""

import json
from typing import Any, Dict, List, Optional

import httpx

from ops_dashboard.clients.base import UpstreamClient
from ops_dashboard.config.settings import Settings
from ops_dashboard.models import DateRange, MetaCampaignRow, MetaOverview, to_number

ACCOUNT_FIELDS = [
    "spend",
    "impressions",
    "clicks",
    "ctr",
    "cpc",
    "reach",
    "frequency",
    "actions",
    "cost_per_action_type",
    "purchase_roas",
]

CAMPAIGN_FIELDS = [
    "campaign_name",
    "spend",
    "impressions",
    "clicks",
    "ctr",
    "cpc",
    "reach",
    "actions",
    "purchase_roas",
]


def purchases_of(row: Dict[str, Any]) -> int:
    for action in row.get("actions") or []:
        if action.get("action_type") == "purchase":
            return int(to_number(action.get("value")))
    return 0


def roas_of(row: Dict[str, Any]) -> float:
    roas = row.get("purchase_roas") or []
    if not roas:
        return 0.0
    return float(to_number(roas[0].get("value")))


class MetaClient(UpstreamClient):
    """Ad spend and performance for one ad account"""

    source = "meta"

    def __init__(
        self,
        base_url: str,
        ad_account_id: Optional[str],
        access_token: Optional[str],
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.ad_account_id = ad_account_id
        self._access_token = access_token
        self.configured = bool(ad_account_id and access_token)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "MetaClient":
        meta = settings.meta
        token = meta.access_token.get_secret_value() if meta.access_token else None
        return cls(
            meta.base_url,
            ad_account_id=meta.ad_account_id,
            access_token=token,
            timeout=meta.timeout_seconds,
            transport=transport,
        )

    async def insights(
        self,
        date_range: DateRange,
        level: str = "account",
        fields: Optional[List[str]] = None,
        limit: Optional[int] = None,
    ) -> Optional[List[Dict[str, Any]]]:
        """Raw insight rows; None when Meta Ads is not configured"""
        if not self.configured:
            return None

        params = {
            "access_token": self._access_token,
            "time_range": json.dumps({"since": date_range.start_param, "until": date_range.end_param}),
            "level": level,
            "fields": ",".join(fields or ACCOUNT_FIELDS),
            "limit": limit,
        }
        data = await self.get_json(f"/{self.ad_account_id}/insights", params=params)
        return (data or {}).get("data") or []

    async def overview(self, date_range: DateRange) -> Optional[MetaOverview]:
        rows = await self.insights(date_range, level="account")
        if not rows:
            return None

        row = rows[0]
        return MetaOverview(
            spend=to_number(row.get("spend")),
            impressions=int(to_number(row.get("impressions"))),
            clicks=int(to_number(row.get("clicks"))),
            ctr=to_number(row.get("ctr")),
            cpc=to_number(row.get("cpc")),
            reach=int(to_number(row.get("reach"))),
            frequency=to_number(row.get("frequency")),
            purchases=purchases_of(row),
            roas=roas_of(row),
        )

    async def campaigns(self, date_range: DateRange) -> Optional[List[MetaCampaignRow]]:
        rows = await self.insights(date_range, level="campaign", fields=CAMPAIGN_FIELDS, limit=50)
        if rows is None:
            return None
        return [
            MetaCampaignRow(
                campaign_name=row.get("campaign_name"),
                spend=to_number(row.get("spend")),
                impressions=int(to_number(row.get("impressions"))),
                clicks=int(to_number(row.get("clicks"))),
                ctr=to_number(row.get("ctr")),
                cpc=to_number(row.get("cpc")),
                reach=int(to_number(row.get("reach"))),
                purchases=purchases_of(row),
                roas=roas_of(row),
            )
            for row in rows
        ]
