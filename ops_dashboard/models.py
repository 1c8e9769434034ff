"""
View Models

Read-only snapshots of upstream records (orders, customers, behavioral
events, marketing overviews) plus the shared date-range type.

Upstream payloads are sparse and loosely typed, so every model here is
lenient: unknown fields are kept, missing or malformed numbers become 0,
and unparseable timestamps become None ("no data") instead of raising.
"""

import math
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# COERCION HELPERS
# =============================================================================

def to_number(value: Any) -> Union[int, float]:
    """Coerce an upstream numeric field, defaulting to 0 (NaN and infinities included)"""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    if isinstance(value, float):
        return value
    return int(number) if number.is_integer() else number


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an upstream timestamp into an aware datetime.

    Accepts ISO-8601 strings (with or without ``Z``), dates and datetimes.
    Naive values are taken as UTC. Anything else yields None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


class UpstreamModel(BaseModel):
    """Base for lenient upstream records"""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class CamelModel(BaseModel):
    """Computed output, serialized with camelCase keys"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class PaymentStatus(str, Enum):
    """Payment status of an order"""
    CAPTURED = "captured"
    AUTHORIZED = "authorized"
    NOT_PAID = "not_paid"
    CANCELED = "canceled"
    PARTIALLY_CAPTURED = "partially_captured"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"
    REQUIRES_ACTION = "requires_action"


class FulfillmentStatus(str, Enum):
    """Fulfillment status of an order"""
    NOT_FULFILLED = "not_fulfilled"
    FULFILLED = "fulfilled"
    PARTIALLY_FULFILLED = "partially_fulfilled"
    SHIPPED = "shipped"
    PARTIALLY_SHIPPED = "partially_shipped"
    DELIVERED = "delivered"
    PARTIALLY_DELIVERED = "partially_delivered"
    CANCELED = "canceled"
    RETURNED = "returned"
    PARTIALLY_RETURNED = "partially_returned"


PAYMENT_STATUS_LABELS: Dict[str, str] = {
    PaymentStatus.CAPTURED.value: "Pagado",
    PaymentStatus.AUTHORIZED.value: "Autorizado",
    PaymentStatus.NOT_PAID.value: "No pagado",
    PaymentStatus.CANCELED.value: "Cancelado",
    PaymentStatus.PARTIALLY_CAPTURED.value: "Parcialmente pagado",
    PaymentStatus.REFUNDED.value: "Reembolsado",
    PaymentStatus.PARTIALLY_REFUNDED.value: "Parcialmente reembolsado",
    PaymentStatus.REQUIRES_ACTION.value: "Requiere acción",
}

FULFILLMENT_STATUS_LABELS: Dict[str, str] = {
    FulfillmentStatus.NOT_FULFILLED.value: "No preparado",
    FulfillmentStatus.FULFILLED.value: "Preparado",
    FulfillmentStatus.PARTIALLY_FULFILLED.value: "Parcialmente preparado",
    FulfillmentStatus.SHIPPED.value: "Enviado",
    FulfillmentStatus.PARTIALLY_SHIPPED.value: "Parcialmente enviado",
    FulfillmentStatus.DELIVERED.value: "Entregado",
    FulfillmentStatus.PARTIALLY_DELIVERED.value: "Parcialmente entregado",
    FulfillmentStatus.CANCELED.value: "Cancelado",
    FulfillmentStatus.RETURNED.value: "Devuelto",
    FulfillmentStatus.PARTIALLY_RETURNED.value: "Parcialmente devuelto",
}


def payment_status_label(status: str) -> str:
    return PAYMENT_STATUS_LABELS.get(status, status)


def fulfillment_status_label(status: str) -> str:
    return FULFILLMENT_STATUS_LABELS.get(status, status)


# =============================================================================
# COMMERCE RECORDS
# =============================================================================

class LineItem(UpstreamModel):
    """Order line item"""
    id: Optional[str] = None
    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    title: Optional[str] = None
    product_title: Optional[str] = None
    quantity: Union[int, float] = 0
    unit_price: Union[int, float] = 0
    total: Union[int, float] = 0

    @field_validator("id", "product_id", "variant_id", "title", "product_title", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Optional[str]:
        return _optional_str(v)

    @field_validator("quantity", "unit_price", "total", mode="before")
    @classmethod
    def _numbers(cls, v: Any) -> Union[int, float]:
        return to_number(v)

    @property
    def group_key(self) -> Optional[str]:
        """Aggregation key: product, then variant, then title"""
        return self.product_id or self.variant_id or self.title

    @property
    def display_name(self) -> str:
        return self.product_title or self.title or "Sin nombre"

    @property
    def revenue(self) -> Union[int, float]:
        """Explicit line total, else unit price times quantity"""
        return self.total or (self.unit_price * self.quantity) or 0


class Order(UpstreamModel):
    """
    Order snapshot as returned by the commerce platform.

    ``total`` is in the store currency. Only ``payment_status ==
    captured`` counts as revenue anywhere in the dashboard.
    """
    id: Optional[str] = None
    display_id: Optional[Union[int, str]] = None
    created_at: Optional[datetime] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    fulfillment_status: Optional[str] = None
    total: Union[int, float] = 0
    subtotal: Union[int, float] = 0
    currency_code: Optional[str] = None
    customer_id: Optional[str] = None
    email: Optional[str] = None
    items: List[LineItem] = Field(default_factory=list)
    shipping_address: Optional[Dict[str, Any]] = None

    @field_validator("id", "status", "payment_status", "fulfillment_status",
                     "currency_code", "customer_id", "email", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Optional[str]:
        return _optional_str(v)

    @field_validator("total", "subtotal", mode="before")
    @classmethod
    def _numbers(cls, v: Any) -> Union[int, float]:
        return to_number(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def _timestamp(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @field_validator("items", mode="before")
    @classmethod
    def _items(cls, v: Any) -> list:
        return v if isinstance(v, list) else []

    @field_validator("shipping_address", mode="before")
    @classmethod
    def _address(cls, v: Any) -> Optional[dict]:
        return v if isinstance(v, dict) else None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.CAPTURED.value

    @property
    def shipping_phone(self) -> Optional[str]:
        if not self.shipping_address:
            return None
        return _optional_str(self.shipping_address.get("phone"))


class CustomerGroup(UpstreamModel):
    """Native customer group of the commerce platform"""
    id: Optional[str] = None
    name: Optional[str] = None


class Customer(UpstreamModel):
    """Customer record; group tag and DNI live in metadata"""
    id: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    has_account: Optional[bool] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    @field_validator("id", "email", "first_name", "last_name", "phone", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Optional[str]:
        return _optional_str(v)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata(cls, v: Any) -> dict:
        return v if isinstance(v, dict) else {}

    @field_validator("created_at", mode="before")
    @classmethod
    def _timestamp(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def raw_group(self) -> Optional[str]:
        group = self.metadata.get("customer_group")
        return group if isinstance(group, str) and group else None

    @property
    def resolved_group(self) -> Optional[str]:
        group = self.metadata.get("customer_group_resolved")
        return group if isinstance(group, str) and group else None

    def group_or(self, default: str) -> str:
        """Resolved group name, else raw tag, else ``default``"""
        return self.resolved_group or self.raw_group or default


class CustomerWithMetrics(Customer):
    """Customer enriched with paid-order metrics for the fetched window"""
    group: Optional[str] = None
    order_count: int = 0
    total_spent: Union[int, float] = 0
    avg_order_value: float = 0.0
    last_order_date: Optional[datetime] = None
    days_since_last_order: Optional[int] = None


# =============================================================================
# CATALOG AND INVENTORY
# =============================================================================

class InventoryItem(UpstreamModel):
    """Stock-keeping unit with its per-location levels"""
    id: Optional[str] = None
    sku: Optional[str] = None
    location_levels: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("id", "sku", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Optional[str]:
        return _optional_str(v)

    @field_validator("location_levels", mode="before")
    @classmethod
    def _levels(cls, v: Any) -> list:
        return [level for level in v if isinstance(level, dict)] if isinstance(v, list) else []

    @property
    def stocked_quantity(self) -> Union[int, float]:
        """Stock summed over every location"""
        return sum(to_number(level.get("stocked_quantity")) for level in self.location_levels)


class ProductVariant(UpstreamModel):
    id: Optional[str] = None
    title: Optional[str] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None
    manage_inventory: bool = True

    @field_validator("id", "title", "sku", "barcode", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Optional[str]:
        return _optional_str(v)

    @field_validator("manage_inventory", mode="before")
    @classmethod
    def _managed(cls, v: Any) -> bool:
        # unset means the platform tracks stock
        return True if v is None else bool(v)


class Product(UpstreamModel):
    """Catalog product with its variants"""
    id: Optional[str] = None
    title: Optional[str] = None
    thumbnail: Optional[str] = None
    external_id: Optional[str] = None
    variants: List[ProductVariant] = Field(default_factory=list)

    @field_validator("id", "title", "thumbnail", "external_id", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Optional[str]:
        return _optional_str(v)

    @field_validator("variants", mode="before")
    @classmethod
    def _variants(cls, v: Any) -> list:
        return v if isinstance(v, list) else []


# =============================================================================
# EVENT STORE
# =============================================================================

def _counts(value: Any) -> Dict[str, int]:
    if not isinstance(value, dict):
        return {}
    return {str(k): int(to_number(v)) for k, v in value.items()}


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


class DayCount(UpstreamModel):
    date: Optional[str] = None
    count: int = 0

    @field_validator("date", mode="before")
    @classmethod
    def _date(cls, v: Any) -> Optional[str]:
        return _optional_str(v)

    @field_validator("count", mode="before")
    @classmethod
    def _count(cls, v: Any) -> int:
        return int(to_number(v))


class EventStats(UpstreamModel):
    """Aggregate counts from the event store"""
    total_events: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_source: Dict[str, int] = Field(default_factory=dict)
    by_day: List[DayCount] = Field(default_factory=list)

    @field_validator("total_events", mode="before")
    @classmethod
    def _total(cls, v: Any) -> int:
        return int(to_number(v))

    @field_validator("by_type", "by_source", mode="before")
    @classmethod
    def _breakdowns(cls, v: Any) -> Dict[str, int]:
        return _counts(v)

    @field_validator("by_day", mode="before")
    @classmethod
    def _days(cls, v: Any) -> list:
        return _list(v)

    def count(self, event_type: str) -> int:
        return self.by_type.get(event_type, 0)


class FunnelStep(UpstreamModel):
    step: Optional[str] = None
    count: int = 0

    @field_validator("step", mode="before")
    @classmethod
    def _step(cls, v: Any) -> Optional[str]:
        return _optional_str(v)

    @field_validator("count", mode="before")
    @classmethod
    def _count(cls, v: Any) -> int:
        return int(to_number(v))


class FunnelStats(UpstreamModel):
    funnel: List[FunnelStep] = Field(default_factory=list)
    conversion_rates: Dict[str, str] = Field(default_factory=dict)

    @field_validator("funnel", mode="before")
    @classmethod
    def _steps(cls, v: Any) -> list:
        return _list(v)

    @field_validator("conversion_rates", mode="before")
    @classmethod
    def _rates(cls, v: Any) -> Dict[str, str]:
        if not isinstance(v, dict):
            return {}
        return {str(k): str(r) for k, r in v.items() if r is not None}


class ProductStatsItem(UpstreamModel):
    """Per-product behavioral counters"""
    product_id: Optional[str] = None
    title: Optional[str] = None
    views: int = 0
    clicks: int = 0
    added_to_cart: int = 0
    purchased: int = 0
    conversion_rate: Optional[str] = None
    revenue: Union[int, float] = 0

    @field_validator("product_id", "title", "conversion_rate", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Optional[str]:
        return _optional_str(v)

    @field_validator("views", "clicks", "added_to_cart", "purchased", mode="before")
    @classmethod
    def _counters(cls, v: Any) -> int:
        return int(to_number(v))

    @field_validator("revenue", mode="before")
    @classmethod
    def _revenue(cls, v: Any) -> Union[int, float]:
        return to_number(v)


class ProductStats(UpstreamModel):
    products: List[ProductStatsItem] = Field(default_factory=list)

    @field_validator("products", mode="before")
    @classmethod
    def _products(cls, v: Any) -> list:
        return _list(v)


class SearchTerm(UpstreamModel):
    term: Optional[str] = None
    count: int = 0
    results_avg: Optional[float] = None

    @field_validator("term", mode="before")
    @classmethod
    def _term(cls, v: Any) -> Optional[str]:
        return _optional_str(v)

    @field_validator("count", mode="before")
    @classmethod
    def _count(cls, v: Any) -> int:
        return int(to_number(v))

    @field_validator("results_avg", mode="before")
    @classmethod
    def _average(cls, v: Any) -> Optional[float]:
        return None if v is None else float(to_number(v))


class SearchStats(UpstreamModel):
    top_searches: List[SearchTerm] = Field(default_factory=list)
    no_results: List[SearchTerm] = Field(default_factory=list)

    @field_validator("top_searches", "no_results", mode="before")
    @classmethod
    def _terms(cls, v: Any) -> list:
        return _list(v)


class EventItem(UpstreamModel):
    """Single behavioral event"""
    id: Optional[str] = Field(default=None, alias="_id")
    event: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    source: Optional[str] = None
    session_id: Optional[str] = None
    customer_id: Optional[str] = None
    timestamp: Optional[datetime] = None

    @field_validator("id", "event", "source", "session_id", "customer_id", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Optional[str]:
        return _optional_str(v)

    @field_validator("data", mode="before")
    @classmethod
    def _data(cls, v: Any) -> dict:
        return v if isinstance(v, dict) else {}

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)


class EventsList(UpstreamModel):
    events: List[EventItem] = Field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0

    @field_validator("events", mode="before")
    @classmethod
    def _events(cls, v: Any) -> list:
        return _list(v)

    @field_validator("total", "limit", "offset", mode="before")
    @classmethod
    def _numbers(cls, v: Any) -> int:
        return int(to_number(v))


class EventFilters(BaseModel):
    """Query filters for the raw events listing"""
    event: Optional[str] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    customer_id: Optional[str] = None
    session_id: Optional[str] = None
    source: Optional[str] = None
    limit: int = 50
    offset: int = 0
    sort: str = "desc"

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.event:
            params["event"] = self.event
        if self.from_date:
            params["from"] = self.from_date.isoformat()
        if self.to_date:
            params["to"] = self.to_date.isoformat()
        if self.customer_id:
            params["customer_id"] = self.customer_id
        if self.session_id:
            params["session_id"] = self.session_id
        if self.source:
            params["source"] = self.source
        if self.limit:
            params["limit"] = str(self.limit)
        if self.offset:
            params["offset"] = str(self.offset)
        if self.sort:
            params["sort"] = self.sort
        return params


# =============================================================================
# MARKETING ANALYTICS
# =============================================================================

class GA4Overview(BaseModel):
    sessions: int = 0
    total_users: int = 0
    new_users: int = 0
    bounce_rate: float = 0.0
    average_session_duration: float = 0.0
    ecommerce_purchases: int = 0
    total_revenue: float = 0.0


class GA4DeviceRow(BaseModel):
    device: str
    sessions: int = 0
    users: int = 0


class GA4TrafficRow(BaseModel):
    source: str
    medium: str
    sessions: int = 0
    users: int = 0
    purchases: int = 0
    revenue: float = 0.0


class MetaOverview(BaseModel):
    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    ctr: float = 0.0
    cpc: float = 0.0
    reach: int = 0
    frequency: float = 0.0
    purchases: int = 0
    roas: float = 0.0


class MetaCampaignRow(BaseModel):
    campaign_name: Optional[str] = None
    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    ctr: float = 0.0
    cpc: float = 0.0
    reach: int = 0
    purchases: int = 0
    roas: float = 0.0


# =============================================================================
# DATE RANGE
# =============================================================================

DATE_RANGE_PRESETS: Dict[int, str] = {
    7: "7 días",
    30: "30 días",
    90: "90 días",
    365: "12 meses",
}


class DateRange(BaseModel):
    """
    Half-open reporting window ``[start, end]`` in UTC.

    The previous period is the window of equal length that ends where this
    one starts.
    """
    start: datetime
    end: datetime
    label: str = ""

    @classmethod
    def last_days(cls, days: int, now: Optional[datetime] = None) -> "DateRange":
        end = now or datetime.now(timezone.utc)
        start = end - timedelta(days=days)
        return cls(start=start, end=end, label=DATE_RANGE_PRESETS.get(days, f"{days} días"))

    @classmethod
    def from_dates(cls, start_date: date, end_date: date) -> "DateRange":
        """Inclusive calendar dates, from midnight to end of day"""
        start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
        end = datetime.combine(end_date, time.max, tzinfo=timezone.utc)
        return cls(start=start, end=end, label=f"{start_date.isoformat()} - {end_date.isoformat()}")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def previous(self) -> "DateRange":
        return DateRange(start=self.start - self.duration, end=self.start, label=f"previo {self.label}".strip())

    @property
    def start_param(self) -> str:
        return self.start.date().isoformat()

    @property
    def end_param(self) -> str:
        return self.end.date().isoformat()

    @property
    def end_exclusive_date(self) -> date:
        """End date plus one day, for stores filtering ``timestamp < to``"""
        return self.end.date() + timedelta(days=1)

    @property
    def end_exclusive_param(self) -> str:
        return self.end_exclusive_date.isoformat()

    @property
    def cache_key(self) -> str:
        return f"{self.start:%Y%m%d%H%M}:{self.end:%Y%m%d%H%M}"
