"""
Display formatting in the es-AR locale conventions.

Thousands are grouped with ".", decimals use ",", currency amounts are
shown without decimals.
"""

from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union
from zoneinfo import ZoneInfo

from ops_dashboard.models import parse_timestamp

Number = Union[int, float]


def _group_thousands(digits: str) -> str:
    parts = []
    while len(digits) > 3:
        parts.insert(0, digits[-3:])
        digits = digits[:-3]
    parts.insert(0, digits)
    return ".".join(parts)


def _localize(value: Number, decimals: int, strip_zeros: bool = False) -> str:
    quantum = Decimal(1).scaleb(-decimals)
    rounded = Decimal(str(value or 0)).quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    text = f"{abs(rounded):f}"
    whole, _, fraction = text.partition(".")
    if strip_zeros:
        fraction = fraction.rstrip("0")
    result = _group_thousands(whole)
    if fraction:
        result = f"{result},{fraction}"
    return sign + result


def format_currency(amount: Number) -> str:
    """``1234.5`` -> ``$ 1.235``"""
    text = _localize(amount, 0)
    if text.startswith("-"):
        return f"-$ {text[1:]}"
    return f"$ {text}"


def format_number(value: Number) -> str:
    """Grouped number with up to three decimals"""
    return _localize(value, 3, strip_zeros=True)


def format_percent(value: Number) -> str:
    """Signed change with one decimal, e.g. ``+12.3%``"""
    value = float(value or 0)
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.1f}%"


def format_rate(value: Number, decimals: int = 1) -> str:
    """Plain percentage, e.g. ``12.5%``"""
    return f"{float(value or 0):.{decimals}f}%"


def format_date_short(value: Union[str, date, datetime, None], tz: Optional[str] = None) -> str:
    """``dd/mm`` in the display timezone, empty when there is no date"""
    moment = parse_timestamp(value)
    if moment is None:
        return ""
    if tz:
        moment = moment.astimezone(ZoneInfo(tz))
    return moment.strftime("%d/%m")


def format_date_csv(value: Union[str, date, datetime, None], tz: Optional[str] = None) -> str:
    """``dd/mm/yyyy``, empty when there is no date"""
    moment = parse_timestamp(value)
    if moment is None:
        return ""
    if tz:
        moment = moment.astimezone(ZoneInfo(tz))
    return moment.strftime("%d/%m/%Y")


def format_currency_csv(amount: Number) -> str:
    """Currency for spreadsheets: no symbol, ``.`` thousands, no decimals"""
    return _localize(amount, 0)


def days_since(value: Union[str, date, datetime, None], now: Optional[datetime] = None) -> Optional[int]:
    """Whole days elapsed since ``value``, None when there is no date"""
    moment = parse_timestamp(value)
    if moment is None:
        return None
    now = now or datetime.now(timezone.utc)
    return (now - moment).days
