"""Colombian market defaults and date/time presentation"""

from datetime import datetime
from typing import Optional

import pytz

from ...config import DEFAULT_CURRENCY, DEFAULT_TIMEZONE
from ..validators import time_to_minutes

COLOMBIAN_DEFAULTS = {
    "timezone": "America/Bogota",
    "currency": "COP",
    "phonePrefix": "+57",
    "locale": "es-CO",
    "businessHours": {"start": "08:00", "end": "18:00", "format": "24h"},
    "dateFormat": "DD/MM/YYYY",
    "numberFormat": {
        "decimal": ",",
        "thousands": ".",
        "currency": {"symbol": "$", "position": "before"},
    },
}


def get_colombian_market_config() -> dict:
    """Market defaults with deployment overrides for timezone and currency."""
    config = dict(COLOMBIAN_DEFAULTS)
    config["timezone"] = DEFAULT_TIMEZONE
    config["currency"] = DEFAULT_CURRENCY
    return config


def get_colombian_timezone():
    return pytz.timezone(get_colombian_market_config()["timezone"])


def now_in_colombia() -> datetime:
    return datetime.now(get_colombian_timezone())


def _localize(value: datetime) -> datetime:
    tz = get_colombian_timezone()
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    return value.astimezone(tz)


def format_colombian_date(value: datetime) -> str:
    """DD/MM/YYYY in Colombian time. Naive datetimes are treated as UTC."""
    return _localize(value).strftime("%d/%m/%Y")


def format_colombian_time(value: datetime, include_seconds: bool = False) -> str:
    return _localize(value).strftime("%H:%M:%S" if include_seconds else "%H:%M")


def format_colombian_datetime(value: datetime) -> str:
    return f"{format_colombian_date(value)} {format_colombian_time(value)}"


def is_colombian_business_hours(value: Optional[datetime] = None) -> bool:
    """Monday-Friday within the default opening hours, in Colombian time."""
    local = _localize(value) if value else now_in_colombia()
    if local.weekday() >= 5:
        return False

    hours = COLOMBIAN_DEFAULTS["businessHours"]
    current = local.hour * 60 + local.minute
    return time_to_minutes(hours["start"]) <= current < time_to_minutes(hours["end"])
