from datetime import datetime

import pytz

from app.shared.colombia import (
    format_colombian_date,
    format_colombian_datetime,
    format_colombian_time,
    get_colombian_market_config,
    is_colombian_business_hours,
)


def test_market_defaults():
    config = get_colombian_market_config()
    assert config["timezone"] == "America/Bogota"
    assert config["currency"] == "COP"
    assert config["phonePrefix"] == "+57"


def test_naive_datetimes_are_utc():
    # 03:00 UTC is 22:00 the previous day in Bogotá
    value = datetime(2024, 1, 15, 3, 0)
    assert format_colombian_date(value) == "14/01/2024"
    assert format_colombian_time(value) == "22:00"
    assert format_colombian_datetime(value) == "14/01/2024 22:00"


def test_time_with_seconds():
    value = pytz.utc.localize(datetime(2024, 1, 15, 15, 4, 5))
    assert format_colombian_time(value, include_seconds=True) == "10:04:05"


def test_business_hours():
    monday_morning = pytz.utc.localize(datetime(2024, 1, 15, 15, 0))  # 10:00 Bogotá
    monday_night = pytz.utc.localize(datetime(2024, 1, 16, 1, 0))  # 20:00 Bogotá
    saturday = pytz.utc.localize(datetime(2024, 1, 13, 15, 0))
    assert is_colombian_business_hours(monday_morning)
    assert not is_colombian_business_hours(monday_night)
    assert not is_colombian_business_hours(saturday)
