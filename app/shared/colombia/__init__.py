"""Colombian domain utilities - phones, pesos, departments, holidays and market defaults"""

from .currency import (
    COMMON_PESO_AMOUNTS,
    format_peso_cop,
    format_peso_for_input,
    format_peso_short,
    is_valid_peso_string,
    parse_peso_string,
)
from .departments import (
    COLOMBIAN_DEPARTMENTS,
    DEPARTMENTS_BY_REGION,
    MAJOR_CITIES_BY_DEPARTMENT,
    find_department_by_city,
    get_cities_by_department,
    get_region_by_department,
    is_valid_colombian_department,
    validate_colombian_address,
)
from .holidays import (
    COLOMBIAN_BUSINESS_CONFIG,
    ColombianHoliday,
    get_colombian_holidays,
    get_next_holiday,
    get_next_working_day,
    get_working_days_between,
    is_colombian_holiday,
    is_working_day,
    move_to_monday,
)
from .market import (
    COLOMBIAN_DEFAULTS,
    format_colombian_date,
    format_colombian_datetime,
    format_colombian_time,
    get_colombian_market_config,
    is_colombian_business_hours,
    now_in_colombia,
)
from .phone import (
    PHONE_FORMAT_PATTERN,
    VALID_MOBILE_PREFIXES,
    format_colombian_phone,
    format_phone_for_display,
    get_colombian_mobile_number,
    validate_colombian_phone,
)

__all__ = [
    "COLOMBIAN_BUSINESS_CONFIG",
    "COLOMBIAN_DEFAULTS",
    "COLOMBIAN_DEPARTMENTS",
    "COMMON_PESO_AMOUNTS",
    "DEPARTMENTS_BY_REGION",
    "MAJOR_CITIES_BY_DEPARTMENT",
    "PHONE_FORMAT_PATTERN",
    "VALID_MOBILE_PREFIXES",
    "ColombianHoliday",
    "find_department_by_city",
    "format_colombian_date",
    "format_colombian_datetime",
    "format_colombian_phone",
    "format_colombian_time",
    "format_peso_cop",
    "format_peso_for_input",
    "format_peso_short",
    "format_phone_for_display",
    "get_cities_by_department",
    "get_colombian_holidays",
    "get_colombian_market_config",
    "get_colombian_mobile_number",
    "get_next_holiday",
    "get_next_working_day",
    "get_region_by_department",
    "get_working_days_between",
    "is_colombian_business_hours",
    "is_colombian_holiday",
    "is_valid_colombian_department",
    "is_valid_peso_string",
    "is_working_day",
    "move_to_monday",
    "now_in_colombia",
    "parse_peso_string",
    "validate_colombian_address",
    "validate_colombian_phone",
]
