"""Colombian peso (COP) formatting and parsing.

Amounts are rendered in es-CO style: "." groups thousands, "," marks
decimals and the "$" symbol goes before the number, e.g. ``$ 1.500.000``.
"""

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

Number = Union[int, float]

THOUSANDS_SEPARATOR = "."
DECIMAL_SEPARATOR = ","
CURRENCY_SYMBOL = "$"

SHORT_FORMAT_MULTIPLIERS = {"K": 1_000, "M": 1_000_000, "B": 1_000_000_000}

COMMON_PESO_AMOUNTS = {
    "MINIMUM_WAGE_2025": 1_400_000,
    "TYPICAL_SERVICE_RANGE": {"MIN": 50_000, "MAX": 500_000},
    "EXPENSIVE_SERVICE_THRESHOLD": 1_000_000,
}

_CURRENCY_MARKERS = re.compile(r"COP|COL\$|\$|pesos|peso", re.IGNORECASE)
_SHORT_FORMAT = re.compile(r"^([\d,.]+)([KMB])$", re.IGNORECASE)
_GROUPED_INTEGER = re.compile(r"^\d+(\.\d+)*$")


def _format_number(amount: Number, decimals: int) -> str:
    quantum = Decimal(1).scaleb(-decimals)
    rounded = Decimal(str(amount)).quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    integer_part, _, fraction = f"{abs(rounded):f}".partition(".")

    groups = []
    while len(integer_part) > 3:
        groups.insert(0, integer_part[-3:])
        integer_part = integer_part[:-3]
    groups.insert(0, integer_part)

    text = THOUSANDS_SEPARATOR.join(groups)
    if decimals and fraction:
        text = f"{text}{DECIMAL_SEPARATOR}{fraction}"
    return f"{sign}{text}"


def format_peso_cop(
    amount: Number,
    show_decimals: bool = False,
    show_symbol: bool = True,
    use_short_format: bool = False,
) -> str:
    """
    Format an amount as Colombian pesos.

    Args:
        amount: Amount in pesos
        show_decimals: Render two decimal places
        show_symbol: Prefix with "$ "
        use_short_format: Use K/M/B suffixes for large amounts

    Returns:
        Formatted string, e.g. "$ 1.500.000"
    """
    if use_short_format:
        return format_peso_short(amount, show_symbol=show_symbol)

    formatted = _format_number(amount, 2 if show_decimals else 0)
    if not show_symbol:
        return formatted
    if formatted.startswith("-"):
        return f"-{CURRENCY_SYMBOL} {formatted[1:]}"
    return f"{CURRENCY_SYMBOL} {formatted}"


def format_peso_short(amount: Number, show_symbol: bool = True) -> str:
    """Format with K/M/B suffix, e.g. "$ 1,5M". Amounts below 1.000 use the full format."""
    if amount >= 1_000_000_000:
        value, suffix = amount / 1_000_000_000, "B"
    elif amount >= 1_000_000:
        value, suffix = amount / 1_000_000, "M"
    elif amount >= 1_000:
        value, suffix = amount / 1_000, "K"
    else:
        return format_peso_cop(amount, show_symbol=show_symbol)

    formatted_value = _format_number(value, 1 if value < 10 else 0)
    # Drop a trailing ",0" the way a max-fraction-digits formatter would
    if formatted_value.endswith(f"{DECIMAL_SEPARATOR}0"):
        formatted_value = formatted_value[:-2]

    symbol = f"{CURRENCY_SYMBOL} " if show_symbol else ""
    return f"{symbol}{formatted_value}{suffix}"


def parse_peso_string(peso_string: Optional[str]) -> Optional[Number]:
    """
    Parse a peso string back into a number.

    Accepts "$ 1.500.000", "1.500.000", "COP 2.500,50", "1,5M", "500K".
    Returns None when the string is not a recognizable amount.
    """
    if not peso_string:
        return None

    clean = _CURRENCY_MARKERS.sub("", peso_string)
    clean = re.sub(r"\s+", "", clean)
    if not clean:
        return None

    short_match = _SHORT_FORMAT.match(clean)
    if short_match:
        try:
            value = float(short_match.group(1).replace(",", "."))
        except ValueError:
            return None
        result = value * SHORT_FORMAT_MULTIPLIERS[short_match.group(2).upper()]
        return int(result) if result.is_integer() else result

    parts = clean.split(DECIMAL_SEPARATOR)
    if len(parts) > 2 or not _GROUPED_INTEGER.match(parts[0]):
        return None

    integer_part = parts[0].replace(THOUSANDS_SEPARATOR, "")
    if len(parts) == 1:
        return int(integer_part)

    if not parts[1].isdigit():
        return None
    return float(f"{integer_part}.{parts[1]}")


def is_valid_peso_string(peso_string: Optional[str]) -> bool:
    return parse_peso_string(peso_string) is not None


def format_peso_for_input(amount: Number) -> str:
    """Grouped digits without symbol, for form inputs."""
    return format_peso_cop(amount, show_decimals=False, show_symbol=False)
