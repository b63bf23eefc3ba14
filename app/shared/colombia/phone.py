"""Colombian phone number formatting and validation"""

import re
from typing import Optional

COLOMBIA_COUNTRY_CODE = "+57"

PHONE_FORMAT_PATTERN = re.compile(r"^\+57 \d{3} \d{3} \d{4}$")

# Mobile operator prefixes currently assigned in Colombia
VALID_MOBILE_PREFIXES = frozenset(
    [str(p) for p in range(301, 306)] + [str(p) for p in range(310, 322)] + [str(p) for p in range(350, 354)]
)


def _national_digits(phone: str) -> Optional[str]:
    """Extract the 10 national digits from any accepted input shape."""
    digits = re.sub(r"\D", "", phone or "")

    if len(digits) == 10:
        return digits
    if len(digits) == 12 and digits.startswith("57"):
        return digits[2:]
    if len(digits) == 14 and digits.startswith("0057"):
        return digits[4:]
    return None


def format_colombian_phone(phone: str) -> str:
    """
    Format a phone number as +57 XXX XXX XXXX.

    Accepts 10 national digits, 57 + 10 digits, or 0057 + 10 digits.
    Anything else is returned unchanged.
    """
    digits = _national_digits(phone)
    if digits is None:
        return phone
    return f"{COLOMBIA_COUNTRY_CODE} {digits[:3]} {digits[3:6]} {digits[6:]}"


def validate_colombian_phone(phone: Optional[str]) -> bool:
    """True when the phone is in +57 XXX XXX XXXX form with a mobile prefix."""
    if not phone or not PHONE_FORMAT_PATTERN.match(phone):
        return False
    prefix = phone[4:7]
    return prefix in VALID_MOBILE_PREFIXES


def get_colombian_mobile_number(phone: str) -> Optional[str]:
    formatted = format_colombian_phone(phone)
    if not validate_colombian_phone(formatted):
        return None
    return re.sub(r"\D", "", formatted)[2:]


def format_phone_for_display(phone: str) -> str:
    formatted = format_colombian_phone(phone)
    return formatted if validate_colombian_phone(formatted) else phone
