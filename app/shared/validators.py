"""Shared validation utilities"""

import re
import uuid
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")


def validate_uuid(value: Optional[str]) -> bool:
    """Validate UUID format"""
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def validate_email(email: Optional[str], message: str = "Email inválido") -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string
        message: Error message used when the format is invalid

    Returns:
        Trimmed, lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if email is None:
        return email

    email = email.strip().lower()

    if not EMAIL_PATTERN.match(email):
        raise ValueError(message)

    return email


def is_valid_time(value: Optional[str]) -> bool:
    """HH:MM in 24h format"""
    return bool(value) and bool(TIME_PATTERN.match(value))


def time_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)
