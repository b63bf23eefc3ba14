"""Business domain errors"""

from typing import Optional

UNIQUE_VIOLATION = "23505"


class DatabaseError(Exception):
    """A backend failure other than "row not found"."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class DuplicateBusinessEmailError(DatabaseError):
    def __init__(self, email: str):
        super().__init__(f"Business email already registered: {email}", UNIQUE_VIOLATION)
        self.email = email


class BusinessNotFoundError(DatabaseError):
    def __init__(self, business_id: str):
        super().__init__("Business not found or access denied", "NOT_FOUND")
        self.business_id = business_id


class SettingsConflictError(DatabaseError):
    """Settings were changed by another writer since the caller read them."""

    def __init__(self, business_id: str, current_version: int):
        super().__init__(
            f"Settings for business {business_id} were modified concurrently (current version {current_version})",
            "VERSION_CONFLICT",
        )
        self.business_id = business_id
        self.current_version = current_version


class RLSContextError(Exception):
    """An RLS session RPC failed. ``code`` is the Postgres SQLSTATE when known."""

    def __init__(self, message: str, code: str = "RLS_ERROR"):
        super().__init__(message)
        self.code = code


class IdentityError(Exception):
    """The identity provider rejected or failed an admin operation."""


def pgcode_of(exc: Exception) -> Optional[str]:
    """SQLSTATE of a DBAPI error wrapped by SQLAlchemy, if the driver exposes one."""
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_unique_violation(exc: Exception) -> bool:
    if pgcode_of(exc) == UNIQUE_VIOLATION:
        return True
    message = str(exc).lower()
    return "duplicate key" in message or "unique constraint" in message
