"""Business repository - Database operations for businesses"""

import logging
from typing import Optional

from sqlalchemy import or_, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Business
from ...shared.colombia import is_valid_colombian_department, validate_colombian_phone
from .exceptions import (
    BusinessNotFoundError,
    DatabaseError,
    DuplicateBusinessEmailError,
    SettingsConflictError,
    is_unique_violation,
    pgcode_of,
)

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10

# Sunday = 0 ... Saturday = 6
DEFAULT_BUSINESS_HOURS = [
    {"dayOfWeek": 1, "openTime": "08:00", "closeTime": "18:00", "isOpen": True},
    {"dayOfWeek": 2, "openTime": "08:00", "closeTime": "18:00", "isOpen": True},
    {"dayOfWeek": 3, "openTime": "08:00", "closeTime": "18:00", "isOpen": True},
    {"dayOfWeek": 4, "openTime": "08:00", "closeTime": "18:00", "isOpen": True},
    {"dayOfWeek": 5, "openTime": "08:00", "closeTime": "18:00", "isOpen": True},
    {"dayOfWeek": 6, "openTime": "08:00", "closeTime": "14:00", "isOpen": True},
    {"dayOfWeek": 0, "openTime": "10:00", "closeTime": "14:00", "isOpen": False},
]


def default_business_settings() -> dict:
    return {
        "timezone": "America/Bogota",
        "currency": "COP",
        "businessHours": [dict(h) for h in DEFAULT_BUSINESS_HOURS],
    }


class BusinessRepository:
    """Repository for business database operations

    Missing rows come back as None/False. Every other backend failure is
    rolled back and re-raised as DatabaseError with a prefixed message.
    """

    @staticmethod
    def create(
        db: Session,
        owner_id: str,
        *,
        name: str,
        email: str,
        phone: Optional[str] = None,
        whatsapp_number: Optional[str] = None,
        street: Optional[str] = None,
        city: Optional[str] = None,
        department: Optional[str] = None,
        postal_code: Optional[str] = None,
        description: Optional[str] = None,
        settings: Optional[dict] = None,
    ) -> Business:
        """Insert a business owned by ``owner_id``"""
        business = Business(
            owner_id=owner_id,
            name=name,
            email=email,
            phone=phone,
            whatsapp_number=whatsapp_number,
            street=street,
            city=city,
            department=department,
            postal_code=postal_code,
            description=description,
            settings=settings if settings is not None else {"timezone": "America/Bogota", "currency": "COP"},
            version=1,
        )
        db.add(business)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if is_unique_violation(e):
                raise DuplicateBusinessEmailError(email) from e
            raise DatabaseError(f"Failed to create business: {e}", pgcode_of(e)) from e
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to create business: {e}", pgcode_of(e)) from e
        db.refresh(business)
        return business

    @staticmethod
    def create_colombian_business(db: Session, owner_id: str, **business_data) -> Business:
        """Create a business with Colombian defaults: Bogotá timezone, COP and standard opening hours"""
        settings = default_business_settings()
        settings.update(business_data.pop("settings", None) or {})
        return BusinessRepository.create(db, owner_id, settings=settings, **business_data)

    @staticmethod
    def get_by_id(db: Session, business_id: str) -> Optional[Business]:
        try:
            return db.query(Business).filter(Business.id == business_id).first()
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to get business: {e}", pgcode_of(e)) from e

    @staticmethod
    def get_by_owner(db: Session, owner_id: str) -> list[Business]:
        """All businesses of a user, oldest first"""
        try:
            return (
                db.query(Business)
                .filter(Business.owner_id == owner_id)
                .order_by(Business.created_at.asc(), Business.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to list businesses: {e}", pgcode_of(e)) from e

    @staticmethod
    def get_first_for_owner(db: Session, owner_id: str) -> Optional[Business]:
        businesses = BusinessRepository.get_by_owner(db, owner_id)
        return businesses[0] if businesses else None

    @staticmethod
    def owns_business(db: Session, owner_id: str, business_id: str) -> bool:
        try:
            return (
                db.query(Business.id)
                .filter(Business.id == business_id, Business.owner_id == owner_id)
                .first()
                is not None
            )
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to validate business ownership: {e}", pgcode_of(e)) from e

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[Business]:
        try:
            return db.query(Business).filter(Business.email == email.strip().lower()).first()
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to look up business email: {e}", pgcode_of(e)) from e

    @staticmethod
    def is_email_taken(db: Session, email: str, exclude_business_id: Optional[str] = None) -> bool:
        business = BusinessRepository.get_by_email(db, email)
        if business is None:
            return False
        return business.id != exclude_business_id

    @staticmethod
    def get_by_department(db: Session, department: str) -> list[Business]:
        try:
            return db.query(Business).filter(Business.department == department).order_by(Business.name).all()
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to list businesses by department: {e}", pgcode_of(e)) from e

    @staticmethod
    def search(db: Session, query: str, owner_id: Optional[str] = None) -> list[Business]:
        """Case-insensitive match on name or city, at most 10 results"""
        pattern = f"%{query.strip()}%"
        try:
            q = db.query(Business).filter(or_(Business.name.ilike(pattern), Business.city.ilike(pattern)))
            if owner_id:
                q = q.filter(Business.owner_id == owner_id)
            return q.order_by(Business.name).limit(SEARCH_LIMIT).all()
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to search businesses: {e}", pgcode_of(e)) from e

    @staticmethod
    def update(db: Session, business_id: str, **columns) -> Business:
        """Update flat columns. Raises BusinessNotFoundError when the row is missing."""
        business = BusinessRepository.get_by_id(db, business_id)
        if business is None:
            raise BusinessNotFoundError(business_id)

        for key, value in columns.items():
            if hasattr(Business, key) and key not in ("id", "owner_id", "settings", "version"):
                setattr(business, key, value)

        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if is_unique_violation(e):
                raise DuplicateBusinessEmailError(columns.get("email", "")) from e
            raise DatabaseError(f"Failed to update business: {e}", pgcode_of(e)) from e
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to update business: {e}", pgcode_of(e)) from e
        db.refresh(business)
        return business

    @staticmethod
    def delete(db: Session, business_id: str) -> bool:
        """Administrative hard delete. Returns False when nothing was deleted."""
        try:
            deleted = db.query(Business).filter(Business.id == business_id).delete()
            db.commit()
            return deleted > 0
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to delete business: {e}", pgcode_of(e)) from e

    @staticmethod
    def update_settings(
        db: Session, business_id: str, patch: dict, expected_version: Optional[int] = None
    ) -> Business:
        """
        Shallow-merge ``patch`` into the stored settings.

        The write is a compare-and-swap on ``version``: it only lands if the
        row still has the version that was read (or ``expected_version`` when
        the caller supplies the token it got with the settings).

        Raises:
            BusinessNotFoundError: no such business (or hidden by RLS)
            SettingsConflictError: another writer got there first
        """
        business = BusinessRepository.get_by_id(db, business_id)
        if business is None:
            raise BusinessNotFoundError(business_id)

        read_version = business.version or 1
        if expected_version is not None and expected_version != read_version:
            raise SettingsConflictError(business_id, read_version)

        merged = {**(business.settings or {}), **patch}
        try:
            updated = (
                db.query(Business)
                .filter(Business.id == business_id, Business.version == read_version)
                .update(
                    {Business.settings: merged, Business.version: read_version + 1},
                    synchronize_session=False,
                )
            )
            if updated == 0:
                db.rollback()
                current = db.query(Business.version).filter(Business.id == business_id).scalar()
                if current is None:
                    raise BusinessNotFoundError(business_id)
                raise SettingsConflictError(business_id, current)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to update settings: {e}", pgcode_of(e)) from e

        db.refresh(business)
        logger.info(f"⚙️ Settings updated for business {business_id} (version {business.version})")
        return business

    @staticmethod
    def bulk_update_settings(db: Session, updates: list[dict]) -> dict:
        """
        Apply several settings patches, one business at a time.

        Args:
            updates: [{"business_id": ..., "settings": {...}, "version": optional}]

        Returns:
            {"results": [Business, ...], "errors": [{"business_id", "error"}, ...]}
        """
        results = []
        errors = []
        for item in updates:
            business_id = item.get("business_id")
            try:
                results.append(
                    BusinessRepository.update_settings(
                        db, business_id, item.get("settings") or {}, item.get("version")
                    )
                )
            except DatabaseError as e:
                logger.warning(f"⚠️ Bulk settings update failed for {business_id}: {e}")
                errors.append({"business_id": business_id, "error": str(e)})
        return {"results": results, "errors": errors}

    @staticmethod
    def get_business_health(db: Session, business_id: str) -> Optional[dict]:
        """
        Data-quality report for one business.

        Status is "critical" with 3+ issues, "warning" with 1-2, "healthy" otherwise.
        """
        business = BusinessRepository.get_by_id(db, business_id)
        if business is None:
            return None

        checks = {
            "has_name": bool(business.name and business.name.strip()),
            "valid_phone": validate_colombian_phone(business.phone),
            "valid_whatsapp": validate_colombian_phone(business.whatsapp_number),
            "valid_department": is_valid_colombian_department(business.department),
            "has_email": bool(business.email),
            "has_address": bool(business.street and business.city),
            "has_settings": bool(business.settings),
        }
        issues = [name for name, passed in checks.items() if not passed]

        if len(issues) >= 3:
            status = "critical"
        elif issues:
            status = "warning"
        else:
            status = "healthy"

        return {"business_id": business_id, "status": status, "checks": checks, "issues": issues}

    @staticmethod
    def check_database_health(db: Session) -> tuple[bool, Optional[str]]:
        """Cheap round-trip against the businesses table"""
        try:
            db.execute(text("SELECT id FROM businesses LIMIT 1"))
            return True, None
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Database health check failed: {e}")
            return False, str(e)
