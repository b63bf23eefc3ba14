import pytest

from app.domain.businesses.exceptions import (
    BusinessNotFoundError,
    DuplicateBusinessEmailError,
    SettingsConflictError,
)
from app.domain.businesses.repository import BusinessRepository
from app.models import Business

from .conftest import OWNER_ID


class TestCreate:
    def test_colombian_defaults(self, make_business):
        business = make_business()
        assert business.settings["timezone"] == "America/Bogota"
        assert business.settings["currency"] == "COP"
        assert len(business.settings["businessHours"]) == 7
        sunday = next(h for h in business.settings["businessHours"] if h["dayOfWeek"] == 0)
        assert sunday["isOpen"] is False
        assert business.version == 1

    def test_duplicate_email_raises(self, make_business):
        make_business(email="dup@example.co")
        with pytest.raises(DuplicateBusinessEmailError) as exc_info:
            make_business(email="dup@example.co")
        assert exc_info.value.code == "23505"


class TestQueries:
    def test_missing_rows_return_none_or_false(self, db_session):
        assert BusinessRepository.get_by_id(db_session, "00000000-0000-0000-0000-000000000000") is None
        assert BusinessRepository.get_first_for_owner(db_session, "nobody") is None
        assert BusinessRepository.owns_business(db_session, OWNER_ID, "missing") is False

    def test_ownership(self, db_session, make_business):
        business = make_business()
        assert BusinessRepository.owns_business(db_session, OWNER_ID, business.id)
        assert not BusinessRepository.owns_business(db_session, "someone-else", business.id)

    def test_email_lookup_is_case_insensitive(self, db_session, make_business):
        business = make_business(email="hola@example.co")
        assert BusinessRepository.get_by_email(db_session, " HOLA@example.co ").id == business.id
        assert BusinessRepository.is_email_taken(db_session, "hola@example.co")
        assert not BusinessRepository.is_email_taken(db_session, "hola@example.co", exclude_business_id=business.id)

    def test_search_by_name_or_city(self, db_session, make_business):
        make_business(name="Spa Armonía", city="Cali", department="Valle del Cauca")
        make_business(name="Taller Rápido", city="Medellín")
        assert [b.name for b in BusinessRepository.search(db_session, "armon")] == ["Spa Armonía"]
        assert [b.name for b in BusinessRepository.search(db_session, "cali")] == ["Spa Armonía"]
        assert BusinessRepository.search(db_session, "armon", owner_id="other") == []

    def test_search_is_limited(self, db_session, make_business):
        for _ in range(12):
            make_business()
        assert len(BusinessRepository.search(db_session, "Peluquería")) == 10

    def test_by_department(self, db_session, make_business):
        make_business(department="Atlántico", city="Barranquilla")
        make_business()
        assert len(BusinessRepository.get_by_department(db_session, "Atlántico")) == 1


class TestUpdate:
    def test_update_columns(self, db_session, make_business):
        business = make_business()
        updated = BusinessRepository.update(db_session, business.id, city="Envigado", owner_id="hijack")
        assert updated.city == "Envigado"
        assert updated.owner_id == OWNER_ID

    def test_update_missing(self, db_session):
        with pytest.raises(BusinessNotFoundError):
            BusinessRepository.update(db_session, "missing", name="x")

    def test_delete(self, db_session, make_business):
        business = make_business()
        assert BusinessRepository.delete(db_session, business.id) is True
        assert BusinessRepository.delete(db_session, business.id) is False


class TestUpdateSettings:
    def test_shallow_merge_bumps_version(self, db_session, make_business):
        business = make_business()
        updated = BusinessRepository.update_settings(db_session, business.id, {"bookingLeadHours": 2})
        assert updated.settings["bookingLeadHours"] == 2
        assert updated.settings["currency"] == "COP"
        assert updated.version == 2

    def test_stale_version_conflicts(self, db_session, make_business):
        business = make_business()
        BusinessRepository.update_settings(db_session, business.id, {"a": 1}, expected_version=1)
        with pytest.raises(SettingsConflictError) as exc_info:
            BusinessRepository.update_settings(db_session, business.id, {"b": 2}, expected_version=1)
        assert exc_info.value.current_version == 2
        assert "b" not in BusinessRepository.get_by_id(db_session, business.id).settings

    def test_writes_against_latest_version(self, db_session, make_business):
        business = make_business()
        # Another writer already bumped the version
        db_session.query(Business).filter(Business.id == business.id).update({Business.version: 5})
        db_session.commit()
        db_session.expire_all()
        updated = BusinessRepository.update_settings(db_session, business.id, {"x": 1})
        assert updated.version == 6

    def test_missing_business(self, db_session):
        with pytest.raises(BusinessNotFoundError):
            BusinessRepository.update_settings(db_session, "missing", {"x": 1})

    def test_bulk_update_collects_errors(self, db_session, make_business):
        business = make_business()
        result = BusinessRepository.bulk_update_settings(
            db_session,
            [
                {"business_id": business.id, "settings": {"x": 1}},
                {"business_id": "missing", "settings": {"x": 1}},
            ],
        )
        assert [b.id for b in result["results"]] == [business.id]
        assert result["errors"][0]["business_id"] == "missing"


class TestHealth:
    def test_healthy_business(self, db_session, make_business):
        business = make_business()
        report = BusinessRepository.get_business_health(db_session, business.id)
        assert report["status"] == "healthy"
        assert report["issues"] == []

    def test_warning_and_critical(self, db_session, make_business):
        warning = make_business(phone="3101234567")
        critical = make_business(phone=None, whatsapp_number="123", department="Texas")
        assert BusinessRepository.get_business_health(db_session, warning.id)["status"] == "warning"
        report = BusinessRepository.get_business_health(db_session, critical.id)
        assert report["status"] == "critical"
        assert set(report["issues"]) == {"valid_phone", "valid_whatsapp", "valid_department"}

    def test_missing_business(self, db_session):
        assert BusinessRepository.get_business_health(db_session, "missing") is None

    def test_database_health(self, db_session):
        assert BusinessRepository.check_database_health(db_session) == (True, None)
