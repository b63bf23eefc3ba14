import asyncio
from types import SimpleNamespace

import pytest
from google.auth.exceptions import DefaultCredentialsError, RefreshError, TransportError

from app.cache import Cache
from app.domain.businesses.exceptions import IdentityError
from app.domain.businesses.repository import BusinessRepository
from app.domain.businesses.schemas import UnifiedRegistrationRequest
from app.domain.businesses.service import RegistrationService
from app.main import app
from app.services import identity_service
from app.services.identity_service import FirebaseIdentityService, get_identity_service

from .conftest import FakeRedis
from .test_registration_service import PAYLOAD


def raising(error):
    def _raise(*args, **kwargs):
        raise error

    return _raise


@pytest.fixture
def firebase(monkeypatch):
    """A real identity service with the Firebase Admin calls stubbed out"""
    monkeypatch.setattr(identity_service, "ensure_firebase_app", lambda: None)

    def set_call(name, fn):
        monkeypatch.setattr(identity_service.firebase_auth, name, fn)

    service = FirebaseIdentityService()
    service.set_call = set_call
    return service


class TestCredentialErrors:
    def test_health_reports_false(self, firebase):
        firebase.set_call("list_users", raising(DefaultCredentialsError("no ADC")))
        assert firebase.check_health() is False

    def test_email_lookup_wrapped(self, firebase):
        firebase.set_call("list_users", raising(DefaultCredentialsError("no ADC")))
        with pytest.raises(IdentityError):
            firebase.email_exists("laura@example.co")

    def test_create_and_delete_wrapped(self, firebase):
        firebase.set_call("create_user", raising(RefreshError("token refresh failed")))
        firebase.set_call("delete_user", raising(TransportError("connection reset")))
        with pytest.raises(IdentityError):
            firebase.create_user("laura@example.co", "Segura123", "Laura")
        with pytest.raises(IdentityError):
            firebase.delete_user("user-1")

    def test_metadata_wrapped(self, firebase):
        firebase.set_call("update_user", raising(RefreshError("token refresh failed")))
        with pytest.raises(IdentityError):
            firebase.update_user_metadata("user-1", "Laura", "b-1")

    def test_verification_email_returns_false(self, firebase):
        firebase.set_call("generate_email_verification_link", raising(TransportError("connection reset")))
        assert asyncio.run(firebase.send_verification_email("laura@example.co", "Laura", "Uñas Laura")) is False


def test_health_endpoint_without_credentials(client, firebase):
    firebase.set_call("list_users", raising(DefaultCredentialsError("no ADC")))
    app.dependency_overrides[get_identity_service] = lambda: firebase

    response = client.get("/api/health")

    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "unhealthy"
    assert body["services"] == {"database": "healthy", "auth": "unhealthy"}


def test_registration_survives_post_commit_identity_failures(firebase, db_session, rls):
    """Metadata and verification email run after the commit and must not fail the request"""
    firebase.set_call("list_users", lambda **kwargs: SimpleNamespace(iterate_all=lambda: []))
    firebase.set_call(
        "create_user", lambda email, **kwargs: SimpleNamespace(uid="firebase-uid-1", email=email)
    )
    firebase.set_call("update_user", raising(RefreshError("token refresh failed")))
    firebase.set_call("generate_email_verification_link", raising(TransportError("connection reset")))
    service = RegistrationService(db_session, firebase, Cache(client=FakeRedis()), rls)

    result = asyncio.run(service.register_complete(UnifiedRegistrationRequest.model_validate(PAYLOAD)))

    assert result["success"] is True
    assert result["data"]["email_verification_sent"] is False
    business = BusinessRepository.get_by_id(db_session, result["data"]["business_id"])
    assert business.owner_id == "firebase-uid-1"
