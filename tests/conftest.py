"""
Pytest configuration and fixtures.
"""

import os

# Point the app at SQLite before anything imports app.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("REDIS_URL", None)
os.environ.pop("RESEND_API_KEY", None)
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth import AuthenticatedUser, get_current_user, get_optional_user
from app.database import Base, get_db
from app.domain.businesses.context import BusinessContextManager, MemoryContextStorage, get_context_storage
from app.domain.businesses.exceptions import IdentityError, RLSContextError
from app.domain.businesses.repository import BusinessRepository
from app.main import app
from app.security_middleware import get_rls_context
from app.services.identity_service import IdentityUser, get_identity_service

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

OWNER_ID = "owner-1"


class FakeRLS:
    """Records RLS calls instead of running the Postgres RPCs"""

    def __init__(self):
        self.calls = []
        self.business_id = None
        self.fail_set = False
        self.isolation_rows = []

    def set_user(self, user_id):
        self.calls.append(("set_user", user_id))

    def clear_user(self):
        self.calls.append(("clear_user",))

    def enable_service_mode(self):
        self.calls.append(("enable_service_mode",))

    def disable_service_mode(self):
        self.calls.append(("disable_service_mode",))

    def set_current_business_id(self, business_id):
        self.calls.append(("set_current_business_id", business_id))
        if self.fail_set:
            raise RLSContextError("Set current business failed", "42501")
        self.business_id = business_id

    def get_current_business_id(self):
        return self.business_id

    def set_business_context(self, business_id):
        self.set_current_business_id(business_id)

    def clear_business_context(self):
        self.calls.append(("clear_business_context",))
        self.business_id = None

    def test_data_isolation(self, table_name):
        return list(self.isolation_rows)


class FakeIdentity:
    """In-memory stand-in for the Firebase admin operations"""

    def __init__(self):
        self.users = {}
        self.created = []
        self.deleted = []
        self.metadata = {}
        self.fail_create = False
        self.fail_delete = False
        self.fail_lookup = False
        self.fail_metadata = False
        self.healthy = True

    def email_exists(self, email):
        if self.fail_lookup:
            raise IdentityError("listing failed")
        return any(u.email == email.lower() for u in self.users.values())

    def create_user(self, email, password, name):
        if self.fail_create:
            raise IdentityError("create failed")
        user = IdentityUser(uid=f"user-{len(self.created) + 1}", email=email, display_name=name)
        self.users[user.uid] = user
        self.created.append(user.uid)
        return user

    def delete_user(self, uid):
        if self.fail_delete:
            raise IdentityError("delete failed")
        self.users.pop(uid, None)
        self.deleted.append(uid)

    def update_user_metadata(self, uid, name, business_id):
        if self.fail_metadata:
            raise IdentityError("claims failed")
        self.metadata[uid] = {"name": name, "business_id": business_id}

    async def send_verification_email(self, email, name, business_name):
        return True

    def check_health(self):
        return self.healthy


class FakeRedis:
    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def rls():
    return FakeRLS()


@pytest.fixture
def identity():
    return FakeIdentity()


@pytest.fixture
def storage():
    return MemoryContextStorage()


@pytest.fixture
def context(db_session, storage, rls):
    return BusinessContextManager(db_session, storage, rls)


@pytest.fixture
def make_business(db_session):
    """Insert a business directly through the repository"""
    counter = {"n": 0}

    def _make(owner_id=OWNER_ID, **overrides):
        counter["n"] += 1
        data = {
            "name": f"Peluquería {counter['n']}",
            "email": f"negocio{counter['n']}@example.co",
            "phone": "+57 310 123 4567",
            "whatsapp_number": "+57 310 123 4567",
            "street": "Calle 10 # 5-20",
            "city": "Medellín",
            "department": "Antioquia",
        }
        data.update(overrides)
        return BusinessRepository.create_colombian_business(db_session, owner_id, **data)

    return _make


@pytest.fixture
def auth_state():
    """Mutable holder for the signed-in user; set ``user`` to None to sign out"""

    class State:
        user = AuthenticatedUser(uid=OWNER_ID, email="dueno@example.co", name="Dueño", email_verified=True)

    return State


@pytest.fixture
def client(db_session, rls, identity, storage, auth_state):
    """Test client with database, auth, identity and RLS dependencies overridden."""

    def override_get_db():
        yield db_session

    def override_current_user():
        from fastapi import HTTPException

        if auth_state.user is None:
            raise HTTPException(status_code=401, detail="Usuario no autenticado")
        return auth_state.user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rls_context] = lambda: rls
    app.dependency_overrides[get_identity_service] = lambda: identity
    app.dependency_overrides[get_current_user] = override_current_user
    app.dependency_overrides[get_optional_user] = lambda: auth_state.user
    app.dependency_overrides[get_context_storage] = lambda: storage

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
