"""Business context - which tenant the current session is operating as

The active business id lives in two places:

* the context storage (per user, Redis-backed in production) under
  ``current_business_id``, which survives across requests, and
* the RLS session variable on the database connection, which Postgres
  policies read to filter rows.

``BusinessContextManager`` keeps the two in step. Its operations never raise
to callers; they return a ``ContextResult`` whose ``error.code`` says what
went wrong.
"""

import logging
from typing import Callable, Optional

import redis
from fastapi import Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...auth import AuthenticatedUser, get_current_user
from ...database import get_db
from ...rate_limiter import get_redis_client
from ...security_middleware import RLSContext, get_rls_context
from ...shared.validators import validate_uuid
from .exceptions import DatabaseError, RLSContextError
from .repository import BusinessRepository

logger = logging.getLogger(__name__)

BUSINESS_CONTEXT_KEY = "current_business_id"
CONTEXT_TTL_SECONDS = 60 * 60 * 24 * 30

ALREADY_IN_CONTEXT = "Already in the specified business context"

ContextListener = Callable[[Optional[str], Optional[str]], None]


# ============================================================================
# STORAGE
# ============================================================================


class MemoryContextStorage:
    """Process-local storage; used in tests and when Redis is unavailable"""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class RedisContextStorage:
    """Per-user keys in Redis: ``<namespace>:<key>``"""

    def __init__(self, namespace: str, client: redis.Redis, ttl: int = CONTEXT_TTL_SECONDS):
        self.namespace = namespace
        self.client = client
        self.ttl = ttl

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key: str) -> Optional[str]:
        return self.client.get(self._key(key))

    def set(self, key: str, value: str) -> None:
        self.client.setex(self._key(key), self.ttl, value)

    def remove(self, key: str) -> None:
        self.client.delete(self._key(key))


# ============================================================================
# RESULTS
# ============================================================================


class ContextError(BaseModel):
    message: str
    code: str


class ContextResult(BaseModel):
    success: bool
    business_id: Optional[str] = None
    message: Optional[str] = None
    error: Optional[ContextError] = None
    # True when a failed set could not restore the previous stored value
    partial: bool = False

    @classmethod
    def ok(cls, business_id: Optional[str] = None, message: Optional[str] = None) -> "ContextResult":
        return cls(success=True, business_id=business_id, message=message)

    @classmethod
    def fail(cls, code: str, message: str, partial: bool = False) -> "ContextResult":
        return cls(success=False, error=ContextError(message=message, code=code), partial=partial)


# ============================================================================
# MANAGER
# ============================================================================


class BusinessContextManager:
    """Tenant context for one user session. Construct one per request."""

    def __init__(self, db: Session, storage, rls: RLSContext):
        self.db = db
        self.storage = storage
        self.rls = rls
        self.repo = BusinessRepository()
        self._listeners: list[ContextListener] = []

    # ---- storage ------------------------------------------------------------

    def _read_stored(self) -> Optional[str]:
        try:
            return self.storage.get(BUSINESS_CONTEXT_KEY)
        except Exception as e:
            logger.error(f"❌ Failed to read business context from storage: {e}")
            return None

    def get_current_business_id(self) -> Optional[str]:
        """Stored business id, or None. A malformed stored value is removed."""
        value = self._read_stored()
        if not value:
            return None
        if not validate_uuid(value):
            logger.warning(f"⚠️ Invalid business id in context storage, clearing: {value!r}")
            try:
                self.storage.remove(BUSINESS_CONTEXT_KEY)
            except Exception as e:
                logger.error(f"❌ Failed to clear invalid business context: {e}")
            return None
        return value

    def has_business_context(self) -> bool:
        return self.get_current_business_id() is not None

    # ---- ownership ----------------------------------------------------------

    def get_user_businesses(self, user_id: str) -> list:
        try:
            return self.repo.get_by_owner(self.db, user_id)
        except DatabaseError as e:
            logger.error(f"❌ Failed to load businesses for user {user_id}: {e}")
            return []

    def validate_business_ownership(self, user_id: str, business_id: str) -> bool:
        if not validate_uuid(business_id):
            return False
        try:
            return self.repo.owns_business(self.db, user_id, business_id)
        except DatabaseError as e:
            logger.error(f"❌ Ownership check failed for business {business_id}: {e}")
            return False

    def validate_business_access(self, user_id: str, business_id: str) -> ContextResult:
        """Like validate_business_ownership but reports why access was refused"""
        if not validate_uuid(business_id):
            return ContextResult.fail("INVALID_FORMAT", "Formato de ID de negocio inválido")
        try:
            if not self.repo.owns_business(self.db, user_id, business_id):
                return ContextResult.fail("ACCESS_DENIED", "No tienes acceso a este negocio")
        except DatabaseError as e:
            return ContextResult.fail(e.code or "VALIDATION_ERROR", "Error validando el acceso al negocio")
        return ContextResult.ok(business_id)

    # ---- set / clear --------------------------------------------------------

    def set_business_context(self, business_id: str) -> ContextResult:
        """
        Store ``business_id`` and mirror it into the RLS session variable.

        Steps: write storage, then call the RPC. If the RPC fails the previous
        stored value is put back. If that restore also fails the result has
        ``partial=True``: storage points at the new business while the
        database does not; the next validate_session corrects it.
        """
        if not validate_uuid(business_id):
            return ContextResult.fail("INVALID_FORMAT", "Formato de ID de negocio inválido")

        previous = self._read_stored()
        try:
            self.storage.set(BUSINESS_CONTEXT_KEY, business_id)
        except Exception as e:
            logger.error(f"❌ Failed to store business context {business_id}: {e}")
            return ContextResult.fail("STORAGE_ERROR", "No se pudo guardar el negocio activo")

        try:
            self.rls.set_current_business_id(business_id)
        except RLSContextError as e:
            logger.error(f"❌ RLS context RPC failed for business {business_id}: {e}")
            restored = self._restore(previous)
            return ContextResult.fail(
                e.code or "RLS_ERROR",
                "No se pudo establecer el contexto del negocio",
                partial=not restored,
            )
        except Exception as e:
            logger.error(f"❌ Unexpected error setting business context: {e}")
            restored = self._restore(previous)
            return ContextResult.fail("UNEXPECTED_ERROR", "Error inesperado", partial=not restored)

        logger.info(f"🏢 Business context set to {business_id}")
        self._notify(business_id, previous)
        return ContextResult.ok(business_id)

    def _restore(self, previous: Optional[str]) -> bool:
        try:
            if previous and validate_uuid(previous):
                self.storage.set(BUSINESS_CONTEXT_KEY, previous)
            else:
                self.storage.remove(BUSINESS_CONTEXT_KEY)
            return True
        except Exception as e:
            logger.error(f"❌ Could not roll back business context storage: {e}")
            return False

    def clear_business_context(self) -> ContextResult:
        """Clear storage first; a failing server-side clear is only logged"""
        previous = self._read_stored()
        try:
            self.storage.remove(BUSINESS_CONTEXT_KEY)
        except Exception as e:
            logger.error(f"❌ Failed to clear business context storage: {e}")
            return ContextResult.fail("CLEAR_ERROR", "No se pudo limpiar el contexto del negocio")

        try:
            self.rls.clear_business_context()
        except RLSContextError as e:
            logger.warning(f"⚠️ Server-side business context clear failed ({e.code}), continuing")

        self._notify(None, previous)
        return ContextResult.ok()

    def set_default_business(self, user_id: str, business_id: str) -> ContextResult:
        if not self.validate_business_ownership(user_id, business_id):
            return ContextResult.fail("OWNERSHIP_ERROR", "No tienes acceso a este negocio")

        result = self.set_business_context(business_id)
        if not result.success:
            return ContextResult.fail(
                "SET_DEFAULT_ERROR",
                "No se pudo establecer el negocio predeterminado",
                partial=result.partial,
            )
        return result

    def switch_business_context(self, user_id: str, business_id: str) -> ContextResult:
        if self.get_current_business_id() == business_id:
            return ContextResult.ok(business_id, message=ALREADY_IN_CONTEXT)

        access = self.validate_business_access(user_id, business_id)
        if not access.success:
            return access
        return self.set_business_context(business_id)

    # ---- resolution ---------------------------------------------------------

    def resolve_current_business_id(
        self, user_id: Optional[str] = None, auto_select: bool = True, skip_cache: bool = False
    ) -> Optional[str]:
        """
        Current business id, auto-selecting the user's oldest business when none is stored.

        Args:
            user_id: when given, a stored id the user does not own is discarded
            auto_select: pick and set the first business if nothing valid is stored
            skip_cache: ignore the stored value and resolve from the database
        """
        if not skip_cache:
            current = self.get_current_business_id()
            if current and (user_id is None or self.validate_business_ownership(user_id, current)):
                return current

        if not (auto_select and user_id):
            return None

        businesses = self.get_user_businesses(user_id)
        if not businesses:
            return None

        result = self.set_business_context(businesses[0].id)
        return businesses[0].id if result.success else None

    def ensure_business_context(self, user_id: str) -> ContextResult:
        business_id = self.resolve_current_business_id(user_id=user_id)
        if business_id is None:
            return ContextResult.fail("NO_BUSINESS", "El usuario no tiene negocios registrados")
        return ContextResult.ok(business_id)

    def sync_rls_context(self, user_id: str) -> Optional[str]:
        """
        Apply the stored business to this request's connection.

        A stored id the user no longer owns is dropped rather than applied.
        Returns the business id now active on the connection, if any.
        """
        business_id = self.get_current_business_id()
        if business_id is None:
            return None

        if not self.validate_business_ownership(user_id, business_id):
            logger.warning(f"⚠️ Stored business {business_id} not owned by {user_id}, clearing")
            self.clear_business_context()
            return None

        try:
            self.rls.set_current_business_id(business_id)
        except RLSContextError as e:
            logger.error(f"❌ Could not restore RLS business context {business_id}: {e.code}")
            return None
        return business_id

    def execute_with_business_context(self, business_id: str, operation: Callable):
        """Run ``operation()`` with the RLS context set to ``business_id``"""
        result = self.set_business_context(business_id)
        if not result.success:
            raise RLSContextError(result.error.message, result.error.code)
        return operation()

    def get_business_context_info(self) -> dict:
        stored = self._read_stored()
        try:
            server_side = self.rls.get_current_business_id()
        except RLSContextError:
            server_side = None
        current = stored if validate_uuid(stored) else None
        return {
            "business_id": current,
            "has_context": current is not None,
            "is_valid_format": stored is None or current is not None,
            "storage_key": BUSINESS_CONTEXT_KEY,
            "server_business_id": server_side,
            "synchronized": server_side == current,
        }

    def test_rls_isolation(self, user_id: Optional[str] = None) -> dict:
        """
        With no business context and no user identity, the access policy
        should hide every business row. ``user_id`` is restored afterwards.
        """
        self.clear_business_context()
        try:
            self.rls.clear_user()
            rows = self.rls.test_data_isolation("businesses")
        except RLSContextError as e:
            return {"isolated": False, "visible_rows": None, "error": e.code}
        finally:
            if user_id:
                try:
                    self.rls.set_user(user_id)
                except RLSContextError as e:
                    logger.error(f"❌ Could not restore RLS user after isolation test: {e.code}")
        return {"isolated": len(rows) == 0, "visible_rows": len(rows), "error": None}

    # ---- listeners ----------------------------------------------------------

    def add_listener(self, listener: ContextListener) -> Callable[[], None]:
        """Subscribe to context changes. Returns a function that unsubscribes."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, business_id: Optional[str], previous: Optional[str]) -> None:
        for listener in list(self._listeners):
            try:
                listener(business_id, previous)
            except Exception as e:
                logger.error(f"❌ Business context listener failed: {e}")


# ============================================================================
# DEPENDENCIES
# ============================================================================


def get_context_storage(current_user: AuthenticatedUser = Depends(get_current_user)):
    """Per-user context storage; falls back to process memory without Redis"""
    try:
        return RedisContextStorage(f"business_context:{current_user.uid}", get_redis_client())
    except (redis.RedisError, RuntimeError) as e:
        logger.warning(f"⚠️ Redis unavailable for business context, using memory storage: {e}")
        return MemoryContextStorage()


def get_business_context(
    db: Session = Depends(get_db),
    storage=Depends(get_context_storage),
    rls: RLSContext = Depends(get_rls_context),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> BusinessContextManager:
    """Dependency injection for BusinessContextManager, synced to the stored business"""
    context = BusinessContextManager(db, storage, rls)
    context.sync_rls_context(current_user.uid)
    return context
