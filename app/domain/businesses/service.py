"""Business service - registration business logic"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import Cache
from ...config import IDEMPOTENCY_TTL_SECONDS
from ...security_middleware import RLSContext
from .context import BusinessContextManager
from .exceptions import DatabaseError, DuplicateBusinessEmailError, IdentityError, RLSContextError
from .repository import BusinessRepository
from .schemas import BusinessRegistrationRequest, BusinessResponse, UnifiedRegistrationRequest

logger = logging.getLogger(__name__)

EMAIL_EXISTS_MESSAGE = "Este email ya está registrado"
SERVER_ERROR_MESSAGE = "Error interno del servidor. Intente nuevamente."


class RegistrationError(Exception):
    """A registration failure carrying the error envelope returned to the client"""

    def __init__(self, type: str, message: str, status_code: int = 500, **extra):
        super().__init__(message)
        self.type = type
        self.message = message
        self.status_code = status_code
        self.extra = extra

    def to_response(self) -> dict:
        return {"success": False, "error": {"type": self.type, "message": self.message, **self.extra}}


def _idempotency_cache_key(key: str) -> str:
    return f"idempotency:register-complete:{key}"


class RegistrationService:
    """Service for business and user+business registration"""

    def __init__(self, db: Session, identity=None, cache: Optional[Cache] = None, rls: Optional[RLSContext] = None):
        self.db = db
        self.identity = identity
        self.cache = cache or Cache()
        self.rls = rls
        self.repo = BusinessRepository()

    def _service_mode(self) -> None:
        """Email uniqueness spans every tenant, and a new user has no RLS identity yet"""
        if self.rls is not None:
            self.rls.enable_service_mode()

    def _end_service_mode(self) -> None:
        """Only the cross-tenant email lookup needs the bypass; the insert re-enables it"""
        if self.rls is None:
            return
        try:
            self.rls.disable_service_mode()
        except RLSContextError as e:
            logger.warning(f"⚠️ Could not disable RLS service mode ({e.code}), it ends with the transaction")

    # ------------------------------------------------------------------------
    # Business registration for an already signed-in user
    # ------------------------------------------------------------------------

    def register_business(
        self,
        owner_id: str,
        data: BusinessRegistrationRequest,
        context: Optional[BusinessContextManager] = None,
    ) -> dict:
        """
        Create a business for ``owner_id`` and make it the active context.

        Raises:
            RegistrationError: 409 email_exists or 500 server_error
        """
        try:
            self._service_mode()
            if self.repo.is_email_taken(self.db, data.email):
                raise RegistrationError("email_exists", EMAIL_EXISTS_MESSAGE, 409)

            business = self.repo.create_colombian_business(
                self.db,
                owner_id,
                name=data.name,
                email=data.email,
                phone=data.phone,
                whatsapp_number=data.whatsapp_number,
                street=data.address.street,
                city=data.address.city,
                department=data.address.department,
                postal_code=data.address.postalCode,
            )
        except DuplicateBusinessEmailError as e:
            # Lost a race with a concurrent registration of the same email
            raise RegistrationError("email_exists", EMAIL_EXISTS_MESSAGE, 409) from e
        except (DatabaseError, RLSContextError) as e:
            logger.error(f"❌ Business registration failed for {owner_id}: {e}")
            raise RegistrationError("server_error", SERVER_ERROR_MESSAGE, 500) from e

        logger.info(f"🏢 Business registered: {business.id} ({business.name}) for {owner_id}")

        if context is not None:
            result = context.set_business_context(business.id)
            if not result.success:
                logger.warning(
                    f"⚠️ Business {business.id} created but context not set: {result.error.code}"
                )

        return BusinessResponse.from_model(business).model_dump(mode="json")

    # ------------------------------------------------------------------------
    # Unified user + business registration
    # ------------------------------------------------------------------------

    def get_cached_registration(self, idempotency_key: Optional[str]) -> Optional[dict]:
        if not idempotency_key:
            return None
        cached = self.cache.get(_idempotency_cache_key(idempotency_key))
        if cached:
            logger.info(f"♻️ Replaying registration for idempotency key {idempotency_key}")
        return cached

    async def register_complete(
        self, data: UnifiedRegistrationRequest, idempotency_key: Optional[str] = None
    ) -> dict:
        """
        Create the auth user and their first business as one unit.

        The user is created first; if the business cannot be created the user
        is deleted again. When that cleanup also fails the orphaned user id is
        reported so support can remove it.

        Returns:
            The 201 response body

        Raises:
            RegistrationError
        """
        cached = self.get_cached_registration(idempotency_key)
        if cached:
            return cached

        user_data = data.user
        business_data = data.business

        self._check_email_uniqueness(user_data.email, business_data.email)

        try:
            user = self.identity.create_user(user_data.email, user_data.password, user_data.name)
        except IdentityError as e:
            logger.error(f"❌ User creation failed for {user_data.email}: {e}")
            raise RegistrationError(
                "user_creation_failed",
                "Error al crear la cuenta de usuario",
                500,
            ) from e

        try:
            self._service_mode()
            business = self.repo.create_colombian_business(
                self.db,
                user.uid,
                name=business_data.name,
                email=business_data.email,
                phone=business_data.phone,
                whatsapp_number=business_data.whatsapp_number,
                street=business_data.address.street,
                city=business_data.address.city,
                department=business_data.address.department,
                postal_code=business_data.address.postalCode,
            )
        except DatabaseError as e:
            logger.error(f"❌ Business creation failed for user {user.uid}: {e}")
            self._compensate(
                user.uid,
                RegistrationError(
                    "business_creation_failed",
                    "Error al crear el negocio. Registro cancelado.",
                    500,
                    cleanup_performed=True,
                    retry_allowed=True,
                ),
            )
        except Exception as e:
            logger.error(f"❌ Unexpected error during registration for user {user.uid}: {e}")
            self._compensate(
                user.uid,
                RegistrationError(
                    "transaction_failed",
                    "Error inesperado durante el registro. Intente nuevamente.",
                    500,
                    cleanup_performed=True,
                    retry_allowed=True,
                ),
            )

        try:
            self.identity.update_user_metadata(user.uid, user_data.name, business.id)
        except IdentityError as e:
            logger.warning(f"⚠️ Could not update metadata for user {user.uid}: {e}")

        email_sent = await self.identity.send_verification_email(user.email, user_data.name, business.name)

        logger.info(f"✅ Registration complete: user {user.uid}, business {business.id}")
        response = {
            "success": True,
            "data": {
                "user_id": user.uid,
                "business_id": business.id,
                "email_verification_sent": email_sent,
                "user": {"id": user.uid, "email": user.email, "name": user_data.name},
                "business": {
                    "id": business.id,
                    "name": business.name,
                    "email": business.email,
                    "phone": business.phone,
                },
            },
            "message": "Registro exitoso. Revisa tu email para verificar tu cuenta.",
        }

        if idempotency_key:
            self.cache.set(_idempotency_cache_key(idempotency_key), response, ttl=IDEMPOTENCY_TTL_SECONDS)
        return response

    def _check_email_uniqueness(self, user_email: str, business_email: str) -> None:
        try:
            user_exists = self.identity.email_exists(user_email)
            if not user_exists:
                self._service_mode()
            business_exists = not user_exists and self.repo.is_email_taken(self.db, business_email)
        except (IdentityError, DatabaseError, RLSContextError) as e:
            logger.error(f"❌ Email uniqueness check failed: {e}")
            raise RegistrationError(
                "server_error",
                "Error verificando la unicidad del email. Intente nuevamente.",
                500,
            ) from e
        finally:
            self._end_service_mode()

        if user_exists:
            raise RegistrationError(
                "email_exists", "Este email de usuario ya está registrado", 409, field="user.email"
            )
        if business_exists:
            raise RegistrationError(
                "business_email_exists",
                "Este email de negocio ya está registrado",
                409,
                field="business.email",
            )

    def _compensate(self, user_id: str, error: RegistrationError) -> None:
        """Delete the just-created user, then raise ``error`` (or rollback_failed)"""
        try:
            self.identity.delete_user(user_id)
        except IdentityError as cleanup_error:
            logger.error(f"❌ ROLLBACK FAILED: orphaned user {user_id}: {cleanup_error}")
            raise RegistrationError(
                "rollback_failed",
                "Error en el registro. Contacte a soporte con el ID de usuario.",
                500,
                user_id=user_id,
                cleanup_attempted=True,
                cleanup_successful=False,
            ) from cleanup_error

        logger.info(f"🔄 Rolled back user {user_id} after failed registration")
        raise error
