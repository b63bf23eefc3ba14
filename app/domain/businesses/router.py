"""Business router - FastAPI endpoints for registration, profile, settings and tenant context"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ...auth import NOT_AUTHENTICATED, AuthenticatedUser, get_current_user, get_optional_user
from ...cache import Cache
from ...config import REGISTRATION_RATE_LIMIT, REGISTRATION_RATE_WINDOW_SECONDS
from ...database import get_db
from ...rate_limiter import create_rate_limiter
from ...security_middleware import RLSContext, get_rls_context
from ...services.identity_service import get_identity_service
from .context import BusinessContextManager, get_business_context, get_context_storage
from .exceptions import BusinessNotFoundError, DatabaseError, DuplicateBusinessEmailError, SettingsConflictError
from .repository import BusinessRepository
from .schemas import (
    BusinessProfileUpdate,
    BusinessRegistrationRequest,
    BusinessResponse,
    BusinessSettingsUpdate,
    ContextSwitchRequest,
    FieldValidationRequest,
    UnifiedRegistrationRequest,
    format_validation_errors,
    validate_business_form_field,
)
from .service import SERVER_ERROR_MESSAGE, RegistrationError, RegistrationService
from .session import BusinessSessionManager, get_session_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/business", tags=["Business"])

registration_rate_limit = create_rate_limiter(
    REGISTRATION_RATE_LIMIT, REGISTRATION_RATE_WINDOW_SECONDS, "register"
)

SWITCH_ERROR_STATUS = {"INVALID_FORMAT": 400, "ACCESS_DENIED": 403, "OWNERSHIP_ERROR": 403}


def get_registration_service(
    db: Session = Depends(get_db),
    identity=Depends(get_identity_service),
    rls: RLSContext = Depends(get_rls_context),
) -> RegistrationService:
    """Dependency injection for RegistrationService"""
    return RegistrationService(db, identity, Cache(), rls)


def error_response(status_code: int, type: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": {"type": type, "message": message, **extra}},
    )


def method_not_allowed(message: str) -> JSONResponse:
    return error_response(405, "method_not_allowed", message)


# ============================================================================
# BUSINESS REGISTRATION
# ============================================================================


@router.post("/register", status_code=201)
async def register_business(
    request: Request,
    current_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    db: Session = Depends(get_db),
    rls: RLSContext = Depends(get_rls_context),
    service: RegistrationService = Depends(get_registration_service),
    _: None = Depends(registration_rate_limit),
):
    """Register a business for the signed-in user. Input is validated before auth is enforced."""
    if "application/json" not in request.headers.get("content-type", ""):
        return error_response(400, "validation_error", "Content-Type debe ser application/json")

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return error_response(400, "validation_error", "JSON inválido en el cuerpo de la solicitud")

    try:
        data = BusinessRegistrationRequest.model_validate(body)
    except ValidationError as e:
        details = format_validation_errors(e)
        logger.info(f"📝 Business registration rejected: {list(details)}")
        return error_response(400, "validation_error", "Datos de registro inválidos", details=details)

    if current_user is None:
        return error_response(401, "server_error", NOT_AUTHENTICATED)

    context = BusinessContextManager(db, get_context_storage(current_user), rls)
    try:
        business = service.register_business(current_user.uid, data, context)
    except RegistrationError as e:
        return JSONResponse(status_code=e.status_code, content=e.to_response())

    return JSONResponse(
        status_code=201,
        content={"success": True, "data": {"business": business}, "message": "Negocio registrado exitosamente"},
    )


@router.api_route("/register", methods=["GET", "PUT", "DELETE"], include_in_schema=False)
async def register_wrong_method():
    return method_not_allowed("Método no permitido. Use POST para registrar un negocio.")


@router.post("/register-complete", status_code=201)
async def register_complete(
    request: Request,
    service: RegistrationService = Depends(get_registration_service),
    _: None = Depends(registration_rate_limit),
):
    """
    Create a user account and its first business in one request.

    An ``Idempotency-Key`` header makes client retries safe: the first
    successful response is replayed for 24 hours.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return error_response(400, "validation_error", "Formato de solicitud inválido")

    try:
        data = UnifiedRegistrationRequest.model_validate(body)
    except ValidationError as e:
        return error_response(
            400, "validation_error", "Datos de registro inválidos", details=format_validation_errors(e)
        )

    try:
        result = await service.register_complete(data, request.headers.get("Idempotency-Key"))
    except RegistrationError as e:
        return JSONResponse(status_code=e.status_code, content=e.to_response())
    except Exception as e:
        logger.error(f"❌ Unified registration error: {e}")
        return error_response(500, "server_error", SERVER_ERROR_MESSAGE, retry_allowed=True)

    return JSONResponse(status_code=201, content=result)


@router.api_route("/register-complete", methods=["GET", "PUT", "DELETE"], include_in_schema=False)
async def register_complete_wrong_method():
    return method_not_allowed("Método no permitido. Use POST para registrar.")


@router.post("/validate-field")
async def validate_field(payload: FieldValidationRequest):
    """Validate one registration form field as the user types"""
    return validate_business_form_field(payload.field, payload.value)


# ============================================================================
# PROFILE & SETTINGS
# ============================================================================


def _current_business(db: Session, context: BusinessContextManager, user: AuthenticatedUser):
    """The business in the session context, else the user's first business"""
    business_id = context.resolve_current_business_id(user_id=user.uid)
    business = BusinessRepository.get_by_id(db, business_id) if business_id else None
    if business is None or business.owner_id != user.uid:
        raise HTTPException(status_code=404, detail={"error": "No business found for user"})
    return business


@router.get("/profile")
async def get_profile(
    current_user: AuthenticatedUser = Depends(get_current_user),
    context: BusinessContextManager = Depends(get_business_context),
    db: Session = Depends(get_db),
):
    try:
        business = _current_business(db, context, current_user)
    except DatabaseError as e:
        logger.error(f"❌ Failed to fetch business for {current_user.uid}: {e}")
        raise HTTPException(status_code=500, detail={"error": "Failed to fetch business data"})
    return {"business": BusinessResponse.from_model(business).model_dump(mode="json")}


@router.put("/profile")
async def update_profile(
    payload: BusinessProfileUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    context: BusinessContextManager = Depends(get_business_context),
    db: Session = Depends(get_db),
):
    errors = payload.validation_errors()
    if errors:
        raise HTTPException(status_code=400, detail={"error": "Validation failed", "details": errors})

    try:
        business = _current_business(db, context, current_user)
        updated = BusinessRepository.update(db, business.id, **payload.to_columns())
    except DuplicateBusinessEmailError:
        raise HTTPException(status_code=409, detail={"error": "Este email ya está registrado"})
    except BusinessNotFoundError:
        raise HTTPException(status_code=404, detail={"error": "Business not found"})
    except DatabaseError as e:
        logger.error(f"❌ Failed to update business profile for {current_user.uid}: {e}")
        raise HTTPException(status_code=500, detail={"error": "Failed to update business"})

    logger.info(f"📝 Business profile updated: {updated.id}")
    return {"business": BusinessResponse.from_model(updated).model_dump(mode="json")}


@router.put("/settings")
async def update_settings(
    payload: BusinessSettingsUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    context: BusinessContextManager = Depends(get_business_context),
    db: Session = Depends(get_db),
):
    """Merge a settings patch. Send back ``version`` to detect concurrent edits."""
    try:
        business = _current_business(db, context, current_user)
        updated = BusinessRepository.update_settings(db, business.id, payload.to_patch(), payload.version)
    except SettingsConflictError as e:
        raise HTTPException(
            status_code=409,
            detail={
                "error": "La configuración fue modificada por otra sesión. Recargue e intente nuevamente.",
                "current_version": e.current_version,
            },
        )
    except BusinessNotFoundError:
        raise HTTPException(status_code=404, detail={"error": "Business not found"})
    except DatabaseError as e:
        logger.error(f"❌ Failed to update settings for {current_user.uid}: {e}")
        raise HTTPException(status_code=500, detail={"error": "Internal server error"})

    return {"settings": updated.settings, "version": updated.version}


# ============================================================================
# TENANT CONTEXT
# ============================================================================


@router.get("/context")
async def get_context(
    current_user: AuthenticatedUser = Depends(get_current_user),
    context: BusinessContextManager = Depends(get_business_context),
):
    business_id = context.resolve_current_business_id(user_id=current_user.uid)
    return {"business_id": business_id, "info": context.get_business_context_info()}


@router.post("/context/switch")
async def switch_context(
    payload: ContextSwitchRequest,
    session: BusinessSessionManager = Depends(get_session_manager),
):
    result = session.switch_to_business(payload.business_id, payload.reason or "user_selection")
    if not result.success:
        status_code = SWITCH_ERROR_STATUS.get(result.error.code, 500)
        return JSONResponse(status_code=status_code, content=result.model_dump())
    return result.model_dump()


@router.delete("/context")
async def clear_context(session: BusinessSessionManager = Depends(get_session_manager)):
    result = session.clear_session()
    if not result.success:
        return JSONResponse(status_code=500, content=result.model_dump())
    return result.model_dump()


@router.get("/context/session")
async def get_session(session: BusinessSessionManager = Depends(get_session_manager)):
    return {
        "stats": session.initialize_session(),
        "validation": session.validate_session(),
        "history": session.get_switch_history(),
    }
