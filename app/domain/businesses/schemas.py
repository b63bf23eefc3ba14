"""Business domain schemas - Pydantic models for validation

All user-facing messages are Spanish; they are returned verbatim to the
client in the ``details`` of a ``validation_error`` response.
"""

import re
from datetime import datetime
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ValidationError, ValidationInfo, field_validator, model_validator

from ...shared.colombia import (
    COLOMBIAN_DEPARTMENTS,
    PHONE_FORMAT_PATTERN,
    is_valid_colombian_department,
    validate_colombian_phone,
)
from ...shared.validators import is_valid_time, time_to_minutes, validate_email

ALLOWED_TIMEZONES = (
    "America/Bogota",
    "America/New_York",
    "America/Los_Angeles",
    "Europe/Madrid",
    "UTC",
)
SUPPORTED_CURRENCY = "COP"

# pydantic error types that carry no domain message of their own
GENERIC_ERROR_MESSAGES = {
    "missing": "Este campo es requerido",
    "string_type": "Debe ser un texto",
    "int_type": "Debe ser un número entero",
    "int_parsing": "Debe ser un número entero",
    "bool_type": "Debe ser verdadero o falso",
    "bool_parsing": "Debe ser verdadero o falso",
    "model_type": "Formato inválido",
    "model_attributes_type": "Formato inválido",
    "dict_type": "Formato inválido",
    "list_type": "Debe ser una lista",
}


def _required_text(value: str, max_length: int, required: str, too_long: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(required)
    if len(value) > max_length:
        raise ValueError(too_long)
    return value


def _email(value: str, required: str, invalid: str, too_long: str) -> str:
    if not value or not value.strip():
        raise ValueError(required)
    value = validate_email(value, invalid)
    if len(value) > 255:
        raise ValueError(too_long)
    return value


def _phone_format(value: str, invalid: str) -> str:
    if not PHONE_FORMAT_PATTERN.match(value):
        raise ValueError(invalid)
    return value.strip()


def format_validation_errors(exc: ValidationError) -> dict[str, str]:
    """
    Flatten a pydantic ValidationError into ``{"business.address.city": message}``.

    The first error reported for a field wins.
    """
    details: dict[str, str] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"])
        if field in details:
            continue
        if error["type"] == "value_error":
            message = str(error["ctx"]["error"]) if "ctx" in error else error["msg"]
            message = message.removeprefix("Value error, ")
        else:
            message = GENERIC_ERROR_MESSAGES.get(error["type"], "Valor inválido")
        details[field] = message
    return details


# ============================================================================
# ADDRESS
# ============================================================================


class ColombianAddress(BaseModel):
    """Street address in Colombia, as submitted on the registration form"""

    STREET_MAX: ClassVar[int] = 255
    STREET_TOO_LONG: ClassVar[str] = "La dirección es muy larga"
    CITY_TOO_LONG: ClassVar[str] = "El nombre de la ciudad es muy largo"
    DEPARTMENT_INVALID: ClassVar[str] = "Seleccione un departamento"

    street: str
    city: str
    department: str
    postalCode: Optional[str] = None

    @field_validator("street")
    @classmethod
    def validate_street(cls, v):
        return _required_text(v, cls.STREET_MAX, "La dirección es requerida", cls.STREET_TOO_LONG)

    @field_validator("city")
    @classmethod
    def validate_city(cls, v):
        return _required_text(v, 100, "La ciudad es requerida", cls.CITY_TOO_LONG)

    @field_validator("department")
    @classmethod
    def validate_department(cls, v):
        if not is_valid_colombian_department(v):
            raise ValueError(cls.DEPARTMENT_INVALID)
        return v


class UnifiedAddress(ColombianAddress):
    STREET_MAX: ClassVar[int] = 200
    STREET_TOO_LONG: ClassVar[str] = "La dirección es demasiado larga"
    CITY_TOO_LONG: ClassVar[str] = "La ciudad es demasiado larga"
    DEPARTMENT_INVALID: ClassVar[str] = "Departamento colombiano inválido"


# ============================================================================
# BUSINESS REGISTRATION
# ============================================================================


class BusinessRegistrationRequest(BaseModel):
    """Schema for POST /api/business/register"""

    NAME_MAX: ClassVar[int] = 255
    NAME_REQUIRED: ClassVar[str] = "El nombre es requerido"
    NAME_TOO_LONG: ClassVar[str] = "El nombre es muy largo"
    EMAIL_MESSAGES: ClassVar[tuple] = ("El email es requerido", "Email inválido", "El email es muy largo")
    PHONE_INVALID: ClassVar[str] = "Formato de teléfono colombiano inválido"
    WHATSAPP_INVALID: ClassVar[str] = "Formato de teléfono colombiano inválido"

    name: str
    email: str
    phone: str
    whatsapp_number: str
    address: ColombianAddress

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _required_text(v, cls.NAME_MAX, cls.NAME_REQUIRED, cls.NAME_TOO_LONG)

    @field_validator("email")
    @classmethod
    def validate_business_email(cls, v):
        return _email(v, *cls.EMAIL_MESSAGES)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return _phone_format(v, cls.PHONE_INVALID)

    @field_validator("whatsapp_number")
    @classmethod
    def validate_whatsapp(cls, v):
        return _phone_format(v, cls.WHATSAPP_INVALID)


class UnifiedBusinessRequest(BusinessRegistrationRequest):
    """Business half of the unified registration payload"""

    NAME_MAX: ClassVar[int] = 200
    NAME_REQUIRED: ClassVar[str] = "El nombre del negocio es requerido"
    NAME_TOO_LONG: ClassVar[str] = "El nombre del negocio es demasiado largo"
    EMAIL_MESSAGES: ClassVar[tuple] = (
        "El email del negocio es requerido",
        "Email del negocio inválido",
        "El email del negocio es demasiado largo",
    )
    PHONE_INVALID: ClassVar[str] = "Formato de teléfono colombiano inválido (+57 XXX XXX XXXX)"
    WHATSAPP_INVALID: ClassVar[str] = "Formato de WhatsApp colombiano inválido (+57 XXX XXX XXXX)"

    address: UnifiedAddress


# ============================================================================
# USER REGISTRATION / LOGIN
# ============================================================================


def check_password_strength(password: str, require_special: bool = True) -> str:
    if len(password) < 8:
        raise ValueError("La contraseña debe tener al menos 8 caracteres")
    if len(password) > 128:
        raise ValueError("La contraseña es muy larga")
    if not re.search(r"[A-Z]", password):
        raise ValueError("La contraseña debe contener al menos una letra mayúscula")
    if not re.search(r"[a-z]", password):
        raise ValueError("La contraseña debe contener al menos una letra minúscula")
    if not re.search(r"[0-9]", password):
        raise ValueError("La contraseña debe contener al menos un número")
    if require_special and not re.search(r"[^A-Za-z0-9]", password):
        raise ValueError("La contraseña debe contener al menos un carácter especial")
    return password


class UserRegistrationRequest(BaseModel):
    """Account sign-up form"""

    REQUIRE_SPECIAL_CHARACTER: ClassVar[bool] = True

    email: str
    password: str
    confirmPassword: str

    @field_validator("email")
    @classmethod
    def validate_user_email(cls, v):
        return _email(v, "El email es requerido", "Email inválido", "El email es muy largo")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return check_password_strength(v, cls.REQUIRE_SPECIAL_CHARACTER)

    @field_validator("confirmPassword")
    @classmethod
    def validate_confirm_password(cls, v, info: ValidationInfo):
        password = info.data.get("password")
        if password is not None and v != password:
            raise ValueError("Las contraseñas no coinciden")
        return v


class UnifiedUserRequest(UserRegistrationRequest):
    """User half of the unified registration payload"""

    REQUIRE_SPECIAL_CHARACTER: ClassVar[bool] = False

    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _required_text(v, 100, "El nombre es requerido", "El nombre es demasiado largo")


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_login_email(cls, v):
        return _email(v, "El email es requerido", "Email inválido", "El email es muy largo")

    @field_validator("password")
    @classmethod
    def validate_password_present(cls, v):
        if not v:
            raise ValueError("La contraseña es requerida")
        return v


class UnifiedRegistrationRequest(BaseModel):
    """Schema for POST /api/business/register-complete"""

    user: UnifiedUserRequest
    business: UnifiedBusinessRequest


_FIELD_VALIDATORS = {
    "name": lambda v: _required_text(v, 255, "El nombre es requerido", "El nombre es muy largo"),
    "email": lambda v: _email(v, "El email es requerido", "Email inválido", "El email es muy largo"),
    "phone": lambda v: _phone_format(v, "Formato de teléfono colombiano inválido"),
    "whatsapp_number": lambda v: _phone_format(v, "Formato de teléfono colombiano inválido"),
    "address": ColombianAddress.model_validate,
}


def validate_business_form_field(field: str, value: Any) -> dict:
    """
    Validate a single registration form field as the user types.

    Returns:
        {"isValid": True} or {"isValid": False, "error": message}
    """
    validator = _FIELD_VALIDATORS.get(field)
    if validator is None:
        return {"isValid": False, "error": "Campo desconocido"}

    if field != "address" and not isinstance(value, str):
        return {"isValid": False, "error": "Error de validación"}

    try:
        validator(value)
    except ValidationError as e:
        first = next(iter(format_validation_errors(e).values()), "Error de validación")
        return {"isValid": False, "error": first}
    except ValueError as e:
        return {"isValid": False, "error": str(e)}
    return {"isValid": True}


class FieldValidationRequest(BaseModel):
    field: str
    value: Any = None


# ============================================================================
# PROFILE
# ============================================================================


class ProfileAddressUpdate(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    department: Optional[str] = None
    postalCode: Optional[str] = None


class BusinessProfileUpdate(BaseModel):
    """Partial update of the business profile; omitted fields are left untouched"""

    name: Optional[str] = None
    description: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    whatsappNumber: Optional[str] = None
    address: Optional[ProfileAddressUpdate] = None

    def validation_errors(self) -> list[str]:
        """Collect every rule violation so the form can show them all at once"""
        errors = []
        sent = self.model_fields_set
        if "name" in sent and (self.name is None or not self.name.strip()):
            errors.append("El nombre del negocio es requerido")
        if "email" in sent and self.email is None:
            errors.append("El email es requerido")
        if self.phone is not None and not validate_colombian_phone(self.phone):
            errors.append("Formato de teléfono colombiano inválido")
        if self.whatsappNumber and not validate_colombian_phone(self.whatsappNumber):
            errors.append("Formato de WhatsApp colombiano inválido")
        if self.email is not None:
            try:
                validate_email(self.email)
            except ValueError:
                errors.append("Formato de email inválido")
        if self.address and self.address.department is not None:
            if not is_valid_colombian_department(self.address.department):
                errors.append("Departamento colombiano inválido")
        return errors

    def to_columns(self) -> dict:
        """Map the nested API shape onto the flat businesses columns"""
        fields = self.model_dump(exclude_unset=True)
        columns = {}
        for key in ("name", "description", "phone"):
            if key in fields:
                columns[key] = fields[key].strip() if key == "name" else fields[key]
        if "email" in fields:
            columns["email"] = fields["email"].strip().lower()
        if "whatsappNumber" in fields:
            columns["whatsapp_number"] = fields["whatsappNumber"]
        address = fields.get("address") or {}
        for key, column in (("street", "street"), ("city", "city"), ("department", "department"), ("postalCode", "postal_code")):
            if key in address:
                columns[column] = address[key]
        return columns


# ============================================================================
# SETTINGS
# ============================================================================


class BusinessHours(BaseModel):
    """Opening hours for one day of the week (0 = Sunday)"""

    dayOfWeek: int
    openTime: str
    closeTime: str
    isOpen: bool

    @field_validator("dayOfWeek")
    @classmethod
    def validate_day(cls, v):
        if v < 0 or v > 6:
            raise ValueError("Día de la semana inválido")
        return v

    @field_validator("openTime", "closeTime")
    @classmethod
    def validate_time_format(cls, v):
        if not is_valid_time(v):
            raise ValueError("Formato de hora inválido (HH:MM)")
        return v

    @model_validator(mode="after")
    def validate_open_before_close(self):
        if self.isOpen and time_to_minutes(self.openTime) >= time_to_minutes(self.closeTime):
            raise ValueError("La hora de apertura debe ser anterior a la hora de cierre")
        return self


class BusinessSettingsUpdate(BaseModel):
    """Settings patch; unknown keys are kept and merged into the stored settings"""

    timezone: Optional[str] = None
    currency: Optional[str] = None
    businessHours: Optional[list[BusinessHours]] = None
    version: Optional[int] = None

    class Config:
        extra = "allow"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        if v is not None and v not in ALLOWED_TIMEZONES:
            raise ValueError("Zona horaria no soportada")
        return v

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v):
        if v is not None and v != SUPPORTED_CURRENCY:
            raise ValueError("Solo se admite la moneda COP")
        return v

    @field_validator("businessHours")
    @classmethod
    def validate_unique_days(cls, v):
        if v is not None:
            days = [h.dayOfWeek for h in v]
            if len(days) != len(set(days)):
                raise ValueError("Cada día de la semana solo puede aparecer una vez")
        return v

    def to_patch(self) -> dict:
        return self.model_dump(exclude_none=True, exclude={"version"})


# ============================================================================
# RESPONSES
# ============================================================================


class AddressResponse(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    department: Optional[str] = None
    postalCode: Optional[str] = None


class BusinessResponse(BaseModel):
    """Business in the nested shape the dashboard consumes"""

    id: str
    name: str
    description: Optional[str] = None
    address: AddressResponse
    phone: Optional[str] = None
    whatsappNumber: Optional[str] = None
    email: str
    settings: Optional[dict] = None
    version: int = 1
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, business) -> "BusinessResponse":
        return cls(
            id=business.id,
            name=business.name,
            description=business.description,
            address=AddressResponse(
                street=business.street,
                city=business.city,
                department=business.department,
                postalCode=business.postal_code,
            ),
            phone=business.phone,
            whatsappNumber=business.whatsapp_number,
            email=business.email,
            settings=business.settings,
            version=business.version or 1,
            createdAt=business.created_at,
            updatedAt=business.updated_at,
        )


class ContextSwitchRequest(BaseModel):
    business_id: str
    reason: Optional[str] = None


__all__ = [
    "ALLOWED_TIMEZONES",
    "COLOMBIAN_DEPARTMENTS",
    "BusinessHours",
    "BusinessProfileUpdate",
    "BusinessRegistrationRequest",
    "BusinessResponse",
    "BusinessSettingsUpdate",
    "ContextSwitchRequest",
    "FieldValidationRequest",
    "LoginRequest",
    "UnifiedRegistrationRequest",
    "UserRegistrationRequest",
    "format_validation_errors",
    "validate_business_form_field",
]
