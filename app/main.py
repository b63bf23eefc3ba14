import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401
from .config import APP_VERSION
from .database import Base, engine
from .domain.businesses.router import router as business_router
from .domain.businesses.schemas import GENERIC_ERROR_MESSAGES
from .routes.health import router as health_router
from .security_middleware import RegistrationPreflightMiddleware, RouteGuardMiddleware, SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
ROUTE_GUARD_ENABLED = os.getenv("ROUTE_GUARD_ENABLED", "true").lower() == "true"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        from .rate_limiter import get_redis_client

        get_redis_client()  # Connection test
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis connection failed - Rate limiting will operate in fail-open mode: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Citas Colombia API", version=APP_VERSION, lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Spanish 400 with per-field messages instead of FastAPI's default 422"""
    details = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        if field in details:
            continue
        message = GENERIC_ERROR_MESSAGES.get(error.get("type"), None)
        if message is None:
            message = str(error.get("msg", "Valor inválido")).removeprefix("Value error, ")
        details[field or "body"] = message

    logger.warning(f"Validation error for {request.url.path}: {details}")
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": {"type": "validation_error", "message": "Datos inválidos", "details": details},
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ {request.method} {request.url.path} - Unhandled error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "type": "server_error",
                "message": "Error interno del servidor. Intente nuevamente.",
                "retry_allowed": True,
            },
        },
    )


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware)
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")

if ROUTE_GUARD_ENABLED:
    app.add_middleware(RouteGuardMiddleware)
    logger.info("🔒 Route guard enabled")


# CORS Configuration
# For production with credentials (cookies), we need specific origins
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Added last so it wraps CORSMiddleware
app.add_middleware(RegistrationPreflightMiddleware)

# Routes
app.include_router(health_router)
app.include_router(business_router)


@app.get("/")
def root():
    return {"message": "Citas Colombia API is running"}
