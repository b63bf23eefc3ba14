import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+psycopg://localhost:5432/negocios")

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
APP_VERSION = os.getenv("APP_VERSION", "0.1.0")

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")

# Redis (rate limiting, context storage, idempotency cache)
REDIS_URL = os.getenv("REDIS_URL")

# Frontend base URL for redirects and verification links
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Citas Colombia <noreply@citascolombia.co>")

# Session cookies checked by the route guard and the API auth dependency
ACCESS_TOKEN_COOKIE = os.getenv("ACCESS_TOKEN_COOKIE", "sb-access-token")
REFRESH_TOKEN_COOKIE = os.getenv("REFRESH_TOKEN_COOKIE", "sb-refresh-token")

# Registration throttling (requests per window, per client IP)
REGISTRATION_RATE_LIMIT = int(os.getenv("REGISTRATION_RATE_LIMIT", "10"))
REGISTRATION_RATE_WINDOW_SECONDS = int(os.getenv("REGISTRATION_RATE_WINDOW_SECONDS", "3600"))

# How long a completed registration is replayed for the same Idempotency-Key
IDEMPOTENCY_TTL_SECONDS = int(os.getenv("IDEMPOTENCY_TTL_SECONDS", "86400"))

# Colombian market overrides
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "America/Bogota")
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "COP")
