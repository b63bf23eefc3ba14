"""
Security middleware: the cookie route guard and the RLS session context.

Tenant isolation is enforced by Postgres row-level security policies that
read session variables (``app.current_user_id``, ``app.current_business_id``).
This module only sets and reads those variables through the RPC functions
created by ``migrations/create_businesses_table.py``.
"""

import logging
from enum import Enum
from typing import Callable, Optional
from urllib.parse import urlencode

from fastapi import Depends, Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

from .config import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE
from .database import get_db
from .domain.businesses.exceptions import RLSContextError, pgcode_of

logger = logging.getLogger(__name__)

# ============================================================================
# ROUTE GUARD
# ============================================================================

PROTECTED_ROUTES = ("/dashboard", "/settings", "/profile", "/appointments", "/clients", "/reports")
AUTH_ROUTES = ("/login", "/register")
PUBLIC_ROUTES = ("/", "/about", "/contact", "/api/health", "/design-system")
SKIPPED_PREFIXES = ("/api/", "/_next/", "/favicon.ico")

LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"


class RouteDecision(str, Enum):
    PASS = "pass"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_DASHBOARD = "redirect_dashboard"


def _matches(path: str, prefixes: tuple) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in prefixes)


def classify_route(path: str, has_access_token: bool, has_refresh_token: bool) -> RouteDecision:
    """
    Decide what to do with a page request based only on its path and session cookies.

    A visitor counts as authenticated only when both session cookies are present.
    """
    if path.startswith(SKIPPED_PREFIXES) or "." in path:
        return RouteDecision.PASS

    authenticated = has_access_token and has_refresh_token

    if _matches(path, PROTECTED_ROUTES) and not authenticated:
        return RouteDecision.REDIRECT_LOGIN
    if _matches(path, AUTH_ROUTES) and authenticated:
        return RouteDecision.REDIRECT_DASHBOARD
    return RouteDecision.PASS


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """
    Redirect anonymous visitors away from protected pages and signed-in users
    away from the login/register pages.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        decision = classify_route(
            path,
            bool(request.cookies.get(ACCESS_TOKEN_COOKIE)),
            bool(request.cookies.get(REFRESH_TOKEN_COOKIE)),
        )

        if decision is RouteDecision.REDIRECT_LOGIN:
            logger.info(f"🔒 Anonymous request to {path}, redirecting to login")
            return RedirectResponse(f"{LOGIN_PATH}?{urlencode({'returnUrl': path})}", status_code=307)
        if decision is RouteDecision.REDIRECT_DASHBOARD:
            return RedirectResponse(DASHBOARD_PATH, status_code=307)

        return await call_next(request)


REGISTER_PATH = "/api/business/register"

CORS_PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}


class RegistrationPreflightMiddleware(BaseHTTPMiddleware):
    """
    Answer preflights for the public register endpoint from any origin.

    Must be the outermost middleware, otherwise CORSMiddleware rejects
    origins outside ALLOWED_ORIGINS before this runs.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS" and request.url.path.rstrip("/") == REGISTER_PATH:
            return Response(status_code=200, headers=CORS_PREFLIGHT_HEADERS)
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all responses.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


# ============================================================================
# RLS SESSION CONTEXT
# ============================================================================


class RLSContext:
    """
    RLS session variables and RPCs for one database session.

    The variables live on the connection, so the set-context call and the
    queries that depend on it must share the same Session. Each call runs in
    a SAVEPOINT so a failing RPC does not abort the caller's transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def _call(self, statement: str, params: Optional[dict] = None, action: str = "RLS call"):
        try:
            with self.db.begin_nested():
                return self.db.execute(text(statement), params or {})
        except SQLAlchemyError as e:
            code = pgcode_of(e) or "RLS_ERROR"
            logger.error(f"❌ {action} failed ({code}): {e}")
            raise RLSContextError(f"{action} failed: {e}", code) from e

    def set_user(self, user_id: str) -> None:
        """Scope queries to the authenticated user"""
        self._call(
            "SELECT set_config('app.current_user_id', :user_id, false)",
            {"user_id": str(user_id)},
            "Set RLS user",
        )
        logger.debug(f"RLS context set for user_id={user_id}")

    def clear_user(self) -> None:
        self._call("SELECT set_config('app.current_user_id', '', false)", action="Clear RLS user")
        logger.debug("RLS context cleared")

    def enable_service_mode(self) -> None:
        """
        Let the current transaction see every tenant's rows.

        Only for system checks such as global email uniqueness. Reset by
        commit or rollback.
        """
        self._call("SELECT set_config('app.rls_bypass', 'on', true)", action="Enable RLS service mode")
        logger.warning("⚠️ RLS service mode enabled for this transaction")

    def disable_service_mode(self) -> None:
        self._call("SELECT set_config('app.rls_bypass', 'off', true)", action="Disable RLS service mode")

    def set_current_business_id(self, business_id: str) -> None:
        self._call(
            "SELECT set_current_business_id(CAST(:business_uuid AS uuid))",
            {"business_uuid": business_id},
            "Set current business",
        )
        logger.debug(f"🏢 RLS business context set to {business_id}")

    def get_current_business_id(self) -> Optional[str]:
        result = self._call("SELECT get_current_business_id()", action="Get current business")
        value = result.scalar()
        return str(value) if value else None

    def set_business_context(self, business_id: str) -> None:
        """Validating variant: the database function checks ownership before setting"""
        self._call(
            "SELECT set_business_context(CAST(:business_id AS uuid))",
            {"business_id": business_id},
            "Set business context",
        )

    def clear_business_context(self) -> None:
        self._call("SELECT clear_business_context()", action="Clear business context")

    def test_data_isolation(self, table_name: str) -> list[dict]:
        """Rows of ``table_name`` visible under the current business context"""
        result = self._call(
            "SELECT * FROM test_data_isolation(:table_name)",
            {"table_name": table_name},
            "Test data isolation",
        )
        return [dict(row) for row in result.mappings().all()]

    def verify_business_isolation(self, business_a: str, business_b: str, table_name: str) -> dict:
        """
        Switch between two businesses and check that no row is visible from both.
        """
        self.set_current_business_id(business_a)
        rows_a = self.test_data_isolation(table_name)
        self.set_current_business_id(business_b)
        rows_b = self.test_data_isolation(table_name)

        ids_a = {str(r.get("id")) for r in rows_a}
        ids_b = {str(r.get("id")) for r in rows_b}
        overlap = sorted(ids_a & ids_b)
        if overlap:
            logger.error(f"❌ Isolation breach on {table_name}: {len(overlap)} shared rows")

        return {
            "isolated": not overlap,
            "business_a_count": len(rows_a),
            "business_b_count": len(rows_b),
            "overlapping_ids": overlap,
        }


def get_rls_context(db: Session = Depends(get_db)) -> RLSContext:
    """Dependency injection for RLSContext"""
    return RLSContext(db)
