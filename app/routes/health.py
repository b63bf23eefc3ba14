"""
Health check endpoint for load balancers and uptime monitoring
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..config import APP_VERSION, ENVIRONMENT
from ..database import get_db
from ..domain.businesses.repository import BusinessRepository
from ..services.identity_service import get_identity_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])


@router.get("/health")
async def health_check(db: Session = Depends(get_db), identity=Depends(get_identity_service)):
    """Overall status is healthy only when the database and the auth provider both respond"""
    database_ok, database_error = BusinessRepository.check_database_health(db)
    auth_ok = identity.check_health()

    healthy = database_ok and auth_ok
    if not healthy:
        logger.warning(f"⚠️ Health check degraded: database={database_ok} auth={auth_ok} ({database_error})")

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "services": {
                "database": "healthy" if database_ok else "unhealthy",
                "auth": "healthy" if auth_ok else "unhealthy",
            },
            "version": APP_VERSION,
            "environment": ENVIRONMENT,
        },
    )
