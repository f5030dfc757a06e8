"""Liveness and readiness probes."""

import time
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from intake_api.config.database import get_db
from intake_api.config.settings import settings

logger = structlog.get_logger()
router = APIRouter()

STARTED_AT = time.monotonic()


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str
    uptime: float
    database: str


def database_reachable(db: Session) -> bool:
    """Run a trivial query; False if the database cannot answer."""
    try:
        db.execute(text("SELECT 1")).scalar()
    except SQLAlchemyError as e:
        logger.error("Database unreachable", error=str(e))
        return False
    return True


@router.get("", response_model=HealthResponse)
async def health_check(db: Session = Depends(get_db)) -> HealthResponse:
    """
    Liveness check.

    Answers "healthy" while the process is up; database connectivity is
    reported in its own field.
    """
    return HealthResponse(
        status="healthy",
        version=settings.APP_VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime=round(time.monotonic() - STARTED_AT, 3),
        database="connected" if database_reachable(db) else "disconnected",
    )


@router.get("/ready")
async def readiness_check(db: Session = Depends(get_db)):
    """Readiness probe: 503 while the database is unreachable."""
    if not database_reachable(db):
        return JSONResponse(
            status_code=503,
            content={"ready": False, "reason": "Database not connected"},
        )
    return {"ready": True}
