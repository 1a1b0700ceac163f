from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from datetime import datetime, timezone
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import structlog
from app.config.settings import settings
from app.core.database import get_database

logger = structlog.get_logger()

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    environment: str


@router.get("/", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version="1.0.0",
        environment=settings.environment
    )


@router.get("/readiness")
async def readiness_check(db: Session = Depends(get_database)):
    """Readiness check endpoint"""
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error("Database readiness check failed", error=str(e))
        database = "error"

    # The template engine works without an OpenAI key, so only the database gates readiness
    checks = {
        "database": database,
        "openai": "ok" if settings.openai_api_key else "not_configured",
    }

    return {
        "status": "ready" if database == "ok" else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(timezone.utc)
    }
