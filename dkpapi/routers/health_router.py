from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dkpapi.containers import Container
from dkpapi.schemas.health import HealthCheckResponse
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
@inject
async def health_check(
    db: Session = Depends(Provide[Container.repositories.get_db]),
) -> HealthCheckResponse:
    """Health check endpoint (DB 연결 포함)."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Health check failed: {str(e)}")
        return HealthCheckResponse(status="degraded", database="unavailable", error=str(e))

    return HealthCheckResponse()
