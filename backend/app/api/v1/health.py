"""
Health Check Endpoints

Provides health status and reward scheduler status endpoints.
"""
from fastapi import APIRouter, Depends
from datetime import datetime

from app.api.schemas import HealthCheckResponse
from app.config import settings
from app.core.engine import get_service
from lp_treasury.core import PriceSource, TreasuryService

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(service: TreasuryService = Depends(get_service)):
    """
    Health check endpoint

    Reports "degraded" while the reward token price comes from the fallback
    constant or the last reward cycle failed.
    """
    source = service.reward_oracle.source
    scheduler = None
    if service.scheduler is not None:
        status = service.scheduler.status()
        scheduler = {
            "running": status["running"],
            "cycles": status["cycles"],
            "last_run": status["last_run"],
            "last_error": status["last_error"],
        }

    degraded = source is PriceSource.FALLBACK or bool(scheduler and scheduler["last_error"])
    return HealthCheckResponse(
        status="degraded" if degraded else "healthy",
        version=settings.API_VERSION,
        reward_price_source=source.value,
        scheduler=scheduler,
        timestamp=datetime.utcnow()
    )
