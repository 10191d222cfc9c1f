"""
Program Endpoints

Program-wide liquidity analytics and reward token price.
"""
from fastapi import APIRouter, Depends

from app.api.schemas import ErrorResponse, PriceResponse, ProgramAnalyticsResponse
from app.core.engine import get_service
from lp_treasury.core import TreasuryService

router = APIRouter()


@router.get(
    "/program/analytics",
    response_model=ProgramAnalyticsResponse,
    responses={503: {"model": ErrorResponse}}
)
async def program_analytics(service: TreasuryService = Depends(get_service)):
    """
    Total active liquidity, participants and the program APR range
    """
    analytics = service.get_program_analytics()
    return ProgramAnalyticsResponse(
        total_active_liquidity=analytics.total_active_liquidity,
        participant_count=analytics.participant_count,
        position_count=analytics.position_count,
        daily_budget=analytics.daily_budget,
        program_duration_days=analytics.program_duration_days,
        apr_min=analytics.apr_min,
        apr_max=analytics.apr_max,
        reward_token_price=analytics.reward_token_price
    )


@router.get("/program/price", response_model=PriceResponse)
async def reward_token_price(service: TreasuryService = Depends(get_service)):
    """
    Reward token price with its source and staleness
    """
    info = service.reward_oracle.price_info()
    return PriceResponse(
        token_id=info.token_id,
        price=info.price,
        source=info.source.value,
        last_update=info.last_update,
        seconds_since_update=info.seconds_since_update,
        is_stale=info.is_stale,
        breaker_trips=info.breaker_trips
    )
