"""
Position Endpoints

Unclaimed trading fees and incentive rewards for a single position.
"""
from fastapi import APIRouter, Depends, Query

from app.api.schemas import ErrorResponse, RewardResponse, UnclaimedFeesResponse
from app.core.engine import get_service
from lp_treasury.core import TreasuryService

router = APIRouter()


@router.get(
    "/positions/{position_id}/fees",
    response_model=UnclaimedFeesResponse,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}}
)
async def unclaimed_fees(
    position_id: str,
    include_usd: bool = Query(True, description="Convert the fee amounts to USD"),
    service: TreasuryService = Depends(get_service)
):
    """
    Uncollected trading fees of a position

    Amounts are exact on-chain integers in each token's smallest unit.
    Returns 404 for unknown positions and 503 when no pool state source responds.
    """
    fees = service.get_unclaimed_fees(position_id, include_usd=include_usd)
    return UnclaimedFeesResponse(
        position_id=fees.position_id,
        token0_amount=fees.token0_amount,
        token1_amount=fees.token1_amount,
        usd_value=fees.usd_value,
        tick_case=fees.tick_case.value
    )


@router.get("/positions/{position_id}/reward", response_model=RewardResponse)
async def reward(position_id: str, service: TreasuryService = Depends(get_service)):
    """
    Daily and accumulated incentive reward of a position

    Unknown positions report zero rewards.
    """
    summary = service.get_reward(position_id)
    return RewardResponse(
        position_id=summary.position_id,
        daily_reward=summary.daily_reward,
        accumulated_reward=summary.accumulated_reward,
        claimable=summary.claimable,
        claim_eligible=summary.claim_eligible,
        days_until_claim=summary.days_until_claim,
        days_active=summary.days_active,
        effective_apr=summary.effective_apr
    )
