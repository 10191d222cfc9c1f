"""
API Request/Response Schemas using Pydantic

Defines data models for the treasury API endpoints.
"""
from pydantic import BaseModel, Field
from typing import Dict, Optional, Any
from datetime import datetime


class UnclaimedFeesResponse(BaseModel):
    """Response payload for GET /api/v1/positions/{position_id}/fees"""
    position_id: str = Field(..., description="Position NFT token ID")
    token0_amount: int = Field(..., description="Uncollected token0 fees (smallest unit)", ge=0)
    token1_amount: int = Field(..., description="Uncollected token1 fees (smallest unit)", ge=0)
    usd_value: Optional[float] = Field(None, description="USD value of the uncollected fees")
    tick_case: str = Field(..., description="Current tick relative to the range (below, inside, above)")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Response timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "position_id": "12345",
                "token0_amount": 20000000,
                "token1_amount": 4150000000000000000,
                "usd_value": 2.13,
                "tick_case": "inside",
                "timestamp": "2025-03-01T12:00:00Z"
            }
        }


class RewardResponse(BaseModel):
    """Response payload for GET /api/v1/positions/{position_id}/reward"""
    position_id: str = Field(..., description="Position NFT token ID")
    daily_reward: float = Field(..., description="Current daily reward (reward token units)", ge=0)
    accumulated_reward: float = Field(..., description="Total accumulated reward", ge=0)
    claimable: float = Field(..., description="Accumulated reward not yet claimed", ge=0)
    claim_eligible: bool = Field(..., description="Whether the lock period has passed")
    days_until_claim: int = Field(..., description="Days remaining in the lock period", ge=0)
    days_active: int = Field(..., description="Whole days since liquidity was added", ge=0)
    effective_apr: float = Field(..., description="Reward APR at the current token price (%)")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Response timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "position_id": "12345",
                "daily_reward": 72.0,
                "accumulated_reward": 1974.0,
                "claimable": 1974.0,
                "claim_eligible": True,
                "days_until_claim": 0,
                "days_active": 30,
                "effective_apr": 42.1,
                "timestamp": "2025-03-01T12:00:00Z"
            }
        }


class ProgramAnalyticsResponse(BaseModel):
    """Response payload for GET /api/v1/program/analytics"""
    total_active_liquidity: float = Field(..., description="Sum of counted position values (USD)", ge=0)
    participant_count: int = Field(..., description="Distinct owners with counted positions", ge=0)
    position_count: int = Field(..., description="Counted positions", ge=0)
    daily_budget: float = Field(..., description="Reward tokens distributed per day", ge=0)
    program_duration_days: int = Field(..., description="Program duration in days")
    apr_min: float = Field(..., description="Base program APR (%)")
    apr_max: float = Field(..., description="APR with full time boost and full-range bonus (%)")
    reward_token_price: float = Field(..., description="Reward token price (USD)")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Response timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "total_active_liquidity": 100000.0,
                "participant_count": 12,
                "position_count": 15,
                "daily_budget": 5000.0,
                "program_duration_days": 90,
                "apr_min": 29.2,
                "apr_max": 56.1,
                "reward_token_price": 0.016,
                "timestamp": "2025-03-01T12:00:00Z"
            }
        }


class PriceResponse(BaseModel):
    """Response payload for GET /api/v1/prices/{token_id}"""
    token_id: str = Field(..., description="Price feed token identifier")
    price: float = Field(..., description="Current USD price", gt=0)
    source: str = Field(..., description="Price source (live, last-good, circuit-breaker, fallback)")
    last_update: Optional[datetime] = Field(None, description="Last accepted feed update")
    seconds_since_update: Optional[float] = Field(None, description="Seconds since the last accepted update")
    is_stale: bool = Field(..., description="No accepted update within two refresh intervals")
    breaker_trips: int = Field(..., description="Rejected updates since start", ge=0)

    class Config:
        json_schema_extra = {
            "example": {
                "token_id": "kilt-protocol",
                "price": 0.01602,
                "source": "live",
                "last_update": "2025-03-01T11:59:45Z",
                "seconds_since_update": 15.0,
                "is_stale": False,
                "breaker_trips": 0
            }
        }


class HealthCheckResponse(BaseModel):
    """Response payload for GET /api/v1/health endpoint"""
    status: str = Field(..., description="Health status (healthy or degraded)")
    version: str = Field(..., description="API version")
    reward_price_source: Optional[str] = Field(None, description="Source of the reward token price")
    scheduler: Optional[Dict[str, Any]] = Field(None, description="Reward scheduler status")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Health check timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "reward_price_source": "live",
                "scheduler": {"running": True, "cycles": 3, "last_error": None},
                "timestamp": "2024-01-15T10:30:00Z"
            }
        }


class ErrorResponse(BaseModel):
    """Error response payload"""
    status: str = Field(default="error", description="Response status")
    message: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Error timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "error",
                "message": "Pool state unavailable",
                "detail": "모든 풀 상태 리더가 실패했습니다",
                "timestamp": "2024-01-15T10:30:00Z"
            }
        }
