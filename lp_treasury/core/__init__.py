"""
Core services for the liquidity-mining treasury

가격 캐시, 수수료 회계, 유동성 집계, 보상 엔진 및 스케줄러
"""

from .cache import DataCache
from .price_oracle import PriceOracle, PriceInfo, PriceSource
from .fee_accountant import PoolFeeAccountant
from .pool_analytics import PoolAnalytics, AnalyticsSnapshot
from .range_tracker import RangeTracker
from .reward_engine import RewardEngine, BatchResult
from .scheduler import RewardScheduler
from .treasury import (
    TreasuryService,
    UnclaimedFees,
    RewardSummary,
    ProgramAnalytics,
    build_service,
)
