"""
트레저리 서비스

외부(요청 핸들러)에 노출되는 세 가지 연산:
- get_unclaimed_fees(position_id): 미수령 거래 수수료 (+ 선택적 USD 가치)
- get_reward(position_id): 일일 / 누적 보상과 청구 가능 여부
- get_program_analytics(): 전체 활성 유동성, 참여자 수, APR 범위

build_service()가 프로세스 시작 시 모든 구성 요소를 한 번 생성한다.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from ..constants import (
    ANALYTICS_TTL,
    DEFAULT_CACHE_MAX_ENTRIES,
    POOL_TTL,
    PRICE_MAX_CHANGE,
    PRICE_REFRESH_INTERVAL,
    PRICE_TTL,
    RANGE_SAMPLE_INTERVAL,
    RANGE_SAMPLE_WINDOW,
    REWARD_CYCLE_INTERVAL,
)
from ..data.price_feed import PriceFeed
from ..data.readers import ConfigStore, LiquidityLedger, PoolStateReader, PositionReader, RewardStore
from ..errors import NotFound
from ..math.fee_math import TickCase
from ..math.reward_math import resolve_daily_budget
from .cache import DataCache
from .fee_accountant import PoolFeeAccountant
from .pool_analytics import PoolAnalytics
from .price_oracle import PriceOracle
from .range_tracker import RangeTracker
from .reward_engine import RewardEngine, load_treasury_config
from .scheduler import RewardScheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnclaimedFees:
    position_id: str
    token0_amount: int  # 최소 단위
    token1_amount: int
    usd_value: Optional[float]
    tick_case: TickCase


@dataclass(frozen=True)
class RewardSummary:
    position_id: str
    daily_reward: float
    accumulated_reward: float
    claim_eligible: bool
    days_until_claim: int
    claimable: float
    days_active: int
    effective_apr: float  # %


@dataclass(frozen=True)
class ProgramAnalytics:
    total_active_liquidity: float
    participant_count: int
    position_count: int
    daily_budget: float
    program_duration_days: int
    apr_min: float
    apr_max: float
    reward_token_price: float


class TreasuryService:
    """트레저리 코어 파사드

    사용법:
        with build_service(...) as service:
            fees = service.get_unclaimed_fees("12345")
            reward = service.get_reward("12345")
    """

    def __init__(
        self,
        positions: PositionReader,
        accountant: PoolFeeAccountant,
        analytics: PoolAnalytics,
        engine: RewardEngine,
        reward_oracle: PriceOracle,
        token0_oracle: Optional[PriceOracle] = None,
        token1_oracle: Optional[PriceOracle] = None,
        decimals_0: int = 18,
        decimals_1: int = 18,
        scheduler: Optional[RewardScheduler] = None,
        cache: Optional[DataCache] = None
    ):
        self.positions = positions
        self.accountant = accountant
        self.analytics = analytics
        self.engine = engine
        self.reward_oracle = reward_oracle
        self.token0_oracle = token0_oracle
        self.token1_oracle = token1_oracle
        self.decimals_0 = decimals_0
        self.decimals_1 = decimals_1
        self.scheduler = scheduler
        self.cache = cache if cache is not None else DataCache(max_entries=16)

    def _oracles(self):
        seen = []
        for oracle in (self.reward_oracle, self.token0_oracle, self.token1_oracle):
            if oracle is not None and all(oracle is not o for o in seen):
                seen.append(oracle)
        return seen

    def open(self) -> "TreasuryService":
        """가격 오라클과 스케줄러 시작"""
        for oracle in self._oracles():
            oracle.open()
        if self.scheduler is not None:
            self.scheduler.start()
        return self

    def close(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop()
        for oracle in self._oracles():
            oracle.close()

    def __enter__(self) -> "TreasuryService":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ============================================================
    # 노출 연산
    # ============================================================

    def get_unclaimed_fees(self, position_id: str, include_usd: bool = True) -> UnclaimedFees:
        """포지션의 미수령 수수료

        Raises:
            NotFound: 알 수 없는 포지션
            DataUnavailable: 풀 상태를 읽을 수 없는 경우
        """
        position = self.positions.get_position(position_id)
        if position is None:
            raise NotFound(f"포지션을 찾을 수 없습니다: {position_id}")

        result = self.accountant.unclaimed_fees_for(position)

        usd_value = None
        if include_usd and self.token0_oracle is not None and self.token1_oracle is not None:
            usd_value = self.accountant.usd_value(
                result, self.token0_oracle, self.token1_oracle, self.decimals_0, self.decimals_1
            )

        return UnclaimedFees(
            position_id=position.position_id,
            token0_amount=result.uncollected_fees_0,
            token1_amount=result.uncollected_fees_1,
            usd_value=usd_value,
            tick_case=result.tick_case,
        )

    def get_reward(self, position_id: str, now: Optional[datetime] = None) -> RewardSummary:
        """포지션 보상 요약 (알 수 없는 포지션은 0)"""
        position = self.positions.get_position(position_id)
        if position is None:
            return RewardSummary(
                position_id=position_id,
                daily_reward=0.0,
                accumulated_reward=0.0,
                claim_eligible=False,
                days_until_claim=0,
                claimable=0.0,
                days_active=0,
                effective_apr=0.0,
            )

        config = self.engine.load_config()
        daily = self.engine.daily_reward(position, now, config)
        value = position.current_value_usd
        effective_apr = (
            daily * self.reward_oracle.current_price() * 365 / value * 100 if value > 0 else 0.0
        )
        return RewardSummary(
            position_id=position.position_id,
            daily_reward=daily,
            accumulated_reward=self.engine.accumulated_reward(position.position_id),
            claim_eligible=self.engine.claim_eligible(position, now, config),
            days_until_claim=self.engine.days_until_claim(position, now, config),
            claimable=self.engine.claimable(position.position_id),
            days_active=self.engine.days_active(position, now),
            effective_apr=effective_apr,
        )

    def get_program_analytics(self) -> ProgramAnalytics:
        """프로그램 전체 분석 (분석 TTL 동안 캐시)

        Raises:
            DataUnavailable: 유동성 원장을 읽을 수 없고 이전 스냅샷도 없는 경우
        """
        return self.cache.get_or_load(("analytics", "program"), self._compute_program_analytics, ANALYTICS_TTL)

    def _compute_program_analytics(self) -> ProgramAnalytics:
        config = self.engine.load_config()
        snapshot = self.analytics.snapshot(minimum_position_value=config.minimum_position_value)
        price = self.reward_oracle.current_price()
        apr_min, apr_max = self.analytics.estimated_apr_range(config, price, snapshot)
        return ProgramAnalytics(
            total_active_liquidity=snapshot.total_active_liquidity,
            participant_count=snapshot.participant_count,
            position_count=snapshot.position_count,
            daily_budget=resolve_daily_budget(
                config.daily_budget, config.total_allocation, config.program_duration_days
            ),
            program_duration_days=config.program_duration_days,
            apr_min=apr_min,
            apr_max=apr_max,
            reward_token_price=price,
        )


def build_service(
    positions: PositionReader,
    ledger: LiquidityLedger,
    config_store: ConfigStore,
    reward_store: RewardStore,
    pool_readers: Sequence[PoolStateReader],
    reward_feed: PriceFeed,
    reward_token_id: str,
    token0_feed: Optional[PriceFeed] = None,
    token0_id: Optional[str] = None,
    token1_feed: Optional[PriceFeed] = None,
    token1_id: Optional[str] = None,
    token0_fallback_price: float = 1.0,
    token1_fallback_price: float = 1.0,
    decimals_0: int = 18,
    decimals_1: int = 18,
    price_interval: float = PRICE_REFRESH_INTERVAL,
    max_price_change: float = PRICE_MAX_CHANGE,
    price_ttl: float = PRICE_TTL,
    pool_ttl: float = POOL_TTL,
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
    cycle_interval: float = REWARD_CYCLE_INTERVAL,
    sample_interval: float = RANGE_SAMPLE_INTERVAL,
    sample_window: int = RANGE_SAMPLE_WINDOW,
    max_workers: int = 4,
    enable_scheduler: bool = True
) -> TreasuryService:
    """구성 요소 생성 및 연결

    token0/1 피드가 reward 토큰과 같은 식별자를 쓰면 같은 오라클을 공유한다.
    """
    cache = DataCache(max_entries=cache_max_entries)
    config = load_treasury_config(config_store)

    def make_oracle(feed: PriceFeed, token_id: str, fallback: float) -> PriceOracle:
        return PriceOracle(
            feed, token_id, cache=cache, interval=price_interval,
            max_change=max_price_change, fallback_price=fallback, ttl=price_ttl
        )

    reward_oracle = make_oracle(reward_feed, reward_token_id, config.reward_token_price_fallback)

    def pair_oracle(
        feed: Optional[PriceFeed], token_id: Optional[str], fallback: float
    ) -> Optional[PriceOracle]:
        if feed is None or not token_id:
            return None
        if token_id == reward_token_id:
            return reward_oracle
        return make_oracle(feed, token_id, fallback)

    token0_oracle = pair_oracle(token0_feed, token0_id, token0_fallback_price)
    token1_oracle = pair_oracle(token1_feed, token1_id, token1_fallback_price)

    tracker = RangeTracker(window=sample_window)
    accountant = PoolFeeAccountant(pool_readers, cache=cache, ttl=pool_ttl)
    analytics = PoolAnalytics(
        ledger, cache=cache, minimum_position_value=config.minimum_position_value, ttl=pool_ttl
    )
    engine = RewardEngine(
        positions, analytics, reward_store, config_store,
        range_tracker=tracker, max_workers=max_workers
    )
    scheduler = None
    if enable_scheduler:
        scheduler = RewardScheduler(
            engine, accountant, tracker, interval=cycle_interval, sample_interval=sample_interval
        )

    logger.info(
        "트레저리 서비스 구성: 풀 리더 %d개, 보상 토큰 %s, 스케줄러 %s",
        len(pool_readers), reward_token_id, "사용" if scheduler else "미사용"
    )
    return TreasuryService(
        positions=positions,
        accountant=accountant,
        analytics=analytics,
        engine=engine,
        reward_oracle=reward_oracle,
        token0_oracle=token0_oracle,
        token1_oracle=token1_oracle,
        decimals_0=decimals_0,
        decimals_1=decimals_1,
        scheduler=scheduler,
        cache=cache,
    )
