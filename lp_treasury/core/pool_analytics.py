"""
풀 유동성 분석

유동성 원장에서 보상 대상 포지션의 USD 가치를 집계한다.

- 집계 대상: 활성 + 보상 대상 + 최소 포지션 가치 이상
- 점유율 = 포지션 가치 / 전체 활성 유동성, [0, 1]로 클램프
- 집계 결과는 불변 스냅샷으로 캐시 (풀/TVL TTL)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Tuple

from ..constants import POOL_TTL, DEFAULT_MINIMUM_POSITION_VALUE
from ..data.readers import LiquidityLedger
from ..data.types import Position, TreasuryConfig, utcnow
from ..errors import DataUnavailable, ReadError
from ..math.reward_math import (
    clamp,
    liquidity_share,
    program_apr,
    resolve_daily_budget,
)
from .cache import DataCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """한 주기의 유동성 집계 (불변)"""
    total_active_liquidity: float
    participant_count: int
    position_count: int
    minimum_position_value: float = DEFAULT_MINIMUM_POSITION_VALUE
    values: Mapping[str, float] = field(default_factory=dict)
    computed_at: datetime = field(default_factory=utcnow)

    def value_of(self, position_id: str) -> float:
        return self.values.get(position_id, 0.0)


class PoolAnalytics:
    """유동성 원장 집계기

    사용법:
        analytics = PoolAnalytics(ledger, cache=cache)
        total = analytics.total_active_liquidity()
        share = analytics.liquidity_share(position)
    """

    CACHE_KEY = ("analytics", "liquidity")

    def __init__(
        self,
        ledger: LiquidityLedger,
        cache: Optional[DataCache] = None,
        minimum_position_value: float = DEFAULT_MINIMUM_POSITION_VALUE,
        ttl: float = POOL_TTL,
        now: Callable[[], datetime] = utcnow
    ):
        """
        Args:
            ledger: 유동성 원장
            cache: 스냅샷 캐시 (없으면 내부 캐시 사용)
            minimum_position_value: 집계에 포함될 최소 USD 가치
            ttl: 스냅샷 TTL (초)
            now: 현재 시각 함수 (테스트에서 교체)
        """
        self.ledger = ledger
        self.cache = cache if cache is not None else DataCache(max_entries=16)
        self.minimum_position_value = minimum_position_value
        self.ttl = ttl
        self._now = now

    def counts(
        self,
        value_usd: float,
        is_active: bool = True,
        reward_eligible: bool = True,
        minimum_position_value: Optional[float] = None
    ) -> bool:
        """집계 대상 여부 (minimum_position_value가 없으면 생성 시 기본값)"""
        if minimum_position_value is None:
            minimum_position_value = self.minimum_position_value
        return is_active and reward_eligible and value_usd > 0 and value_usd >= minimum_position_value

    def compute(self, minimum_position_value: Optional[float] = None) -> AnalyticsSnapshot:
        """원장을 읽어 새 스냅샷 계산 (캐시 무시)

        Args:
            minimum_position_value: 이번 주기의 최소 포지션 가치 (없으면 생성 시 기본값)

        Raises:
            ReadError: 원장 읽기 실패
        """
        if minimum_position_value is None:
            minimum_position_value = self.minimum_position_value
        values = {}
        owners = set()
        for entry in self.ledger.active_entries():
            if not self.counts(entry.value_usd, entry.is_active, entry.reward_eligible, minimum_position_value):
                continue
            values[entry.position_id] = float(entry.value_usd)
            owners.add(entry.owner.lower())

        return AnalyticsSnapshot(
            total_active_liquidity=sum(values.values()),
            participant_count=len(owners),
            position_count=len(values),
            minimum_position_value=minimum_position_value,
            values=MappingProxyType(values),
            computed_at=self._now(),
        )

    def snapshot(
        self,
        refresh: bool = False,
        minimum_position_value: Optional[float] = None
    ) -> AnalyticsSnapshot:
        """캐시된 스냅샷 (만료되었거나 최소 가치가 바뀌면 재계산)

        원장 읽기가 실패하면 마지막 스냅샷으로 폴백하고, 그것도 없으면 DataUnavailable.

        Args:
            refresh: True면 캐시를 무시하고 재계산 (주기 시작 시)
            minimum_position_value: 현재 설정의 최소 포지션 가치 (없으면 생성 시 기본값)

        Raises:
            DataUnavailable: 원장을 읽을 수 없고 이전 스냅샷도 없는 경우
        """
        if minimum_position_value is None:
            minimum_position_value = self.minimum_position_value
        if not refresh:
            cached = self.cache.get(self.CACHE_KEY)
            if cached is not None and cached.minimum_position_value == minimum_position_value:
                return cached

        try:
            snapshot = self.compute(minimum_position_value)
        except ReadError as e:
            stale = self.cache.get_stale(self.CACHE_KEY)
            if stale is None:
                raise DataUnavailable(f"유동성 원장을 읽을 수 없습니다: {e}") from e
            logger.warning("유동성 원장 읽기 실패: %s - 이전 스냅샷 사용 (%s)", e, stale.computed_at)
            return stale

        self.cache.set(self.CACHE_KEY, snapshot, self.ttl)
        logger.debug(
            "유동성 집계: 총 $%.2f, 참여자 %d명, 포지션 %d개",
            snapshot.total_active_liquidity, snapshot.participant_count, snapshot.position_count
        )
        return snapshot

    def total_active_liquidity(self) -> float:
        return self.snapshot().total_active_liquidity

    def liquidity_share(self, position: Position, snapshot: Optional[AnalyticsSnapshot] = None) -> float:
        """포지션의 유동성 점유율 [0, 1]

        스냅샷과 같은 최소 가치 기준으로 집계 대상 여부를 판단한다.
        집계 대상이 아니거나 전체 유동성이 0이면 0.
        """
        snapshot = snapshot or self.snapshot()
        if not self.counts(
            position.current_value_usd, position.is_active, position.reward_eligible,
            snapshot.minimum_position_value
        ):
            return 0.0
        return liquidity_share(position.current_value_usd, snapshot.total_active_liquidity)

    def estimated_apr_range(
        self,
        config: TreasuryConfig,
        reward_token_price: float,
        snapshot: Optional[AnalyticsSnapshot] = None
    ) -> Tuple[float, float]:
        """프로그램 APR 범위 (%)

        최소: 시간 부스트/보너스 없는 기본 APR
        최대: 프로그램 기간을 채운 full-range 포지션 (1 + b_time) × FRB

        Returns:
            (min_apr, max_apr)
        """
        snapshot = snapshot or self.snapshot()
        daily_budget = resolve_daily_budget(
            config.daily_budget, config.total_allocation, config.program_duration_days
        )
        base = program_apr(daily_budget, reward_token_price, snapshot.total_active_liquidity)
        maximum = base * (1 + clamp(config.time_boost_coefficient)) * max(1.0, clamp(config.full_range_bonus))
        return base, maximum
