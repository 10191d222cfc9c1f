"""
보상 엔진

비례 분배 공식으로 포지션의 일일 / 누적 보상과 청구 가능 여부를 계산한다.

    R_u = share × (1 + min(D_u / P, 1) × b_time) × IRM × FRB × R_daily

누적 규칙:
- 마지막 계산 시점(첫 계산이면 유동성 추가 시점)부터 경과한 '완전한 일수'만큼 더한다
- last_calculated_at은 정수 일 단위로만 전진하므로 같은 시각으로 재실행해도 변화가 없다
- 비활성 포지션은 누적이 동결되며 기록은 삭제하지 않는다
- 같은 포지션의 재계산은 직렬화하고, 서로 다른 포지션은 병렬로 처리한다
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from ..data.readers import ConfigStore, PositionReader, RewardStore
from ..data.types import Position, RewardRecord, TreasuryConfig, utcnow
from ..errors import NotFound, ReadError, TreasuryError
from ..math.reward_math import (
    calculate_daily_reward,
    resolve_daily_budget,
    whole_days_between,
)
from .pool_analytics import AnalyticsSnapshot, PoolAnalytics
from .range_tracker import RangeTracker

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def load_treasury_config(config_store: Optional[ConfigStore]) -> TreasuryConfig:
    """설정 저장소에서 트레저리 설정 읽기 (없거나 읽기 실패 시 기본값)"""
    if config_store is None:
        return TreasuryConfig()
    try:
        raw = config_store.load_config()
    except ReadError as e:
        logger.warning("트레저리 설정 읽기 실패: %s - 기본값 사용", e)
        raw = None
    return TreasuryConfig.from_dict(raw)


@dataclass(frozen=True)
class BatchResult:
    """recalculate_all 결과"""
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    cancelled: bool = False
    total_accumulated: float = 0.0


class RewardEngine:
    """포지션 보상 계산기

    사용법:
        engine = RewardEngine(positions, analytics, reward_store, config_store)
        daily = engine.daily_reward(position)
        engine.recalculate(position.position_id)
        total = engine.accumulated_reward(position.position_id)
    """

    def __init__(
        self,
        positions: PositionReader,
        analytics: PoolAnalytics,
        store: RewardStore,
        config_store: Optional[ConfigStore] = None,
        range_tracker: Optional[RangeTracker] = None,
        max_workers: int = 4,
        now: Callable[[], datetime] = utcnow
    ):
        """
        Args:
            positions: 포지션 저장소
            analytics: 유동성 집계기 (점유율)
            store: 보상 기록 저장소
            config_store: 트레저리 설정 저장소 (없으면 기본값)
            range_tracker: in-range 샘플 추적기 (없으면 기본 IRM)
            max_workers: recalculate_all 병렬 작업 수
            now: 현재 시각 함수 (테스트에서 교체)
        """
        self.positions = positions
        self.analytics = analytics
        self.store = store
        self.config_store = config_store
        self.range_tracker = range_tracker
        self.max_workers = max(1, max_workers)
        self._now = now

        self._locks_guard = threading.Lock()
        self._position_locks: Dict[str, threading.Lock] = {}

    # ============================================================
    # 입력 계수
    # ============================================================

    def load_config(self) -> TreasuryConfig:
        """현재 트레저리 설정 (없거나 읽기 실패 시 기본값)"""
        return load_treasury_config(self.config_store)

    def days_active(self, position: Position, now: Optional[datetime] = None) -> int:
        return whole_days_between(position.reward_baseline, now or self._now())

    def in_range_multiplier(self, position: Position, config: TreasuryConfig) -> float:
        """IRM: full-range는 1.0, 집중 포지션은 최근 in-range 비율 (이력 없으면 기본값)"""
        if position.covers_full_range:
            return 1.0
        if self.range_tracker is not None:
            fraction = self.range_tracker.in_range_fraction(position.position_id)
            if fraction is not None:
                return fraction
        return config.default_in_range_multiplier

    @staticmethod
    def full_range_bonus(position: Position, config: TreasuryConfig) -> float:
        return config.full_range_bonus if position.covers_full_range else 1.0

    # ============================================================
    # 보상 계산
    # ============================================================

    def _reward_for_day(
        self,
        position: Position,
        days_active: int,
        config: TreasuryConfig,
        snapshot: AnalyticsSnapshot
    ) -> float:
        # 점유율 분모와 같은 최소 가치 기준 (스냅샷)
        if not self.analytics.counts(
            position.current_value_usd, position.is_active, position.reward_eligible,
            snapshot.minimum_position_value
        ):
            return 0.0
        if snapshot.total_active_liquidity <= 0:
            return 0.0

        return calculate_daily_reward(
            share=self.analytics.liquidity_share(position, snapshot),
            days_active=days_active,
            program_duration_days=config.program_duration_days,
            b_time=config.time_boost_coefficient,
            in_range_multiplier=self.in_range_multiplier(position, config),
            full_range_bonus=self.full_range_bonus(position, config),
            daily_budget=resolve_daily_budget(
                config.daily_budget, config.total_allocation, config.program_duration_days
            ),
        )

    def daily_reward(
        self,
        position: Position,
        now: Optional[datetime] = None,
        config: Optional[TreasuryConfig] = None,
        snapshot: Optional[AnalyticsSnapshot] = None
    ) -> float:
        """현재 일일 보상 (부작용 없음, 예외 없음)

        Returns:
            일일 보상 (보상 토큰 단위, >= 0)
        """
        config = config or self.load_config()
        try:
            snapshot = snapshot or self.analytics.snapshot(
                minimum_position_value=config.minimum_position_value
            )
        except TreasuryError as e:
            logger.warning("유동성 집계를 사용할 수 없습니다: %s - 보상 0", e)
            return 0.0
        return self._reward_for_day(position, self.days_active(position, now), config, snapshot)

    def accumulated_reward(self, position_id: str) -> float:
        record = self.store.get(position_id)
        return record.accumulated if record else 0.0

    def claim_eligible(
        self,
        position: Position,
        now: Optional[datetime] = None,
        config: Optional[TreasuryConfig] = None
    ) -> bool:
        config = config or self.load_config()
        return self.days_active(position, now) >= config.lock_period_days

    def days_until_claim(
        self,
        position: Position,
        now: Optional[datetime] = None,
        config: Optional[TreasuryConfig] = None
    ) -> int:
        config = config or self.load_config()
        return max(0, config.lock_period_days - self.days_active(position, now))

    # ============================================================
    # 누적 (재계산)
    # ============================================================

    def _lock_for(self, position_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._position_locks.get(position_id)
            if lock is None:
                lock = self._position_locks[position_id] = threading.Lock()
            return lock

    def recalculate(
        self,
        position_id: str,
        now: Optional[datetime] = None,
        config: Optional[TreasuryConfig] = None,
        snapshot: Optional[AnalyticsSnapshot] = None
    ) -> Optional[RewardRecord]:
        """포지션 보상 기록 갱신

        마지막 계산 이후 경과한 완전한 일수마다 그날의 시간 부스트로 일일 보상을
        더한다. 놓친 날은 한 번에 따라잡는다.

        Returns:
            갱신된 RewardRecord (포지션이 없으면 None)
        """
        now = now or self._now()
        position = self.positions.get_position(position_id)
        if position is None:
            return None

        config = config or self.load_config()
        snapshot = snapshot or self.analytics.snapshot(
            minimum_position_value=config.minimum_position_value
        )
        baseline = position.reward_baseline

        with self._lock_for(position_id):
            record = self.store.get(position_id) or RewardRecord(position_id=position_id)
            start = max(record.last_calculated_at or baseline, baseline)
            elapsed_days = whole_days_between(start, now)
            start_age = whole_days_between(baseline, start)

            added = 0.0
            if position.is_active:
                for k in range(elapsed_days):
                    added += self._reward_for_day(position, start_age + k, config, snapshot)

            days_active = whole_days_between(baseline, now)
            record.accumulated += added
            record.last_calculated_at = start + ONE_DAY * elapsed_days
            record.daily_reward = self._reward_for_day(position, days_active, config, snapshot)
            record.days_active = days_active
            record.claim_eligible = days_active >= config.lock_period_days
            self.store.save(record)

        if added:
            logger.debug(
                "보상 누적 (%s): +%.6f (%d일) → %.6f",
                position_id, added, elapsed_days, record.accumulated
            )
        return record

    def recalculate_all(
        self,
        now: Optional[datetime] = None,
        cancel: Optional[threading.Event] = None
    ) -> BatchResult:
        """전체 포지션 재계산

        설정과 유동성 집계는 주기당 한 번 읽어 모든 포지션이 같은 스냅샷을 사용한다.
        cancel이 설정되면 아직 시작하지 않은 포지션은 건너뛴다.
        """
        now = now or self._now()
        config = self.load_config()
        snapshot = self.analytics.snapshot(
            refresh=True, minimum_position_value=config.minimum_position_value
        )
        position_ids = [p.position_id for p in self.positions.list_positions()]

        counts = {"processed": 0, "failed": 0, "skipped": 0}
        counts_lock = threading.Lock()

        def task(position_id: str) -> float:
            if cancel is not None and cancel.is_set():
                outcome, value = "skipped", 0.0
            else:
                try:
                    record = self.recalculate(position_id, now, config, snapshot)
                    outcome = "processed" if record else "skipped"
                    value = record.accumulated if record else 0.0
                except (TreasuryError, ValueError) as e:
                    logger.error("보상 재계산 실패 (%s): %s", position_id, e)
                    outcome, value = "failed", 0.0
            with counts_lock:
                counts[outcome] += 1
            return value

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="reward") as pool:
            totals = list(pool.map(task, position_ids))

        result = BatchResult(
            processed=counts["processed"],
            failed=counts["failed"],
            skipped=counts["skipped"],
            cancelled=cancel is not None and cancel.is_set(),
            total_accumulated=sum(totals),
        )
        logger.info(
            "보상 재계산 완료: 처리 %d, 실패 %d, 건너뜀 %d%s",
            result.processed, result.failed, result.skipped,
            " (취소됨)" if result.cancelled else ""
        )
        return result

    # ============================================================
    # 청구
    # ============================================================

    def claimable(self, position_id: str) -> float:
        """청구 가능 보상 (잠금 기간 이전이면 0)"""
        record = self.store.get(position_id)
        if record is None or not record.claim_eligible:
            return 0.0
        return max(0.0, record.accumulated - record.claimed)

    def record_claim(self, position_id: str, amount: float) -> RewardRecord:
        """청구 완료 기록 (전송은 외부 협력자 몫)

        Raises:
            NotFound: 보상 기록이 없는 경우
            ValueError: 청구 가능 금액을 초과한 경우
        """
        if amount <= 0:
            raise ValueError(f"청구 금액은 양수여야 합니다: {amount}")
        with self._lock_for(position_id):
            record = self.store.get(position_id)
            if record is None:
                raise NotFound(f"보상 기록이 없습니다: {position_id}")
            available = max(0.0, record.accumulated - record.claimed) if record.claim_eligible else 0.0
            if amount > available + 1e-9:
                raise ValueError(f"청구 가능 금액 초과: {amount} > {available}")
            record.claimed += amount
            self.store.save(record)
        logger.info("보상 청구 기록 (%s): %.6f", position_id, amount)
        return record
