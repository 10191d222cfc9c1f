"""
RewardEngine 테스트

일일 보상 공식, 누적의 멱등성 / 따라잡기, 포지션별 직렬화를 테스트합니다.
"""

import threading
from datetime import timedelta

import pytest

from ..core.pool_analytics import PoolAnalytics
from ..core.range_tracker import RangeTracker
from ..core.reward_engine import RewardEngine
from ..data.memory import InMemoryConfigStore, InMemoryPositionStore, InMemoryRewardStore
from ..data.readers import LiquidityLedger
from ..errors import NotFound
from .conftest import NOW

CONFIG = {
    "totalAllocation": 450_000,
    "programDurationDays": 90,
    "dailyBudget": 5000,
    "lockPeriodDays": 7,
    "timeBoostCoefficient": 0.6,
    "fullRangeBonus": 1.2,
}


class EmptyLedger(LiquidityLedger):

    def active_entries(self):
        return []


@pytest.fixture
def setup(make_position):
    """share 0.01인 full-range 포지션 + 나머지 유동성 99,000 USD"""
    positions = InMemoryPositionStore([
        make_position("1", current_value_usd=1000.0, created_at=NOW - timedelta(days=30)),
        make_position("2", owner="0xwhale", current_value_usd=99_000.0, created_at=NOW - timedelta(days=3)),
    ])
    store = InMemoryRewardStore()
    tracker = RangeTracker()
    engine = RewardEngine(
        positions,
        PoolAnalytics(positions),
        store,
        InMemoryConfigStore(CONFIG),
        range_tracker=tracker,
        now=lambda: NOW,
    )
    return engine, positions, store, tracker


class TestDailyReward:

    def test_reference_example(self, setup):
        """share 0.01, 30/90일, b_time 0.6, IRM 1.0, FRB 1.2, 예산 5000 → 72"""
        engine, positions, _, _ = setup
        assert engine.daily_reward(positions.get_position("1")) == pytest.approx(72.0)

    def test_no_side_effects(self, setup):
        engine, positions, store, _ = setup
        position = positions.get_position("1")
        first = engine.daily_reward(position)
        second = engine.daily_reward(position)
        assert first == second
        assert store.all() == []

    def test_zero_total_liquidity(self, make_position):
        """전체 활성 유동성이 0이면 보상 0"""
        positions = InMemoryPositionStore([make_position("1")])
        engine = RewardEngine(positions, PoolAnalytics(EmptyLedger()), InMemoryRewardStore(), now=lambda: NOW)
        assert engine.daily_reward(positions.get_position("1")) == 0.0

    def test_inactive_or_below_minimum(self, setup, make_position):
        engine, _, _, _ = setup
        assert engine.daily_reward(make_position("3", is_active=False)) == 0.0
        assert engine.daily_reward(make_position("4", current_value_usd=5.0)) == 0.0
        assert engine.daily_reward(make_position("5", current_value_usd=0.0)) == 0.0

    def test_concentrated_default_irm(self, setup, make_position):
        """샘플링 이력이 없는 집중 포지션: IRM 기본값 0.5, FRB 없음"""
        engine, positions, _, _ = setup
        position = make_position("1", tick_lower=-600, tick_upper=600, current_value_usd=1000.0)
        positions.upsert(position)
        # 0.01 × 1.2 × 0.5 × 1.0 × 5000
        assert engine.daily_reward(position) == pytest.approx(30.0)

    def test_concentrated_sampled_irm(self, setup, make_position):
        engine, positions, _, tracker = setup
        position = make_position("1", tick_lower=-600, tick_upper=600, current_value_usd=1000.0)
        positions.upsert(position)
        for tick in (0, 100, -100, 5000):
            tracker.observe(position, tick)
        assert engine.daily_reward(position) == pytest.approx(45.0)

    def test_defaults_without_config_store(self, make_position):
        positions = InMemoryPositionStore([make_position("1")])
        engine = RewardEngine(positions, PoolAnalytics(positions), InMemoryRewardStore(), now=lambda: NOW)
        # 단독 포지션: share 1, 기본 예산 1,500,000 / 90
        expected = 1.0 * (1 + 30 / 90 * 0.6) * 1.0 * 1.2 * (1_500_000 / 90)
        assert engine.daily_reward(positions.get_position("1")) == pytest.approx(expected)

    def test_unknown_fee_tier(self, setup, make_position):
        """표에 없는 수수료 티어도 예외 없이 집중 포지션으로 계산"""
        engine, positions, _, _ = setup
        position = make_position("1", fee_tier=2500, tick_lower=-600, tick_upper=600)
        positions.upsert(position)
        assert engine.daily_reward(position, NOW) == pytest.approx(30.0)

    def test_minimum_raised_after_start(self, setup):
        """최소 가치가 올라가면 분모에서도 빠져 예산 전체가 배분된다"""
        engine, positions, _, _ = setup
        engine.daily_reward(positions.get_position("2"))

        engine.config_store.update(dict(CONFIG, minimumPositionValue=5000))
        assert engine.daily_reward(positions.get_position("1")) == 0.0
        # share 1.0 × (1 + 3/90 × 0.6) × 1.2 × 5000
        assert engine.daily_reward(positions.get_position("2")) == pytest.approx(6120.0)
        snapshot = engine.analytics.snapshot(minimum_position_value=5000)
        assert snapshot.total_active_liquidity == pytest.approx(99_000.0)


class TestClaimEligibility:

    def test_lock_period(self, setup):
        engine, positions, _, _ = setup
        assert engine.claim_eligible(positions.get_position("1"))
        whale = positions.get_position("2")
        assert not engine.claim_eligible(whale)
        assert engine.days_until_claim(whale) == 4


class TestAccumulation:

    def test_first_calculation_from_baseline(self, setup):
        """첫 계산은 유동성 추가 시점부터 일별 시간 부스트로 누적"""
        engine, _, _, _ = setup
        record = engine.recalculate("1")
        # Σ_{k=0}^{29} 60 × (1 + k/90 × 0.6) = 60 × (30 + 2.9)
        assert record.accumulated == pytest.approx(1974.0)
        assert record.last_calculated_at == NOW
        assert record.days_active == 30
        assert record.claim_eligible

    def test_idempotent(self, setup):
        engine, _, _, _ = setup
        first = engine.recalculate("1", NOW).accumulated
        second = engine.recalculate("1", NOW + timedelta(hours=23)).accumulated
        assert first == second

    def test_catch_up_matches_daily_runs(self, setup, make_position):
        engine, _, store, _ = setup
        engine.recalculate("1", NOW)
        for day in range(1, 4):
            engine.recalculate("1", NOW + timedelta(days=day))
        daily_runs = store.get("1").accumulated

        positions = InMemoryPositionStore([
            make_position("1", current_value_usd=1000.0, created_at=NOW - timedelta(days=30)),
            make_position("2", owner="0xwhale", current_value_usd=99_000.0, created_at=NOW - timedelta(days=3)),
        ])
        other = RewardEngine(
            positions, PoolAnalytics(positions), InMemoryRewardStore(),
            InMemoryConfigStore(CONFIG), now=lambda: NOW
        )
        other.recalculate("1", NOW)
        caught_up = other.recalculate("1", NOW + timedelta(days=3)).accumulated
        assert caught_up == pytest.approx(daily_runs)

    def test_monotonic_while_active(self, setup):
        engine, _, _, _ = setup
        values = [engine.recalculate("1", NOW + timedelta(days=d)).accumulated for d in range(5)]
        assert values == sorted(values)

    def test_frozen_when_inactive(self, setup, make_position):
        engine, positions, store, _ = setup
        engine.recalculate("1", NOW)
        before = store.get("1").accumulated

        positions.upsert(make_position(
            "1", current_value_usd=1000.0, created_at=NOW - timedelta(days=30), is_active=False
        ))
        record = engine.recalculate("1", NOW + timedelta(days=5))
        assert record.accumulated == before
        assert record.daily_reward == 0.0
        assert store.get("1") is not None

    def test_missing_position(self, setup):
        engine, _, _, _ = setup
        assert engine.recalculate("404") is None
        assert engine.accumulated_reward("404") == 0.0

    def test_same_position_serialized(self, setup):
        """같은 포지션 동시 재계산에도 lost update 없음"""
        engine, _, store, _ = setup
        barrier = threading.Barrier(8)

        def run():
            barrier.wait()
            engine.recalculate("1", NOW)

        threads = [threading.Thread(target=run) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert store.get("1").accumulated == pytest.approx(1974.0)


class TestBatch:

    def test_recalculate_all(self, setup):
        engine, _, store, _ = setup
        result = engine.recalculate_all(NOW)
        assert result.processed == 2
        assert result.failed == 0
        assert not result.cancelled
        assert len(store.all()) == 2

    def test_cancelled_before_start(self, setup):
        engine, _, store, _ = setup
        cancel = threading.Event()
        cancel.set()
        result = engine.recalculate_all(NOW, cancel=cancel)
        assert result.cancelled
        assert result.skipped == 2
        assert store.all() == []


class TestClaims:

    def test_claimable_and_record_claim(self, setup):
        engine, _, _, _ = setup
        engine.recalculate("1", NOW)
        assert engine.claimable("1") == pytest.approx(1974.0)

        engine.record_claim("1", 1000.0)
        assert engine.claimable("1") == pytest.approx(974.0)

        with pytest.raises(ValueError):
            engine.record_claim("1", 975.0)

    def test_not_claimable_during_lock(self, setup):
        engine, _, _, _ = setup
        engine.recalculate("2", NOW)
        assert engine.claimable("2") == 0.0
        with pytest.raises(ValueError):
            engine.record_claim("2", 1.0)

    def test_claim_without_record(self, setup):
        engine, _, _, _ = setup
        with pytest.raises(NotFound):
            engine.record_claim("404", 1.0)
