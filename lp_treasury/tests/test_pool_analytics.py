"""
PoolAnalytics 테스트

활성 유동성 집계, 점유율, 원장 실패 시 폴백을 테스트합니다.
"""

import pytest

from ..core.cache import DataCache
from ..core.pool_analytics import PoolAnalytics
from ..data.readers import LiquidityLedger
from ..data.types import LedgerEntry, TreasuryConfig
from ..errors import DataUnavailable, ReadError


class ListLedger(LiquidityLedger):

    def __init__(self, entries):
        self.entries = list(entries)
        self.fail = False

    def active_entries(self):
        if self.fail:
            raise ReadError("db down")
        return list(self.entries)


def entries():
    return [
        LedgerEntry("1", "0xA", 600.0),
        LedgerEntry("2", "0xa", 300.0),                       # 같은 소유자 (대소문자 무시)
        LedgerEntry("3", "0xB", 100.0),
        LedgerEntry("4", "0xC", 5.0),                         # 최소 가치 미만
        LedgerEntry("5", "0xD", 1000.0, is_active=False),
        LedgerEntry("6", "0xE", 1000.0, reward_eligible=False),
    ]


class TestAggregate:

    def test_total_counts_eligible_only(self):
        analytics = PoolAnalytics(ListLedger(entries()), minimum_position_value=10.0)
        snapshot = analytics.snapshot()
        assert snapshot.total_active_liquidity == pytest.approx(1000.0)
        assert snapshot.position_count == 3
        assert snapshot.participant_count == 2

    def test_share(self, make_position):
        analytics = PoolAnalytics(ListLedger(entries()), minimum_position_value=10.0)
        assert analytics.liquidity_share(make_position("1", current_value_usd=600.0)) == pytest.approx(0.6)

    def test_share_zero_for_ineligible(self, make_position):
        analytics = PoolAnalytics(ListLedger(entries()), minimum_position_value=10.0)
        assert analytics.liquidity_share(make_position("4", current_value_usd=5.0)) == 0.0
        assert analytics.liquidity_share(make_position("5", current_value_usd=1000.0, is_active=False)) == 0.0

    def test_zero_total(self, make_position):
        analytics = PoolAnalytics(ListLedger([]))
        assert analytics.total_active_liquidity() == 0.0
        assert analytics.liquidity_share(make_position()) == 0.0

    def test_share_clamped(self, make_position):
        analytics = PoolAnalytics(ListLedger([LedgerEntry("1", "0xA", 100.0)]))
        assert analytics.liquidity_share(make_position("9", current_value_usd=500.0)) == 1.0


class TestCaching:

    def test_snapshot_cached(self, clock):
        ledger = ListLedger(entries())
        analytics = PoolAnalytics(ledger, cache=DataCache(clock=clock), ttl=30)
        first = analytics.snapshot()
        ledger.entries.append(LedgerEntry("7", "0xF", 500.0))
        assert analytics.snapshot() is first
        clock.advance(31)
        assert analytics.snapshot().total_active_liquidity > first.total_active_liquidity

    def test_stale_fallback_on_ledger_failure(self, clock):
        ledger = ListLedger(entries())
        analytics = PoolAnalytics(ledger, cache=DataCache(clock=clock), ttl=30)
        first = analytics.snapshot()
        ledger.fail = True
        clock.advance(120)
        assert analytics.snapshot() is first

    def test_unavailable_without_previous(self):
        ledger = ListLedger(entries())
        ledger.fail = True
        with pytest.raises(DataUnavailable):
            PoolAnalytics(ledger).snapshot()


def test_estimated_apr_range():
    analytics = PoolAnalytics(ListLedger([LedgerEntry("1", "0xA", 100_000.0)]))
    config = TreasuryConfig(daily_budget=5000, time_boost_coefficient=0.6, full_range_bonus=1.2)
    apr_min, apr_max = analytics.estimated_apr_range(config, reward_token_price=0.02)
    assert apr_min == pytest.approx(36.5)
    assert apr_max == pytest.approx(36.5 * 1.6 * 1.2)
