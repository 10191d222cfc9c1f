"""공통 테스트 픽스처"""

from datetime import datetime, timedelta, timezone

import pytest

from ..data.types import Position, PoolState
from ..data.readers import PoolStateReader
from ..errors import ReadError

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """수동으로 전진시키는 monotonic 시계"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubReader(PoolStateReader):
    """고정 상태를 반환하거나 ReadError를 던지는 리더"""

    def __init__(self, state=None, name="stub", error=None):
        self.state = state
        self.name = name
        self.error = error
        self.calls = 0

    def read_pool_state(self, pool_id, tick_lower, tick_upper):
        self.calls += 1
        if self.error is not None:
            raise ReadError(self.error)
        return self.state


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_position():
    def _make(position_id="1", **overrides):
        values = dict(
            position_id=position_id,
            owner=f"0xowner{position_id}",
            pool_id="0x82da478b1382b951cbad01beb9ed459cdb16458e",
            tick_lower=-887220,
            tick_upper=887220,
            liquidity=5_000_000,
            current_value_usd=1000.0,
            fee_tier=3000,
            created_at=NOW - timedelta(days=30),
        )
        values.update(overrides)
        return Position(**values)
    return _make


@pytest.fixture
def make_pool_state():
    def _make(**overrides):
        values = dict(
            current_tick=12345,
            fee_growth_global_0_x128=0,
            fee_growth_global_1_x128=0,
            fee_growth_outside_lower_0_x128=0,
            fee_growth_outside_lower_1_x128=0,
            fee_growth_outside_upper_0_x128=0,
            fee_growth_outside_upper_1_x128=0,
        )
        values.update(overrides)
        return PoolState(**values)
    return _make
