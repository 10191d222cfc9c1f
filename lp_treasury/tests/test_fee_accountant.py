"""
PoolFeeAccountant 테스트

포지션 + 풀 상태 → 미수령 수수료, 리더 폴백과 캐싱을 테스트합니다.
"""

from unittest.mock import MagicMock

import pytest

from ..constants import Q128
from ..core.cache import DataCache
from ..core.fee_accountant import PoolFeeAccountant
from ..core.price_oracle import PriceOracle
from ..data.price_feed import StaticPriceFeed
from ..data.rpc_reader import JsonRpcPoolStateReader
from ..errors import DataUnavailable
from ..math.fee_math import TickCase
from .conftest import StubReader


def rpc_response(payload):
    mock = MagicMock()
    mock.json.return_value = payload
    mock.raise_for_status.return_value = None
    return mock


class TestUnclaimedFees:

    def test_full_range_example(self, make_position, make_pool_state):
        position = make_position()
        state = make_pool_state(
            current_tick=12345,
            fee_growth_global_0_x128=2 ** 130 + 30,
            fee_growth_outside_lower_0_x128=10,
            fee_growth_outside_upper_0_x128=20,
        )
        result = PoolFeeAccountant.unclaimed_fees(position, state)
        assert result.tick_case is TickCase.INSIDE
        assert result.uncollected_fees_0 == 20_000_000
        assert result.uncollected_fees_1 == 0

    def test_tokens_owed_included(self, make_position, make_pool_state):
        position = make_position(tokens_owed_0=7, tokens_owed_1=9)
        result = PoolFeeAccountant.unclaimed_fees(position, make_pool_state())
        assert (result.uncollected_fees_0, result.uncollected_fees_1) == (7, 9)

    def test_zero_liquidity(self, make_position, make_pool_state):
        position = make_position(liquidity=0, tokens_owed_0=100)
        state = make_pool_state(fee_growth_global_0_x128=5 * Q128, fee_growth_global_1_x128=3 * Q128)
        result = PoolFeeAccountant.unclaimed_fees(position, state)
        assert (result.uncollected_fees_0, result.uncollected_fees_1) == (0, 0)


class TestFetchPoolState:

    def test_failover_to_next_reader(self, make_position, make_pool_state):
        """첫 리더가 실패하면 다음 리더 사용"""
        state = make_pool_state()
        primary = StubReader(name="primary", error="timeout")
        backup = StubReader(state, name="backup")
        accountant = PoolFeeAccountant([primary, backup])

        assert accountant.fetch_pool_state(make_position()) is state
        assert primary.calls == 1
        assert backup.calls == 1

    def test_malformed_rpc_response_fails_over(self, make_position, make_pool_state):
        """해석할 수 없는 ABI 응답도 ReadError로 처리되어 다음 리더로 넘어간다"""
        rpc = JsonRpcPoolStateReader("https://rpc.example", max_retries=1)
        rpc._session.post = MagicMock(return_value=rpc_response([
            {"jsonrpc": "2.0", "id": i + 1, "result": "0x" + "z" * 256} for i in range(5)
        ]))
        state = make_pool_state()
        backup = StubReader(state, name="backup")
        accountant = PoolFeeAccountant([rpc, backup])

        assert accountant.fetch_pool_state(make_position()) is state
        assert backup.calls == 1

    def test_all_readers_fail(self, make_position):
        """모든 리더 실패 시 0이 아닌 DataUnavailable"""
        accountant = PoolFeeAccountant([
            StubReader(name="a", error="down"),
            StubReader(name="b", error="down"),
        ])
        with pytest.raises(DataUnavailable):
            accountant.unclaimed_fees_for(make_position())

    def test_no_readers(self, make_position):
        with pytest.raises(DataUnavailable):
            PoolFeeAccountant([]).fetch_pool_state(make_position())

    def test_cached_within_ttl(self, make_position, make_pool_state, clock):
        reader = StubReader(make_pool_state())
        accountant = PoolFeeAccountant([reader], cache=DataCache(clock=clock), ttl=30)
        position = make_position()

        accountant.fetch_pool_state(position)
        accountant.fetch_pool_state(position)
        assert reader.calls == 1

        clock.advance(31)
        accountant.fetch_pool_state(position)
        assert reader.calls == 2

    def test_current_tick(self, make_position, make_pool_state):
        accountant = PoolFeeAccountant([StubReader(make_pool_state(current_tick=-42))])
        assert accountant.current_tick(make_position()) == -42


def test_usd_value(make_position, make_pool_state):
    position = make_position(tokens_owed_0=2 * 10 ** 18, tokens_owed_1=500 * 10 ** 6)
    result = PoolFeeAccountant.unclaimed_fees(position, make_pool_state())
    weth = PriceOracle(StaticPriceFeed(3000.0), "weth")
    usdc = PriceOracle(StaticPriceFeed(1.0), "usdc")
    weth.refresh()
    usdc.refresh()

    usd = PoolFeeAccountant.usd_value(result, weth, usdc, decimals_0=18, decimals_1=6)
    assert usd == pytest.approx(6500.0)
