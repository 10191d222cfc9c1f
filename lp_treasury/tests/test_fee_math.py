"""
Fee Math 테스트

백서 Section 6.3, 6.4 기반 수수료 계산 함수들을 테스트합니다.
"""

import random

import pytest

from ..math.fee_math import (
    TickCase,
    classify_tick,
    fee_growth_inside,
    calculate_uncollected_fees,
    calculate_uncollected_fees_both_tokens,
    calculate_fee_growth_delta,
    to_token_amount,
)
from ..constants import Q128, UINT256_MAX, UINT128_MAX, MIN_TICK, MAX_TICK


def reference_fee_growth_inside(tick_lower, tick_upper, current_tick, f_g, f_o_lower, f_o_upper):
    """백서 식 (6.17)-(6.19)의 f_a / f_b 형태 참조 구현"""
    mod = 2 ** 256
    f_b = f_o_lower if current_tick >= tick_lower else (f_g - f_o_lower) % mod
    f_a = f_o_upper if current_tick < tick_upper else (f_g - f_o_upper) % mod
    return (f_g - f_b - f_a) % mod


class TestClassifyTick:
    """현재 틱 위치 판별 (반개구간 [i_l, i_u))"""

    def test_below(self):
        assert classify_tick(-100, 100, -101) is TickCase.BELOW

    def test_lower_bound_is_inside(self):
        assert classify_tick(-100, 100, -100) is TickCase.INSIDE

    def test_upper_bound_is_above(self):
        """tick_upper와 같은 틱은 범위 밖"""
        assert classify_tick(-100, 100, 100) is TickCase.ABOVE


class TestFeeGrowthInside:
    """fee_growth_inside 테스트 (f_r)"""

    def test_current_tick_inside_range(self):
        """i_l <= i_c < i_u 일 때: f_r = f_g - f_o(i_l) - f_o(i_u)"""
        result = fee_growth_inside(
            tick_lower=-100, tick_upper=100, current_tick=0,
            fee_growth_global=1000, fee_growth_outside_lower=200, fee_growth_outside_upper=300
        )
        assert result == 500

    def test_current_tick_below_range(self):
        """i_c < i_l 일 때: f_r = f_o(i_l) - f_o(i_u)"""
        result = fee_growth_inside(
            tick_lower=-100, tick_upper=100, current_tick=-200,
            fee_growth_global=1000, fee_growth_outside_lower=500, fee_growth_outside_upper=200
        )
        assert result == 300

    def test_current_tick_above_range(self):
        """i_c >= i_u 일 때: f_r = f_o(i_u) - f_o(i_l)"""
        result = fee_growth_inside(
            tick_lower=-100, tick_upper=100, current_tick=100,
            fee_growth_global=1000, fee_growth_outside_lower=200, fee_growth_outside_upper=500
        )
        assert result == 300

    def test_wraparound_inside(self):
        """outside 값이 global보다 커도 mod 2^256으로 정확히 계산"""
        result = fee_growth_inside(
            tick_lower=-100, tick_upper=100, current_tick=0,
            fee_growth_global=5,
            fee_growth_outside_lower=UINT256_MAX - 9,  # ≡ -10
            fee_growth_outside_upper=20
        )
        assert result == UINT256_MAX - 4  # 5 + 10 - 20 = -5

    def test_rejects_signed_input(self):
        with pytest.raises(ValueError):
            fee_growth_inside(-100, 100, 0, 1000, -1, 0)

    def test_random_sweep_matches_reference(self):
        """무작위 256비트 누산기와 틱 배치에서 참조 구현과 비트 단위로 일치"""
        rng = random.Random(20240611)
        for _ in range(2000):
            lower = rng.randint(MIN_TICK, MAX_TICK - 1)
            upper = rng.randint(lower + 1, MAX_TICK)
            current = rng.choice([
                rng.randint(MIN_TICK, MAX_TICK),
                lower, upper, lower - 1, upper - 1,
            ])
            f_g = rng.getrandbits(256)
            f_o_lower = rng.getrandbits(256)
            f_o_upper = rng.getrandbits(256)

            expected = reference_fee_growth_inside(lower, upper, current, f_g, f_o_lower, f_o_upper)
            assert fee_growth_inside(lower, upper, current, f_g, f_o_lower, f_o_upper) == expected


class TestCalculateUncollectedFees:
    """calculate_uncollected_fees 테스트 (f_u)"""

    def test_basic_calculation(self):
        """기본 계산: f_u = l × (f_r(t_1) - f_r(t_0)) / 2^128"""
        liquidity = 10 ** 18
        current = 2 * Q128
        last = Q128
        assert calculate_uncollected_fees(liquidity, current, last) == liquidity

    def test_zero_liquidity(self):
        """유동성 0이면 적립 없음"""
        assert calculate_uncollected_fees(0, 2 * Q128, 0) == 0

    def test_tokens_owed_added(self):
        assert calculate_uncollected_fees(10, 2 * Q128, 0, tokens_owed=100) == 120

    def test_checkpoint_wraparound(self):
        """체크포인트가 현재 값보다 '커' 보여도 랩어라운드 차이로 계산"""
        last = UINT256_MAX - Q128 + 1  # ≡ -Q128
        current = Q128
        assert calculate_uncollected_fees(3, current, last) == 6

    def test_truncated_to_uint128(self):
        """Position.update와 동일하게 uint128로 캐스팅"""
        result = calculate_uncollected_fees(UINT128_MAX, UINT256_MAX, 0)
        assert result == ((UINT256_MAX * UINT128_MAX) >> 128) & UINT128_MAX
        assert result <= UINT128_MAX

    def test_fee_growth_delta(self):
        assert calculate_fee_growth_delta(10, 25) == UINT256_MAX - 14


class TestCalculateUncollectedFeesBothTokens:
    """calculate_uncollected_fees_both_tokens 테스트"""

    def test_full_range_example(self):
        """full-range 포지션, 범위 내 현재 틱: f_r = 2^130 → 5_000_000 × 4"""
        outside_lower_0, outside_upper_0 = 7, 11
        result = calculate_uncollected_fees_both_tokens(
            liquidity=5_000_000,
            tick_lower=-887220,
            tick_upper=887220,
            current_tick=12345,
            fee_growth_global_0=2 ** 130 + outside_lower_0 + outside_upper_0,
            fee_growth_global_1=Q128,
            fee_growth_outside_lower_0=outside_lower_0,
            fee_growth_outside_lower_1=0,
            fee_growth_outside_upper_0=outside_upper_0,
            fee_growth_outside_upper_1=0,
            fee_growth_inside_last_0=0,
            fee_growth_inside_last_1=0,
        )

        assert result.tick_case is TickCase.INSIDE
        assert result.fee_growth_inside_0 == 2 ** 130
        assert result.uncollected_fees_0 == 20_000_000
        assert result.uncollected_fees_1 == 5_000_000

    def test_full_range_example_with_wrapped_outside(self):
        """outside 값이 랩어라운드된 경우에도 같은 결과"""
        result = calculate_uncollected_fees_both_tokens(
            liquidity=5_000_000,
            tick_lower=-887220,
            tick_upper=887220,
            current_tick=12345,
            fee_growth_global_0=2 ** 130 - 5,
            fee_growth_global_1=0,
            fee_growth_outside_lower_0=UINT256_MAX - 9,
            fee_growth_outside_lower_1=0,
            fee_growth_outside_upper_0=5,
            fee_growth_outside_upper_1=0,
            fee_growth_inside_last_0=0,
            fee_growth_inside_last_1=0,
        )
        assert result.uncollected_fees_0 == 20_000_000
        assert result.uncollected_fees_1 == 0

    def test_zero_liquidity_returns_zero(self):
        """유동성 0이면 fee growth 입력과 무관하게 (0, 0)"""
        rng = random.Random(7)
        for _ in range(50):
            result = calculate_uncollected_fees_both_tokens(
                0, -600, 600, rng.randint(-1000, 1000),
                *(rng.getrandbits(256) for _ in range(8)),
                tokens_owed_0=rng.getrandbits(64),
                tokens_owed_1=rng.getrandbits(64),
            )
            assert (result.uncollected_fees_0, result.uncollected_fees_1) == (0, 0)

    def test_out_of_range_accrues_nothing_new(self):
        """범위 밖에서는 f_r이 변하지 않으므로 체크포인트 이후 적립 없음"""
        kwargs = dict(
            liquidity=1_000,
            tick_lower=-100,
            tick_upper=100,
            current_tick=500,
            fee_growth_global_0=9 * Q128,
            fee_growth_global_1=9 * Q128,
            fee_growth_outside_lower_0=Q128,
            fee_growth_outside_lower_1=Q128,
            fee_growth_outside_upper_0=3 * Q128,
            fee_growth_outside_upper_1=3 * Q128,
        )
        result = calculate_uncollected_fees_both_tokens(
            **kwargs, fee_growth_inside_last_0=2 * Q128, fee_growth_inside_last_1=2 * Q128
        )
        assert result.tick_case is TickCase.ABOVE
        assert result.uncollected_fees_0 == 0
        assert result.uncollected_fees_1 == 0


def test_to_token_amount():
    assert to_token_amount(1_500_000, 6) == pytest.approx(1.5)
