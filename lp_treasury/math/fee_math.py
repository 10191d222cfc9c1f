"""
Fee Math - 미수령 거래 수수료 계산

Uniswap V3 백서 Section 6.3, 6.4의 공식을 온체인과 동일한 정밀도로 구현.
모든 누산기 뺄셈은 uint256 랩어라운드(mod 2^256)로 수행한다.

핵심 공식 (구간은 반개구간 [i_l, i_u)):
    i_c <  i_l:        f_r = f_o(i_l) - f_o(i_u)
    i_c >= i_u:        f_r = f_o(i_u) - f_o(i_l)
    i_l <= i_c < i_u:  f_r = f_g - f_o(i_l) - f_o(i_u)

    f_u = owed + l × (f_r(t_1) - f_r(t_0)) >> 128
"""

from enum import Enum
from typing import NamedTuple

from .uint_math import (
    to_uint128,
    to_uint256,
    wrapping_sub_256,
    wrapping_add_128,
    mul_shift_128,
)
from ..constants import UINT128_MAX


class TickCase(str, Enum):
    """현재 틱과 포지션 범위의 관계"""
    BELOW = "below"
    INSIDE = "inside"
    ABOVE = "above"


class FeeCalculationResult(NamedTuple):
    """수수료 계산 결과"""
    uncollected_fees_0: int  # token0 미수령 수수료 (최소 단위)
    uncollected_fees_1: int  # token1 미수령 수수료 (최소 단위)
    fee_growth_inside_0: int  # 현재 범위 내 fee growth token0
    fee_growth_inside_1: int  # 현재 범위 내 fee growth token1
    tick_case: TickCase


def classify_tick(tick_lower: int, tick_upper: int, current_tick: int) -> TickCase:
    """현재 틱 위치 판별

    tick_upper와 정확히 같은 틱은 범위 밖(above)으로 취급한다.

    Args:
        tick_lower: 하한 틱 (i_l)
        tick_upper: 상한 틱 (i_u)
        current_tick: 현재 틱 (i_c)

    Returns:
        TickCase
    """
    if current_tick < tick_lower:
        return TickCase.BELOW
    if current_tick >= tick_upper:
        return TickCase.ABOVE
    return TickCase.INSIDE


def fee_growth_inside(
    tick_lower: int,
    tick_upper: int,
    current_tick: int,
    fee_growth_global: int,
    fee_growth_outside_lower: int,
    fee_growth_outside_upper: int
) -> int:
    """범위 내 fee growth 계산 (f_r)

    Args:
        tick_lower: 하한 틱 (i_l)
        tick_upper: 상한 틱 (i_u)
        current_tick: 현재 틱 (i_c)
        fee_growth_global: 전역 fee growth (f_g)
        fee_growth_outside_lower: 하한 틱의 fee growth outside (f_o(i_l))
        fee_growth_outside_upper: 상한 틱의 fee growth outside (f_o(i_u))

    Returns:
        범위 내 fee growth (f_r), uint256
    """
    case = classify_tick(tick_lower, tick_upper, current_tick)

    if case is TickCase.BELOW:
        return wrapping_sub_256(fee_growth_outside_lower, fee_growth_outside_upper)
    if case is TickCase.ABOVE:
        return wrapping_sub_256(fee_growth_outside_upper, fee_growth_outside_lower)

    return wrapping_sub_256(
        wrapping_sub_256(fee_growth_global, fee_growth_outside_lower),
        fee_growth_outside_upper
    )


def calculate_fee_growth_delta(
    fee_growth_current: int,
    fee_growth_previous: int
) -> int:
    """두 시점 간 fee growth 변화량 (uint256 랩어라운드)"""
    return wrapping_sub_256(fee_growth_current, fee_growth_previous)


def calculate_uncollected_fees(
    liquidity: int,
    fee_growth_inside_current: int,
    fee_growth_inside_last: int,
    tokens_owed: int = 0
) -> int:
    """미수령 수수료 계산 (f_u)

    Position.update와 동일하게 mulDiv 결과를 uint128로 캐스팅한 뒤
    tokensOwed에 uint128 랩어라운드로 더한다.

    Args:
        liquidity: 포지션 유동성 (l)
        fee_growth_inside_current: 현재 범위 내 fee growth (f_r(t_1))
        fee_growth_inside_last: 마지막 체크포인트 (f_r(t_0))
        tokens_owed: 이미 적립된 tokensOwed

    Returns:
        미수령 수수료 (토큰 최소 단위)
    """
    to_uint128(tokens_owed)
    if to_uint128(liquidity) == 0:
        return tokens_owed

    delta = calculate_fee_growth_delta(fee_growth_inside_current, fee_growth_inside_last)
    accrued = mul_shift_128(delta, liquidity) & UINT128_MAX
    return wrapping_add_128(tokens_owed, accrued)


def calculate_uncollected_fees_both_tokens(
    liquidity: int,
    tick_lower: int,
    tick_upper: int,
    current_tick: int,
    fee_growth_global_0: int,
    fee_growth_global_1: int,
    fee_growth_outside_lower_0: int,
    fee_growth_outside_lower_1: int,
    fee_growth_outside_upper_0: int,
    fee_growth_outside_upper_1: int,
    fee_growth_inside_last_0: int,
    fee_growth_inside_last_1: int,
    tokens_owed_0: int = 0,
    tokens_owed_1: int = 0
) -> FeeCalculationResult:
    """두 토큰의 미수령 수수료 계산

    유동성이 0이면 fee growth 입력과 무관하게 (0, 0)을 반환한다.
    (체크포인트 이후 적립이 불가능하며, 이 경로는 tokensOwed도 보지 않는다)

    Returns:
        FeeCalculationResult: 미수령 수수료 및 현재 fee growth inside
    """
    case = classify_tick(tick_lower, tick_upper, current_tick)

    if to_uint128(liquidity) == 0:
        return FeeCalculationResult(0, 0, 0, 0, case)

    for value in (fee_growth_inside_last_0, fee_growth_inside_last_1):
        to_uint256(value)

    # Step 1: 현재 범위 내 fee growth 계산 (f_r(t_1))
    inside_0 = fee_growth_inside(
        tick_lower, tick_upper, current_tick,
        fee_growth_global_0,
        fee_growth_outside_lower_0,
        fee_growth_outside_upper_0
    )
    inside_1 = fee_growth_inside(
        tick_lower, tick_upper, current_tick,
        fee_growth_global_1,
        fee_growth_outside_lower_1,
        fee_growth_outside_upper_1
    )

    # Step 2: 미수령 수수료 계산 (f_u)
    fees_0 = calculate_uncollected_fees(liquidity, inside_0, fee_growth_inside_last_0, tokens_owed_0)
    fees_1 = calculate_uncollected_fees(liquidity, inside_1, fee_growth_inside_last_1, tokens_owed_1)

    return FeeCalculationResult(
        uncollected_fees_0=fees_0,
        uncollected_fees_1=fees_1,
        fee_growth_inside_0=inside_0,
        fee_growth_inside_1=inside_1,
        tick_case=case
    )


def to_token_amount(raw_amount: int, decimals: int = 18) -> float:
    """최소 단위 금액을 human-readable 토큰 수량으로 변환"""
    return raw_amount / (10 ** decimals)
