"""
Tick Math - 틱 범위 판별

References:
- Uniswap V3 Core: contracts/libraries/TickMath.sol
- 백서 Section 6.1: Ticks and Tick Spacing

핵심 규칙:
    in range   = i_l <= i_c < i_u
    full range = [usable MIN_TICK, usable MAX_TICK] (틱 간격으로 정렬)
"""

from typing import Optional, Tuple

from ..constants import MIN_TICK, MAX_TICK, TICK_SPACINGS, MAX_TICK_SPACING


def get_tick_spacing_for_fee(fee_tier: int) -> int:
    """수수료 티어에 해당하는 틱 간격 반환

    Args:
        fee_tier: 수수료 티어 (100, 500, 3000, 10000)

    Returns:
        틱 간격
    """
    if fee_tier not in TICK_SPACINGS:
        raise ValueError(f"지원하지 않는 수수료 티어: {fee_tier}")
    return TICK_SPACINGS[fee_tier]


def usable_tick_bounds(tick_spacing: int) -> Tuple[int, int]:
    """틱 간격에 맞춰 정렬된 최소/최대 사용 가능 틱

    예: tick_spacing=60 → (-887220, 887220)
    """
    if tick_spacing <= 0:
        raise ValueError(f"틱 간격은 양수여야 합니다: {tick_spacing}")
    lower = -((-MIN_TICK) // tick_spacing) * tick_spacing
    upper = (MAX_TICK // tick_spacing) * tick_spacing
    return lower, upper


def is_full_range(tick_lower: int, tick_upper: int, tick_spacing: Optional[int] = None) -> bool:
    """포지션이 사실상 전체 가격 구간을 덮는지 판별

    틱 간격을 알면 정렬된 최소/최대 틱과 비교하고, 모르면 가장 넓은 틱 간격을
    허용 오차로 사용한다.

    Args:
        tick_lower: 하한 틱
        tick_upper: 상한 틱
        tick_spacing: 풀의 틱 간격 (선택)

    Returns:
        full-range 여부
    """
    spacing = tick_spacing or MAX_TICK_SPACING
    lower_bound, upper_bound = usable_tick_bounds(spacing)
    return tick_lower <= lower_bound and tick_upper >= upper_bound


def is_in_range(tick_lower: int, tick_upper: int, current_tick: int) -> bool:
    """현재 틱이 [tick_lower, tick_upper) 안에 있는지 여부"""
    return tick_lower <= current_tick < tick_upper
