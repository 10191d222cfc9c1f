"""
Math layer for the liquidity-mining treasury

온체인 수준 정밀도의 수학 함수들:
- uint_math: uint256 / uint128 랩어라운드 연산
- fee_math: 백서 기반 미수령 수수료 계산
- tick_math: 틱 범위 판별 (in-range, full-range)
- reward_math: 비례 분배 보상 공식
"""

from .uint_math import (
    to_uint256,
    to_uint128,
    wrapping_sub_256,
    mul_shift_128,
)
from .fee_math import (
    TickCase,
    classify_tick,
    fee_growth_inside,
    calculate_uncollected_fees,
    calculate_uncollected_fees_both_tokens,
    calculate_fee_growth_delta,
)
from .tick_math import (
    is_full_range,
    is_in_range,
    get_tick_spacing_for_fee,
)
from .reward_math import (
    calculate_daily_reward,
    liquidity_share,
    time_boost,
    resolve_daily_budget,
    program_apr,
)
