"""
Reward Math - 비례 분배 보상 공식

트레저리의 일일 예산을 유동성 점유율, 시간 부스트, in-range 배수,
full-range 보너스로 나누어 배분한다.

핵심 공식:
    R_u = (L_u / L_T) × (1 + min(D_u / P, 1) × b_time) × IRM × FRB × R_daily

    L_u: 포지션 USD 가치          L_T: 전체 활성 유동성 (USD)
    D_u: 활동 일수 (정수)          P: 프로그램 기간 (일)
    b_time: 시간 부스트 계수       R_daily: 일일 예산

모든 계수는 음수가 되지 않도록 0으로 클램프되며, 예외를 던지지 않는다.
"""

from datetime import datetime
from typing import Optional

from ..constants import SECONDS_PER_DAY


def whole_days_between(start: datetime, end: datetime) -> int:
    """두 시점 사이의 경과 일수 (내림, 음수는 0)"""
    seconds = (end - start).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // SECONDS_PER_DAY)


def clamp(value: float, low: float = 0.0, high: Optional[float] = None) -> float:
    """value를 [low, high] 범위로 제한 (NaN은 low로 취급)"""
    if value != value:
        return low
    if value < low:
        return low
    if high is not None and value > high:
        return high
    return value


def liquidity_share(position_value: float, total_value: float) -> float:
    """유동성 점유율 L_u / L_T

    전체가 0 이하이면 0 (0으로 나누기 방지), 결과는 [0, 1]로 클램프.
    """
    if total_value <= 0 or position_value <= 0:
        return 0.0
    return clamp(position_value / total_value, 0.0, 1.0)


def time_boost(days_active: int, program_duration_days: int, b_time: float) -> float:
    """시간 로열티 부스트

    1.0에서 시작해 프로그램 기간에 도달하면 1 + b_time에서 멈춘다.

    Args:
        days_active: 활동 일수
        program_duration_days: 프로그램 기간 (일)
        b_time: 시간 부스트 계수

    Returns:
        시간 부스트 (>= 1.0)
    """
    if program_duration_days <= 0:
        return 1.0
    progress = clamp(days_active / program_duration_days, 0.0, 1.0)
    return 1.0 + progress * clamp(b_time)


def resolve_daily_budget(
    daily_budget: Optional[float],
    total_allocation: float,
    program_duration_days: int
) -> float:
    """일일 예산 결정

    명시적 일일 예산이 있으면 사용하고, 없으면 총 할당량 / 프로그램 기간.
    """
    if daily_budget is not None and daily_budget > 0:
        return float(daily_budget)
    if program_duration_days <= 0:
        return 0.0
    return clamp(total_allocation / program_duration_days)


def calculate_daily_reward(
    share: float,
    days_active: int,
    program_duration_days: int,
    b_time: float,
    in_range_multiplier: float,
    full_range_bonus: float,
    daily_budget: float
) -> float:
    """포지션의 일일 보상 R_u

    Returns:
        일일 보상 (보상 토큰 단위, >= 0)
    """
    reward = (
        clamp(share, 0.0, 1.0)
        * time_boost(days_active, program_duration_days, b_time)
        * clamp(in_range_multiplier, 0.0, 1.0)
        * clamp(full_range_bonus)
        * clamp(daily_budget)
    )
    return clamp(reward)


def program_apr(daily_budget: float, reward_token_price: float, total_liquidity_usd: float) -> float:
    """프로그램 기본 APR (%)

    APR = 일일 예산 × 토큰 가격 × 365 / 전체 유동성 × 100
    """
    if total_liquidity_usd <= 0:
        return 0.0
    return clamp(daily_budget * reward_token_price * 365 / total_liquidity_usd * 100)
