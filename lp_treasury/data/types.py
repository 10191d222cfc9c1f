"""
트레저리 데이터 타입 정의

외부 협력자(포지션 저장소, 풀 상태 리더, 설정 저장소)가 넘겨주는 스냅샷을
Python dataclass로 정의. 온체인 수치 필드는 정밀도를 위해 모두 int 타입 사용.
"""

import logging
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any, Dict, Hashable, List, Optional

from ..constants import (
    DEFAULT_TOTAL_ALLOCATION,
    DEFAULT_PROGRAM_DURATION_DAYS,
    DEFAULT_LOCK_PERIOD_DAYS,
    DEFAULT_MINIMUM_POSITION_VALUE,
    DEFAULT_TIME_BOOST_COEFFICIENT,
    DEFAULT_FULL_RANGE_BONUS,
    DEFAULT_IN_RANGE_MULTIPLIER,
    REWARD_TOKEN_FALLBACK_PRICE,
    TICK_SPACINGS,
)
from ..errors import InvalidConfiguration
from ..math.uint_math import to_uint128, to_uint256
from ..math.tick_math import is_full_range

logger = logging.getLogger(__name__)


def parse_timestamp(value: Any) -> datetime:
    """ISO 문자열 / Unix timestamp / datetime을 UTC datetime으로 변환"""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"timestamp 형식을 해석할 수 없습니다: {value!r}")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Position:
    """기록된 유동성 포지션 (Position-Indexed State + 프로그램 메타데이터)

    - liquidity: 포지션의 유동성 (l), uint128
    - feeGrowthInside0/1LastX128: 마지막 동기화 시점의 체크포인트 (f_r(t_0)), uint256
    - tokensOwed0/1: 이미 적립된 미수령 수수료
    - current_value_usd: 원장이 계산한 현재 USD 가치
    """
    position_id: str
    owner: str
    pool_id: str
    tick_lower: int  # i_l
    tick_upper: int  # i_u
    liquidity: int  # l
    fee_growth_inside_0_last_x128: int = 0  # f_r,0(t_0)
    fee_growth_inside_1_last_x128: int = 0  # f_r,1(t_0)
    tokens_owed_0: int = 0
    tokens_owed_1: int = 0
    current_value_usd: float = 0.0
    is_active: bool = True
    is_full_range: bool = False
    reward_eligible: bool = True
    fee_tier: Optional[int] = None
    created_at: datetime = field(default_factory=utcnow)
    liquidity_added_at: Optional[datetime] = None

    def __post_init__(self):
        # 체크포인트는 랩어라운드 값이므로 부호 있는 정수로 해석하지 않는다
        to_uint128(self.liquidity)
        to_uint256(self.fee_growth_inside_0_last_x128)
        to_uint256(self.fee_growth_inside_1_last_x128)
        to_uint128(self.tokens_owed_0)
        to_uint128(self.tokens_owed_1)
        if self.tick_lower >= self.tick_upper:
            raise ValueError(
                f"tick_lower는 tick_upper보다 작아야 합니다: {self.tick_lower} >= {self.tick_upper}"
            )

    @property
    def tick_spacing(self) -> Optional[int]:
        """알려진 수수료 티어의 틱 간격 (알 수 없으면 None)"""
        if self.fee_tier is None:
            return None
        return TICK_SPACINGS.get(self.fee_tier)

    @property
    def covers_full_range(self) -> bool:
        """명시적 플래그 또는 틱 경계로 full-range 판별"""
        return self.is_full_range or is_full_range(self.tick_lower, self.tick_upper, self.tick_spacing)

    @property
    def reward_baseline(self) -> datetime:
        """활동 일수 기준 시점 (유동성 추가 시점이 있으면 그것을 사용)"""
        return self.liquidity_added_at or self.created_at

    @classmethod
    def from_dict(cls, data: dict) -> "Position":
        added_at = data.get("liquidityAddedAt")
        fee_tier = data.get("feeTier")
        return cls(
            position_id=str(data["id"]),
            owner=str(data.get("owner", "")),
            pool_id=str(data.get("pool", {}).get("id", "")) if isinstance(data.get("pool"), dict) else str(data.get("pool", "")),
            tick_lower=int(data["tickLower"]),
            tick_upper=int(data["tickUpper"]),
            liquidity=int(data["liquidity"]),
            fee_growth_inside_0_last_x128=int(data.get("feeGrowthInside0LastX128", 0)),
            fee_growth_inside_1_last_x128=int(data.get("feeGrowthInside1LastX128", 0)),
            tokens_owed_0=int(data.get("tokensOwed0", 0)),
            tokens_owed_1=int(data.get("tokensOwed1", 0)),
            current_value_usd=float(data.get("currentValueUSD", 0) or 0),
            is_active=bool(data.get("isActive", True)),
            is_full_range=bool(data.get("isFullRange", False)),
            reward_eligible=bool(data.get("rewardEligible", True)),
            fee_tier=int(fee_tier) if fee_tier is not None else None,
            created_at=parse_timestamp(data["createdAt"]) if data.get("createdAt") else utcnow(),
            liquidity_added_at=parse_timestamp(added_at) if added_at else None,
        )


@dataclass(frozen=True)
class PoolState:
    """풀 상태 스냅샷 (Global State + 경계 틱의 Tick-Indexed State)

    - current_tick: 현재 틱 인덱스 (i_c)
    - feeGrowthGlobal0/1X128: 단위유동성당 누적수수료 (f_g), mod 2^256
    - feeGrowthOutside(lower/upper)0/1X128: 경계 틱의 outside 값 (f_o)
    """
    current_tick: int  # i_c
    fee_growth_global_0_x128: int  # f_g,0
    fee_growth_global_1_x128: int  # f_g,1
    fee_growth_outside_lower_0_x128: int  # f_o,0(i_l)
    fee_growth_outside_lower_1_x128: int  # f_o,1(i_l)
    fee_growth_outside_upper_0_x128: int  # f_o,0(i_u)
    fee_growth_outside_upper_1_x128: int  # f_o,1(i_u)
    sqrt_price_x96: Optional[int] = None
    block_number: Optional[int] = None
    source: str = ""

    def __post_init__(self):
        for name in (
            "fee_growth_global_0_x128",
            "fee_growth_global_1_x128",
            "fee_growth_outside_lower_0_x128",
            "fee_growth_outside_lower_1_x128",
            "fee_growth_outside_upper_0_x128",
            "fee_growth_outside_upper_1_x128",
        ):
            to_uint256(getattr(self, name))


@dataclass(frozen=True)
class TreasuryConfig:
    """트레저리 / 프로그램 설정 스냅샷 (읽기 전용)

    관리자 저장소에서 제공되며 계산 주기마다 한 번 읽는다.
    """
    total_allocation: float = DEFAULT_TOTAL_ALLOCATION
    program_duration_days: int = DEFAULT_PROGRAM_DURATION_DAYS
    daily_budget: Optional[float] = None
    lock_period_days: int = DEFAULT_LOCK_PERIOD_DAYS
    minimum_position_value: float = DEFAULT_MINIMUM_POSITION_VALUE
    time_boost_coefficient: float = DEFAULT_TIME_BOOST_COEFFICIENT  # b_time
    full_range_bonus: float = DEFAULT_FULL_RANGE_BONUS  # FRB
    default_in_range_multiplier: float = DEFAULT_IN_RANGE_MULTIPLIER
    reward_token_price_fallback: float = REWARD_TOKEN_FALLBACK_PRICE

    # 외부 키 → 필드 이름, 값 검증
    _FIELD_KEYS = {
        "totalAllocation": ("total_allocation", float, lambda v: v >= 0),
        "programDurationDays": ("program_duration_days", int, lambda v: v > 0),
        "dailyBudget": ("daily_budget", float, lambda v: v > 0),
        "lockPeriodDays": ("lock_period_days", int, lambda v: v >= 0),
        "minimumPositionValue": ("minimum_position_value", float, lambda v: v >= 0),
        "timeBoostCoefficient": ("time_boost_coefficient", float, lambda v: v >= 0),
        "fullRangeBonus": ("full_range_bonus", float, lambda v: v >= 0),
        "defaultInRangeMultiplier": ("default_in_range_multiplier", float, lambda v: 0 <= v <= 1),
        "rewardTokenPriceFallback": ("reward_token_price_fallback", float, lambda v: v > 0),
    }
    _REQUIRED = ("totalAllocation", "programDurationDays")

    @classmethod
    def from_dict(cls, data: Optional[dict], strict: bool = False) -> "TreasuryConfig":
        """설정 딕셔너리를 스냅샷으로 변환

        누락되거나 잘못된 필드는 문서화된 기본값으로 대체한다.

        Args:
            data: 설정 저장소의 원본 딕셔너리 (None이면 전부 기본값)
            strict: True면 문제를 InvalidConfiguration으로 올린다

        Raises:
            InvalidConfiguration: strict 모드에서 필드가 누락/잘못된 경우
        """
        problems: List[str] = []
        values: Dict[str, Any] = {}

        if not data:
            problems.append("설정이 없습니다")
            data = {}

        for key in cls._REQUIRED:
            if data and key not in data:
                problems.append(f"필수 필드 누락: {key}")

        for key, (name, cast, valid) in cls._FIELD_KEYS.items():
            raw = data.get(key)
            if raw is None:
                continue
            try:
                value = cast(raw)
            except (TypeError, ValueError):
                problems.append(f"{key} 값을 해석할 수 없습니다: {raw!r}")
                continue
            if not valid(value):
                problems.append(f"{key} 값이 허용 범위를 벗어났습니다: {value}")
                continue
            values[name] = value

        if problems:
            message = "; ".join(problems)
            if strict:
                raise InvalidConfiguration(message)
            logger.warning("InvalidConfiguration: %s - 기본값을 사용합니다", message)

        return cls(**values)

    def with_overrides(self, **changes) -> "TreasuryConfig":
        return replace(self, **changes)


@dataclass
class RewardRecord:
    """포지션별 보상 기록

    첫 계산 시 생성, 매 주기 갱신되며 포지션이 비활성화되어도 감사를 위해 삭제하지 않는다.
    """
    position_id: str
    daily_reward: float = 0.0
    accumulated: float = 0.0
    claimed: float = 0.0
    last_calculated_at: Optional[datetime] = None
    claim_eligible: bool = False
    days_active: int = 0

    def copy(self) -> "RewardRecord":
        return replace(self)

    def to_dict(self) -> dict:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        if self.last_calculated_at is not None:
            data["last_calculated_at"] = self.last_calculated_at.isoformat()
        return data


@dataclass(frozen=True)
class CacheEntry:
    """캐시 엔트리 (불변 - 교체로만 갱신)"""
    key: Hashable
    payload: Any
    stored_at: float
    ttl: float

    def age(self, now: float) -> float:
        return now - self.stored_at

    def is_fresh(self, now: float) -> bool:
        return self.age(now) <= self.ttl


@dataclass(frozen=True)
class LedgerEntry:
    """유동성 원장 항목 (PoolAnalytics 입력)"""
    position_id: str
    owner: str
    value_usd: float
    is_active: bool = True
    reward_eligible: bool = True

    @classmethod
    def from_position(cls, position: Position) -> "LedgerEntry":
        return cls(
            position_id=position.position_id,
            owner=position.owner,
            value_usd=position.current_value_usd,
            is_active=position.is_active,
            reward_eligible=position.reward_eligible,
        )
