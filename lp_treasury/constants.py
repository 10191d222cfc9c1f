"""
유동성 마이닝 트레저리 상수 정의

온체인 수준 정밀도와 보상 계산을 위한 상수들:
- Q128: fee growth 인코딩에 사용 (2^128)
- UINT256 / UINT128: 온체인 정수 폭 (랩어라운드 경계)
- TICK_SPACINGS: 각 수수료 티어별 틱 간격 (full-range 판별에 사용)
- 캐시 TTL 클래스, 트레저리 기본값, 가격 폴백 상수
"""

from typing import Dict

# Fixed-point 인코딩 상수
Q128: int = 2 ** 128
Q256: int = 2 ** 256

# 온체인 정수 폭
UINT256_MAX: int = 2 ** 256 - 1
UINT128_MAX: int = 2 ** 128 - 1

# 틱 범위 상수
MIN_TICK: int = -887272
MAX_TICK: int = 887272

# 각 수수료 티어별 틱 간격
TICK_SPACINGS: Dict[int, int] = {
    100: 1,
    500: 10,
    3000: 60,
    10000: 200,
}

# 가장 넓은 틱 간격 - 간격 정보가 없을 때 full-range 판별 허용 오차
MAX_TICK_SPACING: int = max(TICK_SPACINGS.values())

SECONDS_PER_DAY: int = 86400

# 캐시 TTL 클래스 (초)
PRICE_TTL: float = 15.0       # 시장 가격
POOL_TTL: float = 30.0        # 풀 상태 / TVL 통계
ANALYTICS_TTL: float = 60.0   # 파생 APR / 분석 값

# 캐시 최대 엔트리 수 (활성 포지션 수에 비례하도록 키를 설계)
DEFAULT_CACHE_MAX_ENTRIES: int = 10_000

# 가격 오라클
PRICE_REFRESH_INTERVAL: float = 30.0
PRICE_MAX_CHANGE: float = 0.5          # 업데이트당 최대 50% 변동 (circuit breaker)
REWARD_TOKEN_FALLBACK_PRICE: float = 0.01602

# 트레저리 기본값 (설정이 없거나 잘못된 경우)
DEFAULT_TOTAL_ALLOCATION: float = 1_500_000.0
DEFAULT_PROGRAM_DURATION_DAYS: int = 90
DEFAULT_LOCK_PERIOD_DAYS: int = 7
DEFAULT_MINIMUM_POSITION_VALUE: float = 10.0
DEFAULT_TIME_BOOST_COEFFICIENT: float = 0.6   # b_time
DEFAULT_FULL_RANGE_BONUS: float = 1.2         # FRB
DEFAULT_IN_RANGE_MULTIPLIER: float = 0.5      # 샘플링 이력이 없는 집중 포지션의 IRM

# In-range 샘플링: 15분 간격, 24시간 윈도우
RANGE_SAMPLE_INTERVAL: float = 15 * 60.0
RANGE_SAMPLE_WINDOW: int = 96

# 보상 재계산 주기 (초)
REWARD_CYCLE_INTERVAL: float = 60 * 60.0
