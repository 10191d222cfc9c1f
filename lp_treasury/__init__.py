"""
Liquidity-Mining Treasury Core

기록된 유동성 포지션의 미수령 거래 수수료를 온체인 수준 정밀도로 계산하고,
비례 분배 공식으로 일일 / 누적 인센티브 보상을 산출하는 라이브러리.
"""

__version__ = "0.1.0"

from .constants import Q128, UINT256_MAX, UINT128_MAX, TICK_SPACINGS
from .errors import TreasuryError, DataUnavailable, NotFound, InvalidConfiguration
