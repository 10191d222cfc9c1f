"""
풀 수수료 회계

포지션 체크포인트와 풀 상태 스냅샷으로 미수령 거래 수수료를 계산한다.
계산 자체는 순수 함수(math.fee_math)이며, 이 모듈은 풀 상태 읽기의
엔드포인트 순차 폴백과 캐싱, USD 환산을 담당한다.
"""

import logging
from typing import List, Optional, Sequence

from ..constants import POOL_TTL
from ..data.readers import PoolStateReader
from ..data.types import PoolState, Position
from ..errors import DataUnavailable, ReadError
from ..math.fee_math import (
    FeeCalculationResult,
    calculate_uncollected_fees_both_tokens,
    to_token_amount,
)
from .cache import DataCache
from .price_oracle import PriceOracle

logger = logging.getLogger(__name__)


class PoolFeeAccountant:
    """미수령 수수료 계산기

    사용법:
        accountant = PoolFeeAccountant([rpc_reader, backup_reader], cache=cache)
        result = accountant.unclaimed_fees_for(position)
        print(result.uncollected_fees_0, result.uncollected_fees_1)
    """

    def __init__(
        self,
        readers: Sequence[PoolStateReader] = (),
        cache: Optional[DataCache] = None,
        ttl: float = POOL_TTL
    ):
        """
        Args:
            readers: 우선순위 순서의 풀 상태 리더 목록
            cache: 풀 상태 캐시 (선택)
            ttl: 풀 상태 캐시 TTL (초)
        """
        self.readers: List[PoolStateReader] = list(readers)
        self.cache = cache
        self.ttl = ttl

    @staticmethod
    def unclaimed_fees(position: Position, pool_state: PoolState) -> FeeCalculationResult:
        """포지션의 미수령 수수료 (순수 계산)

        Args:
            position: 포지션 스냅샷 (체크포인트, tokensOwed 포함)
            pool_state: 경계 틱의 outside 값을 포함한 풀 상태

        Returns:
            FeeCalculationResult (토큰 최소 단위)
        """
        return calculate_uncollected_fees_both_tokens(
            liquidity=position.liquidity,
            tick_lower=position.tick_lower,
            tick_upper=position.tick_upper,
            current_tick=pool_state.current_tick,
            fee_growth_global_0=pool_state.fee_growth_global_0_x128,
            fee_growth_global_1=pool_state.fee_growth_global_1_x128,
            fee_growth_outside_lower_0=pool_state.fee_growth_outside_lower_0_x128,
            fee_growth_outside_lower_1=pool_state.fee_growth_outside_lower_1_x128,
            fee_growth_outside_upper_0=pool_state.fee_growth_outside_upper_0_x128,
            fee_growth_outside_upper_1=pool_state.fee_growth_outside_upper_1_x128,
            fee_growth_inside_last_0=position.fee_growth_inside_0_last_x128,
            fee_growth_inside_last_1=position.fee_growth_inside_1_last_x128,
            tokens_owed_0=position.tokens_owed_0,
            tokens_owed_1=position.tokens_owed_1,
        )

    def fetch_pool_state(self, position: Position) -> PoolState:
        """포지션 경계 틱에 대한 풀 상태 조회

        리더를 순서대로 시도하고, 모두 실패하면 DataUnavailable.
        실패를 0 수수료로 바꾸지 않는다.

        Raises:
            DataUnavailable: 모든 리더가 실패한 경우
        """
        key = ("pool_state", position.pool_id, position.tick_lower, position.tick_upper)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        if not self.readers:
            raise DataUnavailable("설정된 풀 상태 리더가 없습니다")

        errors = []
        for reader in self.readers:
            try:
                state = reader.read_pool_state(position.pool_id, position.tick_lower, position.tick_upper)
            except ReadError as e:
                logger.warning("풀 상태 읽기 실패 (%s): %s - 다음 리더 시도", reader.name, e)
                errors.append(f"{reader.name}: {e}")
                continue

            if self.cache is not None:
                self.cache.set(key, state, self.ttl)
            return state

        raise DataUnavailable(
            f"모든 풀 상태 리더 실패 (pool={position.pool_id}): " + "; ".join(errors)
        )

    def current_tick(self, position: Position) -> int:
        """포지션 풀의 현재 틱 (캐시된 풀 상태 사용)"""
        return self.fetch_pool_state(position).current_tick

    def unclaimed_fees_for(self, position: Position) -> FeeCalculationResult:
        """풀 상태 조회 + 미수령 수수료 계산

        Raises:
            DataUnavailable: 풀 상태를 읽을 수 없는 경우
        """
        return self.unclaimed_fees(position, self.fetch_pool_state(position))

    @staticmethod
    def usd_value(
        result: FeeCalculationResult,
        token0_oracle: PriceOracle,
        token1_oracle: PriceOracle,
        decimals_0: int = 18,
        decimals_1: int = 18
    ) -> float:
        """미수령 수수료의 USD 가치 (원시 수량과 분리된 선택 단계)"""
        return (
            to_token_amount(result.uncollected_fees_0, decimals_0) * token0_oracle.current_price()
            + to_token_amount(result.uncollected_fees_1, decimals_1) * token1_oracle.current_price()
        )

