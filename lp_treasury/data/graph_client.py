"""
The Graph 풀 상태 리더

Uniswap V3 subgraph에서 수수료 계산용 풀 상태를 조회하는 클라이언트.
RPC 엔드포인트가 모두 실패했을 때 순서상 마지막 중복 읽기 경로로 사용한다.
"""

import logging
import os
import time
from typing import Any, Dict, Optional

import requests

from ..errors import ReadError
from . import queries
from .readers import PoolStateReader
from .types import PoolState

logger = logging.getLogger(__name__)


class GraphClientError(ReadError):
    """Graph API 오류"""
    pass


class SubgraphPoolStateReader(PoolStateReader):
    """The Graph API 기반 풀 상태 리더

    사용법:
        reader = SubgraphPoolStateReader(endpoint="https://gateway.thegraph.com/api/<key>/subgraphs/id/<id>")
        state = reader.read_pool_state("0x...", tick_lower, tick_upper)
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        """
        Args:
            endpoint: subgraph GraphQL 엔드포인트. None이면 SUBGRAPH_URL 환경변수에서 로드
            timeout: 요청 타임아웃 (초)
            max_retries: 최대 재시도 횟수
            retry_delay: 재시도 간 기본 대기 (초)
        """
        self.endpoint = endpoint or os.getenv("SUBGRAPH_URL", "")
        if not self.endpoint:
            raise GraphClientError(
                "subgraph 엔드포인트가 필요합니다. SUBGRAPH_URL 환경변수를 설정하거나 "
                "endpoint 파라미터로 전달하세요."
            )
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.name = "subgraph"
        self._session = requests.Session()

    def _execute_query(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """GraphQL 쿼리 실행

        Args:
            query: GraphQL 쿼리 문자열
            variables: 쿼리 변수

        Returns:
            쿼리 결과 데이터

        Raises:
            GraphClientError: API 오류 발생 시
        """
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        last_error: Optional[GraphClientError] = None
        for attempt in range(self.max_retries):
            try:
                response = self._session.post(
                    self.endpoint,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                    timeout=self.timeout
                )
                response.raise_for_status()
                data = response.json()

                if "errors" in data:
                    error_messages = [e.get("message", str(e)) for e in data["errors"]]
                    raise GraphClientError(f"GraphQL 오류: {'; '.join(error_messages)}")

                if "data" not in data:
                    raise GraphClientError("응답에 'data' 필드가 없습니다")

                return data["data"]

            except GraphClientError as e:
                last_error = e
            except requests.exceptions.Timeout:
                last_error = GraphClientError(f"요청 타임아웃 ({self.timeout}초)")
            except requests.exceptions.RequestException as e:
                last_error = GraphClientError(f"네트워크 오류: {e}")
            except ValueError as e:
                last_error = GraphClientError(f"응답을 해석할 수 없습니다: {e}")

            if attempt < self.max_retries - 1:
                time.sleep(self.retry_delay * (attempt + 1))  # 선형 백오프

        raise last_error

    def read_pool_state(self, pool_id: str, tick_lower: int, tick_upper: int) -> PoolState:
        """수수료 계산에 필요한 풀 상태 조회

        백서 Section 6.3, 6.4 기반 수수료 계산을 위한 변수:
        - Global: f_g,0, f_g,1, i_c
        - Lower tick: f_o,0(i_l), f_o,1(i_l)
        - Upper tick: f_o,0(i_u), f_o,1(i_u)

        초기화되지 않은 틱은 subgraph에 없으므로 outside 값을 0으로 본다.
        """
        pool_id = pool_id.lower()
        data = self._execute_query(queries.POOL_STATE_QUERY, {"id": pool_id})
        pool = data.get("pool")
        if not pool:
            raise GraphClientError(f"Pool을 찾을 수 없습니다: {pool_id}")

        ticks_data = self._execute_query(
            queries.TICKS_BY_IDX_QUERY,
            {
                "pool": pool_id,
                "tickIdxs": [str(tick_lower), str(tick_upper)]
            }
        ).get("ticks", [])
        ticks_by_idx = {int(t["tickIdx"]): t for t in ticks_data}

        def outside(tick_idx: int, token: int) -> int:
            tick = ticks_by_idx.get(tick_idx)
            if not tick:
                return 0
            return int(tick.get(f"feeGrowthOutside{token}X128", 0))

        block = (data.get("_meta") or {}).get("block") or {}

        try:
            return PoolState(
                current_tick=int(pool["tick"]),
                fee_growth_global_0_x128=int(pool.get("feeGrowthGlobal0X128", 0)),
                fee_growth_global_1_x128=int(pool.get("feeGrowthGlobal1X128", 0)),
                fee_growth_outside_lower_0_x128=outside(tick_lower, 0),
                fee_growth_outside_lower_1_x128=outside(tick_lower, 1),
                fee_growth_outside_upper_0_x128=outside(tick_upper, 0),
                fee_growth_outside_upper_1_x128=outside(tick_upper, 1),
                sqrt_price_x96=int(pool["sqrtPrice"]) if pool.get("sqrtPrice") else None,
                block_number=int(block["number"]) if block.get("number") else None,
                source=self.name,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise GraphClientError(f"풀 상태 응답이 올바르지 않습니다: {e}") from e
