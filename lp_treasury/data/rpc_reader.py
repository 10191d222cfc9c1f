"""
JSON-RPC 풀 상태 리더

EVM 노드에 eth_call을 배치로 보내 수수료 계산에 필요한 풀 상태를 읽는다.

필요한 읽기 (하나의 배치 요청):
- slot0()                 → sqrtPriceX96, tick (i_c)
- feeGrowthGlobal0X128()  → f_g,0
- feeGrowthGlobal1X128()  → f_g,1
- ticks(tickLower)        → f_o,0(i_l), f_o,1(i_l)
- ticks(tickUpper)        → f_o,0(i_u), f_o,1(i_u)

ABI 디코딩 규칙: 누산기는 uint256으로만 해석하고, 부호 해석은 int24 틱에만 적용한다.
"""

import logging
import time
from typing import Dict, List, Optional, Tuple

import requests

from ..constants import Q256
from ..errors import ReadError
from .readers import PoolStateReader
from .types import PoolState

logger = logging.getLogger(__name__)

ABI_WORD_HEX = 64            # 32 bytes × 2 hex chars
SIGN_BIT = 1 << 255          # int256 부호 비트

# 함수 셀렉터: keccak256(signature)의 앞 4바이트
SELECTORS: Dict[str, str] = {
    "slot0": "0x3850c7bd",                 # slot0()
    "feeGrowthGlobal0X128": "0xf3058399",  # feeGrowthGlobal0X128()
    "feeGrowthGlobal1X128": "0x46141319",  # feeGrowthGlobal1X128()
    "ticks": "0xf30dba93",                 # ticks(int24)
}


def encode_int24(value: int) -> str:
    """int24를 int256으로 부호 확장하여 32바이트 hex로 인코딩 (0x 없음)

    예: -887220 → 'fff…f2764c' (64자)
    """
    if value < 0:
        value = Q256 + value
    return format(value, f"0{ABI_WORD_HEX}x")


def decode_uint(hex_data: str, slot: int = 0) -> int:
    """ABI 응답의 slot번째 32바이트 워드를 uint256으로 디코딩"""
    start = slot * ABI_WORD_HEX
    word = hex_data[start:start + ABI_WORD_HEX]
    if len(word) != ABI_WORD_HEX:
        raise ReadError(f"ABI 응답이 너무 짧습니다 (slot {slot})")
    try:
        return int(word, 16)
    except ValueError as e:
        raise ReadError(f"ABI 응답을 해석할 수 없습니다 (slot {slot}): {word!r}") from e


def decode_int(hex_data: str, slot: int = 0) -> int:
    """ABI 응답의 slot번째 워드를 int256 (2의 보수)으로 디코딩"""
    value = decode_uint(hex_data, slot)
    if value >= SIGN_BIT:
        return value - Q256
    return value


class JsonRpcPoolStateReader(PoolStateReader):
    """단일 RPC 엔드포인트에 대한 풀 상태 리더

    사용법:
        reader = JsonRpcPoolStateReader("https://mainnet.base.org", pool_address="0x...")
        state = reader.read_pool_state("0x...", -887220, 887220)
    """

    def __init__(
        self,
        rpc_url: str,
        pool_address: Optional[str] = None,
        timeout: float = 20.0,
        max_retries: int = 1,
        retry_delay: float = 0.5
    ):
        """
        Args:
            rpc_url: JSON-RPC 엔드포인트 URL
            pool_address: 기본 풀 주소 (pool_id가 주소가 아닐 때 사용)
            timeout: HTTP 타임아웃 (초)
            max_retries: 엔드포인트당 시도 횟수
            retry_delay: 재시도 간 기본 대기 (초)
        """
        self.rpc_url = rpc_url
        self.pool_address = pool_address
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.name = f"rpc:{rpc_url}"
        self._session = requests.Session()

    def _resolve_address(self, pool_id: str) -> str:
        if pool_id and pool_id.lower().startswith("0x") and len(pool_id) == 42:
            return pool_id
        if self.pool_address:
            return self.pool_address
        raise ReadError(f"풀 주소를 결정할 수 없습니다: {pool_id}")

    def _eth_call_batch(self, calls: List[Tuple[str, str]]) -> List[str]:
        """eth_call 배치 실행

        Returns:
            호출 순서대로 정렬된 hex 결과 (0x 제거)

        Raises:
            ReadError: 네트워크 / RPC 오류, 빈 응답
        """
        payload = [
            {
                "jsonrpc": "2.0",
                "id": i + 1,
                "method": "eth_call",
                "params": [{"to": to, "data": data}, "latest"],
            }
            for i, (to, data) in enumerate(calls)
        ]

        last_error: Optional[ReadError] = None
        for attempt in range(self.max_retries):
            try:
                response = self._session.post(self.rpc_url, json=payload, timeout=self.timeout)
                response.raise_for_status()
                results = response.json()
                return self._unpack_batch(results, len(calls))
            except requests.exceptions.Timeout:
                last_error = ReadError(f"RPC 타임아웃 ({self.timeout}초): {self.rpc_url}")
            except requests.exceptions.RequestException as e:
                last_error = ReadError(f"RPC 네트워크 오류: {e}")
            except ValueError as e:
                last_error = ReadError(f"RPC 응답을 해석할 수 없습니다: {e}")
            except ReadError as e:
                last_error = e

            if attempt < self.max_retries - 1:
                time.sleep(self.retry_delay * (attempt + 1))

        raise last_error

    @staticmethod
    def _unpack_batch(results, expected: int) -> List[str]:
        if not isinstance(results, list):
            raise ReadError("RPC가 배치 요청을 지원하지 않습니다")
        if len(results) != expected:
            raise ReadError(f"배치 응답 개수 불일치: {len(results)} != {expected}")

        if not all(isinstance(item, dict) for item in results):
            raise ReadError("배치 응답 항목 형식이 잘못되었습니다")

        out = []
        for item in sorted(results, key=lambda r: r.get("id", 0)):
            if "error" in item:
                error = item["error"]
                message = error.get("message", error) if isinstance(error, dict) else error
                raise ReadError(f"RPC 오류: {message}")
            raw = item.get("result", "0x")
            if not isinstance(raw, str):
                raise ReadError(f"RPC 결과 형식이 잘못되었습니다: {raw!r}")
            if not raw or raw == "0x":
                raise ReadError("빈 응답 - 해당 주소에 컨트랙트가 없을 수 있습니다")
            out.append(raw[2:])
        return out

    def read_pool_state(self, pool_id: str, tick_lower: int, tick_upper: int) -> PoolState:
        address = self._resolve_address(pool_id)
        calls = [
            (address, SELECTORS["slot0"]),
            (address, SELECTORS["feeGrowthGlobal0X128"]),
            (address, SELECTORS["feeGrowthGlobal1X128"]),
            (address, SELECTORS["ticks"] + encode_int24(tick_lower)),
            (address, SELECTORS["ticks"] + encode_int24(tick_upper)),
        ]
        slot0, global_0, global_1, lower, upper = self._eth_call_batch(calls)

        # ticks(): liquidityGross, liquidityNet, feeGrowthOutside0X128, feeGrowthOutside1X128, ...
        state = PoolState(
            current_tick=decode_int(slot0, 1),
            fee_growth_global_0_x128=decode_uint(global_0),
            fee_growth_global_1_x128=decode_uint(global_1),
            fee_growth_outside_lower_0_x128=decode_uint(lower, 2),
            fee_growth_outside_lower_1_x128=decode_uint(lower, 3),
            fee_growth_outside_upper_0_x128=decode_uint(upper, 2),
            fee_growth_outside_upper_1_x128=decode_uint(upper, 3),
            sqrt_price_x96=decode_uint(slot0, 0),
            source=self.name,
        )
        logger.debug("풀 상태 조회 완료 (%s): tick=%s", self.name, state.current_tick)
        return state
