"""
외부 협력자 경계 (추상 인터페이스)

코어는 이 인터페이스를 통해서만 원시 상태를 읽는다. 구현은 외부 협력자
(RPC 노드, subgraph, 데이터베이스)의 몫이며, 단일 읽기 실패는 ReadError /
PriceFeedError로 보고하고 재시도/폴백 정책은 코어가 결정한다.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from .types import LedgerEntry, PoolState, Position, RewardRecord


class PoolStateReader(ABC):
    """풀 상태 리더

    주어진 풀과 포지션 경계 틱에 대해
    (currentTick, feeGrowthGlobal0/1, feeGrowthOutsideLower0/1, feeGrowthOutsideUpper0/1) 반환.
    """

    name: str = "pool-state-reader"

    @abstractmethod
    def read_pool_state(self, pool_id: str, tick_lower: int, tick_upper: int) -> PoolState:
        """Raises: ReadError"""


class PositionReader(ABC):
    """저장된 포지션 레코드 조회"""

    @abstractmethod
    def get_position(self, position_id: str) -> Optional[Position]:
        """없으면 None"""

    @abstractmethod
    def list_positions(self) -> List[Position]:
        """재계산 대상 전체 포지션"""


class ConfigStore(ABC):
    """트레저리 / 프로그램 설정 저장소"""

    @abstractmethod
    def load_config(self) -> Optional[dict]:
        """현재 설정 스냅샷 (없으면 None)"""


class LiquidityLedger(ABC):
    """활성 포지션과 현재 USD 가치 목록 (PoolAnalytics 입력)"""

    @abstractmethod
    def active_entries(self) -> Iterable[LedgerEntry]:
        """Raises: ReadError"""


class RewardStore(ABC):
    """RewardRecord 저장소 - 레코드는 삭제하지 않는다"""

    @abstractmethod
    def get(self, position_id: str) -> Optional[RewardRecord]:
        pass

    @abstractmethod
    def save(self, record: RewardRecord) -> None:
        pass

    @abstractmethod
    def all(self) -> List[RewardRecord]:
        pass
