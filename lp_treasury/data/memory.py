"""
인메모리 협력자 구현

데이터베이스 없이 코어를 구동하기 위한 저장소들. JSON 스냅샷 파일에서
포지션 / 설정 / 보상 기록을 읽어 채울 수 있다.

스냅샷 형식:
    {
      "config": {"totalAllocation": 1500000, "programDurationDays": 90, ...},
      "positions": [{"id": "1", "tickLower": -887220, ...}, ...],
      "rewards": [{"positionId": "1", "accumulated": 10.0, ...}, ...]
    }
"""

import json
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional, Union

from ..errors import InvalidConfiguration
from .readers import ConfigStore, LiquidityLedger, PositionReader, RewardStore
from .types import LedgerEntry, Position, RewardRecord, parse_timestamp

logger = logging.getLogger(__name__)


class InMemoryPositionStore(PositionReader, LiquidityLedger):
    """포지션 저장소 + 유동성 원장

    원장 항목은 저장된 포지션의 현재 USD 가치에서 만든다.
    """

    def __init__(self, positions: Optional[Iterable[Position]] = None):
        self._lock = threading.Lock()
        self._positions: Dict[str, Position] = {}
        for position in positions or []:
            self._positions[position.position_id] = position

    def upsert(self, position: Position) -> None:
        with self._lock:
            self._positions[position.position_id] = position

    def get_position(self, position_id: str) -> Optional[Position]:
        with self._lock:
            return self._positions.get(str(position_id))

    def list_positions(self) -> List[Position]:
        with self._lock:
            return list(self._positions.values())

    def active_entries(self) -> List[LedgerEntry]:
        return [
            LedgerEntry.from_position(p)
            for p in self.list_positions()
            if p.is_active
        ]


class InMemoryConfigStore(ConfigStore):
    """설정 딕셔너리를 그대로 돌려주는 저장소"""

    def __init__(self, config: Optional[dict] = None):
        self._config = dict(config) if config else None

    def update(self, config: Optional[dict]) -> None:
        self._config = dict(config) if config else None

    def load_config(self) -> Optional[dict]:
        return dict(self._config) if self._config else None


class InMemoryRewardStore(RewardStore):
    """RewardRecord 저장소

    저장/조회 시 복사본을 주고받아 호출자가 내부 상태를 직접 바꾸지 못한다.
    """

    def __init__(self, records: Optional[Iterable[RewardRecord]] = None):
        self._lock = threading.Lock()
        self._records: Dict[str, RewardRecord] = {}
        for record in records or []:
            self._records[record.position_id] = record.copy()

    def get(self, position_id: str) -> Optional[RewardRecord]:
        with self._lock:
            record = self._records.get(position_id)
            return record.copy() if record else None

    def save(self, record: RewardRecord) -> None:
        with self._lock:
            self._records[record.position_id] = record.copy()

    def all(self) -> List[RewardRecord]:
        with self._lock:
            return [r.copy() for r in self._records.values()]


def reward_record_from_dict(data: dict) -> RewardRecord:
    last = data.get("lastCalculatedAt")
    return RewardRecord(
        position_id=str(data["positionId"]),
        daily_reward=float(data.get("dailyReward", 0) or 0),
        accumulated=float(data.get("accumulated", 0) or 0),
        claimed=float(data.get("claimed", 0) or 0),
        last_calculated_at=parse_timestamp(last) if last else None,
        claim_eligible=bool(data.get("claimEligible", False)),
        days_active=int(data.get("daysActive", 0) or 0),
    )


class Snapshot(NamedTuple):
    """스냅샷 파일에서 만든 저장소 묶음"""
    positions: InMemoryPositionStore
    config: InMemoryConfigStore
    rewards: InMemoryRewardStore


def load_snapshot(path: Union[str, Path, None]) -> Snapshot:
    """JSON 스냅샷 파일을 인메모리 저장소로 로드

    경로가 없거나 파일이 없으면 빈 저장소를 반환한다.

    Raises:
        InvalidConfiguration: 파일 형식이 잘못된 경우
    """
    if not path or not Path(path).exists():
        if path:
            logger.warning("스냅샷 파일이 없습니다: %s - 빈 저장소로 시작합니다", path)
        return Snapshot(InMemoryPositionStore(), InMemoryConfigStore(), InMemoryRewardStore())

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        positions = [Position.from_dict(p) for p in data.get("positions", [])]
        rewards = [reward_record_from_dict(r) for r in data.get("rewards", [])]
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise InvalidConfiguration(f"스냅샷 파일을 읽을 수 없습니다 ({path}): {e}") from e

    logger.info("스냅샷 로드: 포지션 %d개, 보상 기록 %d개", len(positions), len(rewards))
    return Snapshot(
        positions=InMemoryPositionStore(positions),
        config=InMemoryConfigStore(data.get("config")),
        rewards=InMemoryRewardStore(rewards),
    )
