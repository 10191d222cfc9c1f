"""인메모리 저장소 / 스냅샷 로더 테스트"""

import json

import pytest

from ..data.memory import InMemoryRewardStore, load_snapshot
from ..data.types import RewardRecord
from ..errors import InvalidConfiguration


def test_load_snapshot(tmp_path):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps({
        "config": {"totalAllocation": 450000, "programDurationDays": 90},
        "positions": [
            {"id": "1", "owner": "0xA", "pool": "0xpool", "tickLower": -600, "tickUpper": 600,
             "liquidity": "1000", "currentValueUSD": 250.0, "createdAt": "2025-01-01T00:00:00Z"},
            {"id": "2", "owner": "0xB", "pool": "0xpool", "tickLower": -600, "tickUpper": 600,
             "liquidity": "0", "isActive": False, "createdAt": "2025-01-01T00:00:00Z"},
        ],
        "rewards": [
            {"positionId": "1", "accumulated": 12.5, "lastCalculatedAt": "2025-01-05T00:00:00Z"},
        ],
    }))

    snapshot = load_snapshot(path)
    assert snapshot.positions.get_position("1").current_value_usd == 250.0
    assert [e.position_id for e in snapshot.positions.active_entries()] == ["1"]
    assert snapshot.config.load_config()["totalAllocation"] == 450000
    assert snapshot.rewards.get("1").accumulated == 12.5


def test_missing_file_gives_empty_stores(tmp_path):
    snapshot = load_snapshot(tmp_path / "missing.json")
    assert snapshot.positions.list_positions() == []
    assert snapshot.config.load_config() is None


def test_malformed_file(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"positions": [{"id": "1"}]}))
    with pytest.raises(InvalidConfiguration):
        load_snapshot(path)


def test_reward_store_copies():
    """저장소 밖에서 레코드를 바꿔도 저장된 값은 그대로"""
    store = InMemoryRewardStore()
    record = RewardRecord(position_id="1", accumulated=5.0)
    store.save(record)
    record.accumulated = 99.0
    fetched = store.get("1")
    fetched.accumulated = 42.0
    assert store.get("1").accumulated == 5.0
