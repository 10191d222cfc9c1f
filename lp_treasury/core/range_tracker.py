"""
In-range 샘플링

집중 유동성 포지션이 현재 틱을 범위 안에 두는 시간 비율을 추적한다.
보상의 in-range 배수(IRM)는 최근 윈도우(기본 15분 간격 × 96 = 24시간)의
in-range 샘플 비율이다.
"""

import threading
from collections import deque
from datetime import datetime
from typing import Deque, Dict, Optional, Tuple

from ..constants import RANGE_SAMPLE_WINDOW
from ..data.types import Position, utcnow
from ..math.tick_math import is_in_range


class RangeTracker:
    """포지션별 in-range 샘플 윈도우

    사용법:
        tracker = RangeTracker()
        tracker.observe(position, current_tick)
        irm = tracker.in_range_fraction(position.position_id)  # 샘플이 없으면 None
    """

    def __init__(self, window: int = RANGE_SAMPLE_WINDOW):
        if window <= 0:
            raise ValueError(f"윈도우 크기는 양수여야 합니다: {window}")
        self.window = window
        self._lock = threading.Lock()
        self._samples: Dict[str, Deque[Tuple[datetime, bool]]] = {}

    def observe(self, position: Position, current_tick: int, at: Optional[datetime] = None) -> bool:
        """현재 틱 샘플 기록, in-range 여부 반환"""
        in_range = is_in_range(position.tick_lower, position.tick_upper, current_tick)
        with self._lock:
            samples = self._samples.get(position.position_id)
            if samples is None:
                samples = self._samples[position.position_id] = deque(maxlen=self.window)
            samples.append((at or utcnow(), in_range))
        return in_range

    def in_range_fraction(self, position_id: str) -> Optional[float]:
        with self._lock:
            samples = self._samples.get(position_id)
            if not samples:
                return None
            return sum(1 for _, hit in samples if hit) / len(samples)

    def sample_count(self, position_id: str) -> int:
        with self._lock:
            return len(self._samples.get(position_id, ()))

    def forget(self, position_id: str) -> None:
        with self._lock:
            self._samples.pop(position_id, None)
