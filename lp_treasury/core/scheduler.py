"""
보상 재계산 스케줄러

백그라운드 스레드에서 두 가지 주기 작업을 실행한다:
- in-range 샘플링 (기본 15분): 집중 포지션의 현재 틱이 범위 안인지 기록
- 보상 주기 (기본 1시간): 유동성 집계 갱신 후 전체 포지션 재계산

주기 하나가 실패해도 기록만 하고 스레드는 계속 돈다.
"""

import logging
import threading
import time
from datetime import datetime
from typing import Any, Dict, Optional

from ..constants import RANGE_SAMPLE_INTERVAL, REWARD_CYCLE_INTERVAL
from ..data.types import utcnow
from ..errors import TreasuryError
from .fee_accountant import PoolFeeAccountant
from .range_tracker import RangeTracker
from .reward_engine import BatchResult, RewardEngine

logger = logging.getLogger(__name__)


class RewardScheduler:
    """보상 주기 스케줄러

    사용법:
        scheduler = RewardScheduler(engine, accountant, tracker)
        scheduler.start()        # 즉시 한 번 실행 후 주기 반복
        scheduler.stop()
    """

    def __init__(
        self,
        engine: RewardEngine,
        accountant: Optional[PoolFeeAccountant] = None,
        range_tracker: Optional[RangeTracker] = None,
        interval: float = REWARD_CYCLE_INTERVAL,
        sample_interval: float = RANGE_SAMPLE_INTERVAL
    ):
        """
        Args:
            engine: 보상 엔진
            accountant: 현재 틱 조회용 (없으면 샘플링 생략)
            range_tracker: in-range 샘플 저장소 (없으면 샘플링 생략)
            interval: 보상 주기 (초)
            sample_interval: in-range 샘플링 주기 (초)
        """
        self.engine = engine
        self.accountant = accountant
        self.range_tracker = range_tracker
        self.interval = interval
        self.sample_interval = sample_interval

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._cycle_lock = threading.Lock()
        self._last_run: Optional[datetime] = None
        self._last_result: Optional[BatchResult] = None
        self._last_error: Optional[str] = None
        self._cycles = 0

    def sample_ranges(self, at: Optional[datetime] = None) -> int:
        """활성 집중 포지션의 in-range 샘플 기록, 기록한 개수 반환"""
        if self.accountant is None or self.range_tracker is None:
            return 0

        at = at or utcnow()
        sampled = 0
        for position in self.engine.positions.list_positions():
            if not position.is_active or position.covers_full_range:
                continue
            try:
                tick = self.accountant.current_tick(position)
            except TreasuryError as e:
                logger.warning("in-range 샘플링 실패 (%s): %s", position.position_id, e)
                continue
            self.range_tracker.observe(position, tick, at)
            sampled += 1
        return sampled

    def run_once(self, now: Optional[datetime] = None) -> Optional[BatchResult]:
        """보상 주기 한 번 실행 (테스트 / 수동 트리거)"""
        with self._cycle_lock:
            now = now or utcnow()
            try:
                result = self.engine.recalculate_all(now, cancel=self._stop_event)
            except TreasuryError as e:
                self._last_error = str(e)
                logger.error("보상 주기 실패: %s", e)
                return None
            self._last_run = now
            self._last_result = result
            self._last_error = None
            self._cycles += 1
            return result

    def start(self) -> bool:
        if self._thread and self._thread.is_alive():
            return True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="reward-scheduler", daemon=True)
        self._thread.start()
        logger.info(
            "보상 스케줄러 시작 (주기 %.0f초, 샘플링 %.0f초)", self.interval, self.sample_interval
        )
        return True

    def stop(self) -> None:
        if not self._thread:
            return
        self._stop_event.set()
        self._thread.join(timeout=10)
        self._thread = None
        self._stop_event.clear()
        logger.info("보상 스케줄러 중지")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "interval": self.interval,
            "cycles": self._cycles,
            "last_run": self._last_run.isoformat() if self._last_run else None,
            "last_result": self._last_result,
            "last_error": self._last_error,
        }

    def _run_loop(self) -> None:
        next_sample = next_cycle = time.monotonic()
        while not self._stop_event.is_set():
            now = time.monotonic()
            if now >= next_sample:
                try:
                    self.sample_ranges()
                except (TreasuryError, OSError, ValueError, TypeError, RuntimeError, LookupError) as e:
                    logger.error("in-range 샘플링 반복 실패: %s", e)
                next_sample = now + self.sample_interval
            if now >= next_cycle:
                try:
                    self.run_once()
                except (OSError, ValueError, TypeError, RuntimeError, LookupError) as e:
                    logger.error("보상 주기 반복 실패: %s", e)
                next_cycle = now + self.interval

            wait_for = max(0.0, min(next_sample, next_cycle) - time.monotonic())
            if self._stop_event.wait(wait_for):
                break
