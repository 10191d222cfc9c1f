"""
가격 오라클

외부 가격 피드를 고정 주기(기본 30초)로 폴링하고, 비정상적인 급변을
circuit breaker로 걸러낸 뒤 마지막 정상 가격을 보관한다.

규칙:
- 첫 정상 가격이 기준값이 된다
- 마지막 정상 가격 대비 상대 변화가 max_change(기본 50%)를 넘으면 거부 (circuit breaker)
- 피드 실패 시 마지막 정상 가격 유지, 한 번도 성공하지 못했으면 폴백 상수
- current_price()는 블로킹 없이 즉시 반환하며 예외를 던지지 않는다
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from ..constants import (
    PRICE_MAX_CHANGE,
    PRICE_REFRESH_INTERVAL,
    PRICE_TTL,
    REWARD_TOKEN_FALLBACK_PRICE,
)
from ..data.price_feed import PriceFeed
from ..errors import PriceFeedError
from ..math.fee_math import to_token_amount
from .cache import DataCache

logger = logging.getLogger(__name__)


class PriceSource(str, Enum):
    """현재 가격의 출처"""
    LIVE = "live"
    LAST_GOOD = "last-good"
    CIRCUIT_BREAKER = "circuit-breaker"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class PriceInfo:
    """가격 + 메타데이터"""
    token_id: str
    price: float
    source: PriceSource
    last_update: Optional[datetime]
    seconds_since_update: Optional[float]
    is_stale: bool
    last_good_price: Optional[float]
    breaker_trips: int
    cached: bool


class PriceOracle:
    """단일 토큰 가격 오라클

    사용법:
        oracle = PriceOracle(CoinGeckoPriceFeed(), "kilt-protocol", cache=cache)
        oracle.open()               # 백그라운드 폴링 시작
        price = oracle.current_price()
        oracle.close()
    """

    def __init__(
        self,
        feed: PriceFeed,
        token_id: str,
        cache: Optional[DataCache] = None,
        interval: float = PRICE_REFRESH_INTERVAL,
        max_change: float = PRICE_MAX_CHANGE,
        fallback_price: float = REWARD_TOKEN_FALLBACK_PRICE,
        ttl: float = PRICE_TTL,
        clock: Callable[[], float] = time.time
    ):
        """
        Args:
            feed: 가격 피드
            token_id: 피드에서 사용하는 토큰 식별자
            cache: 정상 가격을 기록할 DataCache (선택)
            interval: 폴링 주기 (초)
            max_change: 업데이트당 허용 상대 변화 (0.5 = 50%)
            fallback_price: 정상 가격이 한 번도 없을 때 사용하는 가격
            ttl: 캐시 TTL (초)
            clock: 벽시계 함수 (테스트에서 교체)
        """
        if fallback_price <= 0:
            raise ValueError(f"폴백 가격은 양수여야 합니다: {fallback_price}")
        self.feed = feed
        self.token_id = token_id
        self.cache = cache
        self.interval = interval
        self.max_change = max_change
        self.fallback_price = fallback_price
        self.ttl = ttl
        self._clock = clock

        self._lock = threading.Lock()  # refresh 직렬화 (읽기는 잠그지 않음)
        self._current = fallback_price
        self._source = PriceSource.FALLBACK
        self._last_good: Optional[float] = None
        self._last_update: Optional[float] = None
        self._breaker_trips = 0
        self._failures = 0

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def cache_key(self):
        return ("price", self.token_id)

    @property
    def source(self) -> PriceSource:
        return self._source

    def current_price(self) -> float:
        """현재 가격 (블로킹 없음, 항상 양수)"""
        return self._current

    def refresh(self) -> float:
        """피드를 한 번 폴링하고 현재 가격 반환

        피드 오류는 기록만 하고 전파하지 않는다.
        """
        with self._lock:
            try:
                price = float(self.feed.fetch_price(self.token_id))
            except (PriceFeedError, TypeError, ValueError) as e:
                self._failures += 1
                self._use_last_good()
                logger.warning(
                    "가격 조회 실패 (%s): %s - %s 가격 사용 (%.6f)",
                    self.token_id, e, self._source.value, self._current
                )
                return self._current

            if not math.isfinite(price) or price <= 0:
                self._failures += 1
                self._use_last_good()
                logger.warning("유효하지 않은 가격 (%s): %r", self.token_id, price)
                return self._current

            if self._last_good is not None:
                change = abs(price - self._last_good) / self._last_good
                if change > self.max_change:
                    self._breaker_trips += 1
                    self._current = self._last_good
                    self._source = PriceSource.CIRCUIT_BREAKER
                    logger.warning(
                        "Circuit breaker (%s): %.6f → %.6f (%.1f%% 변화) - 마지막 정상 가격 유지",
                        self.token_id, self._last_good, price, change * 100
                    )
                    return self._current

            self._last_good = price
            self._current = price
            self._source = PriceSource.LIVE
            self._last_update = self._clock()
            if self.cache is not None:
                self.cache.set(self.cache_key, price, self.ttl)
            logger.debug("가격 갱신 (%s): %.6f", self.token_id, price)
            return price

    def _use_last_good(self) -> None:
        if self._last_good is not None:
            self._current = self._last_good
            self._source = PriceSource.LAST_GOOD
        else:
            self._current = self.fallback_price
            self._source = PriceSource.FALLBACK

    def price_info(self) -> PriceInfo:
        now = self._clock()
        elapsed = now - self._last_update if self._last_update is not None else None
        cached = self.cache is not None and self.cache.get(self.cache_key) is not None
        return PriceInfo(
            token_id=self.token_id,
            price=self._current,
            source=self._source,
            last_update=(
                datetime.fromtimestamp(self._last_update, tz=timezone.utc)
                if self._last_update is not None else None
            ),
            seconds_since_update=elapsed,
            is_stale=elapsed is None or elapsed > self.interval * 2,
            last_good_price=self._last_good,
            breaker_trips=self._breaker_trips,
            cached=cached,
        )

    def convert_to_usd(self, raw_amount: int, decimals: int = 18) -> float:
        """최소 단위 토큰 금액 → USD"""
        return to_token_amount(raw_amount, decimals) * self.current_price()

    # ============================================================
    # 백그라운드 폴링
    # ============================================================

    def open(self) -> None:
        """백그라운드 폴링 스레드 시작 (즉시 한 번 조회)"""
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop, name=f"price-oracle-{self.token_id}", daemon=True
        )
        self._thread.start()
        logger.info("가격 오라클 시작: %s (주기 %.0f초)", self.token_id, self.interval)

    def close(self) -> None:
        if not self._thread:
            return
        self._stop_event.set()
        self._thread.join(timeout=5)
        self._thread = None
        logger.info("가격 오라클 중지: %s", self.token_id)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.refresh()
            except (OSError, ValueError, TypeError, RuntimeError, LookupError, AttributeError) as e:
                logger.error("가격 오라클 반복 실패 (%s): %s", self.token_id, e)
            if self._stop_event.wait(self.interval):
                break
