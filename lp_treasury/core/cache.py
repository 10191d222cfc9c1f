"""
TTL 데이터 캐시

자주 읽는 값(가격, 풀 상태, 분석 값)을 데이터 클래스별 TTL로 보관한다.

- 키는 (데이터 클래스, 식별자) 튜플: ("price", "kilt-protocol"), ("analytics", "liquidity")
- 엔트리는 불변이며 교체로만 갱신되므로 읽는 쪽은 부분 기록을 보지 않는다
- 최대 엔트리 수를 넘으면 만료된 것부터, 그다음 가장 오래된 것부터 제거
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional

from ..constants import DEFAULT_CACHE_MAX_ENTRIES
from ..data.types import CacheEntry

logger = logging.getLogger(__name__)


class DataCache:
    """스레드 안전 TTL 캐시

    사용법:
        cache = DataCache()
        cache.set(("price", "kilt-protocol"), 0.016, ttl=15)
        price = cache.get(("price", "kilt-protocol"))  # 15초 이후 None
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            max_entries: 최대 엔트리 수
            clock: 현재 시각 함수 (테스트에서 교체)
        """
        if max_entries <= 0:
            raise ValueError(f"max_entries는 양수여야 합니다: {max_entries}")
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def get(self, key: Hashable) -> Optional[Any]:
        """신선한 값 반환 (없거나 TTL이 지났으면 None)"""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.is_fresh(now):
                self._misses += 1
                return None
            self._hits += 1
            return entry.payload

    def get_entry(self, key: Hashable) -> Optional[CacheEntry]:
        """나이와 무관하게 엔트리 반환"""
        with self._lock:
            return self._entries.get(key)

    def get_stale(self, key: Hashable) -> Optional[Any]:
        """마지막으로 저장된 값 (만료 여부 무시)

        명시적인 폴백 경로에서만 사용한다.
        """
        entry = self.get_entry(key)
        return entry.payload if entry else None

    def set(self, key: Hashable, payload: Any, ttl: float) -> None:
        if ttl < 0:
            raise ValueError(f"ttl은 음수일 수 없습니다: {ttl}")
        entry = CacheEntry(key=key, payload=payload, stored_at=self._clock(), ttl=ttl)
        with self._lock:
            self._entries[key] = entry
            if len(self._entries) > self.max_entries:
                self._evict(entry.stored_at)

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def get_or_load(self, key: Hashable, loader: Callable[[], Any], ttl: float) -> Any:
        """캐시 적중 시 값 반환, 아니면 loader 결과를 저장 후 반환

        loader의 예외는 그대로 전파되며 기존 엔트리는 유지된다.
        """
        payload = self.get(key)
        if payload is not None:
            return payload
        payload = loader()
        self.set(key, payload, ttl)
        return payload

    def purge_expired(self) -> int:
        """만료된 엔트리 제거, 제거 개수 반환"""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if not e.is_fresh(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("만료 캐시 엔트리 %d개 제거", len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _evict(self, now: float) -> None:
        # 호출자가 _lock을 잡고 있어야 함
        expired = [k for k, e in self._entries.items() if not e.is_fresh(now)]
        for key in expired:
            del self._entries[key]

        overflow = len(self._entries) - self.max_entries
        if overflow > 0:
            oldest = sorted(self._entries.items(), key=lambda item: item[1].stored_at)[:overflow]
            for key, _ in oldest:
                del self._entries[key]
            logger.debug("캐시 용량 초과로 엔트리 %d개 제거", overflow)
