"""일자 원장 read-through 캐시입니다. 쓰기 커밋 직후 동기적으로 무효화됩니다.

읽기 경로는 DB를 읽기 전에 ``begin_fill``로 토큰을 받고, 채울 때 그 토큰을 돌려줍니다.
그 사이에 ``invalidate``가 호출되면 토큰이 폐기되어 쓰기 이전 상태가 캐시에 남지 않습니다.
"""

import threading
import time
from datetime import datetime
from typing import Dict, Optional, Tuple

from attendance_service.config import settings
from attendance_service.reconciliation import timestamps
from attendance_service.reconciliation.events import DayRecordState


def cache_key(employee_code: str, day: datetime) -> str:
    return f"time_attendance:{employee_code}:{timestamps.format_day(day)}"


class DayRecordCache:
    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, DayRecordState]] = {}
        # key -> 진행 중인 채우기 토큰. 무효화되면 제거된다.
        self._pending: Dict[str, object] = {}

    def get(self, employee_code: str, day: datetime) -> Optional[DayRecordState]:
        key = cache_key(employee_code, day)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, state = entry
            if expires_at <= time.monotonic():
                del self._entries[key]
                return None
            return state

    def begin_fill(self, employee_code: str, day: datetime) -> object:
        token = object()
        with self._lock:
            self._pending[cache_key(employee_code, day)] = token
        return token

    def end_fill(self, employee_code: str, day: datetime, token: object) -> None:
        key = cache_key(employee_code, day)
        with self._lock:
            if self._pending.get(key) is token:
                del self._pending[key]

    def set(self, state: DayRecordState, token: Optional[object] = None) -> bool:
        """token이 주어지면 그 사이 무효화가 없었을 때만 저장한다. 저장했으면 True."""
        if self.ttl_seconds <= 0:
            return False
        key = cache_key(state.employee_code, state.day)
        with self._lock:
            if token is not None:
                if self._pending.get(key) is not token:
                    return False
                del self._pending[key]
            self._entries[key] = (time.monotonic() + self.ttl_seconds, state)
        return True

    def invalidate(self, employee_code: str, day: datetime) -> None:
        key = cache_key(employee_code, day)
        with self._lock:
            self._entries.pop(key, None)
            self._pending.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._pending.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


day_record_cache = DayRecordCache(settings.CACHE_TTL_SECONDS)


def invalidate(employee_code: str, day: datetime) -> None:
    day_record_cache.invalidate(employee_code, day)
