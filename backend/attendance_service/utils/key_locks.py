"""(직원코드, 근태일) 키 단위 프로세스 내 임계 구역 유틸리티입니다."""

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, List, Optional


class KeyLockTimeout(Exception):
    pass


class KeyedLocks:
    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, 대기/보유 중인 스레드 수]
        self._entries: Dict[Hashable, List] = {}

    @contextmanager
    def hold(self, key: Hashable, timeout: Optional[float] = None):
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._entries[key] = entry
            entry[1] += 1

        acquired = entry[0].acquire(timeout=-1 if timeout is None else timeout)
        try:
            if not acquired:
                raise KeyLockTimeout(f"Timed out waiting for lock on {key!r}")
            yield
        finally:
            if acquired:
                entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._entries.pop(key, None)

    def active_keys(self) -> int:
        with self._guard:
            return len(self._entries)


day_record_locks = KeyedLocks()
