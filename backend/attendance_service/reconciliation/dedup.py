"""단말 재전송으로 생긴 중복 핑을 걸러내는 규칙입니다."""

from datetime import timedelta
from typing import Iterable, List, Optional, Sequence

from attendance_service.config import settings
from attendance_service.reconciliation.events import RawEvent


def dedup_window(seconds: Optional[float] = None) -> timedelta:
    return timedelta(seconds=settings.DEDUP_WINDOW_SECONDS if seconds is None else seconds)


def is_duplicate(existing: RawEvent, candidate: RawEvent, window: Optional[timedelta] = None) -> bool:
    """같은 단말에서 window 미만 간격으로 들어온 핑이면 중복이다. 경계값(정확히 window)은 중복이 아니다."""
    limit = window if window is not None else dedup_window()
    if existing.device_id != candidate.device_id:
        return False
    return abs(candidate.instant - existing.instant) < limit


def accept(existing_events: Iterable[RawEvent], candidate: RawEvent, window: Optional[timedelta] = None) -> bool:
    return not any(is_duplicate(event, candidate, window) for event in existing_events)


def dedupe(events: Sequence[RawEvent], window: Optional[timedelta] = None) -> List[RawEvent]:
    """중복 그룹마다 가장 이른 이벤트만 남기고, 남은 이벤트는 원래 삽입 순서를 유지한다."""
    ordered = sorted(range(len(events)), key=lambda idx: (events[idx].instant, idx))
    kept: List[int] = []
    for idx in ordered:
        if accept((events[k] for k in kept), events[idx], window):
            kept.append(idx)
    keep = set(kept)
    return [event for idx, event in enumerate(events) if idx in keep]
