"""근태 이벤트 조정 엔진: 타임스탬프 정규화, 일자 버킷팅, 중복 제거, 출퇴근 분류."""

from attendance_service.reconciliation.errors import (
    AttendanceError,
    ConcurrentWriteConflict,
    InvalidTimestamp,
    MissingRequiredField,
    StorageUnavailable,
)
from attendance_service.reconciliation.events import DayRecordState, RawEvent

__all__ = [
    "AttendanceError",
    "ConcurrentWriteConflict",
    "InvalidTimestamp",
    "MissingRequiredField",
    "StorageUnavailable",
    "DayRecordState",
    "RawEvent",
]
