"""조정 엔진이 다루는 불변 값 타입입니다."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

STATUS_ACTIVE = "active"
STATUS_PROCESSED = "processed"
RECORD_STATUSES = (STATUS_ACTIVE, STATUS_PROCESSED)


@dataclass(frozen=True)
class RawEvent:
    instant: datetime
    device_id: Optional[str] = None
    ingested_at: Optional[datetime] = None
    # 저장소의 삽입 순번. 아직 저장되지 않은 이벤트는 None
    seq: Optional[int] = field(default=None, compare=False)


@dataclass(frozen=True)
class DayRecordState:
    employee_code: str
    day: datetime
    employee_name: Optional[str] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    total_check_ins: int = 0
    raw_events: Tuple[RawEvent, ...] = ()
    device_id: Optional[str] = None
    device_name: Optional[str] = None
    notes: Optional[str] = None
    status: str = STATUS_ACTIVE
