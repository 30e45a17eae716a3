"""Ingest Service 도메인 서비스 레이어입니다. 생체인식 단말 핑을 근태 원장에 반영하는 흐름을 캡슐화합니다.

흐름: 타임스탬프 정규화 → 근태일 버킷팅 → (키 잠금 안에서) 중복 검사 → 원시 이벤트 추가
→ 출퇴근 경계 재계산 → 저장 → 캐시 무효화 → 조정 완료 이벤트 발행.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional

from sqlalchemy.orm import Session

from attendance_service.reconciliation import classifier, dedup, records, timestamps
from attendance_service.reconciliation.errors import (
    ConcurrentWriteConflict,
    InvalidTimestamp,
    MissingRequiredField,
)
from attendance_service.reconciliation.events import DayRecordState, RawEvent
from attendance_service.services import day_record_service, publish_service

logger = logging.getLogger(__name__)

REASON_DUPLICATE = "duplicate"
REASON_STALE = "stale"


@dataclass
class IngestOptions:
    """수집 호출마다 주입되는 기준값. 프로세스 전역 상태를 두지 않는다."""

    ignore_before: Optional[datetime] = None
    max_event_age: Optional[timedelta] = None
    now: Optional[datetime] = None
    naive_policy: Optional[str] = None
    policy: Optional[str] = None

    def current_time(self) -> datetime:
        return timestamps.ensure_utc(self.now) if self.now else datetime.now(timezone.utc)

    def is_stale(self, instant: datetime, now: datetime) -> bool:
        if self.ignore_before is not None and instant < timestamps.ensure_utc(self.ignore_before):
            return True
        if self.max_event_age is not None and now - instant > self.max_event_age:
            return True
        return False


@dataclass
class IngestResult:
    accepted: bool
    record: Optional[DayRecordState]
    reason: Optional[str] = None
    instant: Optional[datetime] = None


@dataclass
class IngestItem:
    employee_code: Any
    timestamp: Any
    device_id: Optional[str] = None
    employee_name: Optional[str] = None
    device_name: Optional[str] = None
    note: Optional[str] = None


@dataclass
class BatchIngestResult:
    processed: int = 0
    duplicates: int = 0
    skipped: int = 0
    errors: List[dict] = field(default_factory=list)

    @property
    def total_errors(self) -> int:
        return len(self.errors)


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def ingest(
    db: Session,
    employee_code: Any,
    raw_timestamp: Any,
    device_id: Optional[str] = None,
    employee_name: Optional[str] = None,
    device_name: Optional[str] = None,
    *,
    note: Optional[str] = None,
    options: Optional[IngestOptions] = None,
) -> IngestResult:
    code = _clean(employee_code)
    if code is None:
        raise MissingRequiredField("employeeCode")
    if raw_timestamp is None or (isinstance(raw_timestamp, str) and not raw_timestamp.strip()):
        raise MissingRequiredField("timestamp")

    options = options or IngestOptions()
    instant = timestamps.parse_timestamp(raw_timestamp, options.naive_policy)
    now = options.current_time()
    if options.is_stale(instant, now):
        logger.info("[attendance] skipping stale event for %s at %s", code, timestamps.format_local(instant))
        return IngestResult(False, None, REASON_STALE, instant)

    device_id = _clean(device_id)
    employee_name = _clean(employee_name)
    device_name = _clean(device_name)
    day = timestamps.day_key(instant)
    event = RawEvent(instant=instant, device_id=device_id, ingested_at=now)
    policy = classifier.get_policy(options.policy)
    window = dedup.dedup_window()

    def _apply(current: DayRecordState):
        current = records.fill_metadata(current, employee_name, device_name)
        outcome = records.apply_event(current, event, policy=policy, window=window, note=note)
        return outcome.state, outcome.accepted

    state, accepted = day_record_service.mutate_day_record(
        db,
        code,
        day,
        _apply,
        device_id=device_id,
        employee_name=employee_name,
        device_name=device_name,
    )
    if not accepted:
        logger.info(
            "[attendance] duplicate event for %s within %ss at %s, skipping",
            code, window.total_seconds(), timestamps.format_local(instant),
        )
        return IngestResult(False, state, REASON_DUPLICATE, instant)

    logger.info(
        "[attendance] employee %s checked at %s on device %s",
        state.employee_name or code,
        timestamps.format_local(instant),
        state.device_name or "Unknown Device",
    )
    publish_service.publish_reconciled(
        code, day, state.check_in_time, state.check_out_time, state.total_check_ins,
    )
    return IngestResult(True, state, None, instant)


def ingest_batch(
    db: Session,
    items: Iterable[IngestItem],
    options: Optional[IngestOptions] = None,
) -> BatchIngestResult:
    """항목별로 독립 처리한다. 항목 오류는 수집만 하고 나머지 처리를 멈추지 않는다.

    ``StorageUnavailable``은 저장소 전체 장애이므로 호출자에게 그대로 전달한다.
    """
    summary = BatchIngestResult()
    for index, item in enumerate(items):
        try:
            result = ingest(
                db,
                item.employee_code,
                item.timestamp,
                item.device_id,
                item.employee_name,
                item.device_name,
                note=item.note,
                options=options,
            )
        except MissingRequiredField:
            # heartbeat/상태 핑은 근태 이벤트가 아니다.
            summary.skipped += 1
            continue
        except (InvalidTimestamp, ConcurrentWriteConflict) as exc:
            logger.warning("[attendance] batch item %d rejected: %s", index, exc)
            summary.errors.append({
                "index": index,
                "employee_code": _clean(item.employee_code),
                "error": str(exc),
            })
            continue

        if result.accepted:
            summary.processed += 1
        elif result.reason == REASON_DUPLICATE:
            summary.duplicates += 1
        else:
            summary.skipped += 1

    logger.info(
        "[attendance] batch done: processed=%d duplicates=%d skipped=%d errors=%d",
        summary.processed, summary.duplicates, summary.skipped, summary.total_errors,
    )
    return summary
