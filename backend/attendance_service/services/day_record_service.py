"""Day Record Service 도메인 서비스 레이어입니다. 직원/근태일 원장의 조회와 원자적 갱신을 캡슐화합니다.

같은 (employee_code, day) 키에 대한 쓰기는 프로세스 내 키 잠금으로 직렬화하고,
프로세스 간에는 ``DayRecord.version`` 조건부 UPDATE로 lost update를 막습니다.
충돌이 나면 최신 상태를 다시 읽어 정해진 횟수만큼 재시도합니다.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from attendance_service.config import settings
from attendance_service.models.attendance import DayRecord, RawEventLog
from attendance_service.reconciliation import records, timestamps
from attendance_service.reconciliation.errors import (
    ConcurrentWriteConflict,
    StorageUnavailable,
)
from attendance_service.reconciliation.events import (
    RECORD_STATUSES,
    STATUS_ACTIVE,
    DayRecordState,
    RawEvent,
)
from attendance_service.services import cache_service
from attendance_service.utils.key_locks import KeyLockTimeout, day_record_locks

logger = logging.getLogger(__name__)

Mutation = Callable[[DayRecordState], Tuple[DayRecordState, Any]]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def to_state(record: DayRecord) -> DayRecordState:
    return DayRecordState(
        employee_code=record.employee_code,
        day=record.day,
        employee_name=record.employee_name,
        check_in_time=record.check_in_time,
        check_out_time=record.check_out_time,
        total_check_ins=record.total_check_ins or 0,
        raw_events=tuple(
            RawEvent(
                instant=row.instant,
                device_id=row.device_id,
                ingested_at=row.ingested_at,
                seq=row.seq,
            )
            for row in record.raw_events
        ),
        device_id=record.device_id,
        device_name=record.device_name,
        notes=record.notes,
        status=record.status or STATUS_ACTIVE,
    )


def get_day_record(db: Session, employee_code: str, day: datetime) -> Optional[DayRecord]:
    return (
        db.query(DayRecord)
        .filter(
            DayRecord.employee_code == employee_code,
            DayRecord.day == day,
        )
        .first()
    )


def _insert_if_absent(db: Session, values: dict) -> None:
    table = DayRecord.__table__
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        stmt = sqlite.insert(table).values(**values).on_conflict_do_nothing(
            index_elements=["employee_code", "day"]
        )
    elif dialect == "postgresql":
        stmt = postgresql.insert(table).values(**values).on_conflict_do_nothing(
            index_elements=["employee_code", "day"]
        )
    else:
        try:
            db.execute(insert(table).values(**values))
            db.commit()
        except IntegrityError:
            # 다른 작성자가 먼저 만들었다. 유니크 제약이 단일 레코드를 보장한다.
            db.rollback()
        return
    db.execute(stmt)
    db.commit()


def _load_or_create(
    db: Session,
    employee_code: str,
    day: datetime,
    device_id: Optional[str],
    employee_name: Optional[str],
    device_name: Optional[str],
) -> DayRecord:
    record = get_day_record(db, employee_code, day)
    if record is not None:
        return record
    _insert_if_absent(db, {
        "employee_code": employee_code,
        "employee_name": employee_name,
        "day": day,
        "total_check_ins": 0,
        "device_id": device_id,
        "device_name": device_name,
        "status": STATUS_ACTIVE,
        "version": 1,
        "updated_at": _now(),
    })
    record = get_day_record(db, employee_code, day)
    if record is None:
        raise StorageUnavailable(
            f"Day record for {employee_code} on {timestamps.format_day(day)} was not persisted"
        )
    return record


def _persist(record: DayRecord, before: DayRecordState, after: DayRecordState) -> None:
    record.employee_name = after.employee_name
    record.check_in_time = after.check_in_time
    record.check_out_time = after.check_out_time
    record.total_check_ins = after.total_check_ins
    record.device_id = after.device_id
    record.device_name = after.device_name
    record.notes = after.notes
    record.status = after.status
    # 원장 행을 항상 갱신해 버전 검사가 일어나도록 한다.
    record.updated_at = _now()

    kept = {event.seq for event in after.raw_events if event.seq is not None}
    for row in list(record.raw_events):
        if row.seq not in kept:
            record.raw_events.remove(row)

    next_seq = max((event.seq for event in before.raw_events if event.seq is not None), default=0) + 1
    for event in after.raw_events:
        if event.seq is not None:
            continue
        record.raw_events.append(RawEventLog(
            seq=next_seq,
            instant=event.instant,
            device_id=event.device_id,
            ingested_at=event.ingested_at or _now(),
        ))
        next_seq += 1


def mutate_day_record(
    db: Session,
    employee_code: str,
    day: datetime,
    mutation: Mutation,
    *,
    device_id: Optional[str] = None,
    employee_name: Optional[str] = None,
    device_name: Optional[str] = None,
    create: bool = True,
) -> Tuple[Optional[DayRecordState], Any]:
    """키 단위로 직렬화된 read-modify-write. mutation은 순수 함수여야 한다.

    상태가 바뀐 경우에만 커밋하고, 커밋 직후 캐시를 무효화한 뒤 반환한다.
    ``create=False``이고 레코드가 없으면 ``(None, None)``을 반환한다.
    """
    label = timestamps.format_day(day)
    attempts = max(1, settings.WRITE_CONFLICT_RETRIES)
    try:
        with day_record_locks.hold((employee_code, day), timeout=settings.STORAGE_TIMEOUT_SECONDS):
            for attempt in range(1, attempts + 1):
                try:
                    if create:
                        record = _load_or_create(db, employee_code, day, device_id, employee_name, device_name)
                    else:
                        record = get_day_record(db, employee_code, day)
                        if record is None:
                            return None, None
                    before = to_state(record)
                    after, result = mutation(before)
                    if after == before:
                        db.rollback()
                        return before, result
                    _persist(record, before, after)
                    db.commit()
                    cache_service.invalidate(employee_code, day)
                    return after, result
                except (StaleDataError, IntegrityError) as exc:
                    db.rollback()
                    logger.warning(
                        "[attendance] write conflict for %s on %s (attempt %d/%d): %s",
                        employee_code, label, attempt, attempts, exc,
                    )
            raise ConcurrentWriteConflict(employee_code, label, attempts)
    except KeyLockTimeout as exc:
        raise ConcurrentWriteConflict(employee_code, label, 0) from exc
    except OperationalError as exc:
        db.rollback()
        logger.error("[attendance] storage unavailable for %s on %s: %s", employee_code, label, exc)
        raise StorageUnavailable(str(exc)) from exc


def find_or_create_day_record(
    db: Session,
    employee_code: str,
    day: datetime,
    device_id: Optional[str] = None,
    employee_name: Optional[str] = None,
    device_name: Optional[str] = None,
) -> DayRecordState:
    state, _ = mutate_day_record(
        db,
        employee_code,
        day,
        lambda current: (records.fill_metadata(current, employee_name, device_name), None),
        device_id=device_id,
        employee_name=employee_name,
        device_name=device_name,
    )
    return state


def set_record_status(db: Session, employee_code: str, day: datetime, status: str) -> Optional[DayRecordState]:
    if status not in RECORD_STATUSES:
        raise ValueError(f"Unsupported status: {status}")

    def _apply(current: DayRecordState):
        if current.status == status:
            return current, False
        return replace(current, status=status), True

    state, _ = mutate_day_record(db, employee_code, day, _apply, create=False)
    return state


def get_day_record_state(db: Session, employee_code: str, day: datetime) -> Optional[DayRecordState]:
    """경계 시각과 건수는 저장값이 아니라 원시 이벤트에서 읽을 때마다 다시 도출한다."""
    cache = cache_service.day_record_cache
    cached = cache.get(employee_code, day)
    if cached is not None:
        return cached
    # 토큰은 DB 읽기 전에 받는다. 읽기와 채우기 사이의 커밋은 토큰을 무효화한다.
    token = cache.begin_fill(employee_code, day)
    try:
        record = (
            db.query(DayRecord)
            .options(selectinload(DayRecord.raw_events))
            .populate_existing()
            .filter(
                DayRecord.employee_code == employee_code,
                DayRecord.day == day,
            )
            .first()
        )
        if record is None:
            return None
        state = records.reconcile(to_state(record))
        cache.set(state, token)
        return state
    finally:
        cache.end_fill(employee_code, day, token)


def query_day_records(
    db: Session,
    employee_code: str,
    *,
    day: Optional[datetime] = None,
    start_day: Optional[datetime] = None,
    end_day: Optional[datetime] = None,
    page: int = 1,
    limit: int = 50,
) -> List[DayRecordState]:
    q = (
        db.query(DayRecord)
        .options(selectinload(DayRecord.raw_events))
        .filter(DayRecord.employee_code == employee_code)
    )
    if day is not None:
        q = q.filter(DayRecord.day == day)
    else:
        if start_day is not None:
            q = q.filter(DayRecord.day >= start_day)
        if end_day is not None:
            q = q.filter(DayRecord.day <= end_day)
    page = max(1, page)
    limit = max(1, limit)
    rows = q.order_by(DayRecord.day.desc()).offset((page - 1) * limit).limit(limit).all()
    return [records.reconcile(to_state(row)) for row in rows]


def query_employee_attendance(
    db: Session,
    employee_code: str,
    date: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> List[DayRecordState]:
    """호출자가 넘긴 ``YYYY-MM-DD`` 문자열을 day key로 바꿔 조회한다."""
    if date:
        state = None
        if page <= 1:
            state = get_day_record_state(db, employee_code, timestamps.day_key_from_string(date))
        return [state] if state is not None else []
    return query_day_records(
        db,
        employee_code,
        start_day=timestamps.day_key_from_string(start_date) if start_date else None,
        end_day=timestamps.day_key_from_string(end_date) if end_date else None,
        page=page,
        limit=limit,
    )


@dataclass
class EmployeeAttendanceStats:
    employee_code: str
    total_days: int = 0
    total_check_ins: int = 0
    first_date: Optional[str] = None
    last_date: Optional[str] = None

    @property
    def avg_check_ins(self) -> float:
        if not self.total_days:
            return 0.0
        return round(self.total_check_ins / self.total_days, 2)


@dataclass
class AttendanceStats:
    employees: List[EmployeeAttendanceStats] = field(default_factory=list)
    total_records: int = 0


def attendance_stats(
    db: Session,
    *,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    employee_code: Optional[str] = None,
    limit: int = 100,
) -> AttendanceStats:
    """최근 원장 ``limit``건을 직원별로 묶는다. 건수는 원시 이벤트에서 다시 도출한 값을 쓴다."""
    q = db.query(DayRecord).options(selectinload(DayRecord.raw_events))
    if employee_code:
        q = q.filter(DayRecord.employee_code == employee_code)
    if start_date:
        q = q.filter(DayRecord.day >= timestamps.day_key_from_string(start_date))
    if end_date:
        q = q.filter(DayRecord.day <= timestamps.day_key_from_string(end_date))
    rows = q.order_by(DayRecord.day.desc()).limit(max(1, limit)).all()

    grouped: Dict[str, EmployeeAttendanceStats] = {}
    for row in rows:
        state = records.reconcile(to_state(row))
        label = timestamps.format_day(state.day)
        stat = grouped.setdefault(state.employee_code, EmployeeAttendanceStats(state.employee_code))
        stat.total_days += 1
        stat.total_check_ins += state.total_check_ins
        if stat.first_date is None or label < stat.first_date:
            stat.first_date = label
        if stat.last_date is None or label > stat.last_date:
            stat.last_date = label
    return AttendanceStats(employees=list(grouped.values()), total_records=len(rows))


def list_record_keys(db: Session, employee_code: Optional[str] = None) -> List[Tuple[str, datetime]]:
    q = db.query(DayRecord.employee_code, DayRecord.day)
    if employee_code:
        q = q.filter(DayRecord.employee_code == employee_code)
    rows = q.order_by(DayRecord.employee_code.asc(), DayRecord.day.desc()).all()
    return [(row[0], row[1]) for row in rows]
