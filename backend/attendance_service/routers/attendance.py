"""근태 원장 수집/조회/복구 API 라우터입니다. 요청을 검증하고 서비스 레이어로 비즈니스 로직을 위임합니다."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from attendance_service.config import settings
from attendance_service.database import get_db
from attendance_service.middleware.auth_middleware import Principal, require_roles
from attendance_service.reconciliation import records, timestamps
from attendance_service.reconciliation.errors import (
    ConcurrentWriteConflict,
    InvalidTimestamp,
    MissingRequiredField,
    StorageUnavailable,
)
from attendance_service.reconciliation.events import DayRecordState
from attendance_service.schemas.attendance import (
    AttendanceStatsOut,
    BatchUploadRequest,
    BatchUploadResultOut,
    DayRecordOut,
    EmployeeStatsOut,
    IngestConfigOut,
    IngestConfigUpdate,
    IngestRequest,
    IngestResultOut,
    RawEventOut,
    RecordStatusUpdate,
    RepairConfirmRequest,
    RepairResultOut,
)
from attendance_service.services import (
    day_record_service,
    ingest_config_service,
    ingest_service,
    repair_service,
)
from attendance_service.utils.permissions import ADMIN, READ_ROLES

router = APIRouter(prefix="/api/attendance", tags=["attendance"])


def _day_record_out(state: DayRecordState, include_raw_data: bool = False) -> DayRecordOut:
    return DayRecordOut(
        employee_code=state.employee_code,
        employee_name=state.employee_name,
        date=timestamps.format_day(state.day),
        day=state.day,
        check_in_time=state.check_in_time,
        check_out_time=state.check_out_time,
        total_check_ins=state.total_check_ins,
        device_id=state.device_id,
        device_name=state.device_name,
        notes=state.notes,
        status=state.status,
        raw_events=[
            RawEventOut(instant=e.instant, device_id=e.device_id, ingested_at=e.ingested_at)
            for e in state.raw_events
        ] if include_raw_data else None,
    )


def _raise_http(exc: Exception):
    if isinstance(exc, (InvalidTimestamp, MissingRequiredField)):
        raise HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, ConcurrentWriteConflict):
        raise HTTPException(status_code=409, detail="동시 갱신 충돌이 반복되었습니다. 잠시 후 다시 시도하세요.")
    if isinstance(exc, StorageUnavailable):
        raise HTTPException(status_code=503, detail="저장소를 사용할 수 없습니다.")
    raise exc


@router.post("/events", response_model=IngestResultOut)
def ingest_event(data: IngestRequest, db: Session = Depends(get_db)):
    try:
        result = ingest_service.ingest(
            db,
            data.employee_code,
            data.timestamp,
            data.device_id,
            data.employee_name,
            data.device_name,
            note=records.build_note(data.face_id, data.similarity, data.event_type),
            options=ingest_config_service.build_options(db),
        )
    except (InvalidTimestamp, MissingRequiredField, ConcurrentWriteConflict, StorageUnavailable) as exc:
        _raise_http(exc)
    return IngestResultOut(
        accepted=result.accepted,
        reason=result.reason,
        record=_day_record_out(result.record) if result.record else None,
    )


@router.post("/upload", response_model=BatchUploadResultOut)
def upload_attendance_batch(data: BatchUploadRequest, db: Session = Depends(get_db)):
    items = [
        ingest_service.IngestItem(
            employee_code=item.fingerprint_code,
            timestamp=item.date_time,
            device_id=item.device_id,
            employee_name=item.employee_name,
            device_name=item.device_name,
        )
        for item in data.data
    ]
    try:
        summary = ingest_service.ingest_batch(db, items, ingest_config_service.build_options(db))
    except StorageUnavailable as exc:
        _raise_http(exc)
    return BatchUploadResultOut(
        message=f"Processed {summary.processed} records, {summary.duplicates} duplicates",
        records_processed=summary.processed,
        duplicates=summary.duplicates,
        skipped=summary.skipped,
        total_errors=summary.total_errors,
        errors=summary.errors[: settings.BATCH_ERROR_REPORT_LIMIT],
        tracker_id=data.tracker_id,
    )


@router.get("/employee/{employee_code}", response_model=List[DayRecordOut])
def get_employee_attendance(
    employee_code: str,
    date: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    include_raw_data: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(*READ_ROLES)),
):
    try:
        states = day_record_service.query_employee_attendance(
            db, employee_code, date=date, start_date=start_date, end_date=end_date, page=page, limit=limit,
        )
    except (InvalidTimestamp, StorageUnavailable) as exc:
        _raise_http(exc)
    return [_day_record_out(state, include_raw_data) for state in states]


@router.get("/stats", response_model=AttendanceStatsOut)
def get_attendance_stats(
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    employee_code: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(*READ_ROLES)),
):
    try:
        stats = day_record_service.attendance_stats(
            db, start_date=start_date, end_date=end_date, employee_code=employee_code, limit=limit,
        )
    except (InvalidTimestamp, StorageUnavailable) as exc:
        _raise_http(exc)
    return AttendanceStatsOut(
        total_employees=len(stats.employees),
        total_records=stats.total_records,
        stats=[
            EmployeeStatsOut(
                employee_code=item.employee_code,
                total_days=item.total_days,
                total_check_ins=item.total_check_ins,
                avg_check_ins=item.avg_check_ins,
                first_date=item.first_date,
                last_date=item.last_date,
            )
            for item in stats.employees
        ],
    )


@router.patch("/records/{employee_code}/{work_date}/status", response_model=DayRecordOut)
def update_record_status(
    employee_code: str,
    work_date: str,
    data: RecordStatusUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(ADMIN)),
):
    try:
        day = timestamps.day_key_from_string(work_date)
        state = day_record_service.set_record_status(db, employee_code, day, data.status)
    except (InvalidTimestamp, ConcurrentWriteConflict, StorageUnavailable) as exc:
        _raise_http(exc)
    if state is None:
        raise HTTPException(status_code=404, detail="해당 일자의 근태 기록이 없습니다.")
    return _day_record_out(state)


def _require_repair_confirmation(data: RepairConfirmRequest):
    if data.confirm != settings.REPAIR_CONFIRM_TOKEN:
        raise HTTPException(
            status_code=400,
            detail=f"확인 토큰이 필요합니다. {{'confirm': '{settings.REPAIR_CONFIRM_TOKEN}'}} 를 보내주세요.",
        )


@router.post("/fix-employee/{employee_code}", response_model=RepairResultOut)
def fix_employee_attendance(
    employee_code: str,
    data: RepairConfirmRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(ADMIN)),
):
    _require_repair_confirmation(data)
    summary = repair_service.repair_records(db, employee_code)
    return RepairResultOut(
        employee_code=employee_code,
        records_examined=summary.records_examined,
        records_changed=summary.records_changed,
        employees_processed=summary.employees_processed,
        failures=summary.failures,
    )


@router.post("/fix-all", response_model=RepairResultOut)
def fix_all_attendance(
    data: RepairConfirmRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(ADMIN)),
):
    _require_repair_confirmation(data)
    summary = repair_service.repair_records(db)
    return RepairResultOut(
        records_examined=summary.records_examined,
        records_changed=summary.records_changed,
        employees_processed=summary.employees_processed,
        failures=summary.failures,
    )


@router.get("/ingest-config", response_model=Optional[IngestConfigOut])
def get_ingest_config(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(ADMIN)),
):
    return ingest_config_service.get_active_config(db)


@router.post("/ingest-config", response_model=IngestConfigOut)
def update_ingest_config(
    data: IngestConfigUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(ADMIN)),
):
    return ingest_config_service.create_config_version(
        db,
        ignore_before=data.ignore_before,
        max_event_age_hours=data.max_event_age_hours,
        created_by=principal.subject,
        note=data.note,
    )


@router.post("/ingest-config/reset", response_model=IngestConfigOut)
def reset_ingest_threshold(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(ADMIN)),
):
    return ingest_config_service.reset_ignore_threshold(db, created_by=principal.subject)
