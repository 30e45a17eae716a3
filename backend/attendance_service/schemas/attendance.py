"""근태 원장 요청/응답 스키마입니다."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class RawEventOut(BaseModel):
    instant: datetime
    device_id: Optional[str] = None
    ingested_at: Optional[datetime] = None


class DayRecordOut(BaseModel):
    employee_code: str
    employee_name: Optional[str] = None
    date: str
    day: datetime
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    total_check_ins: int
    device_id: Optional[str] = None
    device_name: Optional[str] = None
    notes: Optional[str] = None
    status: str
    raw_events: Optional[List[RawEventOut]] = None


class IngestRequest(BaseModel):
    employee_code: Optional[str] = None
    timestamp: Optional[str] = None
    device_id: Optional[str] = None
    employee_name: Optional[str] = None
    device_name: Optional[str] = None
    face_id: Optional[str] = None
    similarity: Optional[float] = None
    event_type: Optional[str] = None


class IngestResultOut(BaseModel):
    accepted: bool
    reason: Optional[str] = None
    record: Optional[DayRecordOut] = None


class BatchUploadItem(BaseModel):
    # 단말 배치 업로드 필드명을 그대로 받는다.
    model_config = ConfigDict(populate_by_name=True)

    fingerprint_code: Optional[str] = Field(None, alias="fingerprintCode")
    date_time: Optional[str] = Field(None, alias="dateTime")
    device_id: Optional[str] = None
    employee_name: Optional[str] = Field(None, alias="employeeName")
    device_name: Optional[str] = Field(None, alias="deviceName")


class BatchUploadRequest(BaseModel):
    data: List[BatchUploadItem]
    tracker_id: Optional[str] = None


class BatchItemErrorOut(BaseModel):
    index: int
    employee_code: Optional[str] = None
    error: str


class BatchUploadResultOut(BaseModel):
    status: str = "success"
    message: str
    records_processed: int
    duplicates: int
    skipped: int
    total_errors: int
    errors: List[BatchItemErrorOut] = []
    tracker_id: Optional[str] = None


class RepairFailureOut(BaseModel):
    employee_code: str
    date: str
    error: str


class RepairResultOut(BaseModel):
    employee_code: Optional[str] = None
    records_examined: int
    records_changed: int
    employees_processed: int
    failures: List[RepairFailureOut] = []


class RepairConfirmRequest(BaseModel):
    confirm: Optional[str] = None


class RecordStatusUpdate(BaseModel):
    status: Literal["active", "processed"]


class IngestConfigOut(BaseModel):
    version: int
    ignore_before: Optional[datetime] = None
    max_event_age_hours: Optional[int] = None
    note: Optional[str] = None
    created_by: Optional[str] = None

    model_config = {"from_attributes": True}


class IngestConfigUpdate(BaseModel):
    ignore_before: Optional[datetime] = None
    max_event_age_hours: Optional[int] = None
    note: Optional[str] = None


class EmployeeStatsOut(BaseModel):
    employee_code: str
    total_days: int
    total_check_ins: int
    avg_check_ins: float
    first_date: Optional[str] = None
    last_date: Optional[str] = None


class AttendanceStatsOut(BaseModel):
    status: str = "success"
    total_employees: int
    total_records: int
    stats: List[EmployeeStatsOut] = []
