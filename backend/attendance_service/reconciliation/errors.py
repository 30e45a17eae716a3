"""근태 이벤트 조정 엔진에서 사용하는 도메인 예외입니다."""

from typing import Any, Optional


class AttendanceError(Exception):
    """조정 엔진 예외의 공통 부모."""


class InvalidTimestamp(AttendanceError):
    def __init__(self, raw: Any, reason: Optional[str] = None):
        self.raw = raw
        self.reason = reason
        message = f"Invalid datetime format: {raw!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class MissingRequiredField(AttendanceError):
    """employeeCode/timestamp가 없는 핑. 단말 heartbeat 등으로 보고 건너뛴다."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} is required")


class ConcurrentWriteConflict(AttendanceError):
    def __init__(self, employee_code: str, day_label: str, attempts: int):
        self.employee_code = employee_code
        self.day_label = day_label
        self.attempts = attempts
        super().__init__(
            f"Concurrent write conflict for {employee_code} on {day_label} after {attempts} attempts"
        )


class StorageUnavailable(AttendanceError):
    pass
