"""SQLAlchemy 모델 패키지 초기화 모듈입니다."""

from attendance_service.models.attendance import DayRecord, RawEventLog
from attendance_service.models.ingest_config import IngestConfig

__all__ = [
    "DayRecord", "RawEventLog",
    "IngestConfig",
]
