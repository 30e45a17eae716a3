"""수집 기준(오래된 이벤트 무시 기준) 버전 레코드 모델입니다."""

from sqlalchemy import Column, Integer, DateTime, String
from sqlalchemy.sql import func

from attendance_service.database import Base
from attendance_service.models.types import UTCDateTime


class IngestConfig(Base):
    __tablename__ = "attendance_ingest_config"

    version = Column(Integer, primary_key=True, autoincrement=True)
    ignore_before = Column(UTCDateTime, nullable=True)
    max_event_age_hours = Column(Integer, nullable=True)
    note = Column(String(200), nullable=True)
    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
