"""직원/근태일 단위 출퇴근 원장과 원시 핑 로그 모델 정의입니다."""

from sqlalchemy import Column, Integer, DateTime, String, Text, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from attendance_service.database import Base
from attendance_service.models.types import UTCDateTime


class DayRecord(Base):
    __tablename__ = "time_attendance"

    record_id = Column(Integer, primary_key=True, autoincrement=True)
    employee_code = Column(String(64), nullable=False, index=True)
    employee_name = Column(String(200), nullable=True)
    # 조직 고정 오프셋 기준 현지 자정(UTC 절대 시각). 생성 후 변경하지 않는다.
    day = Column(UTCDateTime, nullable=False)
    check_in_time = Column(UTCDateTime, nullable=True)
    check_out_time = Column(UTCDateTime, nullable=True)
    total_check_ins = Column(Integer, nullable=False, default=0)
    device_id = Column(String(128), nullable=True)
    device_name = Column(String(200), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="active")  # active/processed
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now())

    raw_events = relationship(
        "RawEventLog",
        back_populates="record",
        order_by="RawEventLog.seq",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("employee_code", "day", name="uq_time_attendance_employee_day"),
        Index("idx_time_attendance_day", "day"),
    )
    __mapper_args__ = {"version_id_col": version}


class RawEventLog(Base):
    __tablename__ = "time_attendance_raw_event"

    event_id = Column(Integer, primary_key=True, autoincrement=True)
    record_id = Column(Integer, ForeignKey("time_attendance.record_id", ondelete="CASCADE"), nullable=False)
    seq = Column(Integer, nullable=False)
    instant = Column(UTCDateTime, nullable=False)
    device_id = Column(String(128), nullable=True)
    ingested_at = Column(UTCDateTime, nullable=False)

    record = relationship("DayRecord", back_populates="raw_events")

    __table_args__ = (
        UniqueConstraint("record_id", "seq", name="uq_time_attendance_raw_event_seq"),
    )
