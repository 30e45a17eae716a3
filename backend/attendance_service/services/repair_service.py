"""Repair Service 도메인 서비스 레이어입니다. 저장된 원시 이벤트로 원장을 다시 계산해 정합성을 복구합니다.

레코드별 복구는 멱등이므로 중간에 멈춘 배치를 그대로 다시 실행해도 안전합니다.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from attendance_service.reconciliation import records, timestamps
from attendance_service.reconciliation.errors import AttendanceError
from attendance_service.reconciliation.events import DayRecordState
from attendance_service.services import day_record_service

logger = logging.getLogger(__name__)


@dataclass
class RepairSummary:
    records_examined: int = 0
    records_changed: int = 0
    employees_processed: int = 0
    failures: List[dict] = field(default_factory=list)


def _repair_state(current: DayRecordState):
    repaired = records.reconcile(current)
    if not records.derived_fields_differ(current, repaired):
        return current, False
    removed = len(current.raw_events) - len(repaired.raw_events)
    if removed:
        repaired = replace(
            repaired,
            notes=records.append_note(repaired.notes, f"Repaired: removed {removed} duplicate(s);"),
        )
    return repaired, True


def repair_day_record(db: Session, employee_code: str, day: datetime) -> bool:
    """변경이 있었으면 True. 레코드가 없으면 False."""
    state, changed = day_record_service.mutate_day_record(
        db, employee_code, day, _repair_state, create=False,
    )
    if state is None:
        return False
    if changed:
        logger.info(
            "[attendance] repaired %s on %s: in=%s out=%s total=%d",
            employee_code,
            timestamps.format_day(day),
            timestamps.format_local(state.check_in_time),
            timestamps.format_local(state.check_out_time),
            state.total_check_ins,
        )
    return bool(changed)


def repair_records(db: Session, employee_code: Optional[str] = None) -> RepairSummary:
    """직원 한 명 또는 전체 원장을 복구한다. 레코드 단위 실패는 격리하고 계속 진행한다."""
    summary = RepairSummary()
    keys = day_record_service.list_record_keys(db, employee_code)
    summary.employees_processed = len({code for code, _ in keys})
    for code, day in keys:
        summary.records_examined += 1
        try:
            if repair_day_record(db, code, day):
                summary.records_changed += 1
        except (AttendanceError, SQLAlchemyError) as exc:
            db.rollback()
            logger.warning("[attendance] repair failed for %s on %s: %s", code, timestamps.format_day(day), exc)
            summary.failures.append({
                "employee_code": code,
                "date": timestamps.format_day(day),
                "error": str(exc),
            })

    logger.info(
        "[attendance] repair done: examined=%d changed=%d failed=%d",
        summary.records_examined, summary.records_changed, len(summary.failures),
    )
    return summary
