"""Publish Service 도메인 서비스 레이어입니다. 조정 완료 이벤트를 구독자에게 최선 노력으로 전달합니다."""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from attendance_service.config import settings
from attendance_service.reconciliation import timestamps

logger = logging.getLogger(__name__)

RECONCILED_EVENT = "attendance_reconciled"

Subscriber = Callable[[dict], None]

_subscribers: List[Subscriber] = []


def subscribe(handler: Subscriber) -> None:
    if handler not in _subscribers:
        _subscribers.append(handler)


def unsubscribe(handler: Subscriber) -> None:
    if handler in _subscribers:
        _subscribers.remove(handler)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def build_message(
    employee_code: str,
    day: datetime,
    check_in_time: Optional[datetime],
    check_out_time: Optional[datetime],
    total_check_ins: int,
) -> dict:
    return {
        "service": settings.SERVICE_NAME,
        "type": RECONCILED_EVENT,
        "data": {
            "employee_code": employee_code,
            "date": timestamps.format_day(day),
            "day": _iso(day),
            "check_in_time": _iso(check_in_time),
            "check_out_time": _iso(check_out_time),
            "total_check_ins": total_check_ins,
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def publish_reconciled(
    employee_code: str,
    day: datetime,
    check_in_time: Optional[datetime],
    check_out_time: Optional[datetime],
    total_check_ins: int,
) -> bool:
    """구독자 실패는 로그만 남기고 삼킨다. 이미 커밋된 원장 쓰기를 되돌리지 않는다."""
    message = build_message(employee_code, day, check_in_time, check_out_time, total_check_ins)
    delivered = True
    for handler in list(_subscribers):
        try:
            handler(message)
        except Exception as exc:
            delivered = False
            logger.warning("[attendance] publish to %r failed: %s", handler, exc)
    return delivered
