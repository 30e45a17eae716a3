"""타임스탬프 정규화와 근태 일자(day key) 계산을 담당합니다.

오프셋 연산은 이 모듈에서만 수행합니다. 근태 일자는 서버 로캘과 무관하게
``settings.ORG_UTC_OFFSET_MINUTES`` 고정 오프셋으로 정의되며, day key는
해당 오프셋 기준 현지 자정을 UTC 절대 시각으로 표현한 값입니다.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

from attendance_service.config import settings
from attendance_service.reconciliation.errors import InvalidTimestamp

NAIVE_AS_UTC = "utc"
NAIVE_AS_LOCAL = "local"
NAIVE_REJECT = "reject"
NAIVE_POLICIES = (NAIVE_AS_UTC, NAIVE_AS_LOCAL, NAIVE_REJECT)

DAY_FORMAT = "%Y-%m-%d"

_BASIC_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")
_DAY_STRING = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def org_timezone(offset_minutes: Optional[int] = None) -> timezone:
    minutes = settings.ORG_UTC_OFFSET_MINUTES if offset_minutes is None else offset_minutes
    return timezone(timedelta(minutes=minutes))


def ensure_utc(value: datetime) -> datetime:
    """DB에서 읽은 naive 값은 UTC로 간주해 aware UTC로 맞춘다."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _prepare_iso(raw: str) -> str:
    text = raw.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    # 2025-08-07T13:45:12+0700 같은 basic 오프셋 표기를 확장형으로 맞춘다.
    if "T" in text or " " in text:
        text = _BASIC_OFFSET.sub(r"\1:\2", text)
    return text


def parse_timestamp(
    value: Any,
    naive_policy: Optional[str] = None,
    offset_minutes: Optional[int] = None,
) -> datetime:
    """문자열/datetime 입력을 aware UTC 절대 시각으로 변환한다.

    명시적 오프셋(+07:00, Z, +00:00 등)은 표준 오프셋 연산으로 해석하고,
    오프셋이 없는 값은 ``naive_policy``에 따라 UTC로 보거나(utc), 조직
    현지 시각으로 보거나(local), 거부한다(reject).
    """
    policy = (naive_policy or settings.NAIVE_TIMESTAMP_POLICY or NAIVE_AS_UTC).strip().lower()
    if policy not in NAIVE_POLICIES:
        raise ValueError(f"Unknown naive timestamp policy: {policy}")

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        if not value.strip():
            raise InvalidTimestamp(value, "empty string")
        try:
            parsed = datetime.fromisoformat(_prepare_iso(value))
        except ValueError as exc:
            raise InvalidTimestamp(value, str(exc)) from exc
    else:
        raise InvalidTimestamp(value, f"unsupported type {type(value).__name__}")

    if parsed.tzinfo is None:
        if policy == NAIVE_REJECT:
            raise InvalidTimestamp(value, "timestamp has no UTC offset")
        if policy == NAIVE_AS_LOCAL:
            parsed = parsed.replace(tzinfo=org_timezone(offset_minutes))
        else:
            parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def day_key(instant: datetime, offset_minutes: Optional[int] = None) -> datetime:
    tz = org_timezone(offset_minutes)
    local_day = ensure_utc(instant).astimezone(tz).date()
    return day_key_for_date(local_day, offset_minutes)


def day_key_for_date(local_day: date, offset_minutes: Optional[int] = None) -> datetime:
    tz = org_timezone(offset_minutes)
    return datetime.combine(local_day, time.min, tzinfo=tz).astimezone(timezone.utc)


def day_key_from_string(value: str, offset_minutes: Optional[int] = None) -> datetime:
    """``YYYY-MM-DD`` 조회 파라미터를 day key로 변환한다."""
    text = (value or "").strip()
    if not _DAY_STRING.match(text):
        raise InvalidTimestamp(value, "expected YYYY-MM-DD")
    try:
        local_day = datetime.strptime(text, DAY_FORMAT).date()
    except ValueError as exc:
        raise InvalidTimestamp(value, str(exc)) from exc
    return day_key_for_date(local_day, offset_minutes)


def format_day(day: datetime, offset_minutes: Optional[int] = None) -> str:
    return ensure_utc(day).astimezone(org_timezone(offset_minutes)).strftime(DAY_FORMAT)


def local_hour(instant: datetime, offset_minutes: Optional[int] = None) -> int:
    return ensure_utc(instant).astimezone(org_timezone(offset_minutes)).hour


def format_local(instant: Optional[datetime], offset_minutes: Optional[int] = None) -> str:
    if instant is None:
        return "-"
    return ensure_utc(instant).astimezone(org_timezone(offset_minutes)).strftime("%Y-%m-%d %H:%M:%S")
