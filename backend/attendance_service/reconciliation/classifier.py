"""하루 동안의 원시 이벤트에서 출근/퇴근 시각을 도출하는 분류 정책입니다.

정규 정책은 ``MinMaxPolicy`` 하나입니다. ``HourOfDayPolicy``는 과거 데이터와
동작을 맞춰야 할 때만 쓰는 레거시 정책이며, 도착 순서에 따라 결과가 달라지므로
그 결과는 repair 경로로 다시 계산해야 합니다.
"""

from datetime import datetime
from typing import Dict, NamedTuple, Optional, Sequence

from attendance_service.config import settings
from attendance_service.reconciliation import timestamps
from attendance_service.reconciliation.events import RawEvent

MINMAX = "minmax"
HOUR_OF_DAY = "hour_of_day"

CHECK_IN_HOURS = (6, 12)
CHECK_OUT_HOURS = (15, 22)


class Boundaries(NamedTuple):
    check_in: Optional[datetime]
    check_out: Optional[datetime]


def derive_boundaries(events: Sequence[RawEvent]) -> Boundaries:
    if not events:
        return Boundaries(None, None)
    instants = [event.instant for event in events]
    return Boundaries(min(instants), max(instants))


class ClassificationPolicy:
    name = ""

    def classify(self, current: Boundaries, events: Sequence[RawEvent], new_event: RawEvent) -> Boundaries:
        """new_event가 이미 events에 포함된 상태에서 새 경계를 반환한다."""
        raise NotImplementedError


class MinMaxPolicy(ClassificationPolicy):
    name = MINMAX

    def classify(self, current: Boundaries, events: Sequence[RawEvent], new_event: RawEvent) -> Boundaries:
        return derive_boundaries(events)


class HourOfDayPolicy(ClassificationPolicy):
    name = HOUR_OF_DAY

    def classify(self, current: Boundaries, events: Sequence[RawEvent], new_event: RawEvent) -> Boundaries:
        moment = new_event.instant
        hour = timestamps.local_hour(moment)
        likely_in = CHECK_IN_HOURS[0] <= hour <= CHECK_IN_HOURS[1]
        likely_out = CHECK_OUT_HOURS[0] <= hour <= CHECK_OUT_HOURS[1]
        check_in, check_out = current

        if check_in is None or (likely_in and moment < check_in):
            check_in = moment
        elif check_out is None or (likely_out and moment > check_out):
            check_out = moment
        else:
            to_in = abs(moment - check_in)
            to_out = abs(moment - check_out)
            if likely_in and to_in < to_out:
                check_in = moment
            elif likely_out and to_out < to_in:
                check_out = moment

        if check_in is not None and check_out is not None and check_in > check_out:
            check_in, check_out = check_out, check_in
        return Boundaries(check_in, check_out)


POLICIES: Dict[str, ClassificationPolicy] = {
    MINMAX: MinMaxPolicy(),
    HOUR_OF_DAY: HourOfDayPolicy(),
}


def get_policy(name: Optional[str] = None) -> ClassificationPolicy:
    key = (name or settings.CLASSIFICATION_POLICY or MINMAX).strip().lower()
    if key not in POLICIES:
        raise ValueError(f"Unknown classification policy: {key}")
    return POLICIES[key]
