"""DayRecordState에 대한 순수 상태 전이 함수입니다.

모든 함수는 새 값을 반환하며 입력을 수정하지 않습니다. 저장은
``services.day_record_service``가 담당합니다.
"""

from dataclasses import replace
from datetime import timedelta
from typing import NamedTuple, Optional

from attendance_service.reconciliation import dedup
from attendance_service.reconciliation.classifier import (
    Boundaries,
    ClassificationPolicy,
    derive_boundaries,
    get_policy,
)
from attendance_service.reconciliation.events import DayRecordState, RawEvent


class ApplyOutcome(NamedTuple):
    state: DayRecordState
    accepted: bool


def append_note(notes: Optional[str], fragment: Optional[str]) -> Optional[str]:
    fragment = (fragment or "").strip()
    if not fragment:
        return notes
    if not notes:
        return fragment
    return f"{notes.rstrip()} {fragment}"


def build_note(face_id=None, similarity=None, event_type=None) -> str:
    parts = []
    if face_id:
        parts.append(f"Face ID: {face_id};")
    if similarity:
        parts.append(f"Similarity: {similarity}%;")
    if event_type:
        parts.append(f"Event: {event_type};")
    return " ".join(parts)


def fill_metadata(
    state: DayRecordState,
    employee_name: Optional[str] = None,
    device_name: Optional[str] = None,
) -> DayRecordState:
    # 표시용 이름은 처음 들어온 값을 유지한다.
    changes = {}
    if employee_name and not state.employee_name:
        changes["employee_name"] = employee_name
    if device_name and not state.device_name:
        changes["device_name"] = device_name
    return replace(state, **changes) if changes else state


def apply_event(
    state: DayRecordState,
    event: RawEvent,
    *,
    policy: Optional[ClassificationPolicy] = None,
    window: Optional[timedelta] = None,
    note: Optional[str] = None,
) -> ApplyOutcome:
    if not dedup.accept(state.raw_events, event, window):
        return ApplyOutcome(state, False)

    policy = policy or get_policy()
    events = state.raw_events + (event,)
    current = Boundaries(state.check_in_time, state.check_out_time)
    bounds = policy.classify(current, events, event)
    new_state = replace(
        state,
        raw_events=events,
        check_in_time=bounds.check_in,
        check_out_time=bounds.check_out,
        total_check_ins=len(events),
        device_id=event.device_id or state.device_id,
        notes=append_note(state.notes, note),
    )
    return ApplyOutcome(new_state, True)


def reconcile(state: DayRecordState, window: Optional[timedelta] = None) -> DayRecordState:
    """중복 제거 후 min/max 정책으로 경계와 건수를 다시 계산한다. 여러 번 적용해도 결과가 같다."""
    events = tuple(dedup.dedupe(state.raw_events, window))
    bounds = derive_boundaries(events)
    return replace(
        state,
        raw_events=events,
        check_in_time=bounds.check_in,
        check_out_time=bounds.check_out,
        total_check_ins=len(events),
    )


def derived_fields_differ(before: DayRecordState, after: DayRecordState) -> bool:
    return (
        before.check_in_time != after.check_in_time
        or before.check_out_time != after.check_out_time
        or before.total_check_ins != after.total_check_ins
        or len(before.raw_events) != len(after.raw_events)
    )
