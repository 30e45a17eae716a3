"""DayRecordState 순수 상태 전이 함수를 검증하는 테스트입니다."""

from datetime import datetime, timedelta, timezone

from attendance_service.reconciliation import classifier, records
from attendance_service.reconciliation.events import DayRecordState, RawEvent
from attendance_service.reconciliation.timestamps import day_key, parse_timestamp


def _at(clock: str) -> datetime:
    return parse_timestamp(f"2025-01-15T{clock}+07:00")


def _empty() -> DayRecordState:
    return DayRecordState(employee_code="E1", day=day_key(_at("08:00:00")))


def test_first_event_sets_both_boundaries():
    outcome = records.apply_event(_empty(), RawEvent(_at("08:02:11"), "dev-1"))
    assert outcome.accepted
    assert outcome.state.check_in_time == outcome.state.check_out_time == _at("08:02:11")
    assert outcome.state.total_check_ins == 1
    assert outcome.state.device_id == "dev-1"


def test_duplicate_returns_unchanged_state():
    first = records.apply_event(_empty(), RawEvent(_at("08:02:11"), "dev-1")).state
    outcome = records.apply_event(first, RawEvent(_at("08:02:15"), "dev-1"))
    assert not outcome.accepted
    assert outcome.state is first


def test_apply_event_returns_new_value_without_touching_input():
    start = _empty()
    outcome = records.apply_event(start, RawEvent(_at("17:45:00"), "dev-1"))
    assert start.raw_events == ()
    assert start.total_check_ins == 0
    assert len(outcome.state.raw_events) == 1


def test_fill_metadata_keeps_first_known_names():
    state = records.fill_metadata(_empty(), employee_name="Nguyen A", device_name="Gate 1")
    state = records.fill_metadata(state, employee_name="Someone Else", device_name="Gate 2")
    assert state.employee_name == "Nguyen A"
    assert state.device_name == "Gate 1"
    unchanged = records.fill_metadata(state)
    assert unchanged is state


def test_notes_are_appended():
    note = records.build_note(face_id="42", similarity=97.5, event_type="faceSnapMatch")
    assert note == "Face ID: 42; Similarity: 97.5%; Event: faceSnapMatch;"
    state = records.apply_event(_empty(), RawEvent(_at("08:00:00"), "d"), note=note).state
    state = records.apply_event(state, RawEvent(_at("17:00:00"), "d"), note="Event: faceMatch;").state
    assert state.notes == "Face ID: 42; Similarity: 97.5%; Event: faceSnapMatch; Event: faceMatch;"
    assert records.append_note(None, "") is None


def test_reconcile_dedupes_and_recomputes_idempotently():
    legacy = DayRecordState(
        employee_code="E1",
        day=day_key(_at("08:00:00")),
        check_in_time=_at("09:00:00"),
        check_out_time=_at("09:00:00"),
        total_check_ins=5,
        raw_events=(
            RawEvent(_at("09:00:00"), "dev-1", seq=1),
            RawEvent(_at("08:00:00"), "dev-1", seq=2),
            RawEvent(_at("08:00:10"), "dev-1", seq=3),
            RawEvent(_at("18:00:00"), "dev-2", seq=4),
        ),
    )
    first = records.reconcile(legacy)
    assert first.check_in_time == _at("08:00:00")
    assert first.check_out_time == _at("18:00:00")
    assert first.total_check_ins == 3
    assert [event.seq for event in first.raw_events] == [1, 2, 4]
    assert records.derived_fields_differ(legacy, first)

    second = records.reconcile(first)
    assert second == first
    assert not records.derived_fields_differ(first, second)


def test_legacy_policy_output_is_recomputable_by_reconcile():
    policy = classifier.get_policy("hour_of_day")
    state = _empty()
    for clock in ("09:00:00", "08:00:00"):
        state = records.apply_event(state, RawEvent(_at(clock), "dev-1"), policy=policy).state
    assert state.check_out_time is None
    repaired = records.reconcile(state)
    assert repaired.check_in_time == _at("08:00:00")
    assert repaired.check_out_time == _at("09:00:00")


def test_invariants_hold_after_every_event():
    state = _empty()
    base = _at("06:00:00")
    offsets = [600, 0, 7200, 30, 29, 45000, 3600, 3615, 100]
    for index, seconds in enumerate(offsets):
        device = "dev-1" if index % 2 else "dev-2"
        state = records.apply_event(state, RawEvent(base + timedelta(seconds=seconds), device)).state
        assert state.check_in_time <= state.check_out_time
        assert state.total_check_ins == len(state.raw_events)
    assert state.check_in_time.tzinfo == timezone.utc
