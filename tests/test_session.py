from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import ELBOW, make_frame
from repsense.counter import RepCompleted
from repsense.exercises import KNEES_ALIGNED_NOTE
from repsense.session import SessionError, WorkoutRecord, WorkoutSession, posture_score


class FakeClock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


@pytest.mark.parametrize(
    "n_notes,expected",
    [(0, 100), (1, 95), (2, 90), (5, 75), (6, 70), (7, 70), (20, 70)],
)
def test_posture_score(n_notes, expected):
    assert posture_score([f"note {i}" for i in range(n_notes)]) == expected


def test_posture_score_counts_distinct_notes():
    assert posture_score(["a", "a", "b"]) == 90


def test_ten_squats_session():
    clock = FakeClock()
    session = WorkoutSession("squats", clock=clock)
    session.start()
    for _ in range(10):
        for angle in (160, 100):
            clock.t += 0.5
            session.process_frame(make_frame(angle))
    clock.t += 0.5
    session.process_frame(make_frame(160))
    record = session.stop()
    assert record.reps == 10
    assert record.posture_score == 100
    assert record.posture_notes == ()
    assert record.duration == 11
    assert record.exercise_type == "squats"
    assert record.timestamp.tzinfo is not None


def test_record_carries_notes_and_score():
    clock = FakeClock()
    session = WorkoutSession("squats", clock=clock)
    session.start()
    for angle in (170, 90, 90, 160):
        session.process_frame(make_frame(angle, distal_offset=(-0.1, 0.3)))
    clock.t += 42.4
    record = session.stop()
    assert record.reps == 1
    assert record.posture_notes == (KNEES_ALIGNED_NOTE,)
    assert record.posture_score == 95
    assert record.duration == 42


def test_duration_rounds_half_up():
    clock = FakeClock()
    session = WorkoutSession("pushups", clock=clock)
    session.start()
    clock.t += 2.5
    assert session.stop().duration == 3


def test_frames_ignored_before_start_and_after_stop():
    clock = FakeClock()
    session = WorkoutSession("squats", clock=clock)
    state = session.process_frame(make_frame(90))
    assert state["status"] == "Not started"
    session.start()
    for angle in (90, 160):
        session.process_frame(make_frame(angle))
    record = session.stop()
    state = session.process_frame(make_frame(90))
    assert state["status"] == "Finished"
    session.process_frame(make_frame(160))
    assert session.counter.reps == record.reps == 1


def test_start_resets_previous_progress():
    session = WorkoutSession("squats", clock=FakeClock())
    session.start()
    for angle in (90, 160, 90):
        session.process_frame(make_frame(angle))
    session.start()
    assert session.counter.reps == 0
    session.process_frame(make_frame(160))
    assert session.counter.reps == 0


def test_stop_twice_raises():
    session = WorkoutSession("squats", clock=FakeClock())
    session.start()
    session.stop()
    with pytest.raises(SessionError):
        session.stop()
    with pytest.raises(SessionError):
        session.start()


def test_stop_without_start_raises():
    with pytest.raises(SessionError):
        WorkoutSession("squats").stop()


def test_unknown_exercise_session_records_zero():
    session = WorkoutSession("jumping_jacks", clock=FakeClock())
    session.start()
    for angle in (170, 90, 170):
        session.process_frame(make_frame(angle))
    record = session.stop()
    assert record.reps == 0
    assert record.posture_score == 100


def test_on_rep_hook():
    events = []
    session = WorkoutSession("bicep_curls", clock=FakeClock(), on_rep=events.append)
    session.start()
    for angle in (170, 60, 170, 60, 170):
        session.process_frame(make_frame(angle, joint=ELBOW))
    assert events == [RepCompleted("bicep_curls", 1), RepCompleted("bicep_curls", 2)]


def test_state_reports_elapsed():
    clock = FakeClock()
    session = WorkoutSession("squats", clock=clock)
    session.start()
    clock.t += 12.34
    state = session.state()
    assert state["active"] is True
    assert state["elapsed_sec"] == 12.3
    assert state["rep_count"] == 0


def test_record_dict_round_trip():
    record = WorkoutRecord(
        id="abc",
        exercise_type="pushups",
        reps=12,
        duration=95,
        timestamp=datetime(2026, 3, 1, 8, 30, tzinfo=timezone.utc),
        posture_score=95,
        posture_notes=("Keep knees aligned with toes",),
    )
    data = record.to_dict()
    assert data["timestamp"] == "2026-03-01T08:30:00+00:00"
    assert data["posture_notes"] == ["Keep knees aligned with toes"]
    assert WorkoutRecord.from_dict(data) == record


def test_record_from_dict_dedupes_notes_and_assumes_utc():
    record = WorkoutRecord.from_dict(
        {
            "id": 7,
            "exercise_type": "squats",
            "reps": "3",
            "duration": 30,
            "timestamp": "2026-03-01T08:30:00",
            "posture_score": 95,
            "posture_notes": ["a", "a"],
        }
    )
    assert record.id == "7"
    assert record.reps == 3
    assert record.posture_notes == ("a",)
    assert record.timestamp.tzinfo == timezone.utc
