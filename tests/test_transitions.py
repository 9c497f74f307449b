from datetime import datetime, timedelta

import pytest

from errors import InvalidTransitionError
from transitions import (
    BatchProjection, BatchStatus, EventStatus, EventType, check_event_status_change,
    check_transition, expected_next_event, project, replay,
)

T0 = datetime(2025, 1, 10, 8, 0, 0)
LIFECYCLE = [EventType.COLLECTION, EventType.QUALITY_TEST, EventType.PROCESSING, EventType.MANUFACTURING]


def test_new_batch_only_accepts_collection():
    assert expected_next_event(None) == EventType.COLLECTION
    check_transition(None, EventType.COLLECTION)
    with pytest.raises(InvalidTransitionError):
        check_transition(None, EventType.QUALITY_TEST)


@pytest.mark.parametrize("n", [1, 2, 3, 4])
def test_count_and_status_follow_the_nth_event(n):
    state = replay((t, T0 + timedelta(hours=i)) for i, t in enumerate(LIFECYCLE[:n]))
    assert state.event_count == n
    assert state.status == {
        EventType.COLLECTION: BatchStatus.COLLECTED,
        EventType.QUALITY_TEST: BatchStatus.QUALITY_TESTED,
        EventType.PROCESSING: BatchStatus.PROCESSED,
        EventType.MANUFACTURING: BatchStatus.MANUFACTURED,
    }[LIFECYCLE[n - 1]]


def test_manufacturing_completes_the_batch():
    done_at = T0 + timedelta(days=3)
    state = replay(zip(LIFECYCLE, [T0, T0, T0, done_at]))
    assert state.is_completed
    assert state.completed_at == done_at
    assert state.status == BatchStatus.MANUFACTURED
    assert state.lifecycle_status == BatchStatus.COMPLETED


def test_skipping_a_stage_is_rejected_and_state_is_kept():
    state = project(BatchProjection(), EventType.COLLECTION, T0)
    with pytest.raises(InvalidTransitionError) as exc:
        project(state, EventType.PROCESSING, T0)
    assert "expected QUALITY_TEST" in str(exc.value)
    assert state == BatchProjection(status=BatchStatus.COLLECTED, event_count=1)


def test_completed_batch_accepts_nothing():
    state = replay(zip(LIFECYCLE, [T0] * 4))
    for event_type in EventType:
        with pytest.raises(InvalidTransitionError):
            project(state, event_type, T0)


def test_reversal_is_rejected():
    state = replay(zip(LIFECYCLE[:3], [T0] * 3))
    with pytest.raises(InvalidTransitionError):
        project(state, EventType.QUALITY_TEST, T0)


def test_event_status_only_leaves_pending():
    check_event_status_change(EventStatus.PENDING, EventStatus.CONFIRMED)
    check_event_status_change(EventStatus.PENDING, EventStatus.FAILED)
    with pytest.raises(InvalidTransitionError):
        check_event_status_change(EventStatus.CONFIRMED, EventStatus.FAILED)
    with pytest.raises(InvalidTransitionError):
        check_event_status_change(EventStatus.FAILED, EventStatus.CONFIRMED)
