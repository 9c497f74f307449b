"""Batch lifecycle rules.

The batch status is a projection of its event history: every event type maps
to exactly one status and only the next stage in the chain may be appended.
These functions have no database access so the rule can be exercised on its
own; ``ledger.append_event`` applies them inside the write transaction.
"""
import enum
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from errors import InvalidTransitionError


class EventType(str, enum.Enum):
    COLLECTION = "COLLECTION"
    QUALITY_TEST = "QUALITY_TEST"
    PROCESSING = "PROCESSING"
    MANUFACTURING = "MANUFACTURING"


class BatchStatus(str, enum.Enum):
    COLLECTED = "COLLECTED"
    QUALITY_TESTED = "QUALITY_TESTED"
    PROCESSED = "PROCESSED"
    MANUFACTURED = "MANUFACTURED"
    COMPLETED = "COMPLETED"


class EventStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


STATUS_FOR_EVENT = {
    EventType.COLLECTION: BatchStatus.COLLECTED,
    EventType.QUALITY_TEST: BatchStatus.QUALITY_TESTED,
    EventType.PROCESSING: BatchStatus.PROCESSED,
    EventType.MANUFACTURING: BatchStatus.MANUFACTURED,
}

# None is the state of a batch that does not exist yet
NEXT_EVENT = {
    None: EventType.COLLECTION,
    BatchStatus.COLLECTED: EventType.QUALITY_TEST,
    BatchStatus.QUALITY_TESTED: EventType.PROCESSING,
    BatchStatus.PROCESSED: EventType.MANUFACTURING,
    BatchStatus.MANUFACTURED: None,
    BatchStatus.COMPLETED: None,
}

# events may only leave "pending"
EVENT_STATUS_TRANSITIONS = {
    EventStatus.PENDING: {EventStatus.CONFIRMED, EventStatus.FAILED},
    EventStatus.CONFIRMED: set(),
    EventStatus.FAILED: set(),
}


@dataclass(frozen=True)
class BatchProjection:
    status: Optional[BatchStatus] = None
    event_count: int = 0
    is_completed: bool = False
    completed_at: Optional[datetime] = None

    @property
    def lifecycle_status(self) -> Optional[BatchStatus]:
        return BatchStatus.COMPLETED if self.is_completed else self.status


def expected_next_event(status: Optional[BatchStatus]) -> Optional[EventType]:
    return NEXT_EVENT[BatchStatus(status) if status is not None else None]


def check_transition(status: Optional[BatchStatus], event_type: EventType) -> None:
    """Raise InvalidTransitionError unless ``event_type`` follows ``status``."""
    event_type = EventType(event_type)
    expected = expected_next_event(status)
    if expected is None:
        raise InvalidTransitionError(
            f"batch in status {BatchStatus(status).value} accepts no further events",
            current_status=status,
            event_type=event_type,
        )
    if event_type != expected:
        current = BatchStatus(status).value if status is not None else "NEW"
        raise InvalidTransitionError(
            f"{event_type.value} cannot follow {current}; expected {expected.value}",
            current_status=status,
            event_type=event_type,
        )


def project(state: BatchProjection, event_type: EventType, at: datetime) -> BatchProjection:
    """Fold one more event into the batch projection."""
    check_transition(state.status, event_type)
    event_type = EventType(event_type)
    new_state = replace(
        state,
        status=STATUS_FOR_EVENT[event_type],
        event_count=state.event_count + 1,
    )
    if event_type == EventType.MANUFACTURING:
        new_state = replace(new_state, is_completed=True, completed_at=at)
    return new_state


def replay(events) -> BatchProjection:
    """Rebuild a projection from ``(event_type, created_at)`` pairs."""
    state = BatchProjection()
    for event_type, at in events:
        state = project(state, event_type, at)
    return state


def check_event_status_change(current: EventStatus, target: EventStatus) -> None:
    current, target = EventStatus(current), EventStatus(target)
    if target not in EVENT_STATUS_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"event status cannot change from {current.value} to {target.value}"
        )
