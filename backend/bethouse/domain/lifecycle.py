from bethouse.core.errors import InvalidStateTransition
from bethouse.domain.enums import EventStatus

# Legal moves of the event lifecycle; anything else is rejected.
EVENT_TRANSITIONS: dict[EventStatus, frozenset[EventStatus]] = {
    EventStatus.PENDING: frozenset({EventStatus.OPEN, EventStatus.CANCELED}),
    EventStatus.OPEN: frozenset({EventStatus.LOCKED, EventStatus.CANCELED}),
    EventStatus.LOCKED: frozenset({EventStatus.SETTLED}),
    EventStatus.SETTLED: frozenset(),
    EventStatus.CANCELED: frozenset(),
}


def ensure_transition(current: str, target: EventStatus) -> None:
    allowed = EVENT_TRANSITIONS[EventStatus(current)]
    if target not in allowed:
        raise InvalidStateTransition(f"Cannot move event from {current} to {target.value}.")
