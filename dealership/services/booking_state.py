from typing import Dict, FrozenSet

from dealership.models.enums import BookingStatus
from dealership.services.exceptions import InvalidTransitionError

TERMINAL_STATUSES: FrozenSet[str] = frozenset({
    BookingStatus.COMPLETED.value,
    BookingStatus.CANCELLED.value,
})

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    BookingStatus.PENDING.value: frozenset({BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value}),
    BookingStatus.CONFIRMED.value: frozenset({BookingStatus.IN_PROGRESS.value, BookingStatus.CANCELLED.value}),
    BookingStatus.IN_PROGRESS.value: frozenset({BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value}),
    BookingStatus.COMPLETED.value: frozenset(),
    BookingStatus.CANCELLED.value: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, target: str) -> None:
    """Raise InvalidTransitionError unless current -> target is allowed."""
    if current == BookingStatus.CANCELLED.value:
        raise InvalidTransitionError("Booking is already cancelled")
    if current == BookingStatus.COMPLETED.value:
        if target == BookingStatus.CANCELLED.value:
            raise InvalidTransitionError("Cannot cancel completed booking")
        raise InvalidTransitionError("Booking is already completed")
    if not can_transition(current, target):
        raise InvalidTransitionError(f"Cannot change booking status from '{current}' to '{target}'")
