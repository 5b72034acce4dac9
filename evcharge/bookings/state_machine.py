"""
Booking lifecycle.

    Pending --approve--> Approved --start--> InProgress --complete--> Completed
    Pending --reject---> Rejected
    Approved --reject--> Rejected
    Pending/Approved --cancel--> Cancelled

`TRANSITIONS` is the single authoritative table. `apply_transition` never
raises and returns a `TransitionResult`; `next_status` raises
`InvalidStateTransition` for callers that prefer exceptions. Neither touches
storage: persisting the new status is the booking store's job.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from evcharge.exceptions import InvalidStateTransition

class BookingStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"

class BookingAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"

TRANSITIONS: Dict[Tuple[BookingStatus, BookingAction], BookingStatus] = {
    (BookingStatus.PENDING, BookingAction.APPROVE): BookingStatus.APPROVED,
    (BookingStatus.PENDING, BookingAction.REJECT): BookingStatus.REJECTED,
    (BookingStatus.APPROVED, BookingAction.REJECT): BookingStatus.REJECTED,
    (BookingStatus.APPROVED, BookingAction.START): BookingStatus.IN_PROGRESS,
    (BookingStatus.IN_PROGRESS, BookingAction.COMPLETE): BookingStatus.COMPLETED,
    (BookingStatus.PENDING, BookingAction.CANCEL): BookingStatus.CANCELLED,
    (BookingStatus.APPROVED, BookingAction.CANCEL): BookingStatus.CANCELLED,
}

TERMINAL_STATUSES: FrozenSet[BookingStatus] = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.REJECTED,
    BookingStatus.CANCELLED,
})

# Bookings that still hold a claim on their station
ACTIVE_STATUSES: FrozenSet[BookingStatus] = frozenset(set(BookingStatus) - TERMINAL_STATUSES)

@dataclass(frozen=True)
class TransitionResult:
    current: BookingStatus
    action: BookingAction
    target: Optional[BookingStatus] = None

    @property
    def ok(self) -> bool:
        return self.target is not None

    @property
    def error(self) -> Optional[InvalidStateTransition]:
        if self.ok:
            return None
        return InvalidStateTransition(describe_rejection(self.current, self.action))

def describe_rejection(current: BookingStatus, action: BookingAction) -> str:
    if current in TERMINAL_STATUSES:
        return f"Booking is already {current.value} and cannot {action.value}"
    return f"Cannot {action.value} a booking that is {current.value}"

def apply_transition(current, action) -> TransitionResult:
    """Look up the target status of `action` from `current`"""
    current = BookingStatus(current)
    action = BookingAction(action)
    return TransitionResult(current=current, action=action, target=TRANSITIONS.get((current, action)))

def next_status(current, action) -> BookingStatus:
    """Target status of `action` from `current`, or InvalidStateTransition"""
    result = apply_transition(current, action)
    if not result.ok:
        raise result.error
    return result.target

def is_terminal(status) -> bool:
    return BookingStatus(status) in TERMINAL_STATUSES

def allowed_actions(status) -> FrozenSet[BookingAction]:
    status = BookingStatus(status)
    return frozenset(action for (source, action) in TRANSITIONS if source == status)
