"""Domain enums for the seating engine."""

from enum import Enum
from typing import FrozenSet


class ReservationStatus(str, Enum):
    """Reservation status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

    @property
    def is_terminal(self) -> bool:
        """No further mutation is allowed once terminal."""
        return self in TERMINAL_RESERVATION_STATUSES

    @property
    def holds_table(self) -> bool:
        """Whether a reservation in this status blocks its table."""
        return self not in RELEASED_RESERVATION_STATUSES


TERMINAL_RESERVATION_STATUSES: FrozenSet[ReservationStatus] = frozenset({
    ReservationStatus.CANCELLED,
    ReservationStatus.COMPLETED,
})

RELEASED_RESERVATION_STATUSES: FrozenSet[ReservationStatus] = frozenset({
    ReservationStatus.CANCELLED,
    ReservationStatus.NO_SHOW,
})

BLOCKING_RESERVATION_STATUSES: FrozenSet[ReservationStatus] = frozenset(
    status for status in ReservationStatus if status.holds_table
)


class WaitlistStatus(str, Enum):
    """Waitlist entry status."""

    WAITING = "waiting"
    NOTIFIED = "notified"
    SEATED = "seated"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class NotificationKind(str, Enum):
    """Customer message types."""

    RESERVATION = "reservation"
    CANCELLATION = "cancellation"
    MODIFICATION = "modification"
    WAITLIST = "waitlist"
