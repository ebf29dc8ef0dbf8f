"""Domain enumerations and state-transition rules.

Values are persisted verbatim, so the spellings here are part of the
storage contract (note ``canceled`` for rides vs ``cancelled`` for
bookings).
"""

import enum


class UserRole(str, enum.Enum):
    PASSENGER = "passenger"
    DRIVER = "driver"
    ADMIN = "admin"


class RideStatus(str, enum.Enum):
    OPEN = "open"
    FULL = "full"
    COMPLETED = "completed"
    CANCELED = "canceled"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class ResolutionStatus(str, enum.Enum):
    """Shared by ride requests and agreements."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


TERMINAL_RIDE_STATUSES = frozenset({RideStatus.COMPLETED, RideStatus.CANCELED})

# State machine: maps current status -> set of valid next statuses
RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.OPEN: {RideStatus.FULL, RideStatus.COMPLETED, RideStatus.CANCELED},
    RideStatus.FULL: {RideStatus.COMPLETED, RideStatus.CANCELED},
    RideStatus.COMPLETED: set(),
    RideStatus.CANCELED: set(),
}

BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CANCELLED},
    BookingStatus.CANCELLED: set(),
}
