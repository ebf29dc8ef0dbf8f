"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Ride`` and ``Booking``: enforces valid lifecycle
  transitions (OPEN -> FULL -> COMPLETED | CANCELED).
- ``Ride.reserve`` encapsulates the seat-capacity invariant: the last
  seat taken flips the ride to FULL in the same step.
- ``resolve`` encodes the pending -> accepted | rejected rule shared by
  ride requests and agreements.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Optional

from .enums import (
    BOOKING_TRANSITIONS,
    RIDE_TRANSITIONS,
    TERMINAL_RIDE_STATUSES,
    BookingStatus,
    ResolutionStatus,
    RideStatus,
)
from .errors import CapacityExceeded, InvalidInput, InvalidState


class InvalidStateTransition(InvalidState):
    """Raised when a status change violates the state machine."""


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Ride:
    id: Optional[str] = None
    driver_id: str = ""
    origin: str = ""
    destination: str = ""
    date: Optional[dt.date] = None
    time: Optional[dt.time] = None
    seats_available: int = 0
    status: RideStatus = RideStatus.OPEN

    @property
    def departs_at(self) -> Optional[dt.datetime]:
        if self.date is None or self.time is None:
            return None
        return dt.datetime.combine(self.date, self.time)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_RIDE_STATUSES

    def has_elapsed(self, now: dt.datetime) -> bool:
        """True once the scheduled date+time is strictly in the past."""
        departs_at = self.departs_at
        return departs_at is not None and departs_at < now

    def transition_to(self, new_status: RideStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        allowed = RIDE_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition ride from {self.status.value} to {new_status.value}"
            )
        self.status = new_status

    def reserve(self, seats: int, now: Optional[dt.datetime] = None) -> None:
        """Take *seats* from the ride, flipping it to FULL on the last seat."""
        if seats < 1:
            raise InvalidInput("Number of seats must be at least 1.")
        if self.is_terminal:
            raise InvalidState(f"This ride has been {self.status.value}.")
        if now is not None and self.has_elapsed(now):
            raise InvalidState("This ride has already departed.")
        if self.seats_available < seats:
            raise CapacityExceeded()

        self.seats_available -= seats
        if self.seats_available == 0:
            self.transition_to(RideStatus.FULL)


@dataclass
class Booking:
    id: Optional[str] = None
    passenger_id: str = ""
    ride_id: str = ""
    seats: int = 1
    status: BookingStatus = BookingStatus.PENDING

    def transition_to(self, new_status: BookingStatus) -> None:
        allowed = BOOKING_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition booking from {self.status.value} to {new_status.value}"
            )
        self.status = new_status


def resolve(current: ResolutionStatus, target: ResolutionStatus) -> bool:
    """
    Decide a pending -> accepted | rejected move.

    Returns ``True`` when the status must change, ``False`` when *target*
    repeats the outcome already recorded.  A conflicting second outcome
    raises ``InvalidState``.
    """
    if target == ResolutionStatus.PENDING:
        raise InvalidStateTransition("Cannot move back to pending")
    if current == ResolutionStatus.PENDING:
        return True
    if current == target:
        return False
    raise InvalidStateTransition(f"Already {current.value}")
