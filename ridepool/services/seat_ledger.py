"""
Seat Ledger
===========

Owns ride seat accounting and the status flips that booking and
cancellation cause.

Concurrency safety
------------------
``book`` never does a blind read-then-write on ``seats_available``.
Each attempt reads a fresh snapshot, lets ``Ride.reserve`` compute the
new seat count / status, then writes it back with

    UPDATE rides SET seats_available = :new, status = :new_status
    WHERE id = :id AND seats_available = :expected AND status = :expected_status

If another booking (or the sweeper, or a cancellation) got there first the
update matches no row and the attempt is retried against the new
snapshot.  Seats only ever decrease, so the loop is bounded by the ride's
capacity; ``booking_max_attempts`` is a safety net on top of that.

The seat write and the booking insert share the caller's transaction, so
a failure anywhere rolls both back.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ridepool.config import settings
from ridepool.domain.enums import BookingStatus, RideStatus
from ridepool.domain.errors import (
    DuplicateBooking,
    InvalidInput,
    InvalidState,
    NotFound,
)
from ridepool.infrastructure.models import BookingModel
from ridepool.infrastructure.repositories import BookingRepository, RideRepository

logger = logging.getLogger(__name__)


class SeatLedger:
    def __init__(
        self,
        session: AsyncSession,
        *,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
        max_attempts: Optional[int] = None,
    ):
        self.session = session
        self.rides = RideRepository(session)
        self.bookings = BookingRepository(session)
        self.clock = clock
        self.max_attempts = max_attempts or settings.booking_max_attempts

    # ── Booking ───────────────────────────────────────────────────────

    async def book(self, ride_id: str, passenger_id: str, seats: int) -> BookingModel:
        """Create a pending booking and take its seats from the ride."""
        if not ride_id or not seats:
            raise InvalidInput("Ride ID and number of seats are required.")

        now = self.clock()
        for attempt in range(1, self.max_attempts + 1):
            ride = await self.rides.snapshot(ride_id)
            if ride is None:
                raise NotFound("Ride not found.")

            expected_seats, expected_status = ride.seats_available, ride.status
            ride.reserve(seats, now=now)

            if await self.bookings.has_confirmed(passenger_id, ride_id):
                raise DuplicateBooking()

            swapped = await self.rides.compare_and_swap_seats(
                ride_id,
                expected_seats=expected_seats,
                expected_status=expected_status,
                new_seats=ride.seats_available,
                new_status=ride.status,
            )
            if not swapped:
                logger.debug(
                    "seats_available changed under ride %s (attempt %d), retrying",
                    ride_id,
                    attempt,
                )
                continue

            booking = await self.bookings.create(
                passenger_id=passenger_id, ride_id=ride_id, seats=seats
            )
            logger.info(
                "Booking %s: %d seat(s) on ride %s, %d left",
                booking.id,
                seats,
                ride_id,
                ride.seats_available,
            )
            if ride.status == RideStatus.FULL:
                logger.info("Ride %s is now full", ride_id)
            return booking

        raise RuntimeError(
            f"Gave up booking ride {ride_id} after {self.max_attempts} conflicting attempts"
        )

    async def confirm_booking(self, booking_id: str, driver_id: str) -> BookingModel:
        """Driver confirms a pending booking on one of their rides."""
        booking = await self.bookings.snapshot(booking_id)
        if booking is None:
            raise NotFound("Booking not found.")

        # Serialise confirmations per ride (no-op on SQLite, which has a
        # single writer anyway).
        ride = await self.rides.lock_for_update(booking.ride_id)
        if ride is None or ride.user_id != driver_id:
            raise NotFound("Booking not found.")
        if RideStatus(ride.status) in (RideStatus.COMPLETED, RideStatus.CANCELED):
            raise InvalidState(f"This ride has been {RideStatus(ride.status).value}.")

        booking.transition_to(BookingStatus.CONFIRMED)
        if await self.bookings.has_confirmed(booking.passenger_id, booking.ride_id):
            raise DuplicateBooking()

        try:
            changed = await self.bookings.set_status(
                booking_id,
                expected=BookingStatus.PENDING,
                new_status=BookingStatus.CONFIRMED,
            )
        except IntegrityError as exc:
            raise DuplicateBooking() from exc
        if not changed:
            raise InvalidState("Booking is no longer pending.")

        logger.info("Booking %s confirmed by driver %s", booking_id, driver_id)
        return await self._fresh_booking(booking_id)

    async def cancel_booking(self, booking_id: str, caller_id: str) -> BookingModel:
        """
        Passenger or ride driver cancels a booking.

        Seats are not handed back to the ride, the same as for ride
        cancellation.
        """
        booking = await self.bookings.snapshot(booking_id)
        if booking is None:
            raise NotFound("Booking not found.")
        ride = await self.rides.get_by_id(booking.ride_id)
        if caller_id != booking.passenger_id and (ride is None or ride.user_id != caller_id):
            raise NotFound("Booking not found.")

        expected = booking.status
        booking.transition_to(BookingStatus.CANCELLED)
        if not await self.bookings.set_status(
            booking_id, expected=expected, new_status=BookingStatus.CANCELLED
        ):
            raise InvalidState("Booking changed concurrently, please retry.")

        logger.info("Booking %s cancelled by %s", booking_id, caller_id)
        return await self._fresh_booking(booking_id)

    async def bookings_for_ride(self, ride_id: str, driver_id: str) -> list[BookingModel]:
        if await self.rides.get_owned(ride_id, driver_id) is None:
            raise NotFound("Ride not found.")
        return await self.bookings.get_for_ride(ride_id)

    # ── Ride cancellation ─────────────────────────────────────────────

    async def cancel_ride(self, ride_id: str, caller_id: str) -> None:
        """
        Driver cancels their own ride.

        A ride that is missing and a ride owned by someone else look the
        same to the caller.  Bookings and seat counts are left as they are.
        """
        ride = await self.rides.get_owned(ride_id, caller_id)
        if ride is None:
            raise NotFound("Ride not found or not yours to cancel")

        if not await self.rides.cancel_owned(ride_id, caller_id):
            current = await self.rides.snapshot(ride_id)
            status = current.status.value if current else "removed"
            raise InvalidState(f"This ride has been {status}.")

        logger.info("Ride %s canceled by driver %s", ride_id, caller_id)

    async def _fresh_booking(self, booking_id: str) -> BookingModel:
        await self.session.flush()
        booking = await self.session.get(BookingModel, booking_id, populate_existing=True)
        assert booking is not None
        return booking
