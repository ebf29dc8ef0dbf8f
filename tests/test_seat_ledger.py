"""Seat ledger: booking, confirmation and ride cancellation against a real database."""

from __future__ import annotations

import datetime as dt

import pytest

from ridepool.domain.enums import BookingStatus, RideStatus
from ridepool.domain.errors import (
    CapacityExceeded,
    DuplicateBooking,
    InvalidInput,
    InvalidState,
    NotFound,
)
from ridepool.infrastructure.models import BookingModel, RideModel
from ridepool.services.seat_ledger import SeatLedger
from tests.conftest import NOW


async def _book(session_factory, ride_id, passenger_id, seats):
    async with session_factory() as session:
        booking = await SeatLedger(session, clock=lambda: NOW).book(
            ride_id, passenger_id, seats
        )
        await session.commit()
        return booking


class TestBook:
    @pytest.mark.asyncio
    async def test_three_seat_ride_fills_up(self, factory, session_factory):
        driver = await factory.driver()
        a, b, c = [await factory.user() for _ in range(3)]
        ride = await factory.ride(driver.id, seats=3)

        first = await _book(session_factory, ride.id, a.id, 2)
        assert first.status == BookingStatus.PENDING
        assert first.seats == 2
        after_a = await factory.get(RideModel, ride.id)
        assert after_a.seats_available == 1
        assert after_a.status == RideStatus.OPEN

        with pytest.raises(CapacityExceeded):
            await _book(session_factory, ride.id, b.id, 2)
        after_b = await factory.get(RideModel, ride.id)
        assert after_b.seats_available == 1

        await _book(session_factory, ride.id, c.id, 1)
        after_c = await factory.get(RideModel, ride.id)
        assert after_c.seats_available == 0
        assert after_c.status == RideStatus.FULL

    @pytest.mark.asyncio
    async def test_full_ride_rejects_further_bookings(self, factory, session_factory):
        driver = await factory.driver()
        passenger = await factory.user()
        ride = await factory.ride(driver.id, seats=0, status=RideStatus.FULL)

        with pytest.raises(CapacityExceeded):
            await _book(session_factory, ride.id, passenger.id, 1)

    @pytest.mark.asyncio
    async def test_failed_booking_creates_no_row(self, factory, session_factory):
        driver = await factory.driver()
        passenger = await factory.user()
        ride = await factory.ride(driver.id, seats=1)

        with pytest.raises(CapacityExceeded):
            await _book(session_factory, ride.id, passenger.id, 5)

        async with session_factory() as session:
            assert await SeatLedger(session).bookings.get_for_ride(ride.id) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [RideStatus.COMPLETED, RideStatus.CANCELED])
    async def test_terminal_ride_is_invalid_state(self, factory, session_factory, status):
        driver = await factory.driver()
        passenger = await factory.user()
        ride = await factory.ride(driver.id, seats=3, status=status)

        with pytest.raises(InvalidState):
            await _book(session_factory, ride.id, passenger.id, 1)
        unchanged = await factory.get(RideModel, ride.id)
        assert unchanged.seats_available == 3

    @pytest.mark.asyncio
    async def test_departed_ride_is_invalid_state(self, factory, session_factory):
        driver = await factory.driver()
        passenger = await factory.user()
        ride = await factory.ride(driver.id, date=NOW.date(), time=dt.time(11, 0))

        with pytest.raises(InvalidState):
            await _book(session_factory, ride.id, passenger.id, 1)

    @pytest.mark.asyncio
    async def test_missing_ride_is_not_found(self, factory, session_factory):
        passenger = await factory.user()
        with pytest.raises(NotFound):
            await _book(session_factory, "no-such-ride", passenger.id, 1)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seats", [0, -1])
    async def test_non_positive_seats_is_invalid_input(self, factory, session_factory, seats):
        driver = await factory.driver()
        passenger = await factory.user()
        ride = await factory.ride(driver.id)

        with pytest.raises(InvalidInput):
            await _book(session_factory, ride.id, passenger.id, seats)

    @pytest.mark.asyncio
    async def test_pending_duplicates_allowed_until_confirmed(self, factory, session_factory):
        driver = await factory.driver()
        passenger = await factory.user()
        ride = await factory.ride(driver.id, seats=4)

        first = await _book(session_factory, ride.id, passenger.id, 1)
        await _book(session_factory, ride.id, passenger.id, 1)

        async with session_factory() as session:
            await SeatLedger(session, clock=lambda: NOW).confirm_booking(first.id, driver.id)
            await session.commit()

        with pytest.raises(DuplicateBooking):
            await _book(session_factory, ride.id, passenger.id, 1)
        ride_after = await factory.get(RideModel, ride.id)
        assert ride_after.seats_available == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, factory, db_session, monkeypatch):
        driver = await factory.driver()
        passenger = await factory.user()
        ride = await factory.ride(driver.id)

        ledger = SeatLedger(db_session, clock=lambda: NOW, max_attempts=3)

        async def always_conflict(*args, **kwargs):
            return False

        monkeypatch.setattr(ledger.rides, "compare_and_swap_seats", always_conflict)
        with pytest.raises(RuntimeError, match="after 3"):
            await ledger.book(ride.id, passenger.id, 1)


class TestConfirmAndCancelBooking:
    @pytest.mark.asyncio
    async def test_driver_confirms_pending_booking(self, factory, session_factory):
        driver = await factory.driver()
        passenger = await factory.user()
        ride = await factory.ride(driver.id)
        booking = await factory.booking(passenger.id, ride.id)

        async with session_factory() as session:
            confirmed = await SeatLedger(session).confirm_booking(booking.id, driver.id)
            await session.commit()
        assert confirmed.status == BookingStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_second_confirmed_booking_is_duplicate(self, factory, session_factory):
        driver = await factory.driver()
        passenger = await factory.user()
        ride = await factory.ride(driver.id)
        await factory.booking(passenger.id, ride.id, status=BookingStatus.CONFIRMED)
        pending = await factory.booking(passenger.id, ride.id)

        async with session_factory() as session:
            with pytest.raises(DuplicateBooking):
                await SeatLedger(session).confirm_booking(pending.id, driver.id)

    @pytest.mark.asyncio
    async def test_other_driver_cannot_confirm(self, factory, session_factory):
        driver, other = await factory.driver(), await factory.driver()
        passenger = await factory.user()
        ride = await factory.ride(driver.id)
        booking = await factory.booking(passenger.id, ride.id)

        async with session_factory() as session:
            with pytest.raises(NotFound):
                await SeatLedger(session).confirm_booking(booking.id, other.id)

    @pytest.mark.asyncio
    async def test_confirming_twice_is_invalid_state(self, factory, session_factory):
        driver = await factory.driver()
        passenger = await factory.user()
        ride = await factory.ride(driver.id)
        booking = await factory.booking(passenger.id, ride.id, status=BookingStatus.CONFIRMED)

        async with session_factory() as session:
            with pytest.raises(InvalidState):
                await SeatLedger(session).confirm_booking(booking.id, driver.id)

    @pytest.mark.asyncio
    async def test_passenger_cancels_without_restoring_seats(self, factory, session_factory):
        driver = await factory.driver()
        passenger = await factory.user()
        ride = await factory.ride(driver.id, seats=3)
        booking = await _book(session_factory, ride.id, passenger.id, 2)

        async with session_factory() as session:
            cancelled = await SeatLedger(session).cancel_booking(booking.id, passenger.id)
            await session.commit()

        assert cancelled.status == BookingStatus.CANCELLED
        ride_after = await factory.get(RideModel, ride.id)
        assert ride_after.seats_available == 1

    @pytest.mark.asyncio
    async def test_stranger_cannot_cancel_booking(self, factory, session_factory):
        driver = await factory.driver()
        passenger, stranger = await factory.user(), await factory.user()
        ride = await factory.ride(driver.id)
        booking = await factory.booking(passenger.id, ride.id)

        async with session_factory() as session:
            with pytest.raises(NotFound):
                await SeatLedger(session).cancel_booking(booking.id, stranger.id)

        still = await factory.get(BookingModel, booking.id)
        assert still.status == BookingStatus.PENDING

    @pytest.mark.asyncio
    async def test_bookings_for_ride_requires_owner(self, factory, session_factory):
        driver, other = await factory.driver(), await factory.driver()
        passenger = await factory.user()
        ride = await factory.ride(driver.id)
        await factory.booking(passenger.id, ride.id)

        async with session_factory() as session:
            ledger = SeatLedger(session)
            assert len(await ledger.bookings_for_ride(ride.id, driver.id)) == 1
            with pytest.raises(NotFound):
                await ledger.bookings_for_ride(ride.id, other.id)


class TestCancelRide:
    @pytest.mark.asyncio
    async def test_owner_cancels(self, factory, session_factory):
        driver = await factory.driver()
        ride = await factory.ride(driver.id, seats=2)

        async with session_factory() as session:
            await SeatLedger(session).cancel_ride(ride.id, driver.id)
            await session.commit()

        canceled = await factory.get(RideModel, ride.id)
        assert canceled.status == RideStatus.CANCELED
        assert canceled.seats_available == 2

    @pytest.mark.asyncio
    async def test_non_owner_sees_not_found_and_ride_is_untouched(self, factory, session_factory):
        driver, other = await factory.driver(), await factory.driver()
        ride = await factory.ride(driver.id, seats=2)
        before = await factory.get(RideModel, ride.id)

        async with session_factory() as session:
            with pytest.raises(NotFound):
                await SeatLedger(session).cancel_ride(ride.id, other.id)

        after = await factory.get(RideModel, ride.id)
        assert (after.status, after.seats_available) == (before.status, before.seats_available)

    @pytest.mark.asyncio
    async def test_missing_ride_is_not_found(self, factory, session_factory):
        driver = await factory.driver()
        async with session_factory() as session:
            with pytest.raises(NotFound):
                await SeatLedger(session).cancel_ride("missing", driver.id)

    @pytest.mark.asyncio
    async def test_canceled_ride_cannot_be_booked(self, factory, session_factory):
        driver = await factory.driver()
        passenger = await factory.user()
        ride = await factory.ride(driver.id, seats=3)

        async with session_factory() as session:
            await SeatLedger(session).cancel_ride(ride.id, driver.id)
            await session.commit()

        with pytest.raises(InvalidState):
            await _book(session_factory, ride.id, passenger.id, 1)

    @pytest.mark.asyncio
    async def test_cancelling_a_terminal_ride_is_invalid_state(self, factory, session_factory):
        driver = await factory.driver()
        ride = await factory.ride(driver.id, status=RideStatus.COMPLETED)

        async with session_factory() as session:
            with pytest.raises(InvalidState):
                await SeatLedger(session).cancel_ride(ride.id, driver.id)
