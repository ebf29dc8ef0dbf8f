"""
Concurrency safety tests.

Demonstrates:
1. Concurrent bookings on one ride never oversell its seats.
2. Every rejected request genuinely did not fit in what was left.
3. Distributed lock prevents simultaneous acquire.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from ridepool.domain.enums import RideStatus
from ridepool.domain.errors import CapacityExceeded
from ridepool.infrastructure.locks import DistributedLock, LockNotAcquired
from ridepool.infrastructure.models import RideModel
from ridepool.services.seat_ledger import SeatLedger
from tests.conftest import NOW


async def _attempt(session_factory, ride_id, passenger_id, seats):
    """One booking in its own session/connection; returns the error on failure."""
    async with session_factory() as session:
        try:
            booking = await SeatLedger(session, clock=lambda: NOW).book(
                ride_id, passenger_id, seats
            )
            await session.commit()
            return booking
        except CapacityExceeded as exc:
            await session.rollback()
            return exc


class TestConcurrentBooking:
    @pytest.mark.asyncio
    async def test_single_seat_requests_never_oversell(self, factory, session_factory):
        driver = await factory.driver()
        passengers = [await factory.user() for _ in range(8)]
        ride = await factory.ride(driver.id, seats=3)

        results = await asyncio.gather(
            *(_attempt(session_factory, ride.id, p.id, 1) for p in passengers)
        )

        succeeded = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, CapacityExceeded)]
        assert len(succeeded) == 3
        assert len(rejected) == 5

        final = await factory.get(RideModel, ride.id)
        assert final.seats_available == 0
        assert final.status == RideStatus.FULL

    @pytest.mark.asyncio
    async def test_mixed_sizes_respect_capacity(self, factory, session_factory):
        driver = await factory.driver()
        sizes = [2, 3, 1, 2, 4, 1]
        passengers = [await factory.user() for _ in sizes]
        ride = await factory.ride(driver.id, seats=5)

        results = await asyncio.gather(
            *(
                _attempt(session_factory, ride.id, p.id, n)
                for p, n in zip(passengers, sizes)
            )
        )

        final = await factory.get(RideModel, ride.id)
        booked = sum(r.seats for r in results if not isinstance(r, Exception))
        assert booked + final.seats_available == 5
        assert final.seats_available >= 0

        # A request only fails when it could not fit in what remained at the end
        for size, result in zip(sizes, results):
            if isinstance(result, CapacityExceeded):
                assert size > final.seats_available

        if final.seats_available == 0:
            assert final.status == RideStatus.FULL
        else:
            assert final.status == RideStatus.OPEN

    @pytest.mark.asyncio
    async def test_committed_bookings_match_seats_taken(self, factory, session_factory):
        driver = await factory.driver()
        passengers = [await factory.user() for _ in range(6)]
        ride = await factory.ride(driver.id, seats=4)

        await asyncio.gather(
            *(_attempt(session_factory, ride.id, p.id, 1) for p in passengers)
        )

        async with session_factory() as session:
            ledger = SeatLedger(session)
            committed = await ledger.bookings.seats_committed(ride.id)
        final = await factory.get(RideModel, ride.id)
        assert committed == 4
        assert final.seats_available == 0


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "ride_sweeper", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_awaited_once_with(
            "ridepool:lock:ride_sweeper", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=None)

        lock = DistributedLock(mock_redis, "ride_sweeper", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_only_deletes_own_token(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=0)

        lock = DistributedLock(mock_redis, "ride_sweeper", ttl_seconds=10)
        await lock.acquire()
        assert await lock.release() is False

        args = mock_redis.eval.await_args.args
        assert args[1:] == (1, "ridepool:lock:ride_sweeper", lock.token)

    @pytest.mark.asyncio
    async def test_context_manager_acquire_fail_raises(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "ride_sweeper", ttl_seconds=10)
        with pytest.raises(LockNotAcquired, match="Could not acquire lock"):
            async with lock:
                pass
