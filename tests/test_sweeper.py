"""Lifecycle sweeper: elapsed rides are completed exactly once."""

from __future__ import annotations

import asyncio
import datetime as dt
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from ridepool.domain.enums import RideStatus
from ridepool.infrastructure.models import RideModel
from ridepool.infrastructure.repositories import RideRepository
from ridepool.workers import sweeper
from tests.conftest import NEXT_WEEK, NOW

YESTERDAY = (NOW - dt.timedelta(days=1)).date()


async def _sweep(session_factory, now=NOW) -> int:
    async with session_factory() as session:
        completed = await RideRepository(session).complete_elapsed(now)
        await session.commit()
        return completed


def _redis(acquired=True):
    client = AsyncMock()
    client.set = AsyncMock(return_value=acquired)
    client.eval = AsyncMock(return_value=1)
    return client


class TestCompleteElapsed:
    @pytest.mark.asyncio
    async def test_completes_only_elapsed_rides(self, factory, session_factory):
        driver = await factory.driver()
        yesterday = await factory.ride(driver.id, date=YESTERDAY, time=dt.time(23, 0))
        earlier_today = await factory.ride(driver.id, date=NOW.date(), time=dt.time(11, 59))
        later_today = await factory.ride(driver.id, date=NOW.date(), time=dt.time(12, 30))
        next_week = await factory.ride(driver.id, date=NEXT_WEEK)

        assert await _sweep(session_factory) == 2

        assert (await factory.get(RideModel, yesterday.id)).status == RideStatus.COMPLETED
        assert (await factory.get(RideModel, earlier_today.id)).status == RideStatus.COMPLETED
        assert (await factory.get(RideModel, later_today.id)).status == RideStatus.OPEN
        assert (await factory.get(RideModel, next_week.id)).status == RideStatus.OPEN

    @pytest.mark.asyncio
    async def test_departure_exactly_now_is_not_elapsed(self, factory, session_factory):
        driver = await factory.driver()
        ride = await factory.ride(driver.id, date=NOW.date(), time=NOW.time())

        assert await _sweep(session_factory) == 0
        assert (await factory.get(RideModel, ride.id)).status == RideStatus.OPEN

    @pytest.mark.asyncio
    async def test_full_rides_complete_and_keep_seat_count(self, factory, session_factory):
        driver = await factory.driver()
        ride = await factory.ride(driver.id, seats=0, status=RideStatus.FULL, date=YESTERDAY)

        assert await _sweep(session_factory) == 1
        swept = await factory.get(RideModel, ride.id)
        assert swept.status == RideStatus.COMPLETED
        assert swept.seats_available == 0

    @pytest.mark.asyncio
    async def test_canceled_rides_are_left_alone(self, factory, session_factory):
        driver = await factory.driver()
        ride = await factory.ride(driver.id, status=RideStatus.CANCELED, date=YESTERDAY)

        assert await _sweep(session_factory) == 0
        assert (await factory.get(RideModel, ride.id)).status == RideStatus.CANCELED

    @pytest.mark.asyncio
    async def test_second_pass_is_a_noop(self, factory, session_factory):
        driver = await factory.driver()
        await factory.ride(driver.id, date=YESTERDAY)
        await factory.ride(driver.id, date=YESTERDAY, time=dt.time(7, 0))

        assert await _sweep(session_factory) == 2
        assert await _sweep(session_factory) == 0


class TestRunSweepCycle:
    @pytest.mark.asyncio
    async def test_cycle_completes_rides_under_lock(self, factory, session_factory):
        driver = await factory.driver()
        ride = await factory.ride(driver.id, date=YESTERDAY)
        redis = _redis()

        with patch.object(sweeper, "get_redis", AsyncMock(return_value=redis)), \
             patch.object(sweeper, "async_session_factory", session_factory):
            assert await sweeper.run_sweep_cycle(now=NOW) == 1

        assert (await factory.get(RideModel, ride.id)).status == RideStatus.COMPLETED
        redis.set.assert_awaited_once()
        redis.eval.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cycle_skips_when_lock_is_held(self, factory, session_factory):
        driver = await factory.driver()
        ride = await factory.ride(driver.id, date=YESTERDAY)
        redis = _redis(acquired=False)

        with patch.object(sweeper, "get_redis", AsyncMock(return_value=redis)), \
             patch.object(sweeper, "async_session_factory", session_factory):
            assert await sweeper.run_sweep_cycle(now=NOW) == 0

        assert (await factory.get(RideModel, ride.id)).status == RideStatus.OPEN
        redis.eval.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cycle_skips_when_redis_is_down(self, factory, session_factory):
        driver = await factory.driver()
        ride = await factory.ride(driver.id, date=YESTERDAY)
        redis = _redis()
        redis.set = AsyncMock(side_effect=RedisConnectionError("connection refused"))

        with patch.object(sweeper, "get_redis", AsyncMock(return_value=redis)), \
             patch.object(sweeper, "async_session_factory", session_factory):
            assert await sweeper.run_sweep_cycle(now=NOW) == 0

        assert (await factory.get(RideModel, ride.id)).status == RideStatus.OPEN

    @pytest.mark.asyncio
    async def test_lock_released_when_update_fails(self, factory, session_factory):
        redis = _redis()
        failing = AsyncMock(side_effect=RuntimeError("database unavailable"))

        with patch.object(sweeper, "get_redis", AsyncMock(return_value=redis)), \
             patch.object(sweeper, "async_session_factory", session_factory), \
             patch.object(RideRepository, "complete_elapsed", failing):
            assert await sweeper.run_sweep_cycle(now=NOW) == 0

        redis.eval.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_loop_survives_redis_outage(self):
        redis = _redis()
        redis.set = AsyncMock(side_effect=RedisConnectionError("connection refused"))

        with patch.object(sweeper, "get_redis", AsyncMock(return_value=redis)), \
             patch.object(sweeper.settings, "sweep_interval_seconds", 0.01):
            await sweeper.start_sweeper_loop()
            await asyncio.sleep(0.05)
            task = sweeper._task
            assert task is not None and not task.done()
            await sweeper.stop_sweeper_loop()

        assert redis.set.await_count >= 2
