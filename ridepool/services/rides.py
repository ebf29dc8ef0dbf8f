"""Ride catalogue: offering, searching and listing rides."""

from __future__ import annotations

import datetime as dt
import math
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ridepool.domain.entities import Ride
from ridepool.domain.errors import Forbidden, InvalidInput, NotFound
from ridepool.infrastructure.identity import CallerIdentity
from ridepool.infrastructure.models import RideModel
from ridepool.infrastructure.repositories import (
    BookingRepository,
    RideRepository,
    UserRepository,
)


class RideCatalog:
    def __init__(
        self,
        session: AsyncSession,
        *,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
    ):
        self.rides = RideRepository(session)
        self.bookings = BookingRepository(session)
        self.users = UserRepository(session)
        self.clock = clock

    async def offer_ride(
        self,
        caller: CallerIdentity,
        *,
        origin: Optional[str],
        destination: Optional[str],
        date: Optional[dt.date],
        time: Optional[dt.time],
        seats_available: Optional[int],
    ) -> RideModel:
        if not (origin and destination and date and time and seats_available):
            raise InvalidInput("All fields are required")
        if seats_available < 1:
            raise InvalidInput("A ride needs at least one seat")
        if await self.users.get_driver(caller.id) is None:
            raise Forbidden("Only registered drivers can offer rides")

        # An already-elapsed ride would be swept to completed straight away
        if Ride(date=date, time=time).has_elapsed(self.clock()):
            raise InvalidInput("Ride must be scheduled in the future")

        return await self.rides.create_ride(
            driver_id=caller.id,
            origin=origin,
            destination=destination,
            date=date,
            time=time,
            seats_available=seats_available,
        )

    async def get(self, ride_id: str) -> RideModel:
        ride = await self.rides.get_by_id(ride_id)
        if ride is None:
            raise NotFound("Ride not found.")
        return ride

    async def search(self, origin: str, destination: str, date: dt.date) -> list[RideModel]:
        return await self.rides.search(origin, destination, date)

    async def available(self) -> list[RideModel]:
        return await self.rides.get_available()

    async def rides_for_driver(self, driver_id: str, page: int = 1, limit: int = 10) -> dict:
        page, limit = max(page, 1), max(limit, 1)
        rides = await self.rides.get_for_driver(
            driver_id, limit=limit, offset=(page - 1) * limit
        )
        total = await self.rides.count_for_driver(driver_id)
        if not rides:
            raise NotFound("No rides found for this driver")
        return {
            "page": page,
            "total_pages": math.ceil(total / limit),
            "total_rides": total,
            "rides": rides,
        }

    async def my_pool(self, user_id: str) -> list[RideModel]:
        return await self.rides.get_pool_for_user(user_id)

    async def booking_history(self, user_id: str) -> list[dict]:
        return await self.bookings.history_for_user(user_id)
