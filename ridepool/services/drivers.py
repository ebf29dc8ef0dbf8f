"""Driver registration, driver listings and user profiles."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ridepool.domain.errors import InvalidInput, InvalidState, NotFound
from ridepool.infrastructure.models import DriverModel
from ridepool.infrastructure.repositories import UserRepository, VehicleRepository

logger = logging.getLogger(__name__)


class DriverService:
    def __init__(self, session: AsyncSession):
        self.users = UserRepository(session)
        self.vehicles = VehicleRepository(session)

    async def become_driver(
        self,
        user_id: str,
        *,
        license_number: Optional[str],
        license_expiry: Optional[dt.date],
    ) -> DriverModel:
        if not license_number or not license_expiry:
            raise InvalidInput("License number and expiry date are required.")
        if await self.users.get_by_id(user_id) is None:
            raise NotFound("User not found")
        if await self.users.get_driver(user_id) is not None:
            raise InvalidState("User is already a driver.")
        if await self.users.get_driver_by_license(license_number) is not None:
            raise InvalidState("License number is already registered.")

        driver = await self.users.create_driver(
            user_id=user_id,
            license_number=license_number,
            license_expiry=license_expiry,
        )
        logger.info("User %s registered as driver", user_id)
        return driver

    async def profile(self, user_id: str) -> dict:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        driver = await self.users.get_driver(user_id)
        vehicles = await self.vehicles.list_for_driver(user_id) if driver else []
        return {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "phone": user.phone,
            "role": user.role,
            "is_driver": driver is not None,
            "driver_license": driver.license_number if driver else None,
            "license_expiry": driver.license_expiry if driver else None,
            "vehicles": vehicles,
        }

    async def driver_detail(self, user_id: str) -> dict:
        rows = await self.users.driver_details(user_id)
        if not rows:
            raise NotFound("Driver not found")
        return _with_rating(rows[0])

    async def list_drivers(self) -> list[dict]:
        return [_with_rating(row) for row in await self.users.driver_details()]


def _with_rating(row: dict) -> dict:
    average = row["average_rating"]
    return {**row, "average_rating": round(float(average), 2) if average is not None else None}
