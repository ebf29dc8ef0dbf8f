"""Vehicle management for drivers (admins may act on any vehicle)."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ridepool.domain.errors import Forbidden, InvalidInput, InvalidState
from ridepool.infrastructure.identity import CallerIdentity
from ridepool.infrastructure.models import VehicleModel
from ridepool.infrastructure.repositories import UserRepository, VehicleRepository

logger = logging.getLogger(__name__)


class VehicleService:
    def __init__(self, session: AsyncSession):
        self.vehicles = VehicleRepository(session)
        self.users = UserRepository(session)

    async def add(
        self,
        caller: CallerIdentity,
        *,
        make: Optional[str],
        model: Optional[str],
        plate: Optional[str],
        capacity: Optional[int],
    ) -> VehicleModel:
        if not (make and model and plate and capacity):
            raise InvalidInput("All fields are required")
        self._check_capacity(capacity)
        if await self.users.get_driver(caller.id) is None:
            raise Forbidden("Only registered drivers can add vehicles")
        await self._check_plate_free(plate)

        vehicle = await self.vehicles.create(
            driver_id=caller.id, make=make, model=model, plate=plate, capacity=capacity
        )
        logger.info("Vehicle %s (%s) added by %s", vehicle.id, plate, caller.id)
        return vehicle

    async def list_mine(self, caller: CallerIdentity) -> list[VehicleModel]:
        return await self.vehicles.list_for_driver(caller.id)

    async def list_all(self) -> list[VehicleModel]:
        return await self.vehicles.list_all()

    async def update(
        self,
        caller: CallerIdentity,
        vehicle_id: str,
        *,
        model: Optional[str],
        plate: Optional[str],
        capacity: Optional[int],
    ) -> VehicleModel:
        if not (model and plate and capacity):
            raise InvalidInput("All fields are required")
        self._check_capacity(capacity)
        vehicle = await self._owned(caller, vehicle_id, "update")
        if plate != vehicle.plate:
            await self._check_plate_free(plate)

        vehicle.model = model
        vehicle.plate = plate
        vehicle.capacity = capacity
        return vehicle

    async def delete(self, caller: CallerIdentity, vehicle_id: str) -> None:
        vehicle = await self._owned(caller, vehicle_id, "delete")
        await self.vehicles.delete(vehicle)
        logger.info("Vehicle %s deleted by %s", vehicle_id, caller.id)

    async def _owned(self, caller: CallerIdentity, vehicle_id: str, action: str) -> VehicleModel:
        vehicle = await self.vehicles.get_by_id(vehicle_id)
        if vehicle is None or (vehicle.user_id != caller.id and not caller.is_admin):
            raise Forbidden(f"Unauthorized to {action} this vehicle")
        return vehicle

    async def _check_plate_free(self, plate: str) -> None:
        if await self.vehicles.get_by_plate(plate) is not None:
            raise InvalidState("A vehicle with this plate is already registered")

    @staticmethod
    def _check_capacity(capacity: int) -> None:
        if capacity < 1:
            raise InvalidInput("Capacity must be at least 1")
