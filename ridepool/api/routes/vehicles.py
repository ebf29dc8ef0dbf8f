"""
Vehicle endpoints (drivers and admins only)
===========================================

POST   /api/vehicles/add-vehicle
GET    /api/vehicles/manage-vehicle
GET    /api/vehicles/all-vehicles              -- admin
PUT    /api/vehicles/update-vehicle/{vehicle_id}
DELETE /api/vehicles/delete-vehicle/{vehicle_id}
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ridepool.api.dependencies import get_db, require_roles
from ridepool.api.schemas import (
    MessageResponse,
    VehicleCreateRequest,
    VehicleResponse,
    VehicleUpdateRequest,
)
from ridepool.domain.enums import UserRole
from ridepool.infrastructure.identity import CallerIdentity
from ridepool.services.vehicles import VehicleService

router = APIRouter(prefix="/vehicles", tags=["vehicles"])

_driver_or_admin = require_roles(UserRole.DRIVER, UserRole.ADMIN)


@router.post("/add-vehicle", status_code=201, response_model=VehicleResponse)
async def add_vehicle(
    body: VehicleCreateRequest,
    caller: CallerIdentity = Depends(_driver_or_admin),
    db: AsyncSession = Depends(get_db),
):
    return await VehicleService(db).add(
        caller,
        make=body.make,
        model=body.model,
        plate=body.plate,
        capacity=body.capacity,
    )


@router.get("/manage-vehicle", response_model=list[VehicleResponse])
async def my_vehicles(
    caller: CallerIdentity = Depends(_driver_or_admin),
    db: AsyncSession = Depends(get_db),
):
    return await VehicleService(db).list_mine(caller)


@router.get("/all-vehicles", response_model=list[VehicleResponse])
async def all_vehicles(
    caller: CallerIdentity = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await VehicleService(db).list_all()


@router.put("/update-vehicle/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_id: str,
    body: VehicleUpdateRequest,
    caller: CallerIdentity = Depends(_driver_or_admin),
    db: AsyncSession = Depends(get_db),
):
    return await VehicleService(db).update(
        caller, vehicle_id, model=body.model, plate=body.plate, capacity=body.capacity
    )


@router.delete("/delete-vehicle/{vehicle_id}", response_model=MessageResponse)
async def delete_vehicle(
    vehicle_id: str,
    caller: CallerIdentity = Depends(_driver_or_admin),
    db: AsyncSession = Depends(get_db),
):
    await VehicleService(db).delete(caller, vehicle_id)
    return MessageResponse(message="Vehicle deleted successfully", id=vehicle_id)
