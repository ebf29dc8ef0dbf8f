"""
User endpoints
==============

POST /api/users/register                -- create a passenger account
POST /api/users/login                   -- exchange email + password for a token
POST /api/users/become-driver          -- register the caller as a driver
GET  /api/users/profile                -- caller's profile (+ licence, vehicles)
PUT  /api/users/profile                -- update the caller's name and phone
GET  /api/users/drivers                -- every driver with ratings (admin only)
GET  /api/users/drivers/{user_id}      -- one driver with ratings
GET  /api/users/drivers/{user_id}/rides -- a driver's rides, paginated
POST /api/users/rides/{ride_id}/rate   -- passenger rates the ride's driver
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ridepool.api.dependencies import get_current_user, get_db, require_roles
from ridepool.api.schemas import (
    BecomeDriverRequest,
    BecomeDriverResponse,
    DriverDetail,
    DriverRidesPage,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    RateDriverRequest,
    RegisterRequest,
    TokenResponse,
)
from ridepool.domain.enums import UserRole
from ridepool.infrastructure.identity import CallerIdentity, issue_token
from ridepool.services.accounts import AccountService
from ridepool.services.drivers import DriverService
from ridepool.services.reviews import ReviewService
from ridepool.services.rides import RideCatalog

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/register", status_code=201, response_model=MessageResponse)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    user = await AccountService(db).register(
        name=body.name, email=body.email, password=body.password, phone=body.phone
    )
    return MessageResponse(message="User registered successfully!", id=user.id)


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    return await AccountService(db).login(email=body.email, password=body.password)


@router.post(
    "/become-driver",
    status_code=201,
    response_model=BecomeDriverResponse,
    description="The caller's role becomes ``driver``; the returned token carries it.",
)
async def become_driver(
    body: BecomeDriverRequest,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    driver = await DriverService(db).become_driver(
        caller.id,
        license_number=body.license_number,
        license_expiry=body.license_expiry,
    )
    return BecomeDriverResponse(
        message="User is now a driver!",
        id=driver.id,
        token=issue_token(caller.id, UserRole.DRIVER, caller.email),
    )


@router.get("/profile", response_model=ProfileResponse)
async def profile(
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await DriverService(db).profile(caller.id)


@router.put("/profile", response_model=MessageResponse)
async def update_profile(
    body: ProfileUpdateRequest,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await AccountService(db).update_profile(caller.id, name=body.name, phone=body.phone)
    return MessageResponse(message="Profile updated successfully!", id=caller.id)


@router.get("/drivers", response_model=list[DriverDetail])
async def list_drivers(
    caller: CallerIdentity = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await DriverService(db).list_drivers()


@router.get("/drivers/{user_id}", response_model=DriverDetail)
async def driver_detail(
    user_id: str,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await DriverService(db).driver_detail(user_id)


@router.get("/drivers/{user_id}/rides", response_model=DriverRidesPage)
async def driver_rides(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await RideCatalog(db).rides_for_driver(user_id, page=page, limit=limit)


@router.post("/rides/{ride_id}/rate", status_code=201, response_model=MessageResponse)
async def rate_driver(
    ride_id: str,
    body: RateDriverRequest,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    review = await ReviewService(db).rate_driver(
        caller.id, ride_id, rating=body.rating, comment=body.comment
    )
    return MessageResponse(message="Driver rated successfully!", id=review.id)
