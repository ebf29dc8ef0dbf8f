"""
Ride endpoints
==============

POST /api/rides/offerride                     -- driver offers a ride
POST /api/rides/search                        -- exact origin/destination/date match
GET  /api/rides/available                     -- open rides with free seats
GET  /api/rides/bookings/history              -- caller's bookings
GET  /api/rides/my-pool                       -- rides the caller drives or booked
POST /api/rides/book-ride                     -- take seats on a ride
POST /api/rides/cancel-ride                   -- driver cancels own ride
POST /api/rides/bookings/{booking_id}/confirm -- driver confirms a booking
POST /api/rides/bookings/{booking_id}/cancel  -- passenger or driver cancels a booking
GET  /api/rides/{ride_id}                     -- ride details
GET  /api/rides/{ride_id}/bookings            -- driver lists bookings on own ride
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ridepool.api.dependencies import get_current_user, get_db, require_roles
from ridepool.api.schemas import (
    BookingHistoryEntry,
    BookingResponse,
    BookRideRequest,
    CancelRideRequest,
    MessageResponse,
    RideOfferRequest,
    RideResponse,
    RideSearchRequest,
)
from ridepool.domain.enums import UserRole
from ridepool.infrastructure.identity import CallerIdentity
from ridepool.services.rides import RideCatalog
from ridepool.services.seat_ledger import SeatLedger

router = APIRouter(prefix="/rides", tags=["rides"])


@router.post(
    "/offerride",
    status_code=201,
    response_model=RideResponse,
    summary="Offer a ride",
)
async def offer_ride(
    body: RideOfferRequest,
    caller: CallerIdentity = Depends(require_roles(UserRole.DRIVER, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await RideCatalog(db).offer_ride(
        caller,
        origin=body.origin,
        destination=body.destination,
        date=body.date,
        time=body.time,
        seats_available=body.seats_available,
    )


@router.post("/search", response_model=list[RideResponse], summary="Search rides")
async def search_rides(
    body: RideSearchRequest,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await RideCatalog(db).search(body.origin, body.destination, body.date)


@router.get("/available", response_model=list[RideResponse], summary="Open rides with free seats")
async def available_rides(
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await RideCatalog(db).available()


@router.get(
    "/bookings/history",
    response_model=list[BookingHistoryEntry],
    summary="Caller's booking history",
)
async def booking_history(
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await RideCatalog(db).booking_history(caller.id)


@router.get("/my-pool", response_model=list[RideResponse], summary="Rides the caller drives or booked")
async def my_pool(
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await RideCatalog(db).my_pool(caller.id)


@router.post(
    "/book-ride",
    status_code=201,
    response_model=MessageResponse,
    summary="Book seats on a ride",
    responses={
        404: {"description": "Ride not found"},
        409: {"description": "Ride closed, not enough seats, or already confirmed"},
    },
)
async def book_ride(
    body: BookRideRequest,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    booking = await SeatLedger(db).book(body.ride_id, caller.id, body.seats)
    return MessageResponse(
        message="Ride booked successfully. Waiting for confirmation.",
        id=booking.id,
    )


@router.post(
    "/cancel-ride",
    response_model=MessageResponse,
    summary="Cancel a ride",
    description=(
        "Marks the caller's ride as canceled. Seat counts and existing "
        "bookings are left untouched."
    ),
)
async def cancel_ride(
    body: CancelRideRequest,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await SeatLedger(db).cancel_ride(body.ride_id, caller.id)
    return MessageResponse(message="Ride canceled successfully", id=body.ride_id)


@router.post(
    "/bookings/{booking_id}/confirm",
    response_model=BookingResponse,
    summary="Confirm a pending booking",
)
async def confirm_booking(
    booking_id: str,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SeatLedger(db).confirm_booking(booking_id, caller.id)


@router.post(
    "/bookings/{booking_id}/cancel",
    response_model=BookingResponse,
    summary="Cancel a booking",
)
async def cancel_booking(
    booking_id: str,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SeatLedger(db).cancel_booking(booking_id, caller.id)


@router.get("/{ride_id}", response_model=RideResponse, summary="Get a ride")
async def get_ride(
    ride_id: str,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await RideCatalog(db).get(ride_id)


@router.get(
    "/{ride_id}/bookings",
    response_model=list[BookingResponse],
    summary="Bookings on the caller's ride",
)
async def ride_bookings(
    ride_id: str,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SeatLedger(db).bookings_for_ride(ride_id, caller.id)
