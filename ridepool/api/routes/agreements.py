"""
Ride request and agreement endpoints
====================================

GET  /api/agreements/ride-req                    -- requests addressed to the caller
POST /api/agreements/ride-req/{vehicle}          -- passenger asks a driver for a ride
POST /api/agreements/accepted                    -- driver accepts a request
POST /api/agreements/rejected                    -- driver rejects a request
GET  /api/agreements/agreement                   -- agreements the caller is party to
POST /api/agreements/agreements/accept/{user}    -- either party accepts
POST /api/agreements/agreements/reject/{user}    -- either party rejects

The ``{user}`` path segment is kept for client compatibility; the bearer
token alone decides who is acting.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ridepool.api.dependencies import get_current_user, get_db
from ridepool.api.schemas import (
    AgreementDecision,
    AgreementResponse,
    MessageResponse,
    RequestDecision,
    RideRequestCreate,
    RideRequestResponse,
)
from ridepool.infrastructure.identity import CallerIdentity
from ridepool.services.agreement_resolver import AgreementResolver
from ridepool.services.booking_negotiator import BookingNegotiator

router = APIRouter(prefix="/agreements", tags=["agreements"])


@router.get(
    "/ride-req",
    response_model=list[RideRequestResponse],
    summary="Ride requests addressed to the caller",
)
async def list_ride_requests(
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await BookingNegotiator(db).list_requests_for_driver(caller.id)


@router.post(
    "/ride-req/{vehicle}",
    status_code=201,
    response_model=MessageResponse,
    summary="Request a ride from a driver",
)
async def create_ride_request(
    vehicle: str,
    body: RideRequestCreate,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await BookingNegotiator(db).request_ride(
        body.driver_id, caller.id, body.ride_id, vehicle
    )
    return MessageResponse(message="Ride request sent successfully", id=request.id)


@router.post("/accepted", response_model=MessageResponse, summary="Accept a ride request")
async def accept_ride_request(
    body: RequestDecision,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await BookingNegotiator(db).accept(body.request_id, caller.id)
    return MessageResponse(message="Ride request accepted", id=body.request_id)


@router.post("/rejected", response_model=MessageResponse, summary="Reject a ride request")
async def reject_ride_request(
    body: RequestDecision,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await BookingNegotiator(db).reject(body.request_id, caller.id)
    return MessageResponse(message="Ride request rejected", id=body.request_id)


@router.get(
    "/agreement",
    response_model=list[AgreementResponse],
    summary="Agreements the caller is party to",
)
async def list_agreements(
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AgreementResolver(db).list_for_user(caller.id)


@router.post(
    "/agreements/accept/{user}",
    response_model=MessageResponse,
    summary="Accept an agreement",
)
async def accept_agreement(
    user: str,
    body: AgreementDecision,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await AgreementResolver(db).accept(body.agreement_id, caller.id)
    return MessageResponse(message="Agreement accepted successfully", id=body.agreement_id)


@router.post(
    "/agreements/reject/{user}",
    response_model=MessageResponse,
    summary="Reject an agreement",
)
async def reject_agreement(
    user: str,
    body: AgreementDecision,
    caller: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await AgreementResolver(db).reject(body.agreement_id, caller.id)
    return MessageResponse(message="Agreement rejected", id=body.agreement_id)
