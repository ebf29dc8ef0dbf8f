"""
Booking Negotiator
==================

Passenger-initiated ride requests addressed to one driver, and the
driver's accept / reject answer.

This path never touches seat counts; seats are only consumed by
``SeatLedger.book``.  Accepting a request opens a pending agreement
between the same passenger, driver and ride.

A request is resolved once.  Repeating the same answer is a no-op;
answering the other way afterwards raises ``InvalidState``.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ridepool.domain.entities import resolve
from ridepool.domain.enums import ResolutionStatus
from ridepool.domain.errors import Forbidden, InvalidInput, InvalidState, NotFound
from ridepool.infrastructure.models import RideRequestModel
from ridepool.infrastructure.repositories import (
    AgreementRepository,
    RideRepository,
    RideRequestRepository,
)

logger = logging.getLogger(__name__)


class BookingNegotiator:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.requests = RideRequestRepository(session)
        self.agreements = AgreementRepository(session)
        self.rides = RideRepository(session)

    async def request_ride(
        self,
        driver_id: Optional[str],
        passenger_id: str,
        ride_id: Optional[str],
        vehicle_id: Optional[str],
    ) -> RideRequestModel:
        if not ride_id or not driver_id:
            raise InvalidInput("Ride ID and Driver ID are required")
        ride = await self.rides.get_by_id(ride_id)
        if ride is None:
            raise NotFound("Ride not found.")
        # The addressee must be the ride's own driver
        if ride.user_id != driver_id:
            raise InvalidInput("Driver does not offer this ride")

        request = await self.requests.create(
            passenger_id=passenger_id,
            driver_id=driver_id,
            ride_id=ride_id,
            vehicle_id=vehicle_id,
        )
        logger.info(
            "Ride request %s: passenger %s -> driver %s for ride %s",
            request.id,
            passenger_id,
            driver_id,
            ride_id,
        )
        return request

    async def accept(self, request_id: str, driver_id: str) -> bool:
        """Returns True if the request changed state, False on a repeat."""
        request = await self._addressed_request(request_id, driver_id)
        changed = await self._resolve(request_id, ResolutionStatus.ACCEPTED)
        if changed:
            agreement = await self.agreements.create(
                passenger_id=request.passenger_id,
                driver_id=request.driver_id,
                ride_id=request.ride_id,
            )
            logger.info(
                "Ride request %s accepted; agreement %s opened", request_id, agreement.id
            )
        return changed

    async def reject(self, request_id: str, driver_id: str) -> bool:
        await self._addressed_request(request_id, driver_id)
        changed = await self._resolve(request_id, ResolutionStatus.REJECTED)
        if changed:
            logger.info("Ride request %s rejected", request_id)
        return changed

    async def list_requests_for_driver(self, driver_id: str) -> list[RideRequestModel]:
        return await self.requests.list_for_driver(driver_id)

    # ── Internals ─────────────────────────────────────────────────────

    async def _addressed_request(self, request_id: str, driver_id: str) -> RideRequestModel:
        if not request_id:
            raise InvalidInput("Request ID is required")
        request = await self.requests.get_addressed_to(request_id, driver_id)
        if request is None:
            raise Forbidden("Unauthorized action")
        return request

    async def _resolve(self, request_id: str, target: ResolutionStatus) -> bool:
        if await self.requests.resolve_pending(request_id, target):
            return True
        # Already answered: same answer is a no-op, the other one raises.
        current = await self.requests.current_status(request_id)
        if current is None or current == ResolutionStatus.PENDING:
            raise InvalidState("Ride request changed concurrently, please retry.")
        return resolve(current, target)
