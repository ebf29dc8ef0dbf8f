"""Passenger reviews of drivers."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ridepool.domain.errors import InvalidInput, InvalidState, NotFound
from ridepool.infrastructure.models import ReviewModel
from ridepool.infrastructure.repositories import (
    BookingRepository,
    ReviewRepository,
    RideRepository,
)

logger = logging.getLogger(__name__)


class ReviewService:
    def __init__(self, session: AsyncSession):
        self.rides = RideRepository(session)
        self.bookings = BookingRepository(session)
        self.reviews = ReviewRepository(session)

    async def rate_driver(
        self,
        passenger_id: str,
        ride_id: str,
        *,
        rating: int,
        comment: Optional[str] = None,
    ) -> ReviewModel:
        """Record one review per passenger per ride, for the ride's driver."""
        if not isinstance(rating, int) or not 1 <= rating <= 5:
            raise InvalidInput("Rating must be between 1 and 5.")

        ride = await self.rides.get_by_id(ride_id)
        if ride is None or not await self.bookings.has_confirmed(passenger_id, ride_id):
            raise NotFound("Ride not found or user not a passenger.")
        if await self.reviews.exists(passenger_id, ride_id):
            raise InvalidState("You have already rated this ride.")

        try:
            review = await self.reviews.create(
                passenger_id=passenger_id,
                driver_id=ride.user_id,
                ride_id=ride_id,
                rating=rating,
                comment=comment,
            )
        except IntegrityError as exc:
            raise InvalidState("You have already rated this ride.") from exc
        logger.info("Passenger %s rated driver %s: %d", passenger_id, ride.user_id, rating)
        return review
