"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Status and seat mutations are issued as
conditional ``UPDATE`` statements and report whether a row matched, so
callers can detect lost races instead of overwriting them.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    AgreementModel,
    BookingModel,
    DriverModel,
    RideModel,
    RideRequestModel,
    ReviewModel,
    UserModel,
    VehicleModel,
)
from ridepool.domain.entities import Booking, Ride
from ridepool.domain.enums import (
    TERMINAL_RIDE_STATUSES,
    BookingStatus,
    ResolutionStatus,
    RideStatus,
    UserRole,
)


def _ride_entity(row: RideModel) -> Ride:
    return Ride(
        id=row.id,
        driver_id=row.user_id,
        origin=row.origin,
        destination=row.destination,
        date=row.date,
        time=row.time,
        seats_available=row.seats_available,
        status=RideStatus(row.status),
    )


def _booking_entity(row: BookingModel) -> Booking:
    return Booking(
        id=row.id,
        passenger_id=row.user_id,
        ride_id=row.ride_id,
        seats=row.seats,
        status=BookingStatus(row.status),
    )


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_ride(
        self,
        *,
        driver_id: str,
        origin: str,
        destination: str,
        date: dt.date,
        time: dt.time,
        seats_available: int,
    ) -> RideModel:
        ride = RideModel(
            user_id=driver_id,
            origin=origin,
            destination=destination,
            date=date,
            time=time,
            seats_available=seats_available,
            status=RideStatus.OPEN,
        )
        self.session.add(ride)
        await self.session.flush()
        return ride

    async def get_by_id(self, ride_id: str) -> Optional[RideModel]:
        return await self.session.get(RideModel, ride_id)

    async def get_owned(self, ride_id: str, driver_id: str) -> Optional[RideModel]:
        result = await self.session.execute(
            select(RideModel).where(
                RideModel.id == ride_id, RideModel.user_id == driver_id
            )
        )
        return result.scalar_one_or_none()

    async def snapshot(self, ride_id: str) -> Optional[Ride]:
        """Fresh read of a ride, bypassing anything cached in the session."""
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.id == ride_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _ride_entity(row) if row else None

    async def lock_for_update(self, ride_id: str) -> Optional[RideModel]:
        """SELECT ... FOR UPDATE to serialise writers on one ride."""
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.id == ride_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def compare_and_swap_seats(
        self,
        ride_id: str,
        *,
        expected_seats: int,
        expected_status: RideStatus,
        new_seats: int,
        new_status: RideStatus,
    ) -> bool:
        """Write the new seat count only if nobody changed the row since it was read."""
        result = await self.session.execute(
            update(RideModel)
            .where(
                RideModel.id == ride_id,
                RideModel.seats_available == expected_seats,
                RideModel.status == expected_status,
            )
            .values(seats_available=new_seats, status=new_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def cancel_owned(self, ride_id: str, driver_id: str) -> bool:
        result = await self.session.execute(
            update(RideModel)
            .where(
                RideModel.id == ride_id,
                RideModel.user_id == driver_id,
                RideModel.status.notin_(TERMINAL_RIDE_STATUSES),
            )
            .values(status=RideStatus.CANCELED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def complete_elapsed(self, now: dt.datetime) -> int:
        """Bulk-complete every non-terminal ride scheduled strictly before *now*."""
        today, now_time = now.date(), now.time()
        result = await self.session.execute(
            update(RideModel)
            .where(
                or_(
                    RideModel.date < today,
                    and_(RideModel.date == today, RideModel.time < now_time),
                ),
                RideModel.status.notin_(TERMINAL_RIDE_STATUSES),
            )
            .values(status=RideStatus.COMPLETED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def search(
        self, origin: str, destination: str, date: dt.date
    ) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(
                RideModel.origin == origin,
                RideModel.destination == destination,
                RideModel.date == date,
            )
            .order_by(RideModel.time)
        )
        return list(result.scalars().all())

    async def get_available(self) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(
                RideModel.seats_available > 0,
                RideModel.status == RideStatus.OPEN,
            )
            .order_by(RideModel.date, RideModel.time)
        )
        return list(result.scalars().all())

    async def get_for_driver(
        self, driver_id: str, *, limit: int, offset: int
    ) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.user_id == driver_id)
            .order_by(RideModel.date.desc(), RideModel.time.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def count_for_driver(self, driver_id: str) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(RideModel)
            .where(RideModel.user_id == driver_id)
        )
        return result.scalar() or 0

    async def get_pool_for_user(self, user_id: str) -> list[RideModel]:
        """Rides the user drives or holds a live booking on."""
        booked = select(BookingModel.ride_id).where(
            BookingModel.user_id == user_id,
            BookingModel.status != BookingStatus.CANCELLED,
        )
        result = await self.session.execute(
            select(RideModel)
            .where(or_(RideModel.user_id == user_id, RideModel.id.in_(booked)))
            .order_by(RideModel.date, RideModel.time)
        )
        return list(result.scalars().all())


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, *, passenger_id: str, ride_id: str, seats: int) -> BookingModel:
        booking = BookingModel(
            user_id=passenger_id,
            ride_id=ride_id,
            seats=seats,
            status=BookingStatus.PENDING,
        )
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def snapshot(self, booking_id: str) -> Optional[Booking]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.id == booking_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _booking_entity(row) if row else None

    async def has_confirmed(self, passenger_id: str, ride_id: str) -> bool:
        result = await self.session.execute(
            select(func.count())
            .select_from(BookingModel)
            .where(
                BookingModel.user_id == passenger_id,
                BookingModel.ride_id == ride_id,
                BookingModel.status == BookingStatus.CONFIRMED,
            )
        )
        return (result.scalar() or 0) > 0

    async def set_status(
        self,
        booking_id: str,
        *,
        expected: BookingStatus,
        new_status: BookingStatus,
    ) -> bool:
        result = await self.session.execute(
            update(BookingModel)
            .where(BookingModel.id == booking_id, BookingModel.status == expected)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def get_for_ride(self, ride_id: str) -> list[BookingModel]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.ride_id == ride_id)
            .order_by(BookingModel.created_at)
        )
        return list(result.scalars().all())

    async def seats_committed(self, ride_id: str) -> int:
        """Sum of seats over the non-cancelled bookings of a ride."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(BookingModel.seats), 0)).where(
                BookingModel.ride_id == ride_id,
                BookingModel.status != BookingStatus.CANCELLED,
            )
        )
        return result.scalar() or 0

    async def history_for_user(self, user_id: str) -> list[dict]:
        result = await self.session.execute(
            select(
                BookingModel.id,
                RideModel.origin,
                RideModel.destination,
                RideModel.date,
                BookingModel.status,
            )
            .join(RideModel, BookingModel.ride_id == RideModel.id)
            .where(BookingModel.user_id == user_id)
            .order_by(RideModel.date.desc())
        )
        return [dict(row) for row in result.mappings().all()]


class RideRequestRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        *,
        passenger_id: str,
        driver_id: str,
        ride_id: str,
        vehicle_id: Optional[str],
    ) -> RideRequestModel:
        request = RideRequestModel(
            passenger_id=passenger_id,
            driver_id=driver_id,
            ride_id=ride_id,
            vehicle_id=vehicle_id,
            status=ResolutionStatus.PENDING,
        )
        self.session.add(request)
        await self.session.flush()
        return request

    async def get_addressed_to(
        self, request_id: str, driver_id: str
    ) -> Optional[RideRequestModel]:
        result = await self.session.execute(
            select(RideRequestModel).where(
                RideRequestModel.id == request_id,
                RideRequestModel.driver_id == driver_id,
            )
        )
        return result.scalar_one_or_none()

    async def current_status(self, request_id: str) -> Optional[ResolutionStatus]:
        result = await self.session.execute(
            select(RideRequestModel.status).where(RideRequestModel.id == request_id)
        )
        status = result.scalar_one_or_none()
        return ResolutionStatus(status) if status is not None else None

    async def resolve_pending(
        self, request_id: str, new_status: ResolutionStatus
    ) -> bool:
        result = await self.session.execute(
            update(RideRequestModel)
            .where(
                RideRequestModel.id == request_id,
                RideRequestModel.status == ResolutionStatus.PENDING,
            )
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_for_driver(self, driver_id: str) -> list[RideRequestModel]:
        result = await self.session.execute(
            select(RideRequestModel)
            .where(RideRequestModel.driver_id == driver_id)
            .order_by(RideRequestModel.created_at)
        )
        return list(result.scalars().all())


class AgreementRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self, *, passenger_id: str, driver_id: str, ride_id: str
    ) -> AgreementModel:
        agreement = AgreementModel(
            passenger_id=passenger_id,
            driver_id=driver_id,
            ride_id=ride_id,
            status=ResolutionStatus.PENDING,
        )
        self.session.add(agreement)
        await self.session.flush()
        return agreement

    async def get_for_party(
        self, agreement_id: str, user_id: str
    ) -> Optional[AgreementModel]:
        result = await self.session.execute(
            select(AgreementModel).where(
                AgreementModel.id == agreement_id,
                or_(
                    AgreementModel.passenger_id == user_id,
                    AgreementModel.driver_id == user_id,
                ),
            )
        )
        return result.scalar_one_or_none()

    async def current_status(self, agreement_id: str) -> Optional[ResolutionStatus]:
        result = await self.session.execute(
            select(AgreementModel.status).where(AgreementModel.id == agreement_id)
        )
        status = result.scalar_one_or_none()
        return ResolutionStatus(status) if status is not None else None

    async def resolve_pending(
        self, agreement_id: str, new_status: ResolutionStatus
    ) -> bool:
        result = await self.session.execute(
            update(AgreementModel)
            .where(
                AgreementModel.id == agreement_id,
                AgreementModel.status == ResolutionStatus.PENDING,
            )
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_for_user(self, user_id: str) -> list[AgreementModel]:
        result = await self.session.execute(
            select(AgreementModel).where(
                or_(
                    AgreementModel.passenger_id == user_id,
                    AgreementModel.driver_id == user_id,
                )
            )
        )
        return list(result.scalars().all())


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self, *, driver_id: str, make: str, model: str, plate: str, capacity: int
    ) -> VehicleModel:
        vehicle = VehicleModel(
            user_id=driver_id, make=make, model=model, plate=plate, capacity=capacity
        )
        self.session.add(vehicle)
        await self.session.flush()
        return vehicle

    async def get_by_id(self, vehicle_id: str) -> Optional[VehicleModel]:
        return await self.session.get(VehicleModel, vehicle_id)

    async def get_by_plate(self, plate: str) -> Optional[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel).where(VehicleModel.plate == plate)
        )
        return result.scalar_one_or_none()

    async def list_for_driver(self, driver_id: str) -> list[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel)
            .where(VehicleModel.user_id == driver_id)
            .order_by(VehicleModel.created_at)
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel).order_by(VehicleModel.created_at)
        )
        return list(result.scalars().all())

    async def delete(self, vehicle: VehicleModel) -> None:
        await self.session.delete(vehicle)
        await self.session.flush()


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: str) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_driver(self, user_id: str) -> Optional[DriverModel]:
        result = await self.session.execute(
            select(DriverModel).where(DriverModel.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_driver_by_license(self, license_number: str) -> Optional[DriverModel]:
        result = await self.session.execute(
            select(DriverModel).where(DriverModel.license_number == license_number)
        )
        return result.scalar_one_or_none()

    async def create_driver(
        self, *, user_id: str, license_number: str, license_expiry: dt.date
    ) -> DriverModel:
        driver = DriverModel(
            user_id=user_id,
            license_number=license_number,
            license_expiry=license_expiry,
        )
        self.session.add(driver)
        await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id, UserModel.role == UserRole.PASSENGER)
            .values(role=UserRole.DRIVER)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.flush()
        return driver

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email)
        )
        return result.scalar_one_or_none()

    async def create_user(
        self, *, name: str, email: str, phone: Optional[str], password_hash: str
    ) -> UserModel:
        user = UserModel(
            name=name,
            email=email,
            phone=phone,
            password_hash=password_hash,
            role=UserRole.PASSENGER,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def update_contact(self, user_id: str, *, name: str, phone: str) -> bool:
        result = await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(name=name, phone=phone)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def driver_details(self, user_id: Optional[str] = None) -> list[dict]:
        """Driver contact + licence rows with their review average and count."""
        ratings = (
            select(
                ReviewModel.driver_id,
                func.avg(ReviewModel.rating).label("average_rating"),
                func.count(ReviewModel.id).label("review_count"),
            )
            .group_by(ReviewModel.driver_id)
            .subquery()
        )
        query = (
            select(
                UserModel.id,
                UserModel.name,
                UserModel.email,
                UserModel.phone,
                DriverModel.license_number,
                DriverModel.license_expiry,
                ratings.c.average_rating,
                func.coalesce(ratings.c.review_count, 0).label("review_count"),
            )
            .join(DriverModel, DriverModel.user_id == UserModel.id)
            .outerjoin(ratings, ratings.c.driver_id == UserModel.id)
            .order_by(UserModel.name)
        )
        if user_id is not None:
            query = query.where(UserModel.id == user_id)
        result = await self.session.execute(query)
        return [dict(row) for row in result.mappings().all()]


class ReviewRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        *,
        passenger_id: str,
        driver_id: str,
        ride_id: str,
        rating: int,
        comment: Optional[str],
    ) -> ReviewModel:
        review = ReviewModel(
            user_id=passenger_id,
            driver_id=driver_id,
            ride_id=ride_id,
            rating=rating,
            comment=comment,
        )
        self.session.add(review)
        await self.session.flush()
        return review

    async def exists(self, passenger_id: str, ride_id: str) -> bool:
        result = await self.session.execute(
            select(func.count())
            .select_from(ReviewModel)
            .where(ReviewModel.user_id == passenger_id, ReviewModel.ride_id == ride_id)
        )
        return (result.scalar() or 0) > 0
