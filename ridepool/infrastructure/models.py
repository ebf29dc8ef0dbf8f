"""
SQLAlchemy ORM models.

Tables
------
* ``users``          -- everyone who can call the API
* ``drivers``        -- licence details for users who offer rides
* ``vehicles``       -- cars registered by drivers
* ``rides``          -- rides offered by drivers, with live seat count
* ``bookings``       -- passenger claims on seats of a ride
* ``ride_requests``  -- passenger asks addressed to one driver
* ``agreements``     -- confirmation layer on top of accepted requests
* ``reviews``        -- passenger ratings of the driver of a ride

Enum columns store the enum *values* (``open``, ``cancelled`` ...) so
rows written by other clients of the same schema round-trip unchanged.

Indexes
-------
* **B-Tree** on status / owner columns used by the sweeper and listings.
* **Partial unique** on ``bookings (user_id, ride_id) WHERE status =
  'confirmed'``: at most one confirmed booking per passenger and ride.
"""

import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    func,
    text,
)

from .database import Base
from ridepool.domain.enums import (
    BookingStatus,
    ResolutionStatus,
    RideStatus,
    UserRole,
)


def _uuid() -> str:
    return str(uuid.uuid4())


def _enum(enum_cls, name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda e: [member.value for member in e],
        validate_strings=True,
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, nullable=False)
    phone = Column(String(20), nullable=True)
    # NULL for accounts created without a password; they cannot log in
    password_hash = Column(String(255), nullable=True)
    role = Column(_enum(UserRole, "user_role"), default=UserRole.PASSENGER, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    license_number = Column(String(50), unique=True, nullable=False)
    license_expiry = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(
        String(36), ForeignKey("drivers.user_id", ondelete="CASCADE"), nullable=False
    )
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    plate = Column(String(50), unique=True, nullable=False)
    capacity = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_vehicles_user", "user_id"),)


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(String(36), primary_key=True, default=_uuid)
    # The offering driver
    user_id = Column(
        String(36), ForeignKey("drivers.user_id", ondelete="CASCADE"), nullable=False
    )
    origin = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    seats_available = Column(Integer, nullable=False)
    status = Column(_enum(RideStatus, "ride_status"), default=RideStatus.OPEN, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("seats_available >= 0", name="ck_rides_seats_non_negative"),
        Index("idx_rides_status", "status"),
        Index("idx_rides_user", "user_id"),
        Index("idx_rides_route", "origin", "destination", "date"),
    )


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=_uuid)
    # The passenger
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    ride_id = Column(String(36), ForeignKey("rides.id", ondelete="CASCADE"), nullable=False)
    seats = Column(Integer, nullable=False)
    status = Column(
        _enum(BookingStatus, "booking_status"), default=BookingStatus.PENDING, nullable=False
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("seats > 0", name="ck_bookings_seats_positive"),
        Index("idx_bookings_ride", "ride_id"),
        Index("idx_bookings_user", "user_id"),
        Index(
            "uq_bookings_one_confirmed",
            "user_id",
            "ride_id",
            unique=True,
            postgresql_where=text("status = 'confirmed'"),
            sqlite_where=text("status = 'confirmed'"),
        ),
    )


class RideRequestModel(Base):
    __tablename__ = "ride_requests"

    id = Column(String(36), primary_key=True, default=_uuid)
    passenger_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    driver_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    ride_id = Column(String(36), ForeignKey("rides.id", ondelete="CASCADE"), nullable=False)
    vehicle_id = Column(String(36), nullable=True)
    status = Column(
        _enum(ResolutionStatus, "request_status"),
        default=ResolutionStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_ride_requests_driver", "driver_id"),)


class AgreementModel(Base):
    __tablename__ = "agreements"

    id = Column(String(36), primary_key=True, default=_uuid)
    passenger_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    driver_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    ride_id = Column(String(36), ForeignKey("rides.id", ondelete="CASCADE"), nullable=False)
    status = Column(
        _enum(ResolutionStatus, "agreement_status"),
        default=ResolutionStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_agreements_passenger", "passenger_id"),
        Index("idx_agreements_driver", "driver_id"),
    )


class ReviewModel(Base):
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=_uuid)
    # The passenger who wrote the review
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    driver_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    ride_id = Column(String(36), ForeignKey("rides.id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
        UniqueConstraint("user_id", "ride_id", name="uq_reviews_user_ride"),
        Index("idx_reviews_driver", "driver_id"),
    )
