"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ridepool.domain.enums import (
    BookingStatus,
    ResolutionStatus,
    RideStatus,
    UserRole,
)


# ── Requests ──────────────────────────────────────────────────────────


class RideOfferRequest(BaseModel):
    origin: str = Field(..., min_length=1, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    date: dt.date
    time: dt.time
    seats_available: int = Field(..., ge=1, le=50)


class RideSearchRequest(BaseModel):
    origin: str
    destination: str
    date: dt.date


class BookRideRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ride_id: str = Field(..., alias="rideId", min_length=1)
    seats: int = Field(..., ge=1)


class CancelRideRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ride_id: str = Field(..., alias="rideId", min_length=1)


class RideRequestCreate(BaseModel):
    ride_id: str = Field(..., min_length=1)
    driver_id: str = Field(..., min_length=1)


class RequestDecision(BaseModel):
    request_id: str = Field(..., min_length=1)


class AgreementDecision(BaseModel):
    agreement_id: str = Field(..., min_length=1)


class VehicleCreateRequest(BaseModel):
    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    plate: str = Field(..., min_length=1, max_length=50)
    capacity: int = Field(..., ge=1)


class VehicleUpdateRequest(BaseModel):
    model: str = Field(..., min_length=1, max_length=100)
    plate: str = Field(..., min_length=1, max_length=50)
    capacity: int = Field(..., ge=1)


class BecomeDriverRequest(BaseModel):
    license_number: str = Field(..., min_length=1, max_length=50)
    license_expiry: dt.date


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=100, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: Optional[str] = Field(None, max_length=20)
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ProfileUpdateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=20)


class RateDriverRequest(BaseModel):
    rating: int
    comment: Optional[str] = Field(None, max_length=2000)


# ── Responses ─────────────────────────────────────────────────────────


class MessageResponse(BaseModel):
    message: str
    id: Optional[str] = None


class RideResponse(BaseModel):
    id: str
    driver_id: str = Field(validation_alias="user_id")
    origin: str
    destination: str
    date: dt.date
    time: dt.time
    seats_available: int
    status: RideStatus
    created_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BookingResponse(BaseModel):
    id: str
    passenger_id: str = Field(validation_alias="user_id")
    ride_id: str
    seats: int
    status: BookingStatus
    created_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BookingHistoryEntry(BaseModel):
    id: str
    origin: str
    destination: str
    date: dt.date
    status: BookingStatus

    model_config = ConfigDict(from_attributes=True)


class RideRequestResponse(BaseModel):
    id: str
    passenger_id: str
    driver_id: str
    ride_id: str
    vehicle_id: Optional[str] = None
    status: ResolutionStatus
    created_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AgreementResponse(BaseModel):
    id: str
    passenger_id: str
    driver_id: str
    ride_id: str
    status: ResolutionStatus
    created_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)


class VehicleResponse(BaseModel):
    id: str
    driver_id: str = Field(validation_alias="user_id")
    make: str
    model: str
    plate: str
    capacity: int

    model_config = ConfigDict(from_attributes=True)


class DriverRidesPage(BaseModel):
    page: int
    total_pages: int
    total_rides: int
    rides: list[RideResponse]


class ProfileResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    role: UserRole
    is_driver: bool
    driver_license: Optional[str] = None
    license_expiry: Optional[dt.date] = None
    vehicles: list[VehicleResponse] = []


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user_id: str
    role: UserRole


class BecomeDriverResponse(MessageResponse):
    token: str


class DriverDetail(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    license_number: str
    license_expiry: dt.date
    average_rating: Optional[float] = None
    review_count: int = 0


class SweepResponse(BaseModel):
    completed: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    error: str
