"""
Shared test fixtures.

Uses a file-backed SQLite database per test (via aiosqlite) so tests run
without Docker / PostgreSQL / Redis.  A file rather than ``:memory:``
gives every session its own connection, which the concurrent booking
tests rely on: SQLite then serialises the competing writers the way a
real server would.
"""

from __future__ import annotations

import datetime as dt
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ridepool.config import settings
from ridepool.domain.enums import (
    BookingStatus,
    ResolutionStatus,
    RideStatus,
    UserRole,
)
from ridepool.infrastructure.database import Base
from ridepool.infrastructure.identity import CallerIdentity
from ridepool.infrastructure.models import (
    AgreementModel,
    BookingModel,
    DriverModel,
    RideModel,
    RideRequestModel,
    UserModel,
)

# Fixed clock for service-level tests
NOW = dt.datetime(2030, 6, 1, 12, 0, 0)
NEXT_WEEK = (NOW + dt.timedelta(days=7)).date()


class DataFactory:
    """Inserts rows in their own committed transactions."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self._seq = 0

    async def _save(self, obj):
        async with self.session_factory() as session:
            session.add(obj)
            await session.commit()
        return obj

    async def user(self, role: UserRole = UserRole.PASSENGER) -> UserModel:
        self._seq += 1
        return await self._save(
            UserModel(name=f"User {self._seq}", email=f"user{self._seq}@example.com", role=role)
        )

    async def driver(self) -> UserModel:
        user = await self.user(UserRole.DRIVER)
        await self._save(
            DriverModel(
                user_id=user.id,
                license_number=f"LIC-{self._seq:04d}",
                license_expiry=dt.date(2035, 1, 1),
            )
        )
        return user

    async def ride(
        self,
        driver_id: str,
        *,
        seats: int = 3,
        date: Optional[dt.date] = None,
        time: dt.time = dt.time(9, 0),
        status: RideStatus = RideStatus.OPEN,
        origin: str = "Downtown",
        destination: str = "Airport",
    ) -> RideModel:
        return await self._save(
            RideModel(
                user_id=driver_id,
                origin=origin,
                destination=destination,
                date=date or NEXT_WEEK,
                time=time,
                seats_available=seats,
                status=status,
            )
        )

    async def booking(
        self,
        passenger_id: str,
        ride_id: str,
        *,
        seats: int = 1,
        status: BookingStatus = BookingStatus.PENDING,
    ) -> BookingModel:
        return await self._save(
            BookingModel(user_id=passenger_id, ride_id=ride_id, seats=seats, status=status)
        )

    async def ride_request(
        self,
        passenger_id: str,
        driver_id: str,
        ride_id: str,
        status: ResolutionStatus = ResolutionStatus.PENDING,
    ) -> RideRequestModel:
        return await self._save(
            RideRequestModel(
                passenger_id=passenger_id,
                driver_id=driver_id,
                ride_id=ride_id,
                vehicle_id="vehicle-1",
                status=status,
            )
        )

    async def agreement(
        self,
        passenger_id: str,
        driver_id: str,
        ride_id: str,
        status: ResolutionStatus = ResolutionStatus.PENDING,
    ) -> AgreementModel:
        return await self._save(
            AgreementModel(
                passenger_id=passenger_id,
                driver_id=driver_id,
                ride_id=ride_id,
                status=status,
            )
        )

    async def get(self, model, pk):
        async with self.session_factory() as session:
            return await session.get(model, pk)


def caller(user: UserModel) -> CallerIdentity:
    return CallerIdentity(id=user.id, role=UserRole(user.role), email=user.email)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Create tables in a fresh database file, dispose afterwards."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ridepool.db'}", echo=False
    )

    # Enforce foreign keys like PostgreSQL does
    @event.listens_for(test_engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def factory(session_factory) -> DataFactory:
    return DataFactory(session_factory)


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    monkeypatch.setattr(settings, "password_hash_iterations", 1_000)
