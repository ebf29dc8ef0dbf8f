"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 6 sample users (1 admin, 2 drivers, 3 passengers)
  - driver records and one vehicle per driver
  - 5 sample rides (open, full, one already in the past for the sweeper)
  - a few bookings, a ride request and an agreement

Every user logs in with the password ``ridepool-demo``; a bearer token per
user is also printed so the API can be exercised straight away.
"""

import asyncio
import datetime as dt

from sqlalchemy import text

from ridepool.domain.enums import (
    BookingStatus,
    ResolutionStatus,
    RideStatus,
    UserRole,
)
from ridepool.infrastructure.database import async_session_factory, engine
from ridepool.infrastructure.identity import issue_token
from ridepool.infrastructure.passwords import hash_password
from ridepool.infrastructure.models import (
    AgreementModel,
    BookingModel,
    DriverModel,
    RideModel,
    RideRequestModel,
    UserModel,
    VehicleModel,
)


USERS = [
    {"name": "Ada Admin", "email": "admin@example.com", "phone": "+10000000000", "role": UserRole.ADMIN},
    {"name": "Dana Driver", "email": "dana@example.com", "phone": "+10000000001", "role": UserRole.DRIVER},
    {"name": "Dev Driver", "email": "dev@example.com", "phone": "+10000000002", "role": UserRole.DRIVER},
    {"name": "Pat Passenger", "email": "pat@example.com", "phone": "+10000000003", "role": UserRole.PASSENGER},
    {"name": "Sam Passenger", "email": "sam@example.com", "phone": "+10000000004", "role": UserRole.PASSENGER},
    {"name": "Lee Passenger", "email": "lee@example.com", "phone": "+10000000005", "role": UserRole.PASSENGER},
]

SEED_PASSWORD = "ridepool-demo"

VEHICLES = [
    {"make": "Toyota", "model": "Prius", "plate": "RP-1001", "capacity": 4},
    {"make": "Honda", "model": "Odyssey", "plate": "RP-2002", "capacity": 6},
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Users ─────────────────────────────────────────────────────
        password_hash = hash_password(SEED_PASSWORD)
        users = [UserModel(**u, password_hash=password_hash) for u in USERS]
        session.add_all(users)
        await session.flush()
        admin, dana, dev, pat, sam, lee = users
        print(f"  Created {len(users)} users")

        # ── Drivers & vehicles ────────────────────────────────────────
        expiry = dt.date.today() + dt.timedelta(days=365 * 3)
        for i, (driver, vehicle) in enumerate(zip((dana, dev), VEHICLES)):
            session.add(
                DriverModel(user_id=driver.id, license_number=f"LIC-{i + 1:04d}", license_expiry=expiry)
            )
            await session.flush()
            session.add(VehicleModel(user_id=driver.id, **vehicle))
        await session.flush()
        print("  Created 2 drivers with vehicles")

        # ── Rides ─────────────────────────────────────────────────────
        tomorrow = dt.date.today() + dt.timedelta(days=1)
        rides_data = [
            {"user_id": dana.id, "origin": "Downtown", "destination": "Airport", "date": tomorrow,
             "time": dt.time(8, 30), "seats_available": 2, "status": RideStatus.OPEN},
            {"user_id": dana.id, "origin": "Airport", "destination": "Downtown", "date": tomorrow,
             "time": dt.time(18, 0), "seats_available": 3, "status": RideStatus.OPEN},
            {"user_id": dev.id, "origin": "Campus", "destination": "Stadium", "date": tomorrow,
             "time": dt.time(12, 15), "seats_available": 0, "status": RideStatus.FULL},
            {"user_id": dev.id, "origin": "Suburbs", "destination": "Downtown", "date": tomorrow + dt.timedelta(days=2),
             "time": dt.time(7, 45), "seats_available": 5, "status": RideStatus.OPEN},
            # Already in the past: the sweeper will complete it
            {"user_id": dev.id, "origin": "Harbour", "destination": "Old Town", "date": dt.date.today() - dt.timedelta(days=1),
             "time": dt.time(9, 0), "seats_available": 4, "status": RideStatus.OPEN},
        ]
        rides = [RideModel(**r) for r in rides_data]
        session.add_all(rides)
        await session.flush()
        print(f"  Created {len(rides)} rides")

        # ── Bookings / requests / agreements ──────────────────────────
        session.add_all(
            [
                BookingModel(user_id=pat.id, ride_id=rides[0].id, seats=1, status=BookingStatus.CONFIRMED),
                BookingModel(user_id=sam.id, ride_id=rides[0].id, seats=1, status=BookingStatus.PENDING),
                BookingModel(user_id=lee.id, ride_id=rides[2].id, seats=4, status=BookingStatus.CONFIRMED),
                RideRequestModel(passenger_id=sam.id, driver_id=dev.id, ride_id=rides[3].id,
                                 status=ResolutionStatus.PENDING),
                RideRequestModel(passenger_id=pat.id, driver_id=dana.id, ride_id=rides[1].id,
                                 status=ResolutionStatus.ACCEPTED),
                AgreementModel(passenger_id=pat.id, driver_id=dana.id, ride_id=rides[1].id,
                               status=ResolutionStatus.PENDING),
            ]
        )
        await session.commit()
        print("  Created bookings, ride requests and agreements")

        print("\nBearer tokens:")
        for user in users:
            print(f"  {user.email:<20} {issue_token(user.id, user.role, user.email)}")

        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
