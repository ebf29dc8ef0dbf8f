"""Initial schema: users, drivers, vehicles, rides, bookings, requests, agreements.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


user_role = sa.Enum("passenger", "driver", "admin", name="user_role")
ride_status = sa.Enum("open", "full", "completed", "canceled", name="ride_status")
booking_status = sa.Enum("pending", "confirmed", "cancelled", name="booking_status")
request_status = sa.Enum("pending", "accepted", "rejected", name="request_status")
agreement_status = sa.Enum("pending", "accepted", "rejected", name="agreement_status")


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(100), unique=True, nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("role", user_role, nullable=False, server_default="passenger"),
        _created_at(),
    )

    # ── drivers ───────────────────────────────────────────────────────
    op.create_table(
        "drivers",
        _id(),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        ),
        sa.Column("license_number", sa.String(50), unique=True, nullable=False),
        sa.Column("license_expiry", sa.Date, nullable=False),
        _created_at(),
    )

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        _id(),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("drivers.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("make", sa.String(100), nullable=False),
        sa.Column("model", sa.String(100), nullable=False),
        sa.Column("plate", sa.String(50), unique=True, nullable=False),
        sa.Column("capacity", sa.Integer, nullable=False),
        _created_at(),
    )
    op.create_index("idx_vehicles_user", "vehicles", ["user_id"])

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        _id(),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("drivers.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("origin", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("time", sa.Time, nullable=False),
        sa.Column("seats_available", sa.Integer, nullable=False),
        sa.Column("status", ride_status, nullable=False, server_default="open"),
        _created_at(),
        sa.CheckConstraint("seats_available >= 0", name="ck_rides_seats_non_negative"),
    )
    op.create_index("idx_rides_status", "rides", ["status"])
    op.create_index("idx_rides_user", "rides", ["user_id"])
    op.create_index("idx_rides_route", "rides", ["origin", "destination", "date"])

    # ── bookings ──────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        _id(),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "ride_id",
            sa.String(36),
            sa.ForeignKey("rides.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("seats", sa.Integer, nullable=False),
        sa.Column("status", booking_status, nullable=False, server_default="pending"),
        _created_at(),
        sa.CheckConstraint("seats > 0", name="ck_bookings_seats_positive"),
    )
    op.create_index("idx_bookings_ride", "bookings", ["ride_id"])
    op.create_index("idx_bookings_user", "bookings", ["user_id"])
    op.create_index(
        "uq_bookings_one_confirmed",
        "bookings",
        ["user_id", "ride_id"],
        unique=True,
        postgresql_where=sa.text("status = 'confirmed'"),
    )

    # ── ride_requests ─────────────────────────────────────────────────
    op.create_table(
        "ride_requests",
        _id(),
        sa.Column("passenger_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("driver_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ride_id", sa.String(36), sa.ForeignKey("rides.id", ondelete="CASCADE"), nullable=False),
        sa.Column("vehicle_id", sa.String(36), nullable=True),
        sa.Column("status", request_status, nullable=False, server_default="pending"),
        _created_at(),
    )
    op.create_index("idx_ride_requests_driver", "ride_requests", ["driver_id"])

    # ── agreements ────────────────────────────────────────────────────
    op.create_table(
        "agreements",
        _id(),
        sa.Column("passenger_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("driver_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ride_id", sa.String(36), sa.ForeignKey("rides.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", agreement_status, nullable=False, server_default="pending"),
        _created_at(),
    )
    op.create_index("idx_agreements_passenger", "agreements", ["passenger_id"])
    op.create_index("idx_agreements_driver", "agreements", ["driver_id"])


def downgrade() -> None:
    op.drop_table("agreements")
    op.drop_table("ride_requests")
    op.drop_table("bookings")
    op.drop_table("rides")
    op.drop_table("vehicles")
    op.drop_table("drivers")
    op.drop_table("users")
    for enum_name in (
        "agreement_status",
        "request_status",
        "booking_status",
        "ride_status",
        "user_role",
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
