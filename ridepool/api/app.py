"""
FastAPI application factory.

* Registers routes for rides, agreements, vehicles, users and admin.
* Starts / stops the lifecycle sweeper via lifespan events.
* Applies rate-limiting middleware.
* Maps the error taxonomy to ``{"error": ...}`` responses.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from ridepool.api.errors import register_error_handlers
from ridepool.api.middleware import limiter
from ridepool.api.routes import admin, agreements, rides, users, vehicles
from ridepool.api.schemas import MessageResponse
from ridepool.config import settings
from ridepool.infrastructure.redis_client import close_redis
from ridepool.workers import sweeper as _sweeper

logging.basicConfig(level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the sweeper on startup; stop it and drop Redis connections on shutdown."""
    await _sweeper.start_sweeper_loop()
    yield
    await _sweeper.stop_sweeper_loop()
    await close_redis()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Ride Pool API",
        description=(
            "Drivers offer rides, passengers book seats or ask drivers "
            "directly, and both sides settle agreements.  Seat counts stay "
            "consistent under concurrent bookings and elapsed rides are "
            "completed automatically."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    register_error_handlers(app)

    # Routers
    for module in (rides, agreements, vehicles, users, admin):
        app.include_router(module.router, prefix="/api")

    @app.get("/", response_model=MessageResponse, include_in_schema=False)
    async def root():
        return MessageResponse(message="Ride Pool API is running!")

    @app.get("/health", response_model=MessageResponse, tags=["admin"])
    async def health():
        return MessageResponse(message="Ride Pool API is running!")

    return app
