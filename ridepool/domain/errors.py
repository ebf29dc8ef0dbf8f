"""Error taxonomy shared by the services and the HTTP layer.

Each error carries the status code it maps to; ``ridepool.api.errors``
turns them into ``{"error": ...}`` responses.  Anything that is not a
``RidePoolError`` is treated as an internal failure.
"""


class RidePoolError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(RidePoolError):
    """Missing or malformed required fields."""

    status_code = 400
    default_message = "Invalid input"


class Unauthenticated(RidePoolError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(RidePoolError):
    """Authenticated, but not entitled to act on this entity."""

    status_code = 403
    default_message = "Access denied"


class NotFound(RidePoolError):
    """Entity is absent or outside the caller's view (deliberately merged)."""

    status_code = 404
    default_message = "Not found"


class InvalidState(RidePoolError):
    """Entity exists but its status forbids the requested transition."""

    status_code = 409
    default_message = "Invalid state for this operation"


class CapacityExceeded(RidePoolError):
    status_code = 409
    default_message = "Not enough seats available."


class DuplicateBooking(RidePoolError):
    status_code = 409
    default_message = "You already have a confirmed booking for this ride."
