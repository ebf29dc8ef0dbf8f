"""
Translate the error taxonomy into HTTP responses.

Every body is ``{"error": <message>}``.  Unexpected failures are logged
in full server-side and reported to the caller with a generic message
only; database error text never reaches the client.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ridepool.domain.errors import RidePoolError

logger = logging.getLogger(__name__)


async def ridepool_error_handler(request: Request, exc: RidePoolError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = sorted(
        {".".join(str(part) for part in err["loc"][1:]) or "body" for err in exc.errors()}
    )
    return JSONResponse(
        status_code=400,
        content={"error": f"Missing or invalid fields: {', '.join(fields)}"},
    )


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RidePoolError, ridepool_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)
