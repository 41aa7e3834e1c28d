"""
Custom exception handlers for FastAPI.
Provides clear, actionable error messages for domain, validation and server errors.
"""

import logging
import math

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exception_handlers import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.status import HTTP_422_UNPROCESSABLE_ENTITY, HTTP_500_INTERNAL_SERVER_ERROR

from fuelops.core.exceptions import FuelOpsError
from fuelops.core.observability import capture_exception

logger = logging.getLogger(__name__)

# JSONResponse refuses NaN and infinities; echoed request input may carry them
_FINITE_FLOATS = {float: lambda v: v if math.isfinite(v) else None}


def domain_exception_handler(request: Request, exc: FuelOpsError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "details": jsonable_encoder(exc.details, custom_encoder=_FINITE_FLOATS),
        },
    )


def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation error",
            "details": jsonable_encoder(exc.errors(), custom_encoder=_FINITE_FLOATS),
            "body": jsonable_encoder(exc.body, custom_encoder=_FINITE_FLOATS),
        },
    )


def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    capture_exception(exc)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "details": str(exc),
        },
    )

# Usage in main.py:
# from fuelops.api.error_handlers import domain_exception_handler, validation_exception_handler, generic_exception_handler
# app.add_exception_handler(FuelOpsError, domain_exception_handler)
# app.add_exception_handler(RequestValidationError, validation_exception_handler)
# app.add_exception_handler(Exception, generic_exception_handler)
