"""Domain errors raised by the service layer.

Services raise these instead of ``HTTPException`` so they stay usable
outside a request.  ``fuelops.api.error_handlers`` maps each class to its
HTTP status.
"""

from __future__ import annotations

from typing import Any, Optional


class FuelOpsError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 400

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(FuelOpsError):
    status_code = 404


class ValidationFailed(FuelOpsError):
    status_code = 422


class ConflictError(FuelOpsError):
    status_code = 409


class PermissionDenied(FuelOpsError):
    status_code = 403
