"""Scheduling error taxonomy.

Every error is an HTTPException so services can raise it directly, the same
way the routers surface 404s and 409s, and FastAPI renders `detail` as JSON.
"""

from typing import Optional

from fastapi import HTTPException


class ClinicError(HTTPException):
    """Base class for domain errors with a fixed HTTP status"""

    status_code = 500
    default_detail = "Internal error"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class NotFoundError(ClinicError):
    status_code = 404
    default_detail = "Not found"


class InvalidInputError(ClinicError):
    status_code = 400
    default_detail = "Invalid input"


class ConflictError(ClinicError):
    """Slot already taken; the client should re-fetch available slots and retry"""

    status_code = 409
    default_detail = "Slot is no longer available"


class InvalidTransitionError(ClinicError):
    status_code = 422
    default_detail = "Illegal status transition"


class PermissionDeniedError(ClinicError):
    status_code = 403
    default_detail = "Not allowed"


class DownstreamUnavailableError(ClinicError):
    status_code = 503
    default_detail = "Downstream service unavailable"


class BookingTimeoutError(ClinicError):
    status_code = 504
    default_detail = "Booking timed out, no appointment was created"
