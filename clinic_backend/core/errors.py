"""Domain errors raised by the scheduling services.

Each error carries the HTTP status the routes translate it to.
"""


class SchedulingError(Exception):
    """Base class for errors reported at a scheduling operation boundary."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(SchedulingError):
    """Raised when a referenced appointment, doctor, or patient does not exist."""

    status_code = 404


class InvalidInputError(SchedulingError):
    """Raised when a request is malformed (bad time, end before start, bad status)."""

    status_code = 400


class InvalidTimeFormatError(InvalidInputError):
    """Raised when a time-of-day string cannot be parsed."""


class InvalidStatusError(InvalidInputError):
    """Raised when a status name is not one of the known appointment statuses."""


class InvalidStatusTransitionError(InvalidInputError):
    """Raised when the current status may not move to the requested one."""


class SchedulingConflictError(SchedulingError):
    """Raised when the doctor is not available for the requested slot."""

    status_code = 400


class ForbiddenError(SchedulingError):
    """Raised when the access policy denies the caller."""

    status_code = 403


class StorageFaultError(SchedulingError):
    """Raised when the database fails unexpectedly during a write."""

    status_code = 503


__all__ = [
    "SchedulingError",
    "NotFoundError",
    "InvalidInputError",
    "InvalidTimeFormatError",
    "InvalidStatusError",
    "InvalidStatusTransitionError",
    "SchedulingConflictError",
    "ForbiddenError",
    "StorageFaultError",
]
